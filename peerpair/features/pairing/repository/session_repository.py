"""
Persistence for pair sessions.

Lifecycle writes are conditional updates keyed on the expected current
status, so a duplicate or late client action cannot resurrect a cancelled
or completed session. Notes are merged per participant key instead of
rewriting the whole document.
"""

from collections.abc import Iterable
from datetime import datetime

import psycopg
from psycopg.types.json import Jsonb

from peerpair.db.helpers import (
    DatabaseError,
    fetch_all,
    fetch_one,
    is_valid_uuid,
    with_db_retry,
)
from peerpair.features.pairing.domain.models import PairSession, SessionNotes
from peerpair.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class SessionRepository:
    """Reads and writes pair_sessions rows."""

    SELECT_COLUMNS = """
        id, request_id, participant_ids, session_type, status,
        scheduled_time, started_at, completed_at, notes,
        created_at, updated_at
    """

    # Timestamp column stamped by each lifecycle transition
    STAMP_CLAUSES = {
        "in-progress": "started_at = NOW(),",
        "completed": "completed_at = NOW(),",
        "cancelled": "",
    }

    @classmethod
    def _row_to_session(cls, row: dict | None) -> PairSession | None:
        if not row:
            return None

        return PairSession(
            id=str(row["id"]),
            request_id=str(row["request_id"]) if row.get("request_id") else None,
            participant_ids=row["participant_ids"],
            session_type=row["session_type"],
            status=row["status"],
            scheduled_time=row.get("scheduled_time"),
            started_at=row.get("started_at"),
            completed_at=row.get("completed_at"),
            notes=row.get("notes") or {},
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    @classmethod
    async def create(
        cls,
        participant_ids: list[str],
        session_type: str,
        *,
        scheduled_time: datetime | None = None,
        request_id: str | None = None,
        connection: psycopg.AsyncConnection | None = None,
    ) -> str:
        """Insert a scheduled session and return its id."""
        query = """
            INSERT INTO pair_sessions (
                request_id, participant_ids, session_type, status, scheduled_time
            )
            VALUES (%s, %s, %s, 'scheduled', %s)
            RETURNING id
        """

        row = await fetch_one(
            query,
            (request_id, Jsonb(list(participant_ids)), session_type, scheduled_time),
            connection=connection,
        )
        if not row:
            raise DatabaseError("Failed to create pair session", operation="create_session")

        session_id = str(row["id"])
        logger.info(
            "Pair session created",
            session_id=session_id,
            request_id=request_id,
            session_type=session_type,
        )
        return session_id

    @classmethod
    @with_db_retry(max_retries=2, base_delay=0.1)
    async def get(cls, session_id: str) -> PairSession | None:
        if not is_valid_uuid(session_id):
            return None

        query = f"SELECT {cls.SELECT_COLUMNS} FROM pair_sessions WHERE id = %s"
        row = await fetch_one(query, (session_id,))
        return cls._row_to_session(row)

    @classmethod
    @with_db_retry(max_retries=2, base_delay=0.1)
    async def get_by_request(cls, request_id: str) -> PairSession | None:
        if not is_valid_uuid(request_id):
            return None

        query = f"SELECT {cls.SELECT_COLUMNS} FROM pair_sessions WHERE request_id = %s"
        row = await fetch_one(query, (request_id,))
        return cls._row_to_session(row)

    @classmethod
    @with_db_retry(max_retries=2, base_delay=0.1)
    async def list_for_member(cls, member_id: str) -> list[PairSession]:
        """Sessions the member participates in, newest first."""
        query = f"""
            SELECT {cls.SELECT_COLUMNS}
            FROM pair_sessions
            WHERE participant_ids @> %s
            ORDER BY created_at DESC
        """
        rows = await fetch_all(query, (Jsonb([member_id]),))
        return [cls._row_to_session(row) for row in rows]

    @classmethod
    async def transition(
        cls, session_id: str, from_statuses: Iterable[str], to_status: str
    ) -> PairSession | None:
        """
        Conditionally move a session to ``to_status``.

        Returns the updated session, or None when the row is missing or its
        status is no longer one of ``from_statuses``.
        """
        stamp = cls.STAMP_CLAUSES[to_status]
        query = f"""
            UPDATE pair_sessions
            SET status = %s,
                {stamp}
                updated_at = NOW()
            WHERE id = %s
              AND status = ANY(%s)
            RETURNING {cls.SELECT_COLUMNS}
        """
        row = await fetch_one(query, (to_status, session_id, list(from_statuses)))
        return cls._row_to_session(row)

    @classmethod
    async def write_notes(
        cls,
        session_id: str,
        member_id: str,
        notes: SessionNotes,
        allowed_statuses: Iterable[str],
    ) -> PairSession | None:
        """Merge the member's notes under their own key; other keys are untouched."""
        query = f"""
            UPDATE pair_sessions
            SET notes = notes || jsonb_build_object(%s::text, %s::jsonb),
                updated_at = NOW()
            WHERE id = %s
              AND status = ANY(%s)
              AND participant_ids @> %s
            RETURNING {cls.SELECT_COLUMNS}
        """
        row = await fetch_one(
            query,
            (
                member_id,
                Jsonb(notes.model_dump()),
                session_id,
                list(allowed_statuses),
                Jsonb([member_id]),
            ),
        )
        return cls._row_to_session(row)

    @classmethod
    async def complete(cls, session_id: str, member_id: str) -> PairSession | None:
        """
        Mark an in-progress session completed if the member's notes are complete.

        Both reflections must be present and non-blank, the same rule
        SessionNotes.is_complete applies before the write.
        """
        query = f"""
            UPDATE pair_sessions
            SET status = 'completed',
                completed_at = NOW(),
                updated_at = NOW()
            WHERE id = %s
              AND status = 'in-progress'
              AND btrim(notes -> %s::text ->> 'what_we_worked_on') <> ''
              AND btrim(notes -> %s::text ->> 'what_i_learned') <> ''
            RETURNING {cls.SELECT_COLUMNS}
        """
        row = await fetch_one(query, (session_id, member_id, member_id))
        return cls._row_to_session(row)
