"""
Persistence for pairing requests.

Status changes go through ``update_status`` with the expected prior status
in the WHERE clause; callers run it inside ``run_in_transaction``.
"""

from datetime import datetime

import psycopg

from peerpair.db.helpers import (
    DatabaseError,
    execute_query,
    fetch_all,
    fetch_one,
    is_valid_uuid,
    with_db_retry,
)
from peerpair.features.pairing.domain.models import PairingRequest
from peerpair.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RequestRepository:
    """Reads and writes pair_requests rows."""

    SELECT_COLUMNS = """
        id, from_user_id, to_user_id, session_type, message,
        status, proposed_time, created_at, updated_at
    """

    DIRECTION_COLUMNS = {"sent": "from_user_id", "received": "to_user_id"}

    @classmethod
    def _row_to_request(cls, row: dict | None) -> PairingRequest | None:
        if not row:
            return None

        return PairingRequest(
            id=str(row["id"]),
            from_user_id=row["from_user_id"],
            to_user_id=row["to_user_id"],
            session_type=row["session_type"],
            message=row["message"],
            status=row["status"],
            proposed_time=row.get("proposed_time"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    @classmethod
    async def create(
        cls,
        from_user_id: str,
        to_user_id: str,
        session_type: str,
        message: str,
        proposed_time: datetime | None = None,
    ) -> PairingRequest:
        """Insert a new request with status=pending and return it."""
        query = f"""
            INSERT INTO pair_requests (
                from_user_id, to_user_id, session_type, message, status, proposed_time
            )
            VALUES (%s, %s, %s, %s, 'pending', %s)
            RETURNING {cls.SELECT_COLUMNS}
        """

        row = await fetch_one(
            query, (from_user_id, to_user_id, session_type, message, proposed_time)
        )
        if not row:
            raise DatabaseError("Failed to create pair request", operation="create_request")

        return cls._row_to_request(row)

    @classmethod
    async def get(
        cls,
        request_id: str,
        *,
        connection: psycopg.AsyncConnection | None = None,
        for_update: bool = False,
    ) -> PairingRequest | None:
        if not is_valid_uuid(request_id):
            return None

        query = f"SELECT {cls.SELECT_COLUMNS} FROM pair_requests WHERE id = %s"
        if for_update:
            query += " FOR UPDATE"

        row = await fetch_one(query, (request_id,), connection=connection)
        return cls._row_to_request(row)

    @classmethod
    @with_db_retry(max_retries=2, base_delay=0.1)
    async def list_for_member(cls, member_id: str, direction: str) -> list[PairingRequest]:
        """Requests sent by or addressed to the member, newest first."""
        column = cls.DIRECTION_COLUMNS[direction]
        query = f"""
            SELECT {cls.SELECT_COLUMNS}
            FROM pair_requests
            WHERE {column} = %s
            ORDER BY created_at DESC
        """
        rows = await fetch_all(query, (member_id,))
        return [cls._row_to_request(row) for row in rows]

    @classmethod
    async def update_status(
        cls,
        request_id: str,
        from_status: str,
        to_status: str,
        *,
        connection: psycopg.AsyncConnection | None = None,
    ) -> int:
        """Move the request from ``from_status`` to ``to_status``; returns rows changed."""
        query = """
            UPDATE pair_requests
            SET status = %s,
                updated_at = NOW()
            WHERE id = %s
              AND status = %s
        """
        affected = await execute_query(
            query, (to_status, request_id, from_status), connection=connection
        )
        logger.debug(
            "Pair request status write",
            request_id=request_id,
            from_status=from_status,
            to_status=to_status,
            affected=affected,
        )
        return affected
