"""
Session lifecycle - start, notes, complete and cancel for pair sessions.

Every write follows the same shape: read and check ownership and status,
then issue a conditional update keyed on the expected status. If the
update matches no row, a concurrent action won and the session is re-read
to report why.
"""

from peerpair.features.pairing.domain.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from peerpair.features.pairing.domain.models import (
    NOTES_WRITABLE_STATUSES,
    SESSION_TRANSITIONS,
    PairSession,
    SessionNotes,
    can_transition,
)
from peerpair.features.pairing.repository import SessionRepository
from peerpair.features.pairing.services.common import translate_store_errors
from peerpair.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CANCELLABLE_STATUSES = frozenset(
    status for status in SESSION_TRANSITIONS if can_transition(SESSION_TRANSITIONS, status, "cancelled")
)


async def _load_for_participant(session_id: str, acting_user_id: str) -> PairSession:
    session = await SessionRepository.get(session_id)
    if session is None:
        raise NotFoundError("Session not found", session_id=session_id)
    if not session.has_participant(acting_user_id):
        logger.warning(
            "Non-participant attempted session action",
            session_id=session_id,
            acting_user_id=acting_user_id,
        )
        raise UnauthorizedError("You are not a participant in this session", session_id=session_id)
    return session


async def _raise_lost_race(session_id: str, action: str) -> None:
    """A conditional write matched nothing; report the state that beat us."""
    current = await SessionRepository.get(session_id)
    if current is None:
        raise NotFoundError("Session not found", session_id=session_id)

    logger.warning(
        "Session changed before write",
        session_id=session_id,
        action=action,
        status=current.status,
    )
    raise ConflictError(
        f"Cannot {action} a session that is {current.status}",
        session_id=session_id,
        status=current.status,
    )


def _guard_status(session: PairSession, allowed, action: str) -> None:
    if session.status not in allowed:
        raise ConflictError(
            f"Cannot {action} a session that is {session.status}",
            session_id=session.id,
            status=session.status,
        )


def _require_complete_notes(session: PairSession, member_id: str) -> None:
    own_notes = session.notes_for(member_id)
    if own_notes is None or not own_notes.is_complete():
        raise ValidationError(
            "Save your session notes before completing the session", field="notes"
        )


@translate_store_errors
async def get_session(session_id: str, acting_user_id: str) -> PairSession:
    """Fetch a session; non-participants see it as missing."""
    session = await SessionRepository.get(session_id)
    if session is None or not session.has_participant(acting_user_id):
        raise NotFoundError("Session not found", session_id=session_id)
    return session


@translate_store_errors
async def list_sessions(member_id: str) -> list[PairSession]:
    return await SessionRepository.list_for_member(member_id)


@translate_store_errors
async def start_session(session_id: str, acting_user_id: str) -> PairSession:
    """
    Move a scheduled session to in-progress.

    Raises:
        NotFoundError: No such session
        UnauthorizedError: Caller is not a participant
        ConflictError: Session is not scheduled
    """
    session = await _load_for_participant(session_id, acting_user_id)
    _guard_status(session, {"scheduled"}, "start")

    started = await SessionRepository.transition(session.id, ["scheduled"], "in-progress")
    if started is None:
        await _raise_lost_race(session_id, "start")

    logger.info("Pair session started", session_id=session_id, acting_user_id=acting_user_id)
    return started


@translate_store_errors
async def save_notes(session_id: str, acting_user_id: str, notes: SessionNotes) -> PairSession:
    """
    Write the caller's own notes entry; the other participant's entry is untouched.

    Allowed while the session is in-progress or completed.

    Raises:
        ValidationError: Notes are empty
        NotFoundError: No such session
        UnauthorizedError: Caller is not a participant
        ConflictError: Session is scheduled or cancelled
    """
    if notes.is_empty():
        raise ValidationError("Session notes cannot be empty", field="notes")

    session = await _load_for_participant(session_id, acting_user_id)
    _guard_status(session, NOTES_WRITABLE_STATUSES, "save notes for")

    updated = await SessionRepository.write_notes(
        session.id, acting_user_id, notes, NOTES_WRITABLE_STATUSES
    )
    if updated is None:
        await _raise_lost_race(session_id, "save notes for")

    logger.info("Session notes saved", session_id=session_id, acting_user_id=acting_user_id)
    return updated


@translate_store_errors
async def complete_session(session_id: str, acting_user_id: str) -> PairSession:
    """
    Complete an in-progress session once the caller has saved their notes.

    Raises:
        NotFoundError: No such session
        UnauthorizedError: Caller is not a participant
        ConflictError: Session is not in-progress
        ValidationError: Caller has not saved complete notes
    """
    session = await _load_for_participant(session_id, acting_user_id)
    _guard_status(session, {"in-progress"}, "complete")

    _require_complete_notes(session, acting_user_id)

    completed = await SessionRepository.complete(session.id, acting_user_id)
    if completed is None:
        # Notes may have been overwritten with a partial entry since the guard read
        current = await SessionRepository.get(session_id)
        if current is not None and current.status == "in-progress":
            _require_complete_notes(current, acting_user_id)
        await _raise_lost_race(session_id, "complete")

    logger.info("Pair session completed", session_id=session_id, acting_user_id=acting_user_id)
    return completed


@translate_store_errors
async def cancel_session(session_id: str, acting_user_id: str) -> PairSession:
    """Cancel a scheduled or in-progress session; either participant may cancel."""
    session = await _load_for_participant(session_id, acting_user_id)
    _guard_status(session, CANCELLABLE_STATUSES, "cancel")

    cancelled = await SessionRepository.transition(session.id, CANCELLABLE_STATUSES, "cancelled")
    if cancelled is None:
        await _raise_lost_race(session_id, "cancel")

    logger.info("Pair session cancelled", session_id=session_id, acting_user_id=acting_user_id)
    return cancelled
