"""
Request workflow - create, list, respond to and cancel pairing requests.

Responding and cancelling are guarded transitions run inside one
serializable transaction: the request is re-read on every attempt, so of
two concurrent responders exactly one sees ``pending`` and the other gets
ConflictError.
"""

from datetime import UTC, datetime

import psycopg

from peerpair.db.helpers import run_in_transaction
from peerpair.features.pairing.domain.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from peerpair.features.pairing.domain.models import (
    REQUEST_TRANSITIONS,
    SESSION_TYPES,
    PairingRequest,
    RequestAction,
    RequestDirection,
    RespondResult,
    can_transition,
)
from peerpair.features.pairing.repository import RequestRepository, SessionRepository
from peerpair.features.pairing.services.common import translate_store_errors
from peerpair.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

MAX_MESSAGE_LENGTH = 1000
REQUEST_ACTIONS = {"accept": "accepted", "decline": "declined"}
REQUEST_DIRECTIONS = ("sent", "received")


def _normalize_proposed_time(proposed_time: datetime | None) -> datetime | None:
    if proposed_time is None:
        return None
    if proposed_time.tzinfo is None:
        proposed_time = proposed_time.replace(tzinfo=UTC)
    if proposed_time <= datetime.now(UTC):
        raise ValidationError("Proposed time must be in the future", field="proposed_time")
    return proposed_time


@translate_store_errors
async def create_request(
    from_user_id: str,
    to_user_id: str,
    session_type: str,
    message: str,
    proposed_time: datetime | None = None,
) -> str:
    """
    Create a pending request from one member to another.

    Returns:
        The new request id

    Raises:
        ValidationError: Self-request, unknown session type, empty or oversized message,
            proposed time in the past
    """
    if not to_user_id:
        raise ValidationError("to_user_id is required", field="to_user_id")
    if from_user_id == to_user_id:
        raise ValidationError("Cannot send request to yourself", field="to_user_id")
    if session_type not in SESSION_TYPES:
        raise ValidationError("Invalid session type", field="session_type")

    message = (message or "").strip()
    if not message:
        raise ValidationError("Message is required", field="message")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError(
            f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters", field="message"
        )

    request = await RequestRepository.create(
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        session_type=session_type,
        message=message,
        proposed_time=_normalize_proposed_time(proposed_time),
    )

    logger.info(
        "Pair request created",
        request_id=request.id,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        session_type=session_type,
    )
    return request.id


@translate_store_errors
async def list_requests(member_id: str, direction: RequestDirection) -> list[PairingRequest]:
    """Requests the member sent or received, most recent first."""
    if direction not in REQUEST_DIRECTIONS:
        raise ValidationError("direction must be 'sent' or 'received'", field="direction")
    return await RequestRepository.list_for_member(member_id, direction)


def _guard_pending(
    request: PairingRequest | None,
    request_id: str,
    acting_user_id: str,
    owner_field: str,
    target_status: str,
) -> PairingRequest:
    """
    Shared guard for respond/cancel; ``owner_field`` names the party allowed to act.

    Outsiders are rejected before the status check; the other party of an
    already-settled request sees the conflict rather than an authorization
    error.
    """
    if request is None:
        raise NotFoundError("Request not found", request_id=request_id)
    if acting_user_id not in (request.from_user_id, request.to_user_id):
        raise UnauthorizedError("You are not a party to this request", request_id=request_id)
    if not can_transition(REQUEST_TRANSITIONS, request.status, target_status):
        raise ConflictError(
            "Request has already been responded to", request_id=request_id, status=request.status
        )
    if acting_user_id != getattr(request, owner_field):
        raise UnauthorizedError("You cannot perform this action on this request", request_id=request_id)
    return request


@translate_store_errors
async def respond_to_request(
    request_id: str, acting_user_id: str, action: RequestAction
) -> RespondResult:
    """
    Accept or decline a pending request as its recipient.

    Accepting creates exactly one scheduled session in the same transaction.

    Raises:
        ValidationError: Unknown action
        NotFoundError: No such request
        UnauthorizedError: Caller is not the recipient
        ConflictError: Request is no longer pending
        StoreUnavailableError: Store failure or contention retries exhausted
    """
    if action not in REQUEST_ACTIONS:
        raise ValidationError("Action must be 'accept' or 'decline'", field="action")
    new_status = REQUEST_ACTIONS[action]

    async def _respond(conn: psycopg.AsyncConnection) -> RespondResult:
        request = _guard_pending(
            await RequestRepository.get(request_id, connection=conn, for_update=True),
            request_id,
            acting_user_id,
            owner_field="to_user_id",
            target_status=new_status,
        )

        updated = await RequestRepository.update_status(
            request.id, "pending", new_status, connection=conn
        )
        if updated != 1:
            raise ConflictError("Request has already been responded to", request_id=request_id)

        session_id = None
        if new_status == "accepted":
            session_id = await SessionRepository.create(
                participant_ids=[request.from_user_id, acting_user_id],
                session_type=request.session_type,
                scheduled_time=request.proposed_time,
                request_id=request.id,
                connection=conn,
            )
        return RespondResult(status=new_status, session_id=session_id)

    try:
        result = await run_in_transaction(_respond, operation="respond_to_request")
    except (ConflictError, UnauthorizedError, NotFoundError) as e:
        logger.warning(
            "Pair request response rejected",
            request_id=request_id,
            acting_user_id=acting_user_id,
            action=action,
            reason=e.code,
        )
        raise

    logger.info(
        "Pair request responded",
        request_id=request_id,
        acting_user_id=acting_user_id,
        status=result.status,
        session_id=result.session_id,
    )
    return result


@translate_store_errors
async def cancel_request(request_id: str, acting_user_id: str) -> PairingRequest:
    """
    Withdraw a pending request as its sender.

    Raises:
        NotFoundError, UnauthorizedError, ConflictError as for respond_to_request
    """

    async def _cancel(conn: psycopg.AsyncConnection) -> PairingRequest:
        request = _guard_pending(
            await RequestRepository.get(request_id, connection=conn, for_update=True),
            request_id,
            acting_user_id,
            owner_field="from_user_id",
            target_status="cancelled",
        )

        updated = await RequestRepository.update_status(
            request.id, "pending", "cancelled", connection=conn
        )
        if updated != 1:
            raise ConflictError("Request has already been responded to", request_id=request_id)
        return request.model_copy(update={"status": "cancelled"})

    cancelled = await run_in_transaction(_cancel, operation="cancel_request")
    logger.info("Pair request cancelled", request_id=request_id, acting_user_id=acting_user_id)
    return cancelled
