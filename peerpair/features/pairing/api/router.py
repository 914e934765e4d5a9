"""
Pairing routes.

Thin HTTP binding over the pairing services: resolve the caller, call the
service, convert domain models to response models. PairingError subclasses
propagate to the application's exception handler.

Usage:
    1. PUT /pair/profile, GET /pair/profile, GET /pair/profiles
    2. GET /pair/matches?limit=N
    3. POST /pair/requests, GET /pair/requests?direction=sent|received
    4. POST /pair/requests/{id}/respond, POST /pair/requests/{id}/cancel
    5. GET /pair/sessions, GET /pair/sessions/{id}
    6. POST /pair/sessions/{id}/start, PUT /pair/sessions/{id}/notes,
       POST /pair/sessions/{id}/complete, POST /pair/sessions/{id}/cancel
"""

from fastapi import APIRouter, Depends, Query, status

from peerpair.auth.identity import member_dependency
from peerpair.features.pairing.api.schemas import (
    CreatePairRequest,
    CreatePairRequestResponse,
    MatchListResponse,
    MatchResponse,
    PairRequestListResponse,
    ProfileListResponse,
    ProfileUpsertRequest,
    RespondRequest,
    RespondResponse,
    SessionListResponse,
    SessionNotesRequest,
)
from peerpair.features.pairing.domain.errors import NotFoundError
from peerpair.features.pairing.domain.models import (
    PairingRequest,
    PairProfile,
    PairSession,
    SessionNotes,
)
from peerpair.features.pairing.services import (
    match_service,
    profile_service,
    request_service,
    session_service,
)

router = APIRouter(prefix="/pair", tags=["pairing"])


# Profiles


@router.put("/profile", response_model=PairProfile)
async def put_profile(body: ProfileUpsertRequest, member_id: str = Depends(member_dependency)):
    return await profile_service.upsert_profile(member_id, **body.model_dump())


@router.get("/profile", response_model=PairProfile)
async def get_own_profile(member_id: str = Depends(member_dependency)):
    profile = await profile_service.get_profile(member_id)
    if profile is None:
        raise NotFoundError("Profile not found", member_id=member_id)
    return profile


@router.get("/profiles", response_model=ProfileListResponse)
async def list_profiles(member_id: str = Depends(member_dependency)):
    """Active profiles, most recently updated first."""
    profiles = await profile_service.list_active_profiles()
    return ProfileListResponse(profiles=profiles, count=len(profiles))


# Matching


@router.get("/matches", response_model=MatchListResponse)
async def get_matches(
    limit: int | None = Query(default=None),
    member_id: str = Depends(member_dependency),
):
    """
    Ranked candidates for the caller.

    Raises:
        400: limit below 1
        404: Caller has no active profile
    """
    matches = await match_service.get_matches(member_id, limit=limit)
    return MatchListResponse(
        matches=[MatchResponse.from_score(match) for match in matches],
        count=len(matches),
    )


# Requests


@router.post(
    "/requests",
    response_model=CreatePairRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_request(body: CreatePairRequest, member_id: str = Depends(member_dependency)):
    request_id = await request_service.create_request(
        from_user_id=member_id,
        to_user_id=body.to_user_id,
        session_type=body.session_type,
        message=body.message,
        proposed_time=body.proposed_time,
    )
    return CreatePairRequestResponse(request_id=request_id)


@router.get("/requests", response_model=PairRequestListResponse)
async def list_requests(
    direction: str = Query(default="received"),
    member_id: str = Depends(member_dependency),
):
    requests = await request_service.list_requests(member_id, direction)
    return PairRequestListResponse(requests=requests, direction=direction, count=len(requests))


@router.post("/requests/{request_id}/respond", response_model=RespondResponse)
async def respond_to_request(
    request_id: str,
    body: RespondRequest,
    member_id: str = Depends(member_dependency),
):
    """
    Accept or decline a request addressed to the caller.

    Raises:
        403: Caller is not the recipient
        404: Request not found
        409: Request already responded to
    """
    result = await request_service.respond_to_request(request_id, member_id, body.action)
    return RespondResponse.from_result(result)


@router.post("/requests/{request_id}/cancel", response_model=PairingRequest)
async def cancel_request(request_id: str, member_id: str = Depends(member_dependency)):
    return await request_service.cancel_request(request_id, member_id)


# Sessions


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(member_id: str = Depends(member_dependency)):
    sessions = await session_service.list_sessions(member_id)
    return SessionListResponse(sessions=sessions, count=len(sessions))


@router.get("/sessions/{session_id}", response_model=PairSession)
async def get_session(session_id: str, member_id: str = Depends(member_dependency)):
    return await session_service.get_session(session_id, member_id)


@router.post("/sessions/{session_id}/start", response_model=PairSession)
async def start_session(session_id: str, member_id: str = Depends(member_dependency)):
    return await session_service.start_session(session_id, member_id)


@router.put("/sessions/{session_id}/notes", response_model=PairSession)
async def save_notes(
    session_id: str,
    body: SessionNotesRequest,
    member_id: str = Depends(member_dependency),
):
    notes = SessionNotes(**body.model_dump())
    return await session_service.save_notes(session_id, member_id, notes)


@router.post("/sessions/{session_id}/complete", response_model=PairSession)
async def complete_session(session_id: str, member_id: str = Depends(member_dependency)):
    """
    Complete an in-progress session.

    Raises:
        400: Caller has not saved notes yet
        409: Session is not in progress
    """
    return await session_service.complete_session(session_id, member_id)


@router.post("/sessions/{session_id}/cancel", response_model=PairSession)
async def cancel_session(session_id: str, member_id: str = Depends(member_dependency)):
    return await session_service.cancel_session(session_id, member_id)
