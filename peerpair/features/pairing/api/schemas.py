# peerpair/features/pairing/api/schemas.py
"""
HTTP request/response models for the pairing router.

Request bodies stay loose (plain strings and dicts) so that field-level
rules are enforced once, in the service layer, and surface as the same
validation_error the core raises everywhere else.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from peerpair.features.pairing.domain.models import (
    MatchScore,
    PairingRequest,
    PairProfile,
    PairSession,
    RespondResult,
)


class ProfileUpsertRequest(BaseModel):
    """Request body for creating or replacing the caller's profile."""

    skills_can_teach: list[str] | None = None
    skills_want_to_learn: list[str] | None = None
    preferred_languages: list[str] = Field(default_factory=list)
    preferred_frameworks: list[str] = Field(default_factory=list)
    timezone: str | None = None
    availability: list[dict[str, Any]] = Field(default_factory=list)
    session_types: list[str] = Field(default_factory=list)
    bio: str | None = None
    is_active: bool = True


class ProfileListResponse(BaseModel):
    profiles: list[PairProfile]
    count: int


class MatchResponse(BaseModel):
    candidate_id: str
    score: int
    reasons: list[str]

    @classmethod
    def from_score(cls, match: MatchScore) -> "MatchResponse":
        return cls(candidate_id=match.candidate_id, score=match.score, reasons=list(match.reasons))


class MatchListResponse(BaseModel):
    matches: list[MatchResponse]
    count: int


class CreatePairRequest(BaseModel):
    """Request body for sending a pairing request."""

    to_user_id: str
    session_type: str
    message: str
    proposed_time: datetime | None = None


class CreatePairRequestResponse(BaseModel):
    request_id: str
    status: str = "pending"


class PairRequestListResponse(BaseModel):
    requests: list[PairingRequest]
    direction: str
    count: int


class RespondRequest(BaseModel):
    action: str = Field(..., description="accept or decline")


class RespondResponse(BaseModel):
    status: str
    session_id: str | None = None

    @classmethod
    def from_result(cls, result: RespondResult) -> "RespondResponse":
        return cls(status=result.status, session_id=result.session_id)


class SessionNotesRequest(BaseModel):
    what_we_worked_on: str = ""
    what_i_learned: str = ""
    next_steps: str | None = None


class SessionListResponse(BaseModel):
    sessions: list[PairSession]
    count: int
