"""
Domain models for the pairing feature.

Profiles, requests and sessions are pydantic documents shared by the
repositories, services and API layer. Match scores are derived on demand
and never persisted, so they are plain dataclasses.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SessionType = Literal["teach-me", "build-together", "code-review", "explore-topic"]
RequestStatus = Literal["pending", "accepted", "declined", "cancelled"]
SessionStatus = Literal["scheduled", "in-progress", "completed", "cancelled"]
RequestAction = Literal["accept", "decline"]
RequestDirection = Literal["sent", "received"]

SESSION_TYPES: tuple[str, ...] = get_args(SessionType)

# Allowed status moves; anything missing here is terminal
REQUEST_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"accepted", "declined", "cancelled"}),
}
SESSION_TRANSITIONS: dict[str, frozenset[str]] = {
    "scheduled": frozenset({"in-progress", "cancelled"}),
    "in-progress": frozenset({"completed", "cancelled"}),
}
NOTES_WRITABLE_STATUSES: frozenset[str] = frozenset({"in-progress", "completed"})

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def can_transition(transitions: dict[str, frozenset[str]], current: str, target: str) -> bool:
    return target in transitions.get(current, frozenset())


def _to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


class AvailabilityWindow(BaseModel):
    """Recurring weekly slot, 0 = Sunday ... 6 = Saturday, same-day HH:MM range."""

    model_config = ConfigDict(frozen=True)

    day_of_week: int = Field(..., ge=0, le=6)
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_hhmm(cls, value: str) -> str:
        value = value.strip()
        if not _HHMM.match(value):
            raise ValueError(f"time must be HH:MM, got {value!r}")
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "AvailabilityWindow":
        if self.start_minutes >= self.end_minutes:
            raise ValueError("start_time must be before end_time")
        return self

    @property
    def start_minutes(self) -> int:
        return _to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return _to_minutes(self.end_time)

    def overlaps(self, other: "AvailabilityWindow") -> bool:
        """Same day and the half-open [start, end) ranges intersect."""
        return (
            self.day_of_week == other.day_of_week
            and self.start_minutes < other.end_minutes
            and other.start_minutes < self.end_minutes
        )


class PairProfile(BaseModel):
    """One member's matching profile; member_id is the document key."""

    member_id: str = Field(..., min_length=1, frozen=True)
    skills_can_teach: list[str] = Field(default_factory=list)
    skills_want_to_learn: list[str] = Field(default_factory=list)
    preferred_languages: list[str] = Field(default_factory=list)
    preferred_frameworks: list[str] = Field(default_factory=list)
    timezone: str
    availability: list[AvailabilityWindow] = Field(default_factory=list)
    session_types: list[SessionType] = Field(default_factory=list)
    bio: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def skill_count(self) -> int:
        return len(self.skills_can_teach) + len(self.skills_want_to_learn)


class PairingRequest(BaseModel):
    """A proposal from one member to another; mutated only through guarded transitions."""

    id: str
    from_user_id: str
    to_user_id: str
    session_type: SessionType
    message: str
    status: RequestStatus = "pending"
    proposed_time: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"


class SessionNotes(BaseModel):
    """One participant's reflection on a session."""

    what_we_worked_on: str
    what_i_learned: str
    next_steps: str | None = None

    def is_empty(self) -> bool:
        return not (self.what_we_worked_on.strip() or self.what_i_learned.strip())

    def is_complete(self) -> bool:
        """Both required reflections are filled in."""
        return bool(self.what_we_worked_on.strip() and self.what_i_learned.strip())


class PairSession(BaseModel):
    """Working session created when a request is accepted."""

    id: str
    request_id: str | None = None
    participant_ids: list[str] = Field(..., min_length=2, max_length=2)
    session_type: SessionType
    status: SessionStatus = "scheduled"
    scheduled_time: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    notes: dict[str, SessionNotes] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("participant_ids")
    @classmethod
    def _distinct_participants(cls, value: list[str]) -> list[str]:
        if len(set(value)) != len(value):
            raise ValueError("participant_ids must be distinct")
        return value

    def has_participant(self, member_id: str) -> bool:
        return member_id in self.participant_ids

    def notes_for(self, member_id: str) -> SessionNotes | None:
        return self.notes.get(member_id)


@dataclass(slots=True)
class MatchScore:
    candidate_id: str
    score: int
    reasons: list[str] = field(default_factory=list)


@dataclass(slots=True)
class RespondResult:
    status: RequestStatus
    session_id: str | None = None
