import asyncio
import uuid
from datetime import UTC, datetime, timedelta

import pytest

from peerpair.features.pairing.domain.models import (
    PairingRequest,
    PairProfile,
    PairSession,
    SessionNotes,
)
from peerpair.features.pairing.repository import (
    ProfileRepository,
    RequestRepository,
    SessionRepository,
)


class FakePairStore:
    """In-memory stand-in for the pairing tables and the transaction primitive."""

    def __init__(self):
        self.profiles: dict[str, PairProfile] = {}
        self.requests: dict[str, PairingRequest] = {}
        self.sessions: dict[str, PairSession] = {}
        self.transactions = 0
        self._lock = asyncio.Lock()
        self._tick = 0
        self._epoch = datetime(2026, 1, 1, tzinfo=UTC)

    def _now(self) -> datetime:
        self._tick += 1
        return self._epoch + timedelta(seconds=self._tick)

    # Profiles

    async def get_profile(self, member_id: str) -> PairProfile | None:
        return self.profiles.get(member_id)

    async def upsert_profile(self, profile: PairProfile) -> PairProfile:
        now = self._now()
        existing = self.profiles.get(profile.member_id)
        created_at = existing.created_at if existing else now
        saved = profile.model_copy(update={"created_at": created_at, "updated_at": now})
        self.profiles[profile.member_id] = saved
        return saved

    async def list_active_profiles(self) -> list[PairProfile]:
        active = [p for p in self.profiles.values() if p.is_active]
        return sorted(active, key=lambda p: p.updated_at, reverse=True)

    # Requests

    async def create_request(
        self, from_user_id, to_user_id, session_type, message, proposed_time=None
    ) -> PairingRequest:
        now = self._now()
        request = PairingRequest(
            id=str(uuid.uuid4()),
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            session_type=session_type,
            message=message,
            proposed_time=proposed_time,
            created_at=now,
            updated_at=now,
        )
        self.requests[request.id] = request
        return request

    async def get_request(self, request_id, *, connection=None, for_update=False):
        return self.requests.get(request_id)

    async def list_requests(self, member_id, direction) -> list[PairingRequest]:
        field = RequestRepository.DIRECTION_COLUMNS[direction]
        matching = [r for r in self.requests.values() if getattr(r, field) == member_id]
        return sorted(matching, key=lambda r: r.created_at, reverse=True)

    async def update_request_status(self, request_id, from_status, to_status, *, connection=None):
        request = self.requests.get(request_id)
        if request is None or request.status != from_status:
            return 0
        self.requests[request_id] = request.model_copy(
            update={"status": to_status, "updated_at": self._now()}
        )
        return 1

    # Sessions

    async def create_session(
        self, participant_ids, session_type, *, scheduled_time=None, request_id=None, connection=None
    ) -> str:
        if request_id and any(s.request_id == request_id for s in self.sessions.values()):
            raise AssertionError(f"duplicate session for request {request_id}")
        now = self._now()
        session = PairSession(
            id=str(uuid.uuid4()),
            request_id=request_id,
            participant_ids=list(participant_ids),
            session_type=session_type,
            scheduled_time=scheduled_time,
            created_at=now,
            updated_at=now,
        )
        self.sessions[session.id] = session
        return session.id

    async def get_session(self, session_id) -> PairSession | None:
        return self.sessions.get(session_id)

    async def get_session_by_request(self, request_id) -> PairSession | None:
        return next((s for s in self.sessions.values() if s.request_id == request_id), None)

    async def list_sessions(self, member_id) -> list[PairSession]:
        mine = [s for s in self.sessions.values() if s.has_participant(member_id)]
        return sorted(mine, key=lambda s: s.created_at, reverse=True)

    async def transition_session(self, session_id, from_statuses, to_status):
        session = self.sessions.get(session_id)
        if session is None or session.status not in set(from_statuses):
            return None
        now = self._now()
        update = {"status": to_status, "updated_at": now}
        if to_status == "in-progress":
            update["started_at"] = now
        elif to_status == "completed":
            update["completed_at"] = now
        self.sessions[session_id] = session.model_copy(update=update)
        return self.sessions[session_id]

    async def write_notes(self, session_id, member_id, notes: SessionNotes, allowed_statuses):
        session = self.sessions.get(session_id)
        if (
            session is None
            or session.status not in set(allowed_statuses)
            or not session.has_participant(member_id)
        ):
            return None
        merged = {**session.notes, member_id: notes}
        self.sessions[session_id] = session.model_copy(
            update={"notes": merged, "updated_at": self._now()}
        )
        return self.sessions[session_id]

    async def complete_session(self, session_id, member_id):
        session = self.sessions.get(session_id)
        if session is None or session.status != "in-progress":
            return None
        own_notes = session.notes.get(member_id)
        if own_notes is None or not own_notes.is_complete():
            return None
        now = self._now()
        self.sessions[session_id] = session.model_copy(
            update={"status": "completed", "completed_at": now, "updated_at": now}
        )
        return self.sessions[session_id]

    # Transactions

    async def run_in_transaction(self, work, *, operation, max_retries=None, base_delay=None):
        async with self._lock:
            self.transactions += 1
            snapshot = (dict(self.requests), dict(self.sessions))
            try:
                return await work(object())
            except Exception:
                self.requests, self.sessions = snapshot
                raise


@pytest.fixture
def fake_store(monkeypatch):
    store = FakePairStore()

    monkeypatch.setattr(ProfileRepository, "get", store.get_profile)
    monkeypatch.setattr(ProfileRepository, "upsert", store.upsert_profile)
    monkeypatch.setattr(ProfileRepository, "list_active", store.list_active_profiles)

    monkeypatch.setattr(RequestRepository, "create", store.create_request)
    monkeypatch.setattr(RequestRepository, "get", store.get_request)
    monkeypatch.setattr(RequestRepository, "list_for_member", store.list_requests)
    monkeypatch.setattr(RequestRepository, "update_status", store.update_request_status)

    monkeypatch.setattr(SessionRepository, "create", store.create_session)
    monkeypatch.setattr(SessionRepository, "get", store.get_session)
    monkeypatch.setattr(SessionRepository, "get_by_request", store.get_session_by_request)
    monkeypatch.setattr(SessionRepository, "list_for_member", store.list_sessions)
    monkeypatch.setattr(SessionRepository, "transition", store.transition_session)
    monkeypatch.setattr(SessionRepository, "write_notes", store.write_notes)
    monkeypatch.setattr(SessionRepository, "complete", store.complete_session)

    monkeypatch.setattr(
        "peerpair.features.pairing.services.request_service.run_in_transaction",
        store.run_in_transaction,
    )
    return store


@pytest.fixture
def make_profile():
    def _make(member_id: str, **overrides) -> PairProfile:
        fields = {
            "skills_can_teach": ["Python"],
            "skills_want_to_learn": ["Go"],
            "timezone": "UTC",
            "session_types": ["build-together"],
        }
        fields.update(overrides)
        return PairProfile(member_id=member_id, **fields)

    return _make

