"""
Service layer for the pairing feature.
"""

from . import match_service, profile_service, request_service, session_service
from .match_service import get_matches
from .profile_service import get_profile, list_active_profiles, upsert_profile
from .request_service import cancel_request, create_request, list_requests, respond_to_request
from .session_service import (
    cancel_session,
    complete_session,
    get_session,
    list_sessions,
    save_notes,
    start_session,
)

__all__ = [
    "match_service",
    "profile_service",
    "request_service",
    "session_service",
    "get_matches",
    "get_profile",
    "list_active_profiles",
    "upsert_profile",
    "cancel_request",
    "create_request",
    "list_requests",
    "respond_to_request",
    "cancel_session",
    "complete_session",
    "get_session",
    "list_sessions",
    "save_notes",
    "start_session",
]
