"""
Repositories for the pairing feature.
"""

from .profile_repository import ProfileRepository
from .request_repository import RequestRepository
from .session_repository import SessionRepository

__all__ = ["ProfileRepository", "RequestRepository", "SessionRepository"]
