"""
Domain subpackage for the pairing feature.
"""

from .errors import (
    ConflictError,
    NotFoundError,
    PairingError,
    StoreUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from .models import (
    SESSION_TYPES,
    AvailabilityWindow,
    MatchScore,
    PairingRequest,
    PairProfile,
    PairSession,
    RespondResult,
    SessionNotes,
)

__all__ = [
    "SESSION_TYPES",
    "AvailabilityWindow",
    "ConflictError",
    "MatchScore",
    "NotFoundError",
    "PairingError",
    "PairingRequest",
    "PairProfile",
    "PairSession",
    "RespondResult",
    "SessionNotes",
    "StoreUnavailableError",
    "UnauthorizedError",
    "ValidationError",
]
