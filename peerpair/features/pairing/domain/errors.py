"""
Error taxonomy for the pairing feature.

Every core operation raises one of these; the API layer renders them using
``code`` and ``status_code`` so callers see a stable status per kind.
"""

from typing import Any


class PairingError(Exception):
    """Base class for pairing failures."""

    code = "pairing_error"
    status_code = 500

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ValidationError(PairingError):
    """Malformed input: self-request, empty message or notes, unknown session type."""

    code = "validation_error"
    status_code = 400


class NotFoundError(PairingError):
    """Request, session or profile id does not exist."""

    code = "not_found"
    status_code = 404


class UnauthorizedError(PairingError):
    """Actor is not the addressed recipient, sender or session participant."""

    code = "unauthorized"
    status_code = 403


class ConflictError(PairingError):
    """State guard violated (already responded, wrong session status)."""

    code = "conflict"
    status_code = 409


class StoreUnavailableError(PairingError):
    """Persistence failure, including exhausted transaction retries."""

    code = "store_unavailable"
    status_code = 503
