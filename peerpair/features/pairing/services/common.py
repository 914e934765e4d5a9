"""
Shared service helpers for the pairing feature.
"""

import functools

from peerpair.db.helpers import DatabaseError
from peerpair.features.pairing.domain.errors import StoreUnavailableError
from peerpair.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def translate_store_errors(func):
    """Surface persistence failures as StoreUnavailableError; pairing errors pass through."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except DatabaseError as e:
            logger.error(
                "Pairing store unavailable",
                operation=func.__name__,
                db_operation=e.operation,
                error=str(e),
            )
            raise StoreUnavailableError(
                "The pairing store is temporarily unavailable", operation=func.__name__
            ) from e

    return wrapper
