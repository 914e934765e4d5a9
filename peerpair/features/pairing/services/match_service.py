"""
Match service - ranks candidates for a member against the live profile pool.
"""

from peerpair.config import settings
from peerpair.features.pairing.domain.errors import NotFoundError, ValidationError
from peerpair.features.pairing.domain.models import MatchScore
from peerpair.features.pairing.matching import match_scorer
from peerpair.features.pairing.repository import ProfileRepository
from peerpair.features.pairing.services.common import translate_store_errors
from peerpair.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@translate_store_errors
async def get_matches(member_id: str, limit: int | None = None) -> list[MatchScore]:
    """
    Top candidates for the member, best first.

    The active pool is re-read on every call; nothing is cached between calls.

    Raises:
        ValidationError: limit below 1
        NotFoundError: member has no active profile
    """
    limit = settings.MATCH_DEFAULT_LIMIT if limit is None else limit
    if limit < 1:
        raise ValidationError("limit must be at least 1", field="limit")
    limit = min(limit, settings.MATCH_MAX_LIMIT)

    profile = await ProfileRepository.get(member_id)
    if profile is None or not profile.is_active:
        raise NotFoundError("No active profile found. Create a profile first.", member_id=member_id)

    pool = await ProfileRepository.list_active()
    matches = match_scorer.rank(profile, pool, limit)

    logger.info(
        "Matches ranked",
        member_id=member_id,
        pool_size=len(pool),
        returned=len(matches),
        top_score=matches[0].score if matches else None,
    )
    return matches
