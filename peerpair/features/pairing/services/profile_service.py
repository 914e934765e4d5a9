"""
Profile service - validates and stores pair profiles.

Input is cleaned the same way for every caller: list items trimmed, blanks
and exact duplicates dropped, limits enforced, session types checked.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from peerpair.features.pairing.domain.errors import ValidationError
from peerpair.features.pairing.domain.models import (
    SESSION_TYPES,
    AvailabilityWindow,
    PairProfile,
)
from peerpair.features.pairing.repository import ProfileRepository
from peerpair.features.pairing.services.common import translate_store_errors
from peerpair.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

MAX_LIST_ITEMS = 20
MAX_ITEM_LENGTH = 500
MAX_BIO_LENGTH = 1000


def _clean_list(name: str, values: Iterable[Any] | None) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise ValidationError(f"{name} must be a list of strings", field=name)

    values = list(values)
    if len(values) > MAX_LIST_ITEMS:
        raise ValidationError(f"{name} cannot exceed {MAX_LIST_ITEMS} items", field=name)

    cleaned: list[str] = []
    for value in values:
        if not isinstance(value, str) or len(value) > MAX_ITEM_LENGTH:
            raise ValidationError(f"Invalid item in {name}", field=name)
        value = value.strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


def _clean_session_types(values: Iterable[str] | None) -> list[str]:
    session_types = _clean_list("session_types", values)
    if not session_types:
        raise ValidationError("At least one session type required", field="session_types")
    unknown = [value for value in session_types if value not in SESSION_TYPES]
    if unknown:
        raise ValidationError(f"Invalid session type: {', '.join(unknown)}", field="session_types")
    return session_types


def _clean_availability(
    windows: Iterable[AvailabilityWindow | Mapping[str, Any]] | None,
) -> list[AvailabilityWindow]:
    if windows is None:
        return []

    cleaned: list[AvailabilityWindow] = []
    for window in windows:
        if isinstance(window, AvailabilityWindow):
            cleaned.append(window)
            continue
        try:
            cleaned.append(AvailabilityWindow.model_validate(window))
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid availability window: {e.errors()[0]['msg']}", field="availability"
            ) from e
    return cleaned


def build_profile(
    member_id: str,
    *,
    skills_can_teach: Iterable[str] | None,
    skills_want_to_learn: Iterable[str] | None,
    timezone: str | None,
    session_types: Iterable[str] | None,
    preferred_languages: Iterable[str] | None = None,
    preferred_frameworks: Iterable[str] | None = None,
    availability: Iterable[AvailabilityWindow | Mapping[str, Any]] | None = None,
    bio: str | None = None,
    is_active: bool | None = True,
) -> PairProfile:
    """
    Validate raw profile input and return a PairProfile.

    Raises:
        ValidationError: On any malformed field
    """
    if not member_id:
        raise ValidationError("member_id is required", field="member_id")

    if skills_can_teach is None or skills_want_to_learn is None:
        raise ValidationError("Skills arrays are required", field="skills")

    if not isinstance(timezone, str) or not timezone.strip():
        raise ValidationError("Timezone is required", field="timezone")

    if bio is not None:
        bio = str(bio).strip()
        if len(bio) > MAX_BIO_LENGTH:
            raise ValidationError(f"Bio cannot exceed {MAX_BIO_LENGTH} characters", field="bio")

    return PairProfile(
        member_id=member_id,
        skills_can_teach=_clean_list("skills_can_teach", skills_can_teach),
        skills_want_to_learn=_clean_list("skills_want_to_learn", skills_want_to_learn),
        preferred_languages=_clean_list("preferred_languages", preferred_languages),
        preferred_frameworks=_clean_list("preferred_frameworks", preferred_frameworks),
        timezone=timezone.strip(),
        availability=_clean_availability(availability),
        session_types=_clean_session_types(session_types),
        bio=bio or None,
        is_active=True if is_active is None else bool(is_active),
    )


@translate_store_errors
async def upsert_profile(member_id: str, **fields: Any) -> PairProfile:
    """
    Create or replace the member's profile.

    Args:
        member_id: Caller id from the identity layer
        **fields: Raw profile fields (see build_profile)

    Returns:
        The stored PairProfile with timestamps
    """
    profile = build_profile(member_id, **fields)
    saved = await ProfileRepository.upsert(profile)

    logger.info(
        "Pair profile upserted",
        member_id=member_id,
        skill_count=saved.skill_count,
        is_active=saved.is_active,
    )
    return saved


@translate_store_errors
async def get_profile(member_id: str) -> PairProfile | None:
    return await ProfileRepository.get(member_id)


@translate_store_errors
async def list_active_profiles() -> list[PairProfile]:
    """Active profiles, most recently updated first. Always a fresh read."""
    return await ProfileRepository.list_active()
