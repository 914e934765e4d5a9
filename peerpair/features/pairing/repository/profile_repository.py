"""
Persistence for pair profiles.

One row per member keyed by member_id; list fields are JSONB so a profile
reads back exactly as it was written.
"""

from psycopg.types.json import Jsonb

from peerpair.db.helpers import DatabaseError, fetch_all, fetch_one, with_db_retry
from peerpair.features.pairing.domain.models import PairProfile
from peerpair.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ProfileRepository:
    """Reads and upserts pair_profiles rows."""

    SELECT_COLUMNS = """
        member_id, skills_can_teach, skills_want_to_learn,
        preferred_languages, preferred_frameworks, timezone,
        availability, session_types, bio, is_active,
        created_at, updated_at
    """

    @classmethod
    def _row_to_profile(cls, row: dict | None) -> PairProfile | None:
        if not row:
            return None

        return PairProfile(
            member_id=row["member_id"],
            skills_can_teach=row.get("skills_can_teach") or [],
            skills_want_to_learn=row.get("skills_want_to_learn") or [],
            preferred_languages=row.get("preferred_languages") or [],
            preferred_frameworks=row.get("preferred_frameworks") or [],
            timezone=row["timezone"],
            availability=row.get("availability") or [],
            session_types=row.get("session_types") or [],
            bio=row.get("bio"),
            is_active=row["is_active"],
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    @classmethod
    @with_db_retry(max_retries=2, base_delay=0.1)
    async def get(cls, member_id: str) -> PairProfile | None:
        query = f"SELECT {cls.SELECT_COLUMNS} FROM pair_profiles WHERE member_id = %s"
        row = await fetch_one(query, (member_id,))
        return cls._row_to_profile(row)

    @classmethod
    async def upsert(cls, profile: PairProfile) -> PairProfile:
        """
        Insert or replace the member's profile.

        created_at is kept from the first insert; member_id is the conflict
        key and never rewritten.
        """
        query = f"""
            INSERT INTO pair_profiles (
                member_id, skills_can_teach, skills_want_to_learn,
                preferred_languages, preferred_frameworks, timezone,
                availability, session_types, bio, is_active
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (member_id) DO UPDATE SET
                skills_can_teach = EXCLUDED.skills_can_teach,
                skills_want_to_learn = EXCLUDED.skills_want_to_learn,
                preferred_languages = EXCLUDED.preferred_languages,
                preferred_frameworks = EXCLUDED.preferred_frameworks,
                timezone = EXCLUDED.timezone,
                availability = EXCLUDED.availability,
                session_types = EXCLUDED.session_types,
                bio = EXCLUDED.bio,
                is_active = EXCLUDED.is_active,
                updated_at = NOW()
            RETURNING {cls.SELECT_COLUMNS}
        """

        params = (
            profile.member_id,
            Jsonb(profile.skills_can_teach),
            Jsonb(profile.skills_want_to_learn),
            Jsonb(profile.preferred_languages),
            Jsonb(profile.preferred_frameworks),
            profile.timezone,
            Jsonb([window.model_dump() for window in profile.availability]),
            Jsonb(list(profile.session_types)),
            profile.bio,
            profile.is_active,
        )

        row = await fetch_one(query, params)
        if not row:
            raise DatabaseError("Profile upsert returned no row", operation="upsert_profile")

        logger.info("Pair profile saved", member_id=profile.member_id, is_active=profile.is_active)
        return cls._row_to_profile(row)

    @classmethod
    @with_db_retry(max_retries=2, base_delay=0.1)
    async def list_active(cls) -> list[PairProfile]:
        """All active profiles, most recently updated first."""
        query = f"""
            SELECT {cls.SELECT_COLUMNS}
            FROM pair_profiles
            WHERE is_active = true
            ORDER BY updated_at DESC
        """
        rows = await fetch_all(query)
        return [cls._row_to_profile(row) for row in rows]
