"""
Table definitions for pairing documents.

Profiles, requests and sessions are stored as rows whose list/map fields
live in JSONB columns, so each row reads and writes like one document.
"""

from peerpair.db.pool import get_db_connection
from peerpair.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS pair_profiles (
        member_id TEXT PRIMARY KEY,
        skills_can_teach JSONB NOT NULL DEFAULT '[]'::jsonb,
        skills_want_to_learn JSONB NOT NULL DEFAULT '[]'::jsonb,
        preferred_languages JSONB NOT NULL DEFAULT '[]'::jsonb,
        preferred_frameworks JSONB NOT NULL DEFAULT '[]'::jsonb,
        timezone TEXT NOT NULL,
        availability JSONB NOT NULL DEFAULT '[]'::jsonb,
        session_types JSONB NOT NULL DEFAULT '[]'::jsonb,
        bio TEXT,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_pair_profiles_active_updated
        ON pair_profiles (updated_at DESC) WHERE is_active
    """,
    """
    CREATE TABLE IF NOT EXISTS pair_requests (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        from_user_id TEXT NOT NULL,
        to_user_id TEXT NOT NULL,
        session_type TEXT NOT NULL,
        message TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending',
        proposed_time TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT pair_requests_distinct_members CHECK (from_user_id <> to_user_id),
        CONSTRAINT pair_requests_status_check
            CHECK (status IN ('pending', 'accepted', 'declined', 'cancelled'))
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_pair_requests_from ON pair_requests (from_user_id, created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_pair_requests_to ON pair_requests (to_user_id, created_at DESC)",
    """
    CREATE TABLE IF NOT EXISTS pair_sessions (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        request_id UUID UNIQUE REFERENCES pair_requests (id) ON DELETE SET NULL,
        participant_ids JSONB NOT NULL,
        session_type TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'scheduled',
        scheduled_time TIMESTAMPTZ,
        started_at TIMESTAMPTZ,
        completed_at TIMESTAMPTZ,
        notes JSONB NOT NULL DEFAULT '{}'::jsonb,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT pair_sessions_status_check
            CHECK (status IN ('scheduled', 'in-progress', 'completed', 'cancelled'))
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_pair_sessions_participants ON pair_sessions USING gin (participant_ids)",
)


async def create_schema() -> None:
    """Create pairing tables and indexes if they do not exist."""
    async with await get_db_connection() as conn:
        async with conn.transaction():
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(statement)

    logger.info("Pairing schema ensured", statements=len(SCHEMA_STATEMENTS))
