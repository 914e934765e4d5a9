"""
Match scorer - weighted compatibility between two pair profiles.

Scoring is directional: ``score(profile, candidate)`` applies the sparsity
penalty from the candidate's own skill count, so A->B and B->A can differ.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from peerpair.features.pairing.domain.models import (
    AvailabilityWindow,
    MatchScore,
    PairProfile,
)
from peerpair.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def normalize_skill(skill: str) -> str:
    """Case and whitespace folding only; no taxonomy mapping."""
    return skill.strip().lower()


def utc_offset_hours(tz_name: str, at: datetime) -> float | None:
    """Wall-clock offset of ``tz_name`` from UTC at ``at``, or None for unknown zones."""
    try:
        offset = at.astimezone(ZoneInfo(tz_name)).utcoffset()
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None
    if offset is None:
        return None
    return offset.total_seconds() / 3600


def _shared(left: Iterable[str], right: Iterable[str]) -> list[str]:
    right_set = set(right)
    return [item for item in left if item in right_set]


class MatchScorer:
    SKILL_POINTS_PER_MATCH = 10
    SKILL_MAX = 50
    STACK_POINTS_PER_OVERLAP = 5
    STACK_MAX = 20
    SESSION_TYPE_POINTS = 5
    SESSION_TYPE_MAX = 15
    SAME_TIMEZONE_POINTS = 10
    NEAR_TIMEZONE_POINTS = 5
    NEAR_TIMEZONE_HOURS = 3
    AVAILABILITY_POINTS_PER_PAIR = 3
    AVAILABILITY_MAX = 15
    EMPTY_PROFILE_FACTOR = 0.3
    SPARSE_PROFILE_FACTOR = 0.6
    MAX_SCORE = 100
    FALLBACK_REASON = "Potential match based on profiles"

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._clock = clock or (lambda: datetime.now(UTC))

    def score(
        self, profile: PairProfile, candidate: PairProfile, *, at: datetime | None = None
    ) -> MatchScore:
        """
        Score ``candidate`` from the point of view of ``profile``.

        Args:
            profile: The member looking for a partner
            candidate: A different member's profile
            at: Evaluation instant for timezone offsets (defaults to now)

        Returns:
            MatchScore with an integer score in [0, 100] and at least one reason

        Raises:
            ValueError: If both profiles belong to the same member
        """
        if profile.member_id == candidate.member_id:
            raise ValueError("Cannot score a profile against itself")

        at = at or self._clock()
        reasons: list[str] = []

        total = 0.0
        total += self._skill_points(profile, candidate, reasons)
        total += self._stack_points(profile, candidate, reasons)
        total += self._session_type_points(profile, candidate, reasons)
        total += self._timezone_points(profile.timezone, candidate.timezone, at, reasons)
        total += self._availability_points(profile.availability, candidate.availability, reasons)

        candidate_skill_count = candidate.skill_count
        if candidate_skill_count == 0:
            total *= self.EMPTY_PROFILE_FACTOR
            reasons.append("Limited profile - fewer skills listed")
        elif candidate_skill_count < 2:
            total *= self.SPARSE_PROFILE_FACTOR
            reasons.append("Sparse profile - only one skill listed")

        # Half-up rounding; round() alone would send 4.5 to 4. Float noise is
        # trimmed first so 30 * 0.3 lands on 9.
        final = math.floor(round(min(float(self.MAX_SCORE), total), 6) + 0.5)

        logger.debug(
            "Match scored",
            member_id=profile.member_id,
            candidate_id=candidate.member_id,
            score=final,
            candidate_skill_count=candidate_skill_count,
        )

        return MatchScore(
            candidate_id=candidate.member_id,
            score=final,
            reasons=reasons or [self.FALLBACK_REASON],
        )

    def rank(
        self, profile: PairProfile, pool: Sequence[PairProfile], limit: int
    ) -> list[MatchScore]:
        """
        Score every eligible candidate in ``pool`` and return the best ``limit``.

        The member's own profile and inactive profiles are skipped, zero scores
        are dropped. Ties are broken by candidate id so the order is stable
        regardless of how the pool was ordered.
        """
        if limit <= 0:
            return []

        at = self._clock()
        scores = [
            self.score(profile, candidate, at=at)
            for candidate in pool
            if candidate.member_id != profile.member_id and candidate.is_active
        ]
        ranked = sorted(
            (match for match in scores if match.score > 0),
            key=lambda match: (-match.score, match.candidate_id),
        )
        return ranked[:limit]

    def _skill_points(
        self, profile: PairProfile, candidate: PairProfile, reasons: list[str]
    ) -> int:
        teach_matches = self._complementary(profile.skills_can_teach, candidate.skills_want_to_learn)
        learn_matches = self._complementary(candidate.skills_can_teach, profile.skills_want_to_learn)

        if teach_matches:
            reasons.append(f"You can teach {', '.join(teach_matches)} - they want to learn it")
        if learn_matches:
            reasons.append(f"They can teach {', '.join(learn_matches)} - you want to learn it")

        matches = len(teach_matches) + len(learn_matches)
        return min(self.SKILL_MAX, self.SKILL_POINTS_PER_MATCH * matches)

    @staticmethod
    def _complementary(offered: Iterable[str], wanted: Iterable[str]) -> list[str]:
        wanted_normalized = {normalize_skill(skill) for skill in wanted}
        return [skill for skill in offered if normalize_skill(skill) in wanted_normalized]

    def _stack_points(
        self, profile: PairProfile, candidate: PairProfile, reasons: list[str]
    ) -> int:
        common = _shared(profile.preferred_languages, candidate.preferred_languages) + _shared(
            profile.preferred_frameworks, candidate.preferred_frameworks
        )
        if common:
            reasons.append(f"Shared interests: {', '.join(common)}")
        return min(self.STACK_MAX, self.STACK_POINTS_PER_OVERLAP * len(common))

    def _session_type_points(
        self, profile: PairProfile, candidate: PairProfile, reasons: list[str]
    ) -> int:
        common = _shared(profile.session_types, candidate.session_types)
        if common:
            reasons.append(f"Both interested in: {', '.join(common)}")
        return min(self.SESSION_TYPE_MAX, self.SESSION_TYPE_POINTS * len(common))

    def _timezone_points(self, tz_a: str, tz_b: str, at: datetime, reasons: list[str]) -> int:
        if tz_a == tz_b:
            reasons.append("Same timezone - easier scheduling")
            return self.SAME_TIMEZONE_POINTS

        offset_a = utc_offset_hours(tz_a, at)
        offset_b = utc_offset_hours(tz_b, at)
        if offset_a is None or offset_b is None:
            return 0

        if abs(offset_b - offset_a) <= self.NEAR_TIMEZONE_HOURS:
            reasons.append("Similar timezone - scheduling should work")
            return self.NEAR_TIMEZONE_POINTS
        return 0

    def _availability_points(
        self,
        windows_a: Sequence[AvailabilityWindow],
        windows_b: Sequence[AvailabilityWindow],
        reasons: list[str],
    ) -> int:
        overlapping_pairs = sum(1 for a in windows_a for b in windows_b if a.overlaps(b))
        if overlapping_pairs:
            reasons.append("Overlapping availability windows")
        return min(self.AVAILABILITY_MAX, self.AVAILABILITY_POINTS_PER_PAIR * overlapping_pairs)


match_scorer = MatchScorer()
