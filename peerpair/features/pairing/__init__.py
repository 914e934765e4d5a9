"""
Peer pairing feature package.

Profiles, match scoring, pairing requests and session lifecycle live
together in this vertical slice (domain models, repositories, services
and the API router).
"""

# Re-export the primary building blocks for easy access.
from .api.router import router as pairing_router  # noqa: F401
from .domain.models import PairProfile, PairingRequest, PairSession  # noqa: F401
from .matching import MatchScorer, match_scorer  # noqa: F401
