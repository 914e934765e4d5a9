"""
Matching package for the pairing feature.

Pure scoring and ranking of candidate profiles; no I/O.
"""

from .scorer import MatchScorer, match_scorer

__all__ = ["MatchScorer", "match_scorer"]
