"""Deterministic opportunity scoring and the hit-list pipeline."""

from .engine import (
    DEFAULT_POLICY,
    ScoringPolicy,
    amount_band_score,
    competition_level,
    has_set_aside_keyword,
    rank_opportunities,
    score_award,
    win_probability,
)
from .hit_list import HitListFinder

__all__ = [
    "DEFAULT_POLICY",
    "HitListFinder",
    "ScoringPolicy",
    "amount_band_score",
    "competition_level",
    "has_set_aside_keyword",
    "rank_opportunities",
    "score_award",
    "win_probability",
]
