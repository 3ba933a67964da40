"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from .breakdown import DIMENSION_ORDER, MatchBreakdown, MatchResult, MatchScorer
from .contract import (
    BONUS_MAX,
    DIMENSION_MAX,
    FALLBACK_SCORING_VERSION,
    ScoringConfig,
    ScoringConfigError,
    default_scoring_config,
    load_scoring_config,
    scoring_config_sha256,
)
from .scorers import SubScore, SubScoreStatus

__all__ = [
    "BONUS_MAX",
    "DIMENSION_MAX",
    "DIMENSION_ORDER",
    "FALLBACK_SCORING_VERSION",
    "MatchBreakdown",
    "MatchResult",
    "MatchScorer",
    "ScoringConfig",
    "ScoringConfigError",
    "SubScore",
    "SubScoreStatus",
    "default_scoring_config",
    "load_scoring_config",
    "scoring_config_sha256",
]
