"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Sequence

from mf_engine.models import Profile, TravelTimeResult
from mf_engine.scoring.contract import ScoringConfig, default_scoring_config, scoring_config_sha256
from mf_engine.scoring.scorers import (
    SubScore,
    SubScoreStatus,
    score_activity,
    score_completeness,
    score_intent,
    score_interests,
    score_lifestyle,
    score_opt_in,
    score_role,
    score_semantic,
    score_travel,
)
from mf_engine.utils.time import utc_now

DIMENSION_ORDER = ("travel", "role", "interests", "intent", "semantic", "lifestyle", "activity", "completeness")


@dataclass(frozen=True)
class MatchBreakdown:
    sub_scores: Dict[str, SubScore]
    bonus: SubScore

    @property
    def total(self) -> float:
        points = sum(self.points(name) for name in DIMENSION_ORDER)
        if self.bonus.status == SubScoreStatus.SCORED:
            points += self.bonus.points
        return points

    @property
    def probability(self) -> float:
        return round(max(0.0, min(100.0, self.total)), 1)

    def points(self, name: str) -> float:
        if name == self.bonus.name:
            return self.bonus.points
        return self.sub_scores[name].points

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {name: self.points(name) for name in DIMENSION_ORDER}
        out["optInBonus"] = self.bonus.points if self.bonus.status == SubScoreStatus.SCORED else None
        out["status"] = {name: self.sub_scores[name].status.value for name in DIMENSION_ORDER}
        out["status"]["optInBonus"] = self.bonus.status.value
        out["details"] = {
            name: score.details for name, score in self.sub_scores.items() if score.details
        }
        if self.bonus.details:
            out["details"]["optInBonus"] = self.bonus.details
        return out


@dataclass(frozen=True)
class MatchResult:
    probability: float
    breakdown: MatchBreakdown


class MatchScorer:
    """Scores a (viewer, candidate) pair into a bounded, explainable breakdown."""

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config or default_scoring_config()
        self._clock = clock

    @property
    def scoring_version(self) -> str:
        return self.config.version

    @property
    def config_sha256(self) -> str:
        return scoring_config_sha256(self.config)

    def reference_time(self) -> datetime:
        return self._clock()

    def score(
        self,
        viewer: Profile,
        candidate: Profile,
        travel: Optional[TravelTimeResult],
        *,
        viewer_embedding: Optional[Sequence[float]] = None,
        candidate_embedding: Optional[Sequence[float]] = None,
        now: Optional[datetime] = None,
    ) -> MatchResult:
        reference = now or self._clock()
        sub_scores = {
            "travel": score_travel(travel, self.config),
            "role": score_role(viewer, candidate, self.config),
            "interests": score_interests(viewer, candidate, self.config),
            "intent": score_intent(viewer, candidate),
            "semantic": score_semantic(viewer_embedding, candidate_embedding),
            "lifestyle": score_lifestyle(viewer, candidate),
            "activity": score_activity(candidate, self.config, now=reference),
            "completeness": score_completeness(candidate),
        }
        breakdown = MatchBreakdown(sub_scores=sub_scores, bonus=score_opt_in(viewer, candidate))
        return MatchResult(probability=breakdown.probability, breakdown=breakdown)
