"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.

Individual match sub-scores. Every scorer is total: absent inputs give 0
points with status ``missing_input`` instead of raising."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from mf_engine.models import Profile, TravelTimeResult
from mf_engine.scoring.contract import BONUS_MAX, DIMENSION_MAX, ScoringConfig, Threshold
from mf_engine.semantic.core import cosine_similarity
from mf_engine.utils.time import minutes_since


class SubScoreStatus(str, Enum):
    SCORED = "scored"
    MISSING_INPUT = "missing_input"
    NOT_APPLICABLE = "not_applicable"


@dataclass(frozen=True)
class SubScore:
    name: str
    points: float
    max_points: float
    status: SubScoreStatus = SubScoreStatus.SCORED
    details: Dict[str, Any] = field(default_factory=dict)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _bounded(name: str, points: float, details: Optional[Dict[str, Any]] = None, *, bonus: bool = False) -> SubScore:
    cap = BONUS_MAX[name] if bonus else DIMENSION_MAX[name]
    return SubScore(name, round(_clamp(points, 0.0, cap), 1), cap, SubScoreStatus.SCORED, details or {})


def _missing(name: str, reason: str) -> SubScore:
    return SubScore(name, 0.0, DIMENSION_MAX[name], SubScoreStatus.MISSING_INPUT, {"reason": reason})


def _norm(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = value.strip().lower().replace("-", "_").replace(" ", "_")
    return text or None


def _norm_set(values: Iterable[str]) -> Set[str]:
    return {item for item in (_norm(v) for v in values) if item}


def _threshold_points(minutes: float, rows: Sequence[Threshold], beyond: float, *, inclusive: bool) -> float:
    for row in rows:
        if (minutes <= row.max_minutes) if inclusive else (minutes < row.max_minutes):
            return row.points
    return beyond


def score_travel(travel: Optional[TravelTimeResult], config: ScoringConfig) -> SubScore:
    seconds = travel.fastest_seconds if travel is not None else None
    if seconds is None:
        return _missing("travel", "no_travel_estimate")
    minutes = seconds / 60.0
    points = _threshold_points(minutes, config.travel_thresholds, config.travel_beyond_points, inclusive=True)
    return _bounded("travel", points, {"minutes": round(minutes, 1), "mode": travel.fastest.value})  # type: ignore[union-attr]


def score_role(viewer: Profile, candidate: Profile, config: ScoringConfig) -> SubScore:
    mine = _norm(viewer.role)
    theirs = _norm(candidate.role)
    if not mine or not theirs:
        return _missing("role", "role_not_set")
    flexible = _norm_set(config.flexible_roles)
    if mine in flexible or theirs in flexible:
        return _bounded("role", config.flexible_role_points, {"rule": "flexible"})
    points = config.role_matrix.get(mine, {}).get(theirs)
    if points is None:
        return _bounded("role", 0.0, {"rule": "unlisted_pair", "pair": [mine, theirs]})
    return _bounded("role", points, {"rule": "matrix", "pair": [mine, theirs]})


def score_interests(viewer: Profile, candidate: Profile, config: ScoringConfig) -> SubScore:
    mine = _norm_set(viewer.interests)
    theirs = _norm_set(candidate.interests)
    if not mine and not theirs:
        return _missing("interests", "no_interests")

    hard = sorted((mine & _norm_set(candidate.hard_limits)) | (theirs & _norm_set(viewer.hard_limits)))
    soft = sorted((mine & _norm_set(candidate.soft_limits)) | (theirs & _norm_set(viewer.soft_limits)))
    shared = sorted(mine & theirs)
    details: Dict[str, Any] = {"shared": shared, "hard_conflicts": hard, "soft_conflicts": soft}
    if hard:
        return _bounded("interests", 0.0, details)

    cap = DIMENSION_MAX["interests"]
    base = round(len(shared) / max(len(mine), len(theirs), 1) * cap)
    return _bounded("interests", base - config.soft_limit_penalty * len(soft), details)


_HORIZON_ORDER = ("now", "today", "this_week", "flexible", "planning")


def _relationship_points(mine: Optional[str], theirs: Optional[str]) -> float:
    if not mine or not theirs:
        return 0.0
    if mine == theirs:
        return 3.0
    if ("open" in mine and "open" in theirs) or (mine == "single" and theirs == "single"):
        return 2.0
    return 0.0


def _horizon_points(mine: Optional[str], theirs: Optional[str]) -> float:
    if not mine or not theirs:
        return 0.0
    if mine == theirs:
        return 3.0
    if mine in _HORIZON_ORDER and theirs in _HORIZON_ORDER:
        if abs(_HORIZON_ORDER.index(mine) - _HORIZON_ORDER.index(theirs)) == 1:
            return 2.0
    return 0.0


def score_intent(viewer: Profile, candidate: Profile) -> SubScore:
    mine_looking = _norm_set(viewer.looking_for)
    theirs_looking = _norm_set(candidate.looking_for)
    mine_status, theirs_status = _norm(viewer.relationship_status), _norm(candidate.relationship_status)
    mine_horizon, theirs_horizon = _norm(viewer.time_horizon), _norm(candidate.time_horizon)
    if not (mine_looking or mine_status or mine_horizon) or not (theirs_looking or theirs_status or theirs_horizon):
        return _missing("intent", "intent_not_set")

    matched = sorted(mine_looking & theirs_looking)
    looking_points = min(6.0, 2.0 * len(matched))
    status_points = _relationship_points(mine_status, theirs_status)
    horizon_points = _horizon_points(mine_horizon, theirs_horizon)
    return _bounded(
        "intent",
        looking_points + status_points + horizon_points,
        {
            "matched_looking_for": matched,
            "relationship_points": status_points,
            "time_horizon_points": horizon_points,
        },
    )


def score_semantic(
    viewer_embedding: Optional[Sequence[float]],
    candidate_embedding: Optional[Sequence[float]],
) -> SubScore:
    if not viewer_embedding or not candidate_embedding:
        return _missing("semantic", "embedding_missing")
    similarity = cosine_similarity(viewer_embedding, candidate_embedding)
    return _bounded("semantic", max(0.0, similarity) * DIMENSION_MAX["semantic"], {"cosine": similarity})


_LIFESTYLE_FACTORS = ("smoking", "drinking", "fitness", "diet")


def _partial_lifestyle_match(factor: str, a: str, b: str) -> bool:
    if factor == "smoking":
        return a == "social" and b == "social"
    if factor == "drinking":
        return "occasional" in a and "occasional" in b
    return False


def score_lifestyle(viewer: Profile, candidate: Profile) -> SubScore:
    mine = viewer.lifestyle
    theirs = candidate.lifestyle
    points = 0.0
    matched: List[str] = []
    compared = 0
    for factor in _LIFESTYLE_FACTORS:
        a = _norm(getattr(mine, factor))
        b = _norm(getattr(theirs, factor))
        if not a or not b:
            continue
        compared += 1
        if a == b:
            points += 2.0
            matched.append(factor)
        elif _partial_lifestyle_match(factor, a, b):
            points += 1.0
            matched.append(f"{factor}:partial")

    shared_scenes = sorted(_norm_set(mine.scenes) & _norm_set(theirs.scenes))
    if mine.scenes and theirs.scenes:
        compared += 1
    if len(shared_scenes) >= 2:
        points += 2.0
    elif len(shared_scenes) == 1:
        points += 1.0

    if compared == 0:
        return _missing("lifestyle", "lifestyle_not_set")
    return _bounded("lifestyle", points, {"matched": matched, "shared_scenes": shared_scenes})


def score_activity(candidate: Profile, config: ScoringConfig, *, now: Optional[datetime] = None) -> SubScore:
    minutes = minutes_since(candidate.last_active, now=now)
    if minutes is None:
        return _missing("activity", "last_active_unknown")
    points = _threshold_points(minutes, config.activity_thresholds, config.activity_beyond_points, inclusive=False)
    return _bounded("activity", points, {"minutes_since_active": round(minutes, 1)})


def score_completeness(candidate: Profile) -> SubScore:
    points = 0.0
    present: List[str] = []
    if candidate.photos:
        points += 1.0
        present.append("photos")
        if len(candidate.photos) >= 3:
            points += 1.0
    bio = (candidate.bio or "").strip()
    if len(bio) >= 20:
        points += 1.0
        present.append("bio")
        if len(bio) >= 100:
            points += 0.5
    if candidate.city or candidate.coordinate is not None:
        points += 1.0
        present.append("location")
    if candidate.tags or candidate.interests:
        points += 1.0
        present.append("interests")
    if candidate.looking_for:
        points += 1.0
        present.append("looking_for")
    if candidate.verified:
        points += 1.0
        present.append("verified")
    if candidate.interests or candidate.role:
        points += 0.5
        present.append("preferences")
    return _bounded("completeness", points, {"present": present})


def score_opt_in(viewer: Profile, candidate: Profile) -> SubScore:
    mine = _norm(viewer.opt_in_value)
    theirs = _norm(candidate.opt_in_value)
    if not (viewer.opt_in_enabled and candidate.opt_in_enabled and mine and theirs):
        return SubScore("opt_in", 0.0, BONUS_MAX["opt_in"], SubScoreStatus.NOT_APPLICABLE, {})
    if mine == theirs:
        points = 3.0
    elif "flexible" in (mine, theirs):
        points = 2.0
    elif {mine, theirs} == {"yes", "no"}:
        points = 0.0
    else:
        points = 1.0
    return _bounded("opt_in", points, {"values": [mine, theirs]}, bonus=True)
