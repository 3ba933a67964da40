"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import copy
import hashlib
import json
from decimal import ROUND_HALF_EVEN, Decimal
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from mf_engine.semantic.core import EMBEDDING_FIELDS

DIMENSION_MAX: Dict[str, float] = {
    "travel": 20.0,
    "role": 15.0,
    "interests": 15.0,
    "intent": 12.0,
    "semantic": 12.0,
    "lifestyle": 10.0,
    "activity": 8.0,
    "completeness": 8.0,
}
BONUS_MAX: Dict[str, float] = {"opt_in": 3.0}
FALLBACK_SCORING_VERSION = "fallback"


class ScoringConfigError(ValueError):
    pass


class Threshold(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_minutes: float = Field(gt=0)
    points: float = Field(ge=0)


class ScoringConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    schema_version: int = Field(default=1)
    version: str = Field(default="1.0", min_length=1)
    algorithm_id: str
    field_weights: Dict[str, float]
    travel_thresholds: List[Threshold]
    travel_beyond_points: float = Field(default=2.0, ge=0, le=DIMENSION_MAX["travel"])
    role_matrix: Dict[str, Dict[str, float]]
    flexible_roles: List[str] = Field(default_factory=lambda: ["flexible", "open"])
    flexible_role_points: float = Field(default=12.0, ge=0, le=DIMENSION_MAX["role"])
    soft_limit_penalty: float = Field(default=3.0, ge=0)
    activity_thresholds: List[Threshold]
    activity_beyond_points: float = Field(default=1.0, ge=0, le=DIMENSION_MAX["activity"])

    @field_validator("schema_version")
    @classmethod
    def _validate_schema_version(cls, value: int) -> int:
        if value != 1:
            raise ValueError("unsupported scoring schema_version")
        return value

    @field_validator("field_weights")
    @classmethod
    def _validate_field_weights(cls, value: Dict[str, float]) -> Dict[str, float]:
        expected = set(EMBEDDING_FIELDS)
        if set(value.keys()) != expected:
            raise ValueError(f"field_weights keys must be exactly {sorted(expected)}")
        if any(weight < 0 for weight in value.values()):
            raise ValueError("field_weights must be non-negative")
        return value

    @field_validator("role_matrix")
    @classmethod
    def _validate_role_matrix(cls, value: Dict[str, Dict[str, float]]) -> Dict[str, Dict[str, float]]:
        cap = DIMENSION_MAX["role"]
        for role, row in value.items():
            for other, points in row.items():
                if not 0 <= points <= cap:
                    raise ValueError(f"role_matrix[{role}][{other}] must be within 0..{cap:g}")
        return value

    @model_validator(mode="after")
    def _validate_thresholds(self) -> "ScoringConfig":
        for name, rows in (("travel", self.travel_thresholds), ("activity", self.activity_thresholds)):
            if not rows:
                raise ValueError(f"{name}_thresholds must not be empty")
            bounds = [row.max_minutes for row in rows]
            if bounds != sorted(bounds):
                raise ValueError(f"{name}_thresholds must be ordered by max_minutes")
            cap = DIMENSION_MAX[name]
            if any(row.points > cap for row in rows):
                raise ValueError(f"{name}_thresholds points must be <= {cap:g}")
        return self


_DEFAULT_SCORING_PAYLOAD: Dict[str, Any] = {
    "schema_version": 1,
    "version": "1.0",
    "algorithm_id": "match_breakdown_v1",
    "field_weights": {"bio": 0.5, "turn_ons": 0.25, "turn_offs": 0.25},
    "travel_thresholds": [
        {"max_minutes": 5, "points": 20},
        {"max_minutes": 15, "points": 18},
        {"max_minutes": 30, "points": 15},
        {"max_minutes": 60, "points": 10},
        {"max_minutes": 120, "points": 5},
    ],
    "travel_beyond_points": 2,
    "role_matrix": {
        "top": {"bottom": 15, "vers": 12, "vers_top": 8, "vers_bottom": 10, "top": 5, "side": 7, "oral": 10},
        "bottom": {"top": 15, "vers": 12, "vers_bottom": 8, "vers_top": 10, "bottom": 5, "side": 7, "oral": 10},
        "vers": {"vers": 15, "top": 12, "bottom": 12, "vers_top": 10, "vers_bottom": 10, "side": 8, "oral": 10},
        "vers_top": {"bottom": 12, "vers_bottom": 15, "vers": 10, "top": 5, "vers_top": 8, "side": 7, "oral": 9},
        "vers_bottom": {"top": 12, "vers_top": 15, "vers": 10, "bottom": 5, "vers_bottom": 8, "side": 7, "oral": 9},
        "side": {"side": 15, "vers": 8, "top": 7, "bottom": 7, "vers_top": 7, "vers_bottom": 7, "oral": 10},
        "oral": {"oral": 15, "vers": 10, "top": 10, "bottom": 10, "vers_top": 9, "vers_bottom": 9, "side": 10},
    },
    "flexible_roles": ["flexible", "open"],
    "flexible_role_points": 12,
    "soft_limit_penalty": 3,
    "activity_thresholds": [
        {"max_minutes": 5, "points": 8},
        {"max_minutes": 15, "points": 7},
        {"max_minutes": 60, "points": 6},
        {"max_minutes": 360, "points": 5},
        {"max_minutes": 1440, "points": 4},
        {"max_minutes": 10080, "points": 2},
    ],
    "activity_beyond_points": 1,
}


def default_scoring_config() -> ScoringConfig:
    return ScoringConfig.model_validate(copy.deepcopy(_DEFAULT_SCORING_PAYLOAD))


def load_scoring_config(path: Path) -> ScoringConfig:
    if not path.exists():
        raise ScoringConfigError(f"scoring config missing: {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ScoringConfigError(f"invalid scoring config JSON: {path}: {exc}") from exc
    try:
        config = ScoringConfig.model_validate(payload)
    except ValidationError as exc:
        raise ScoringConfigError(f"invalid scoring config: {path}: {exc}") from exc
    return config


def _normalize_for_hash(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _normalize_for_hash(value[k]) for k in sorted(value.keys())}
    if isinstance(value, list):
        return [_normalize_for_hash(v) for v in value]
    if isinstance(value, float):
        return format(Decimal(str(value)).quantize(Decimal("0.000000"), rounding=ROUND_HALF_EVEN), "f")
    return value


def scoring_config_sha256(config: ScoringConfig) -> str:
    normalized = _normalize_for_hash(config.model_dump(mode="python"))
    canonical = json.dumps(normalized, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
