"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.

Shared profile and travel-time types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mf_engine.utils.geo import is_valid_coordinate
from mf_engine.utils.time import parse_timestamp


class Lifestyle(BaseModel):
    """Structured lifestyle flags used by the lifestyle sub-score."""

    model_config = ConfigDict(extra="ignore")

    smoking: Optional[str] = None
    drinking: Optional[str] = None
    fitness: Optional[str] = None
    diet: Optional[str] = None
    scenes: List[str] = Field(default_factory=list)


class Profile(BaseModel):
    """A feed profile as read from the owning profile service."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: Optional[str] = None
    profile_type: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0, le=130)

    bio: Optional[str] = None
    turn_ons: Optional[str] = None
    turn_offs: Optional[str] = None

    role: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    hard_limits: List[str] = Field(default_factory=list)
    soft_limits: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    looking_for: List[str] = Field(default_factory=list)
    relationship_status: Optional[str] = None
    time_horizon: Optional[str] = None
    lifestyle: Lifestyle = Field(default_factory=Lifestyle)

    opt_in_enabled: bool = False
    opt_in_value: Optional[str] = None

    photos: List[str] = Field(default_factory=list)
    verified: bool = False
    looking_right_now: bool = False
    city: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @field_validator("last_active", "created_at", mode="before")
    @classmethod
    def _lenient_timestamp(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)

    @property
    def coordinate(self) -> Optional["Coordinate"]:
        if not is_valid_coordinate(self.lat, self.lng):
            return None
        return Coordinate(float(self.lat), float(self.lng))  # type: ignore[arg-type]

    def field_texts(self) -> Dict[str, Optional[str]]:
        return {"bio": self.bio, "turn_ons": self.turn_ons, "turn_offs": self.turn_offs}


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def is_valid(self) -> bool:
        return is_valid_coordinate(self.lat, self.lng)


class TravelMode(str, Enum):
    WALKING = "walking"
    DRIVING = "driving"
    BICYCLING = "bicycling"
    TRANSIT = "transit"
    RIDE_HAILING = "ride_hailing"


ALL_TRAVEL_MODES = tuple(TravelMode)


class TravelStatus(str, Enum):
    OK = "ok"
    INVALID_COORDINATES = "invalid_coordinates"
    UPSTREAM_ERROR = "upstream_error"
    NOT_CONFIGURED = "not_configured"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ModeEstimate:
    duration_seconds: float
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return {"durationSeconds": self.duration_seconds, "label": self.label}


@dataclass(frozen=True)
class TravelTimeResult:
    """Per-mode estimates for one bucketed coordinate pair.

    A mode maps to None when the upstream did not return a usable estimate.
    ``status`` says why the whole result may be empty.
    """

    modes: Mapping[TravelMode, Optional[ModeEstimate]] = field(default_factory=dict)
    status: TravelStatus = TravelStatus.OK
    provider: Optional[str] = None

    @classmethod
    def empty(cls, status: TravelStatus, provider: Optional[str] = None) -> "TravelTimeResult":
        return cls(modes={mode: None for mode in ALL_TRAVEL_MODES}, status=status, provider=provider)

    def estimate(self, mode: TravelMode) -> Optional[ModeEstimate]:
        return self.modes.get(mode)

    @property
    def fastest(self) -> Optional[TravelMode]:
        best: Optional[TravelMode] = None
        best_duration = 0.0
        for mode in ALL_TRAVEL_MODES:
            estimate = self.modes.get(mode)
            if estimate is None:
                continue
            if best is None or estimate.duration_seconds < best_duration:
                best = mode
                best_duration = estimate.duration_seconds
        return best

    @property
    def fastest_seconds(self) -> Optional[float]:
        mode = self.fastest
        if mode is None:
            return None
        estimate = self.modes[mode]
        return estimate.duration_seconds if estimate else None

    @property
    def has_estimates(self) -> bool:
        return self.fastest is not None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for mode in ALL_TRAVEL_MODES:
            estimate = self.modes.get(mode)
            out[mode.value] = estimate.to_dict() if estimate else None
        fastest = self.fastest
        out["fastest"] = fastest.value if fastest else None
        out["status"] = self.status.value
        out["provider"] = self.provider
        return out
