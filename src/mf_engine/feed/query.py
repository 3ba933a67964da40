"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mf_engine.models import Profile, TravelTimeResult
from mf_engine.scoring.breakdown import MatchResult


class FeedQueryError(ValueError):
    pass


class SortKey(str, Enum):
    MATCH = "match"
    DISTANCE = "distance"
    LAST_ACTIVE = "lastActive"
    NEWEST = "newest"

    @classmethod
    def parse(cls, value: "str | SortKey | None") -> "SortKey":
        if value is None or value == "":
            return cls.MATCH
        if isinstance(value, SortKey):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            allowed = ", ".join(key.value for key in cls)
            raise FeedQueryError(f"unsupported sort '{value}'; expected one of: {allowed}") from exc


class FeedFilters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    profile_types: List[str] = Field(default_factory=list)
    min_score: Optional[float] = Field(default=None, ge=0, le=100)
    age_min: Optional[int] = Field(default=None, ge=0)
    age_max: Optional[int] = Field(default=None, ge=0)
    distance_km: Optional[float] = Field(default=None, gt=0)
    limit: Optional[int] = None

    @model_validator(mode="after")
    def _validate_age_range(self) -> "FeedFilters":
        if self.age_min is not None and self.age_max is not None and self.age_min > self.age_max:
            raise ValueError("age_min must be <= age_max")
        return self

    def fingerprint_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(mode="json", exclude={"limit"})
        payload["profile_types"] = sorted({t.strip().lower() for t in self.profile_types if t.strip()})
        return payload


SortTuple = Tuple[Any, ...]


@dataclass(frozen=True)
class FeedItem:
    profile: Profile
    match: Optional[MatchResult]
    travel: Optional[TravelTimeResult]
    distance_km: Optional[float]

    @property
    def id(self) -> str:
        return self.profile.id

    @property
    def match_probability(self) -> Optional[float]:
        return self.match.probability if self.match is not None else None

    @property
    def travel_time_minutes(self) -> Optional[int]:
        if self.travel is None:
            return None
        seconds = self.travel.fastest_seconds
        if seconds is None:
            return None
        return max(1, round(seconds / 60.0))

    def sort_tuple(self, sort: SortKey) -> SortTuple:
        """Ascending sort tuple; ties always end on profile id."""
        active = self.profile.last_active.timestamp() if self.profile.last_active else 0.0
        if sort == SortKey.MATCH:
            return (-(self.match_probability or 0.0), -active, self.id)
        if sort == SortKey.DISTANCE:
            if self.distance_km is None:
                return (1, 0.0, -active, self.id)
            return (0, round(self.distance_km, 6), -active, self.id)
        if sort == SortKey.LAST_ACTIVE:
            return (-active, self.id)
        created = self.profile.created_at.timestamp() if self.profile.created_at else 0.0
        return (-created, -active, self.id)

    def to_dict(self) -> Dict[str, Any]:
        profile = self.profile
        bio = (profile.bio or "").strip()
        return {
            "id": profile.id,
            "profileName": profile.name,
            "title": bio[:80] if bio else None,
            "profileType": profile.profile_type,
            "age": profile.age,
            "city": profile.city,
            "geoLat": profile.lat,
            "geoLng": profile.lng,
            "photos": list(profile.photos),
            "tags": list(profile.tags),
            "lookingFor": list(profile.looking_for),
            "verified": profile.verified,
            "lookingRightNow": profile.looking_right_now,
            "lastActive": profile.last_active.isoformat().replace("+00:00", "Z") if profile.last_active else None,
            "matchProbability": self.match_probability,
            "matchBreakdown": self.match.breakdown.to_dict() if self.match is not None else None,
            "travelTime": self.travel.to_dict() if self.travel is not None else None,
            "travelTimeMinutes": self.travel_time_minutes,
            "distanceKm": round(self.distance_km, 1) if self.distance_km is not None else None,
        }


@dataclass(frozen=True)
class FeedPage:
    items: List[FeedItem]
    next_cursor: Optional[str]
    scoring_version: str
    sorted_by: SortKey
    total: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "nextCursor": self.next_cursor,
            "scoringVersion": self.scoring_version,
            "sortedBy": self.sorted_by.value,
            "total": self.total,
        }
