"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from mf_engine.config import ROUTING_API_KEY, ROUTING_API_URL, UPSTREAM_TIMEOUT_S
from mf_engine.models import ALL_TRAVEL_MODES, Coordinate, ModeEstimate, TravelMode
from mf_engine.providers.retry import ProviderCircuit, RetryPolicy, post_json_with_retry
from mf_engine.utils.geo import haversine_km

logger = logging.getLogger(__name__)

ModeEstimates = Dict[TravelMode, Optional[ModeEstimate]]

MODE_LABEL_SUFFIX: Dict[TravelMode, str] = {
    TravelMode.WALKING: "on foot",
    TravelMode.DRIVING: "by cab",
    TravelMode.BICYCLING: "by bike",
    TravelMode.TRANSIT: "by transit",
    TravelMode.RIDE_HAILING: "by ride",
}

# Upstream payload keys accepted for each mode, first match wins.
_WIRE_KEYS: Dict[TravelMode, tuple] = {
    TravelMode.WALKING: ("walking",),
    TravelMode.DRIVING: ("driving",),
    TravelMode.BICYCLING: ("bicycling",),
    TravelMode.TRANSIT: ("transit",),
    TravelMode.RIDE_HAILING: ("ride_hailing", "rideHailing", "uber"),
}


def format_duration_label(seconds: float, mode: TravelMode) -> str:
    minutes = max(1, round(seconds / 60.0))
    return f"{minutes} min {MODE_LABEL_SUFFIX[mode]}"


class _ModePayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    duration_seconds: float = Field(alias="durationSeconds", ge=0, allow_inf_nan=False, strict=True)
    label: StrictStr


def parse_mode_estimates(payload: Mapping[str, Any]) -> ModeEstimates:
    """Validate each mode on its own; a malformed mode becomes None."""
    out: ModeEstimates = {}
    for mode in ALL_TRAVEL_MODES:
        raw = None
        for key in _WIRE_KEYS[mode]:
            if payload.get(key) is not None:
                raw = payload[key]
                break
        if raw is None:
            out[mode] = None
            continue
        try:
            parsed = _ModePayload.model_validate(raw)
        except ValidationError:
            logger.info("[travel][invalid_mode] mode=%s", mode.value)
            out[mode] = None
            continue
        out[mode] = ModeEstimate(duration_seconds=float(parsed.duration_seconds), label=parsed.label)
    return out


class RoutingProvider:
    """Fetches every travel mode for one (already bucketed) coordinate pair."""

    provider_id = "routing"

    async def fetch(self, origin: Coordinate, destination: Coordinate) -> ModeEstimates:
        raise NotImplementedError


class HttpRoutingProvider(RoutingProvider):
    provider_id = "routing_http"

    def __init__(
        self,
        url: str,
        *,
        api_key: Optional[str] = None,
        timeout_s: float = UPSTREAM_TIMEOUT_S,
        client: Optional[httpx.AsyncClient] = None,
        policy: Optional[RetryPolicy] = None,
        circuit: Optional[ProviderCircuit] = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.timeout_s = timeout_s
        self._client = client
        self._policy = policy
        self.circuit = circuit or ProviderCircuit.from_env(self.provider_id)

    async def fetch(self, origin: Coordinate, destination: Coordinate) -> ModeEstimates:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        payload = {
            "origin": {"lat": origin.lat, "lng": origin.lng},
            "destination": {"lat": destination.lat, "lng": destination.lng},
            "modes": [mode.value for mode in ALL_TRAVEL_MODES],
        }
        if self._client is not None:
            data = await self._post(self._client, headers, payload)
        else:
            async with httpx.AsyncClient() as client:
                data = await self._post(client, headers, payload)
        return parse_mode_estimates(data)

    async def _post(self, client: httpx.AsyncClient, headers: Dict[str, str], payload: Dict[str, Any]) -> Dict[str, Any]:
        return await post_json_with_retry(
            client,
            self.url,
            headers=headers,
            payload=payload,
            timeout_s=self.timeout_s,
            policy=self._policy,
            circuit=self.circuit,
            provider_id=self.provider_id,
        )


class ApproximateRoutingProvider(RoutingProvider):
    """Straight-line estimates at fixed average speeds; no transit estimate."""

    provider_id = "approx"

    SPEEDS_KMH: Dict[TravelMode, float] = {
        TravelMode.WALKING: 4.8,
        TravelMode.BICYCLING: 16.0,
        TravelMode.DRIVING: 22.0,
        TravelMode.RIDE_HAILING: 22.0,
    }
    MIN_SECONDS = 60.0

    async def fetch(self, origin: Coordinate, destination: Coordinate) -> ModeEstimates:
        km = haversine_km(origin.lat, origin.lng, destination.lat, destination.lng)
        out: ModeEstimates = {}
        for mode in ALL_TRAVEL_MODES:
            speed = self.SPEEDS_KMH.get(mode)
            if speed is None:
                out[mode] = None
                continue
            seconds = max(self.MIN_SECONDS, round(km / speed * 3600.0))
            out[mode] = ModeEstimate(duration_seconds=seconds, label=format_duration_label(seconds, mode))
        return out


def build_routing_provider(
    url: Optional[str] = ROUTING_API_URL,
    api_key: Optional[str] = ROUTING_API_KEY,
) -> RoutingProvider:
    if url:
        return HttpRoutingProvider(url, api_key=api_key)
    logger.info("[travel][provider] routing url not configured; using approximate estimates")
    return ApproximateRoutingProvider()


__all__ = [
    "ApproximateRoutingProvider",
    "HttpRoutingProvider",
    "ModeEstimates",
    "RoutingProvider",
    "build_routing_provider",
    "format_duration_label",
    "parse_mode_estimates",
]
