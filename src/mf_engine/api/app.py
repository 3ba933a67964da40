"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

try:
    from fastapi import FastAPI, HTTPException, Query, Request
    from pydantic import BaseModel, ConfigDict, Field, ValidationError
except ModuleNotFoundError as exc:  # pragma: no cover - exercised in environments without api extras
    raise RuntimeError("API dependencies are not installed. Install with: pip install -e '.[api]'") from exc

from mf_engine.feed.query import FeedFilters, FeedQueryError
from mf_engine.feed.source import FeedUnavailableError, ViewerNotFoundError
from mf_engine.models import Coordinate
from mf_engine.semantic.backfill import update_profile_embeddings
from mf_engine.service import MatchFeedService, build_service

logger = logging.getLogger(__name__)


class _CoordinatePayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    lat: float = Field(ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(ge=-180, le=180, allow_inf_nan=False)


class TravelTimeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    origin: _CoordinatePayload
    destination: _CoordinatePayload


def _split_csv(value: Optional[str]) -> list:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def create_app(service: Optional[MatchFeedService] = None) -> FastAPI:
    app = FastAPI(title="MatchFeed API")
    app.state.service = service

    def _service(request: Request) -> MatchFeedService:
        if request.app.state.service is None:
            request.app.state.service = build_service()
        return request.app.state.service

    @app.get("/healthz")
    def healthz(request: Request) -> Dict[str, Any]:
        svc = _service(request)
        return {
            "status": "ok",
            "scoringVersion": svc.assembler.scoring_version,
            "travelCacheEntries": len(svc.resolver.cache),
            "travelInFlight": svc.resolver.in_flight_count,
        }

    @app.get("/feed")
    async def feed(
        request: Request,
        viewer_id: str = Query(..., min_length=1),
        sort: str = "match",
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        profile_types: Optional[str] = None,
        min_score: Optional[float] = None,
        age_min: Optional[int] = None,
        age_max: Optional[int] = None,
        distance_km: Optional[float] = None,
    ) -> Dict[str, Any]:
        svc = _service(request)
        try:
            filters = FeedFilters(
                profile_types=_split_csv(profile_types),
                min_score=min_score,
                age_min=age_min,
                age_max=age_max,
                distance_km=distance_km,
                limit=limit,
            )
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=f"invalid filters: {exc.errors()[0].get('msg')}") from exc

        location = None
        if lat is not None or lng is not None:
            location = Coordinate(lat, lng) if lat is not None and lng is not None else None
            if location is None or not location.is_valid():
                raise HTTPException(status_code=400, detail="lat and lng must both be valid coordinates")

        try:
            page = await svc.assembler.get_page(viewer_id, sort, cursor, filters, viewer_location=location)
        except FeedQueryError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ViewerNotFoundError as exc:
            raise HTTPException(status_code=404, detail="viewer not found") from exc
        except FeedUnavailableError as exc:
            logger.warning("[api][feed_unavailable] viewer=%s error=%s", viewer_id, exc)
            raise HTTPException(
                status_code=503,
                detail="feed temporarily unavailable",
                headers={"Retry-After": "5"},
            ) from exc
        return page.to_dict()

    @app.post("/travel-time")
    async def travel_time(request: Request, body: TravelTimeRequest) -> Dict[str, Any]:
        svc = _service(request)
        result = await svc.resolver.resolve(
            Coordinate(body.origin.lat, body.origin.lng),
            Coordinate(body.destination.lat, body.destination.lng),
        )
        payload = result.to_dict()
        seconds = result.fastest_seconds
        payload["fastestMinutes"] = max(1, round(seconds / 60.0)) if seconds is not None else None
        return payload

    @app.post("/embeddings/{profile_id}")
    async def regenerate_embeddings(request: Request, profile_id: str, force: bool = False) -> Dict[str, Any]:
        svc = _service(request)
        try:
            profile = await svc.source.get_profile(profile_id)
        except Exception as exc:
            raise HTTPException(status_code=503, detail="profile source unavailable") from exc
        if profile is None:
            raise HTTPException(status_code=404, detail="profile not found")
        outcome = await update_profile_embeddings(
            profile,
            generator=svc.generator,
            store=svc.store,
            credentials=svc.credentials,
            field_weights=svc.field_weights,
            force=force,
        )
        return {
            "profileId": outcome.profile_id,
            "error": outcome.error,
            "skipped": outcome.skipped,
            "fields": {name: vector is not None for name, vector in outcome.embeddings.items()},
            "fieldErrors": outcome.field_errors,
        }

    @app.get("/embeddings/{profile_id}")
    async def embedding_status(request: Request, profile_id: str) -> Dict[str, Any]:
        svc = _service(request)
        record = await svc.store.get(profile_id)
        if record is None:
            raise HTTPException(status_code=404, detail="no embeddings for profile")
        return record.to_status()

    return app


app = create_app()
