"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from mf_engine.config import clamp_page_size
from mf_engine.feed.cursor import CursorError, FeedCursor, decode_cursor, encode_cursor
from mf_engine.feed.query import FeedFilters, FeedItem, FeedPage, SortKey
from mf_engine.feed.sessions import PaginationSession, PaginationSessionStore
from mf_engine.feed.source import CandidateSource, FeedUnavailableError, ViewerNotFoundError
from mf_engine.models import Coordinate, Profile, TravelTimeResult
from mf_engine.scoring.breakdown import MatchScorer
from mf_engine.scoring.contract import FALLBACK_SCORING_VERSION
from mf_engine.semantic.store import EmbeddingStore
from mf_engine.travel.resolver import TravelTimeResolver
from mf_engine.utils.geo import distance_km
from mf_engine.utils.time import utc_now

logger = logging.getLogger(__name__)


class FeedAssembler:
    """
    Builds ranked, cursor-paginated feed pages for a viewer.

    The first page of a session ranks the whole filtered candidate set and
    snapshots it; later pages slice that snapshot so no id repeats within a
    session. Scoring, embeddings and travel times are optional collaborators:
    when ``scorer`` is None the page keeps its shape, ``matchProbability`` is
    null and ``scoringVersion`` reads ``fallback``.
    """

    def __init__(
        self,
        source: CandidateSource,
        *,
        scorer: Optional[MatchScorer] = None,
        resolver: Optional[TravelTimeResolver] = None,
        embeddings: Optional[EmbeddingStore] = None,
        sessions: Optional[PaginationSessionStore] = None,
    ) -> None:
        self.source = source
        self.scorer = scorer
        self.resolver = resolver
        self.embeddings = embeddings
        self.sessions = sessions if sessions is not None else PaginationSessionStore()

    @property
    def scoring_version(self) -> str:
        return self.scorer.scoring_version if self.scorer is not None else FALLBACK_SCORING_VERSION

    def _now(self) -> datetime:
        return self.scorer.reference_time() if self.scorer is not None else utc_now()

    async def get_page(
        self,
        viewer_id: str,
        sort_key: "SortKey | str | None" = SortKey.MATCH,
        cursor: Optional[str] = None,
        filters: Optional[FeedFilters] = None,
        *,
        viewer_location: Optional[Coordinate] = None,
    ) -> FeedPage:
        sort = SortKey.parse(sort_key)
        filters = filters or FeedFilters()
        limit = clamp_page_size(filters.limit)
        fingerprint = _fingerprint(viewer_id, sort, filters, viewer_location)

        decoded = decode_cursor(cursor)
        session: Optional[PaginationSession] = None
        offset = 0
        if decoded is not None:
            if decoded.fingerprint != fingerprint or decoded.sort != sort:
                raise CursorError("cursor does not belong to this feed query")
            session = self.sessions.get(decoded.session_id)
            if session is not None and session.fingerprint == fingerprint:
                offset = decoded.offset
            else:
                session = None

        if session is None:
            # Resumed feeds are re-scored at the reference time of the first page.
            scored_at = self._now()
            if decoded is not None and decoded.scored_at is not None:
                scored_at = decoded.scored_at
            items = await self.assemble(viewer_id, sort, filters, viewer_location=viewer_location, now=scored_at)
            if decoded is not None:
                logger.info("[feed][session_expired] viewer=%s resuming_after=%s", viewer_id, decoded.last_key)
                items = _after_key(items, sort, decoded.last_key)
            session = self.sessions.create(fingerprint, items, self.scoring_version, scored_at)
            offset = 0

        page_items = session.items[offset : offset + limit]
        next_offset = offset + len(page_items)
        next_cursor: Optional[str] = None
        if page_items and next_offset < len(session.items):
            next_cursor = encode_cursor(
                FeedCursor(
                    session_id=session.session_id,
                    sort=sort,
                    offset=next_offset,
                    fingerprint=fingerprint,
                    last_key=page_items[-1].sort_tuple(sort),
                    scored_at=session.scored_at,
                )
            )
        return FeedPage(
            items=page_items,
            next_cursor=next_cursor,
            scoring_version=session.scoring_version,
            sorted_by=sort,
            total=len(session.items),
        )

    async def assemble(
        self,
        viewer_id: str,
        sort: SortKey,
        filters: FeedFilters,
        *,
        viewer_location: Optional[Coordinate] = None,
        now: Optional[datetime] = None,
    ) -> List[FeedItem]:
        """Fetch, annotate, filter and rank every candidate for ``viewer_id`` as of ``now``."""
        try:
            viewer = await self.source.get_profile(viewer_id)
            if viewer is None:
                raise ViewerNotFoundError(viewer_id)
            raw_candidates = await self.source.list_candidates(viewer_id, filters)
        except (FeedUnavailableError, ViewerNotFoundError):
            raise
        except Exception as exc:
            raise FeedUnavailableError(f"candidate source failed: {exc}") from exc

        origin = viewer_location if viewer_location is not None and viewer_location.is_valid() else viewer.coordinate
        candidates = _prefilter(_dedupe(raw_candidates, viewer_id), filters, origin)

        combined = await self._load_embeddings(viewer_id, candidates)
        travel = await self._resolve_travel(origin, candidates)

        items: List[FeedItem] = []
        for candidate in candidates:
            destination = candidate.coordinate
            km = None
            if origin is not None and destination is not None:
                km = distance_km(origin.lat, origin.lng, destination.lat, destination.lng)
            match = None
            if self.scorer is not None:
                match = self.scorer.score(
                    viewer,
                    candidate,
                    travel.get(candidate.id),
                    viewer_embedding=combined.get(viewer_id),
                    candidate_embedding=combined.get(candidate.id),
                    now=now,
                )
                if filters.min_score is not None and match.probability < filters.min_score:
                    continue
            items.append(FeedItem(profile=candidate, match=match, travel=travel.get(candidate.id), distance_km=km))

        items.sort(key=lambda item: item.sort_tuple(sort))
        logger.info(
            "[feed][assembled] viewer=%s sort=%s candidates=%s ranked=%s scoring=%s",
            viewer_id,
            sort.value,
            len(raw_candidates),
            len(items),
            self.scoring_version,
        )
        return items

    async def _load_embeddings(self, viewer_id: str, candidates: Sequence[Profile]) -> Dict[str, List[float]]:
        if self.scorer is None or self.embeddings is None:
            return {}
        ids = [viewer_id] + [candidate.id for candidate in candidates]
        try:
            return await self.embeddings.get_combined_many(ids)
        except Exception as exc:
            logger.warning("[feed][embeddings_unavailable] viewer=%s error=%r", viewer_id, exc)
            return {}

    async def _resolve_travel(
        self,
        origin: Optional[Coordinate],
        candidates: Sequence[Profile],
    ) -> Dict[str, TravelTimeResult]:
        if self.resolver is None or origin is None:
            return {}
        targets = [candidate for candidate in candidates if candidate.coordinate is not None]
        results = await asyncio.gather(
            *(self.resolver.resolve(origin, candidate.coordinate) for candidate in targets),
            return_exceptions=True,
        )
        out: Dict[str, TravelTimeResult] = {}
        for candidate, result in zip(targets, results):
            if isinstance(result, TravelTimeResult):
                out[candidate.id] = result
            elif isinstance(result, BaseException):
                logger.warning("[feed][travel_failed] candidate=%s error=%r", candidate.id, result)
        return out


def _fingerprint(
    viewer_id: str,
    sort: SortKey,
    filters: FeedFilters,
    viewer_location: Optional[Coordinate],
) -> str:
    payload = {
        "viewer": viewer_id,
        "sort": sort.value,
        "filters": filters.fingerprint_payload(),
        "at": [viewer_location.lat, viewer_location.lng] if viewer_location is not None else None,
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def _dedupe(candidates: Sequence[Profile], viewer_id: str) -> List[Profile]:
    seen = set()
    out: List[Profile] = []
    for candidate in candidates:
        if candidate.id == viewer_id or candidate.id in seen:
            continue
        seen.add(candidate.id)
        out.append(candidate)
    return out


def _prefilter(candidates: Sequence[Profile], filters: FeedFilters, origin: Optional[Coordinate]) -> List[Profile]:
    wanted_types = {t.strip().lower() for t in filters.profile_types if t.strip()}
    out: List[Profile] = []
    for candidate in candidates:
        if wanted_types and (candidate.profile_type or "").strip().lower() not in wanted_types:
            continue
        if filters.age_min is not None and (candidate.age is None or candidate.age < filters.age_min):
            continue
        if filters.age_max is not None and (candidate.age is None or candidate.age > filters.age_max):
            continue
        if filters.distance_km is not None and origin is not None:
            destination = candidate.coordinate
            if destination is None:
                continue
            km = distance_km(origin.lat, origin.lng, destination.lat, destination.lng)
            if km is None or km > filters.distance_km:
                continue
        out.append(candidate)
    return out


def _after_key(items: List[FeedItem], sort: SortKey, last_key: tuple) -> List[FeedItem]:
    try:
        return [item for item in items if item.sort_tuple(sort) > last_key]
    except TypeError as exc:
        raise CursorError("cursor sort key does not match sort order") from exc
