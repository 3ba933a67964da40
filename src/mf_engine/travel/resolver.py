"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from mf_engine.config import TRAVEL_TTL_S, UPSTREAM_TIMEOUT_S
from mf_engine.models import Coordinate, TravelStatus, TravelTimeResult
from mf_engine.providers.retry import ProviderFetchError, classify_failure_type
from mf_engine.travel.bucket import bucket_coordinate, travel_cache_key
from mf_engine.travel.cache import TravelTimeCache
from mf_engine.travel.provider import RoutingProvider

logger = logging.getLogger(__name__)


@dataclass
class _InFlight:
    task: "asyncio.Task[TravelTimeResult]"
    subscribers: int = 0


@dataclass
class ResolverStats:
    cache_hits: int = 0
    joined_in_flight: int = 0
    upstream_calls: int = 0
    upstream_failures: int = 0
    aborted: int = 0


@dataclass
class TravelTimeResolver:
    """
    Resolves travel times through a TTL cache with in-flight de-duplication.

    Concurrent callers for the same bucketed key share one upstream task.
    Each caller may stop waiting on its own (task cancellation or ``cancel``
    event); the shared task is only cancelled once no subscriber is left.
    """

    provider: Optional[RoutingProvider]
    cache: TravelTimeCache = field(default_factory=lambda: TravelTimeCache(TRAVEL_TTL_S))
    timeout_s: float = UPSTREAM_TIMEOUT_S
    stats: ResolverStats = field(default_factory=ResolverStats)
    _in_flight: Dict[str, _InFlight] = field(default_factory=dict, init=False, repr=False)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    async def resolve(
        self,
        origin: Optional[Coordinate],
        destination: Optional[Coordinate],
        cancel: Optional[asyncio.Event] = None,
    ) -> TravelTimeResult:
        if origin is None or destination is None or not origin.is_valid() or not destination.is_valid():
            return TravelTimeResult.empty(TravelStatus.INVALID_COORDINATES)
        if self.provider is None:
            return TravelTimeResult.empty(TravelStatus.NOT_CONFIGURED)
        if cancel is not None and cancel.is_set():
            return TravelTimeResult.empty(TravelStatus.CANCELLED)

        key = travel_cache_key(origin, destination)
        cached = self.cache.get(key)
        if cached is not None:
            self.stats.cache_hits += 1
            logger.debug("[travel][cache_hit] key=%s", key)
            return cached

        # No await between the lookup and the insert, so this check-then-insert
        # is atomic on the event loop.
        entry = self._in_flight.get(key)
        if entry is None:
            task = asyncio.create_task(
                self._fetch(key, bucket_coordinate(origin), bucket_coordinate(destination)),
                name=f"travel:{key}",
            )
            entry = _InFlight(task=task)
            self._in_flight[key] = entry
            task.add_done_callback(lambda _t, key=key, entry=entry: self._forget(key, entry))
        else:
            self.stats.joined_in_flight += 1

        entry.subscribers += 1
        finished = False
        try:
            result = await self._wait(entry, cancel)
            finished = result is not None
            if result is None:
                logger.info("[travel][cancelled] key=%s remaining=%s", key, entry.subscribers - 1)
                return TravelTimeResult.empty(TravelStatus.CANCELLED)
            return result
        finally:
            entry.subscribers -= 1
            if not finished and entry.subscribers <= 0 and not entry.task.done():
                self._abort(key, entry)

    async def _wait(self, entry: _InFlight, cancel: Optional[asyncio.Event]) -> Optional[TravelTimeResult]:
        # asyncio.wait never cancels the tasks it watches, so one subscriber
        # leaving does not touch the shared task.
        if cancel is None:
            await asyncio.wait({entry.task})
            return entry.task.result()
        cancel_waiter = asyncio.create_task(cancel.wait())
        try:
            await asyncio.wait({entry.task, cancel_waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_waiter.cancel()
        if entry.task.done():
            return entry.task.result()
        return None

    def _abort(self, key: str, entry: _InFlight) -> None:
        self.stats.aborted += 1
        logger.info("[travel][abort] key=%s reason=no_subscribers", key)
        entry.task.cancel()
        self._forget(key, entry)

    def _forget(self, key: str, entry: _InFlight) -> None:
        if self._in_flight.get(key) is entry:
            del self._in_flight[key]

    async def _fetch(self, key: str, origin: Coordinate, destination: Coordinate) -> TravelTimeResult:
        if self.provider is None:
            return TravelTimeResult.empty(TravelStatus.NOT_CONFIGURED)
        self.stats.upstream_calls += 1
        provider_id = self.provider.provider_id
        try:
            modes = await asyncio.wait_for(self.provider.fetch(origin, destination), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            self.stats.upstream_failures += 1
            logger.warning("[travel][upstream_timeout] key=%s provider=%s timeout_s=%.1f", key, provider_id, self.timeout_s)
            return TravelTimeResult.empty(TravelStatus.UPSTREAM_ERROR, provider=provider_id)
        except ProviderFetchError as exc:
            self.stats.upstream_failures += 1
            logger.warning(
                "[travel][upstream_error] key=%s provider=%s failure_type=%s error=%s",
                key,
                provider_id,
                classify_failure_type(exc.reason),
                exc,
            )
            return TravelTimeResult.empty(TravelStatus.UPSTREAM_ERROR, provider=provider_id)

        result = TravelTimeResult(modes=modes, status=TravelStatus.OK, provider=provider_id)
        if not result.has_estimates:
            self.stats.upstream_failures += 1
            logger.warning("[travel][no_valid_modes] key=%s provider=%s", key, provider_id)
            return TravelTimeResult.empty(TravelStatus.UPSTREAM_ERROR, provider=provider_id)
        self.cache.set(key, result)
        return result
