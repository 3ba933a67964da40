"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from mf_engine.config import TRAVEL_TTL_S
from mf_engine.models import TravelTimeResult


@dataclass(frozen=True)
class _CacheEntry:
    value: TravelTimeResult
    expires_at: float


class TravelTimeCache:
    """
    TTL map from bucketed coordinate-pair keys to travel results.

    Entries only leave through expiry; expired entries are dropped lazily on
    read and swept on write. Callers share one instance per process and all
    access happens on the event loop thread, so no lock is held across awaits.
    """

    def __init__(self, ttl_s: float = TRAVEL_TTL_S, *, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl_s <= 0:
            raise ValueError("ttl_s must be > 0")
        self.ttl_s = ttl_s
        self._clock = clock
        self._entries: Dict[str, _CacheEntry] = {}

    def get(self, key: str) -> Optional[TravelTimeResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: TravelTimeResult) -> None:
        now = self._clock()
        self._sweep(now)
        self._entries[key] = _CacheEntry(value=value, expires_at=now + self.ttl_s)

    def _sweep(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None
