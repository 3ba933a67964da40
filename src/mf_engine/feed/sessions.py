"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import secrets
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from mf_engine.config import SESSION_TTL_S
from mf_engine.feed.query import FeedItem


@dataclass(frozen=True)
class PaginationSession:
    session_id: str
    fingerprint: str
    items: List[FeedItem]
    scoring_version: str
    scored_at: datetime
    expires_at: float


class PaginationSessionStore:
    """Ranked snapshots for in-progress pagination, bounded by TTL and count."""

    def __init__(
        self,
        ttl_s: float = SESSION_TTL_S,
        *,
        max_sessions: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_s = ttl_s
        self.max_sessions = max_sessions
        self._clock = clock
        self._sessions: "OrderedDict[str, PaginationSession]" = OrderedDict()

    def create(
        self,
        fingerprint: str,
        items: List[FeedItem],
        scoring_version: str,
        scored_at: datetime,
    ) -> PaginationSession:
        now = self._clock()
        self._sweep(now)
        session = PaginationSession(
            session_id=secrets.token_urlsafe(12),
            fingerprint=fingerprint,
            items=list(items),
            scoring_version=scoring_version,
            scored_at=scored_at,
            expires_at=now + self.ttl_s,
        )
        self._sessions[session.session_id] = session
        while len(self._sessions) > self.max_sessions:
            self._sessions.popitem(last=False)
        return session

    def get(self, session_id: str) -> Optional[PaginationSession]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._clock() >= session.expires_at:
            del self._sessions[session_id]
            return None
        return session

    def _sweep(self, now: float) -> None:
        expired = [sid for sid, session in self._sessions.items() if now >= session.expires_at]
        for sid in expired:
            del self._sessions[sid]

    def __len__(self) -> int:
        return len(self._sessions)
