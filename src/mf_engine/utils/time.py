"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_z(*, seconds_precision: bool = True) -> str:
    """Return an ISO-8601 UTC timestamp with trailing Z."""
    current = utc_now()
    if seconds_precision:
        current = current.replace(microsecond=0)
    return current.isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are taken to be UTC. Unparseable input yields None rather
    than raising, since activity timestamps come from user-owned records.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif not isinstance(value, str):
        return None
    else:
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def minutes_since(value: Optional[datetime], *, now: Optional[datetime] = None) -> Optional[float]:
    if value is None:
        return None
    reference = now or utc_now()
    delta = (reference - value).total_seconds() / 60.0
    return max(0.0, delta)
