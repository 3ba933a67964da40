"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from mf_engine.feed.query import FeedQueryError, SortKey
from mf_engine.utils.time import parse_timestamp


class CursorError(FeedQueryError):
    pass


@dataclass(frozen=True)
class FeedCursor:
    session_id: str
    sort: SortKey
    offset: int
    fingerprint: str
    last_key: Tuple[Any, ...]
    scored_at: Optional[datetime] = None


def encode_cursor(cursor: FeedCursor) -> str:
    payload: Dict[str, Any] = {
        "s": cursor.session_id,
        "k": cursor.sort.value,
        "o": cursor.offset,
        "f": cursor.fingerprint,
        "l": list(cursor.last_key),
    }
    if cursor.scored_at is not None:
        payload["t"] = cursor.scored_at.isoformat().replace("+00:00", "Z")
    raw = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(token: Optional[str]) -> Optional[FeedCursor]:
    if not token:
        return None
    padded = token + "=" * (-len(token) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise CursorError("malformed cursor") from exc
    if not isinstance(payload, dict):
        raise CursorError("malformed cursor")
    try:
        session_id = payload["s"]
        offset = payload["o"]
        fingerprint = payload["f"]
        last_key = payload["l"]
        sort = SortKey(payload["k"])
    except (KeyError, ValueError) as exc:
        raise CursorError("malformed cursor") from exc
    if (
        not isinstance(session_id, str)
        or not isinstance(fingerprint, str)
        or isinstance(offset, bool)
        or not isinstance(offset, int)
        or offset < 0
        or not isinstance(last_key, list)
    ):
        raise CursorError("malformed cursor")
    scored_at = None
    if payload.get("t") is not None:
        scored_at = parse_timestamp(payload["t"])
        if scored_at is None:
            raise CursorError("malformed cursor")
    return FeedCursor(session_id, sort, offset, fingerprint, tuple(last_key), scored_at)
