"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from pydantic import TypeAdapter, ValidationError

from mf_engine.feed.query import FeedFilters
from mf_engine.models import Profile


class FeedUnavailableError(RuntimeError):
    """The candidate source cannot serve requests; callers may retry."""


class ViewerNotFoundError(LookupError):
    pass


class CandidateSource(Protocol):
    async def get_profile(self, profile_id: str) -> Optional[Profile]: ...

    async def list_candidates(self, viewer_id: str, filters: Optional[FeedFilters] = None) -> List[Profile]: ...


class InMemoryCandidateSource:
    def __init__(self, profiles: Iterable[Profile] = ()) -> None:
        self._profiles: Dict[str, Profile] = {}
        for profile in profiles:
            self._profiles[profile.id] = profile

    async def get_profile(self, profile_id: str) -> Optional[Profile]:
        return self._profiles.get(profile_id)

    async def list_candidates(self, viewer_id: str, filters: Optional[FeedFilters] = None) -> List[Profile]:
        """Every profile except the viewer, narrowed by profile type when ``filters`` names any."""
        wanted = {t.strip().lower() for t in filters.profile_types if t.strip()} if filters is not None else set()
        return [
            profile
            for profile in self._profiles.values()
            if profile.id != viewer_id and (not wanted or (profile.profile_type or "").strip().lower() in wanted)
        ]

    def __len__(self) -> int:
        return len(self._profiles)


_PROFILE_LIST = TypeAdapter(List[Profile])


def load_profiles(path: Path) -> List[Profile]:
    """
    Load and validate a JSON list of profiles.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON or a record fails validation.
    """
    profile_path = Path(path)
    if not profile_path.exists():
        raise FileNotFoundError(f"Profiles file not found: {profile_path}")
    try:
        payload = json.loads(profile_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in profiles file {profile_path}: {exc}") from exc
    if isinstance(payload, dict):
        payload = payload.get("profiles", [])
    try:
        return _PROFILE_LIST.validate_python(payload)
    except ValidationError as exc:
        raise ValueError(f"Profiles file {profile_path} does not match schema: {exc}") from exc
