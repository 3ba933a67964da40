from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict

import pytest

from mf_engine.models import Profile

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def pytest_configure(config) -> None:
    config.addinivalue_line("markers", "api: exercises the FastAPI surface (requires the api extra)")


@pytest.fixture(autouse=True)
def _clear_provider_env(monkeypatch) -> None:
    for key in (
        "MATCHFEED_PROVIDER_MAX_ATTEMPTS",
        "MATCHFEED_PROVIDER_BACKOFF_BASE",
        "MATCHFEED_PROVIDER_BACKOFF_MAX",
        "MATCHFEED_PROVIDER_BACKOFF_JITTER_S",
        "MATCHFEED_PROVIDER_MAX_CONSEC_FAILS",
        "MATCHFEED_PROVIDER_COOLDOWN_S",
    ):
        monkeypatch.delenv(key, raising=False)


def _make_profile(profile_id: str, **overrides: Any) -> Profile:
    data: Dict[str, Any] = {
        "id": profile_id,
        "name": f"Profile {profile_id}",
        "profile_type": "person",
        "age": 30,
        "bio": "Coffee, climbing and late night records. Always up for a walk along the river.",
        "role": "vers",
        "interests": ["climbing", "vinyl", "coffee"],
        "looking_for": ["dates", "friends"],
        "relationship_status": "single",
        "time_horizon": "today",
        "lifestyle": {"smoking": "never", "drinking": "social", "fitness": "active", "scenes": ["techno", "queer"]},
        "photos": ["a.jpg", "b.jpg", "c.jpg"],
        "verified": True,
        "city": "London",
        "lat": 51.509,
        "lng": -0.118,
        "last_active": NOW - timedelta(minutes=3),
        "created_at": NOW - timedelta(days=30),
    }
    data.update(overrides)
    return Profile.model_validate(data)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_profile() -> Callable[..., Profile]:
    return _make_profile
