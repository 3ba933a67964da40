import json

import pytest

from mf_engine.feed.source import load_profiles
from mf_engine.utils.time import parse_timestamp


def test_non_string_timestamps_load_as_unknown(tmp_path) -> None:
    path = tmp_path / "profiles.json"
    path.write_text(
        json.dumps([{"id": "p1", "last_active": 1767225600, "created_at": ["2026"]}]),
        encoding="utf-8",
    )
    [profile] = load_profiles(path)
    assert profile.last_active is None
    assert profile.created_at is None


def test_wrapped_profiles_payload(tmp_path) -> None:
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps({"profiles": [{"id": "p1", "last_active": "2026-03-01T11:00:00Z"}]}), encoding="utf-8")
    [profile] = load_profiles(path)
    assert profile.last_active.isoformat() == "2026-03-01T11:00:00+00:00"


def test_invalid_profiles_raise_value_error(tmp_path) -> None:
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps([{"id": "p1", "age": -4}]), encoding="utf-8")
    with pytest.raises(ValueError, match="does not match schema"):
        load_profiles(path)

    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid JSON"):
        load_profiles(path)


@pytest.mark.parametrize("value", [1767225600, 17.5, ["2026-03-01"], {"at": "now"}, "", "yesterday"])
def test_parse_timestamp_rejects_unsupported_values(value) -> None:
    assert parse_timestamp(value) is None
