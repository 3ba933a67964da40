import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient  # noqa: E402

from mf_engine.api.app import create_app  # noqa: E402
from mf_engine.feed.assembler import FeedAssembler  # noqa: E402
from mf_engine.feed.source import InMemoryCandidateSource  # noqa: E402
from mf_engine.scoring.breakdown import MatchScorer  # noqa: E402
from mf_engine.semantic.generator import EmbeddingGenerator  # noqa: E402
from mf_engine.semantic.provider import DeterministicHashEmbeddingProvider  # noqa: E402
from mf_engine.semantic.store import InMemoryEmbeddingStore  # noqa: E402
from mf_engine.service import MatchFeedService  # noqa: E402
from mf_engine.travel.provider import ApproximateRoutingProvider  # noqa: E402
from mf_engine.travel.resolver import TravelTimeResolver  # noqa: E402

pytestmark = pytest.mark.api


class _BrokenSource:
    async def get_profile(self, profile_id):
        raise ConnectionError("db down")

    async def list_candidates(self, viewer_id, filters=None):
        raise ConnectionError("db down")


@pytest.fixture
def client(make_profile, now):
    profiles = [make_profile("viewer")] + [make_profile(f"c{idx}") for idx in range(5)]
    source = InMemoryCandidateSource(profiles)
    store = InMemoryEmbeddingStore()
    resolver = TravelTimeResolver(ApproximateRoutingProvider())
    service = MatchFeedService(
        source=source,
        store=store,
        generator=EmbeddingGenerator(DeterministicHashEmbeddingProvider(dim=8), dim=8),
        resolver=resolver,
        assembler=FeedAssembler(source, scorer=MatchScorer(clock=lambda: now), resolver=resolver, embeddings=store),
        credentials=None,
    )
    return TestClient(create_app(service))


def test_healthz(client) -> None:
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["scoringVersion"] == "1.0"


def test_feed_pages(client) -> None:
    resp = client.get("/feed", params={"viewer_id": "viewer", "limit": 3})
    assert resp.status_code == 200
    payload = resp.json()
    assert len(payload["items"]) == 3
    assert payload["sortedBy"] == "match"
    first = payload["items"][0]
    assert set(first["matchBreakdown"]) >= {"travel", "role", "interests", "optInBonus"}
    assert first["travelTime"]["walking"]["label"] == "1 min on foot"

    resp = client.get("/feed", params={"viewer_id": "viewer", "limit": 3, "cursor": payload["nextCursor"]})
    second = resp.json()
    assert len(second["items"]) == 2
    assert second["nextCursor"] is None
    seen = {item["id"] for item in payload["items"]} | {item["id"] for item in second["items"]}
    assert len(seen) == 5


def test_feed_errors(client) -> None:
    assert client.get("/feed", params={"viewer_id": "ghost"}).status_code == 404
    assert client.get("/feed", params={"viewer_id": "viewer", "sort": "random"}).status_code == 400
    assert client.get("/feed", params={"viewer_id": "viewer", "cursor": "garbage"}).status_code == 400
    assert client.get("/feed", params={"viewer_id": "viewer", "age_min": 50, "age_max": 20}).status_code == 400
    assert client.get("/feed", params={"viewer_id": "viewer", "lat": 95, "lng": 0}).status_code == 400
    assert client.get("/feed", params={"viewer_id": "viewer", "lat": 51.5}).status_code == 400


def test_feed_unavailable_maps_to_503() -> None:
    source = _BrokenSource()
    store = InMemoryEmbeddingStore()
    resolver = TravelTimeResolver(None)
    service = MatchFeedService(
        source=source,
        store=store,
        generator=EmbeddingGenerator(DeterministicHashEmbeddingProvider(dim=8), dim=8),
        resolver=resolver,
        assembler=FeedAssembler(source),
    )
    resp = TestClient(create_app(service)).get("/feed", params={"viewer_id": "viewer"})
    assert resp.status_code == 503
    assert resp.headers["retry-after"] == "5"


def test_travel_time(client) -> None:
    resp = client.post(
        "/travel-time",
        json={"origin": {"lat": 51.509, "lng": -0.118}, "destination": {"lat": 51.52, "lng": -0.1}},
    )
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["status"] == "ok"
    assert payload["transit"] is None
    assert payload["fastest"] in {"driving", "ride_hailing"}
    assert payload["fastestMinutes"] >= 1

    bad = client.post("/travel-time", json={"origin": {"lat": 91, "lng": 0}, "destination": {"lat": 0, "lng": 0}})
    assert bad.status_code == 422


def test_embedding_regeneration(client) -> None:
    assert client.get("/embeddings/c1").status_code == 404

    resp = client.post("/embeddings/c1")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["error"] is None
    assert payload["skipped"] is False
    assert payload["fields"]["combined"] is True

    again = client.post("/embeddings/c1").json()
    assert again["skipped"] is True

    status = client.get("/embeddings/c1").json()
    assert status["profileId"] == "c1"
    assert status["fields"]["combined"] is True

    assert client.post("/embeddings/ghost").status_code == 404
