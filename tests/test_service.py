from mf_engine.feed.source import InMemoryCandidateSource
from mf_engine.semantic.generator import EmbeddingGenerator
from mf_engine.semantic.provider import DeterministicHashEmbeddingProvider
from mf_engine.semantic.store import InMemoryEmbeddingStore
from mf_engine.service import build_service
from mf_engine.travel.cache import TravelTimeCache
from mf_engine.travel.provider import ApproximateRoutingProvider
from mf_engine.travel.resolver import TravelTimeResolver


def test_build_service_keeps_empty_injected_collaborators(tmp_path) -> None:
    source = InMemoryCandidateSource()
    store = InMemoryEmbeddingStore()
    generator = EmbeddingGenerator(DeterministicHashEmbeddingProvider(dim=8), dim=8)
    resolver = TravelTimeResolver(ApproximateRoutingProvider(), cache=TravelTimeCache(30.0))

    service = build_service(
        profiles_path=None,
        db_path=tmp_path / "unused.sqlite",
        source=source,
        store=store,
        generator=generator,
        resolver=resolver,
    )

    assert service.source is source
    assert service.store is store
    assert service.generator is generator
    assert service.resolver is resolver
    assert service.assembler.embeddings is store
    assert not (tmp_path / "unused.sqlite").exists()


def test_build_service_without_scoring_config_falls_back(tmp_path) -> None:
    service = build_service(
        profiles_path=None,
        db_path=tmp_path / "e.sqlite",
        scoring_config_path=tmp_path / "missing.json",
        store=InMemoryEmbeddingStore(),
    )
    assert service.assembler.scorer is None
    assert service.assembler.scoring_version == "fallback"
