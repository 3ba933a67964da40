"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from mf_engine.config import EMBEDDING_DB_PATH, OPENAI_API_KEY, PROFILES_PATH, SCORING_CONFIG_PATH, TRAVEL_TTL_S
from mf_engine.feed.assembler import FeedAssembler
from mf_engine.feed.source import CandidateSource, InMemoryCandidateSource, load_profiles
from mf_engine.scoring.breakdown import MatchScorer
from mf_engine.scoring.contract import ScoringConfigError, load_scoring_config
from mf_engine.semantic.generator import EmbeddingGenerator
from mf_engine.semantic.provider import OpenAIEmbeddingProvider
from mf_engine.semantic.store import EmbeddingStore, SqliteEmbeddingStore
from mf_engine.travel.cache import TravelTimeCache
from mf_engine.travel.provider import build_routing_provider
from mf_engine.travel.resolver import TravelTimeResolver

logger = logging.getLogger(__name__)


@dataclass
class MatchFeedService:
    """Process-wide collaborators, constructed once and shared by reference."""

    source: CandidateSource
    store: EmbeddingStore
    generator: EmbeddingGenerator
    resolver: TravelTimeResolver
    assembler: FeedAssembler
    credentials: Optional[str] = None

    @property
    def field_weights(self) -> Optional[Dict[str, float]]:
        scorer = self.assembler.scorer
        return dict(scorer.config.field_weights) if scorer is not None else None


def load_scorer(path: Path = SCORING_CONFIG_PATH) -> Optional[MatchScorer]:
    try:
        config = load_scoring_config(path)
    except ScoringConfigError as exc:
        logger.warning("[service][scoring_unavailable] %s", exc)
        return None
    scorer = MatchScorer(config)
    logger.info("[service][scoring] version=%s sha256=%s", scorer.scoring_version, scorer.config_sha256[:12])
    return scorer


def build_service(
    *,
    profiles_path: Optional[Path] = PROFILES_PATH,
    db_path: Path = EMBEDDING_DB_PATH,
    scoring_config_path: Path = SCORING_CONFIG_PATH,
    credentials: Optional[str] = OPENAI_API_KEY,
    source: Optional[CandidateSource] = None,
    store: Optional[EmbeddingStore] = None,
    generator: Optional[EmbeddingGenerator] = None,
    resolver: Optional[TravelTimeResolver] = None,
) -> MatchFeedService:
    if source is None:
        profiles = []
        if profiles_path is not None and Path(profiles_path).exists():
            profiles = load_profiles(Path(profiles_path))
        else:
            logger.info("[service][profiles] no profiles file at %s; starting empty", profiles_path)
        source = InMemoryCandidateSource(profiles)
    if store is None:
        store = SqliteEmbeddingStore(db_path)
    if generator is None:
        generator = EmbeddingGenerator(OpenAIEmbeddingProvider())
    if resolver is None:
        resolver = TravelTimeResolver(build_routing_provider(), cache=TravelTimeCache(TRAVEL_TTL_S))
    assembler = FeedAssembler(
        source,
        scorer=load_scorer(scoring_config_path),
        resolver=resolver,
        embeddings=store,
    )
    return MatchFeedService(
        source=source,
        store=store,
        generator=generator,
        resolver=resolver,
        assembler=assembler,
        credentials=credentials,
    )
