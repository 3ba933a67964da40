"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from mf_engine.config import EMBEDDING_DIM, EMBEDDING_MAX_CHARS, OPENAI_API_KEY
from mf_engine.providers.retry import ProviderFetchError, classify_failure_type
from mf_engine.semantic.core import is_valid_vector, prepare_text
from mf_engine.semantic.provider import EmbeddingProvider, OpenAIEmbeddingProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddingOutcome:
    vector: Optional[List[float]]
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.vector is not None


class EmbeddingGenerator:
    """Wraps a provider so every failure turns into "no vector" instead of an exception."""

    def __init__(
        self,
        provider: Optional[EmbeddingProvider] = None,
        *,
        dim: int = EMBEDDING_DIM,
        max_chars: int = EMBEDDING_MAX_CHARS,
    ) -> None:
        self.provider = provider if provider is not None else OpenAIEmbeddingProvider(dim=dim)
        self.dim = dim
        self.max_chars = max_chars

    @property
    def model(self) -> str:
        return self.provider.model

    async def generate(self, text: Optional[str], credentials: Optional[str] = OPENAI_API_KEY) -> Optional[List[float]]:
        outcome = await self.generate_outcome(text, credentials)
        return outcome.vector

    async def generate_outcome(self, text: Optional[str], credentials: Optional[str] = OPENAI_API_KEY) -> EmbeddingOutcome:
        prepared = prepare_text(text, self.max_chars)
        if not prepared:
            return EmbeddingOutcome(None, "empty_text")
        if self.provider.requires_credentials and not credentials:
            logger.info("[embeddings][skip] provider=%s reason=missing_credentials", self.provider.provider_id)
            return EmbeddingOutcome(None, "missing_credentials")
        try:
            vector = await self.provider.embed(prepared, api_key=credentials)
        except ProviderFetchError as exc:
            logger.warning(
                "[embeddings][upstream_error] provider=%s failure_type=%s error=%s",
                self.provider.provider_id,
                classify_failure_type(exc.reason),
                exc,
            )
            return EmbeddingOutcome(None, exc.reason)
        except Exception as exc:
            logger.warning("[embeddings][provider_error] provider=%s error=%r", self.provider.provider_id, exc)
            return EmbeddingOutcome(None, "provider_error")
        if not is_valid_vector(vector, self.dim):
            logger.warning(
                "[embeddings][invalid_dimension] provider=%s expected=%s got=%s",
                self.provider.provider_id,
                self.dim,
                len(vector) if isinstance(vector, list) else None,
            )
            return EmbeddingOutcome(None, "invalid_dimension")
        return EmbeddingOutcome([float(v) for v in vector])
