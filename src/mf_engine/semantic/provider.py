"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import hashlib
import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mf_engine.config import EMBEDDING_API_URL, EMBEDDING_DIM, EMBEDDING_MODEL, UPSTREAM_TIMEOUT_S
from mf_engine.providers.retry import ProviderCircuit, ProviderFetchError, RetryPolicy, post_json_with_retry

logger = logging.getLogger(__name__)


class EmbeddingProvider:
    """Turns one prepared text into a raw vector; raises ProviderFetchError on failure."""

    provider_id = "embedding"
    model = "unknown"
    requires_credentials = True

    async def embed(self, text: str, *, api_key: Optional[str]) -> List[float]:
        raise NotImplementedError


class _EmbeddingDatum(BaseModel):
    model_config = ConfigDict(extra="ignore")

    embedding: List[float]


class _EmbeddingResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: List[_EmbeddingDatum] = Field(min_length=1)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """
    Calls the OpenAI embeddings endpoint with retry and a circuit breaker.

    The response body is untrusted: it is schema-checked here and the
    dimension is checked by the generator.
    """

    provider_id = "openai_embeddings"

    def __init__(
        self,
        *,
        model: str = EMBEDDING_MODEL,
        dim: int = EMBEDDING_DIM,
        url: str = EMBEDDING_API_URL,
        timeout_s: float = UPSTREAM_TIMEOUT_S,
        client: Optional[httpx.AsyncClient] = None,
        policy: Optional[RetryPolicy] = None,
        circuit: Optional[ProviderCircuit] = None,
    ) -> None:
        self.model = model
        self.dim = dim
        self.url = url
        self.timeout_s = timeout_s
        self._client = client
        self._policy = policy
        self.circuit = circuit or ProviderCircuit.from_env(self.provider_id)

    async def embed(self, text: str, *, api_key: Optional[str]) -> List[float]:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        payload = {"model": self.model, "input": text, "dimensions": self.dim}
        if self._client is not None:
            data = await self._post(self._client, headers, payload)
        else:
            async with httpx.AsyncClient() as client:
                data = await self._post(client, headers, payload)
        try:
            parsed = _EmbeddingResponse.model_validate(data)
        except ValidationError as exc:
            raise ProviderFetchError("invalid_response", attempts=1) from exc
        return [float(x) for x in parsed.data[0].embedding]

    async def _post(self, client: httpx.AsyncClient, headers: dict, payload: dict) -> dict:
        return await post_json_with_retry(
            client,
            self.url,
            headers=headers,
            payload=payload,
            timeout_s=self.timeout_s,
            policy=self._policy,
            circuit=self.circuit,
            provider_id=self.provider_id,
        )


class DeterministicHashEmbeddingProvider(EmbeddingProvider):
    """Offline deterministic provider: text -> stable hash vector."""

    provider_id = "deterministic_hash"
    model = "deterministic-hash-v1"
    requires_credentials = False

    def __init__(self, *, dim: int = EMBEDDING_DIM) -> None:
        if dim < 1:
            raise ValueError("dim must be >= 1")
        self.dim = dim
        self.calls = 0

    def _embed_one(self, text: str) -> List[float]:
        vector: List[float] = []
        counter = 0
        while len(vector) < self.dim:
            digest = hashlib.sha256(f"{counter}:{text.lower()}".encode("utf-8")).digest()
            for offset in range(0, len(digest) - 1, 2):
                value = int.from_bytes(digest[offset : offset + 2], byteorder="big", signed=False) / 65535.0
                vector.append(round((value * 2.0) - 1.0, 8))
                if len(vector) == self.dim:
                    break
            counter += 1
        return vector

    async def embed(self, text: str, *, api_key: Optional[str]) -> List[float]:
        self.calls += 1
        return self._embed_one(text)


__all__ = ["EmbeddingProvider", "OpenAIEmbeddingProvider", "DeterministicHashEmbeddingProvider"]
