"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from .backfill import BatchUpdateResult, EmbeddingUpdateResult, batch_update_embeddings, update_profile_embeddings
from .core import (
    COMBINED_FIELD,
    DEFAULT_FIELD_WEIGHTS,
    EMBEDDING_FIELDS,
    combine_embeddings,
    combine_profile_fields,
    cosine_similarity,
    l2_normalize,
    prepare_text,
    text_hash,
)
from .generator import EmbeddingGenerator, EmbeddingOutcome
from .provider import DeterministicHashEmbeddingProvider, EmbeddingProvider, OpenAIEmbeddingProvider
from .store import EmbeddingRecord, EmbeddingStore, InMemoryEmbeddingStore, SqliteEmbeddingStore

__all__ = [
    "COMBINED_FIELD",
    "DEFAULT_FIELD_WEIGHTS",
    "EMBEDDING_FIELDS",
    "prepare_text",
    "text_hash",
    "l2_normalize",
    "combine_embeddings",
    "combine_profile_fields",
    "cosine_similarity",
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "DeterministicHashEmbeddingProvider",
    "EmbeddingGenerator",
    "EmbeddingOutcome",
    "EmbeddingRecord",
    "EmbeddingStore",
    "InMemoryEmbeddingStore",
    "SqliteEmbeddingStore",
    "EmbeddingUpdateResult",
    "BatchUpdateResult",
    "update_profile_embeddings",
    "batch_update_embeddings",
]
