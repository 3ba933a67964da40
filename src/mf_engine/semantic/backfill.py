"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from mf_engine.config import BACKFILL_CONCURRENCY, OPENAI_API_KEY
from mf_engine.models import Profile
from mf_engine.semantic.core import COMBINED_FIELD, EMBEDDING_FIELDS, combine_profile_fields, text_hash
from mf_engine.semantic.generator import EmbeddingGenerator
from mf_engine.semantic.store import EmbeddingRecord, EmbeddingStore
from mf_engine.utils.time import utc_now_z

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddingUpdateResult:
    profile_id: str
    embeddings: Dict[str, Optional[List[float]]] = field(default_factory=dict)
    error: Optional[str] = None
    skipped: bool = False
    field_errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchUpdateResult:
    total: int
    succeeded: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    def summary(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "succeeded": len(self.succeeded),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
        }


ProgressCallback = Callable[[int, int, EmbeddingUpdateResult], None]


async def update_profile_embeddings(
    profile: Profile,
    *,
    generator: EmbeddingGenerator,
    store: EmbeddingStore,
    credentials: Optional[str] = OPENAI_API_KEY,
    field_weights: Optional[Mapping[str, float]] = None,
    force: bool = False,
) -> EmbeddingUpdateResult:
    """
    Embed every free-text field of ``profile`` and upsert all four vectors.

    Fields are embedded concurrently. A profile is only an error when no field
    produced a vector; partially embedded profiles are stored as-is. Profiles
    whose text hashes match the stored record are skipped unless ``force``.
    """
    texts = profile.field_texts()
    hashes = {name: text_hash(texts.get(name)) for name in EMBEDDING_FIELDS}

    if not force:
        existing = await store.get(profile.id)
        if (
            existing is not None
            and existing.combined is not None
            and existing.hashes == hashes
            and existing.model == generator.model
        ):
            logger.info("[embeddings][unchanged] profile=%s", profile.id)
            return EmbeddingUpdateResult(profile.id, dict(existing.vectors), skipped=True)

    outcomes = await asyncio.gather(
        *(generator.generate_outcome(texts.get(name), credentials) for name in EMBEDDING_FIELDS)
    )
    vectors: Dict[str, Optional[List[float]]] = {}
    field_errors: Dict[str, str] = {}
    for name, outcome in zip(EMBEDDING_FIELDS, outcomes):
        vectors[name] = outcome.vector
        if outcome.reason:
            field_errors[name] = outcome.reason

    if all(vector is None for vector in vectors.values()):
        reasons = ",".join(sorted(set(field_errors.values()))) or "unknown"
        logger.warning("[embeddings][no_vectors] profile=%s reasons=%s", profile.id, reasons)
        return EmbeddingUpdateResult(profile.id, vectors, error=f"no_embeddings:{reasons}", field_errors=field_errors)

    vectors[COMBINED_FIELD] = combine_profile_fields(vectors, field_weights, dim=generator.dim)
    record = EmbeddingRecord(
        profile_id=profile.id,
        vectors=vectors,
        hashes=hashes,
        model=generator.model,
        updated_at=utc_now_z(),
    )
    await store.upsert(record)
    logger.info(
        "[embeddings][updated] profile=%s fields=%s",
        profile.id,
        ",".join(record.present_fields()),
    )
    return EmbeddingUpdateResult(profile.id, vectors, field_errors=field_errors)


async def batch_update_embeddings(
    profiles: Sequence[Profile],
    *,
    generator: EmbeddingGenerator,
    store: EmbeddingStore,
    concurrency: int = BACKFILL_CONCURRENCY,
    credentials: Optional[str] = OPENAI_API_KEY,
    field_weights: Optional[Mapping[str, float]] = None,
    force: bool = False,
    on_progress: Optional[ProgressCallback] = None,
) -> BatchUpdateResult:
    """Run ``update_profile_embeddings`` over ``profiles`` with at most ``concurrency`` in flight."""
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")

    by_id: Dict[str, Profile] = {}
    queue: asyncio.Queue[str] = asyncio.Queue()
    for profile in profiles:
        if profile.id in by_id:
            continue
        by_id[profile.id] = profile
        queue.put_nowait(profile.id)

    result = BatchUpdateResult(total=len(by_id))
    completed = 0

    async def _worker(worker_id: int) -> None:
        nonlocal completed
        while True:
            try:
                profile_id = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                outcome = await update_profile_embeddings(
                    by_id[profile_id],
                    generator=generator,
                    store=store,
                    credentials=credentials,
                    field_weights=field_weights,
                    force=force,
                )
            except Exception as exc:
                logger.warning("[embeddings][batch_failure] worker=%s profile=%s error=%r", worker_id, profile_id, exc)
                outcome = EmbeddingUpdateResult(profile_id, error=f"{type(exc).__name__}: {exc}")
            finally:
                queue.task_done()

            if outcome.error:
                result.failed[profile_id] = outcome.error
            elif outcome.skipped:
                result.skipped.append(profile_id)
            else:
                result.succeeded.append(profile_id)
            completed += 1
            if on_progress is not None:
                on_progress(completed, result.total, outcome)

    workers = [asyncio.create_task(_worker(i)) for i in range(min(concurrency, max(1, result.total)))]
    await asyncio.gather(*workers)
    logger.info(
        "[embeddings][batch_done] total=%s succeeded=%s skipped=%s failed=%s",
        result.total,
        len(result.succeeded),
        len(result.skipped),
        len(result.failed),
    )
    return result
