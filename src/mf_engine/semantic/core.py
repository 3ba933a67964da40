"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import hashlib
import math
import re
from typing import Dict, List, Mapping, Optional, Sequence

from mf_engine.config import EMBEDDING_DIM, EMBEDDING_MAX_CHARS

EMBEDDING_FIELDS = ("bio", "turn_ons", "turn_offs")
COMBINED_FIELD = "combined"
DEFAULT_FIELD_WEIGHTS: Dict[str, float] = {"bio": 0.5, "turn_ons": 0.25, "turn_offs": 0.25}
_WHITESPACE_RE = re.compile(r"\s+")


def prepare_text(text: Optional[str], max_chars: int = EMBEDDING_MAX_CHARS) -> str:
    """Trim, collapse whitespace runs and cut to the provider input limit."""
    collapsed = _WHITESPACE_RE.sub(" ", (text or "").strip())
    if max_chars > 0 and len(collapsed) > max_chars:
        collapsed = collapsed[:max_chars].rstrip()
    return collapsed


def text_hash(text: Optional[str]) -> str:
    normalized = (text or "").strip().lower()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:16]


def is_valid_vector(vector: object, dim: int = EMBEDDING_DIM) -> bool:
    if not isinstance(vector, (list, tuple)) or len(vector) != dim:
        return False
    for value in vector:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            return False
    return True


def l2_normalize(vector: Sequence[float]) -> List[float]:
    magnitude = math.sqrt(sum(float(v) * float(v) for v in vector))
    if magnitude == 0.0:
        return [float(v) for v in vector]
    return [float(v) / magnitude for v in vector]


def combine_embeddings(
    vectors: Sequence[Optional[Sequence[float]]],
    weights: Sequence[float],
    *,
    dim: int = EMBEDDING_DIM,
) -> Optional[List[float]]:
    """
    Weighted average of the present field vectors, L2-normalized.

    Weights are renormalized over the vectors that are actually present, so a
    profile with a single embedded field gets that field at full weight.
    Returns None when no vector survives or the surviving weights sum to 0.
    """
    if len(vectors) != len(weights):
        raise ValueError("vectors and weights must have the same length")
    pairs = []
    for vector, weight in zip(vectors, weights):
        if not math.isfinite(weight) or weight < 0:
            raise ValueError(f"weights must be finite and non-negative, got {weight!r}")
        if vector is None or not is_valid_vector(vector, dim):
            continue
        pairs.append((vector, float(weight)))
    if not pairs:
        return None
    total = sum(weight for _, weight in pairs)
    if total <= 0:
        return None

    combined = [0.0] * dim
    for vector, weight in pairs:
        share = weight / total
        for i in range(dim):
            combined[i] += float(vector[i]) * share
    return l2_normalize(combined)


def combine_profile_fields(
    field_vectors: Mapping[str, Optional[Sequence[float]]],
    field_weights: Optional[Mapping[str, float]] = None,
    *,
    dim: int = EMBEDDING_DIM,
) -> Optional[List[float]]:
    weights = field_weights or DEFAULT_FIELD_WEIGHTS
    names = list(EMBEDDING_FIELDS)
    return combine_embeddings(
        [field_vectors.get(name) for name in names],
        [float(weights.get(name, 0.0)) for name in names],
        dim=dim,
    )


def cosine_similarity(vec_a: Optional[Sequence[float]], vec_b: Optional[Sequence[float]]) -> float:
    if not vec_a or not vec_b or len(vec_a) != len(vec_b):
        return 0.0
    dot = sum(float(a) * float(b) for a, b in zip(vec_a, vec_b, strict=True))
    norm_a = math.sqrt(sum(float(a) * float(a) for a in vec_a))
    norm_b = math.sqrt(sum(float(b) * float(b) for b in vec_b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return round(dot / (norm_a * norm_b), 8)
