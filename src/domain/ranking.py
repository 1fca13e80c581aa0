"""
domain.ranking - Cosine similarity and top-K selection over note embeddings.

Pure functions, no I/O. Candidates without an embedding are never ranked;
candidates whose dimension differs from the query are skipped with a
data-integrity warning. Ties keep input order (stable sort).
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

import numpy as np

from domain.entities import Note
from domain.models import ScoredNote

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|), or 0.0 when either norm is zero."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"Dimension mismatch: {va.shape[0]} != {vb.shape[0]}")
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / norm, -1.0, 1.0))


def rank_vectors(
    query: Sequence[float],
    vectors: Sequence[Sequence[float] | None],
    k: int,
) -> list[tuple[int, float]]:
    """Rank raw vectors against `query`.

    Returns (index, score) pairs for the k best vectors, best first.
    None entries and dimension mismatches are left out.
    """
    if k <= 0:
        return []

    q = np.asarray(query, dtype=np.float64)
    dim = q.shape[0]

    indices: list[int] = []
    rows: list[Sequence[float]] = []
    for i, vec in enumerate(vectors):
        if not vec:
            continue
        if len(vec) != dim:
            logger.warning(
                "Skipping candidate %d: embedding dimension %d does not match query dimension %d",
                i, len(vec), dim,
            )
            continue
        indices.append(i)
        rows.append(vec)

    if not rows:
        return []

    matrix = np.asarray(rows, dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(norms == 0.0, 0.0, dots / norms)
    scores = np.clip(scores, -1.0, 1.0)

    order = np.argsort(-scores, kind="stable")[:k]
    return [(indices[j], float(scores[j])) for j in order]


def rank(query: Sequence[float], candidates: Iterable[Note], k: int) -> list[ScoredNote]:
    """Top-k notes by cosine similarity to `query`, sorted descending."""
    notes = list(candidates)
    ranked = rank_vectors(query, [n.embedding for n in notes], k)
    return [ScoredNote(note=notes[i], score=score) for i, score in ranked]
