import logging

import pytest

from domain.entities import Note
from domain.ranking import cosine_similarity, rank, rank_vectors


def test_cosine_bounds():
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([1, 2], [-1, -2]) == pytest.approx(-1.0)


def test_cosine_zero_vector_scores_zero():
    assert cosine_similarity([0, 0, 0], [1, 2, 3]) == 0.0


def test_cosine_dimension_mismatch_raises():
    with pytest.raises(ValueError):
        cosine_similarity([1, 0], [1, 0, 0])


def test_rank_vectors_sorted_descending_and_truncated():
    ranked = rank_vectors([1, 0], [[0, 1], [1, 0], [1, 1]], k=2)
    assert [i for i, _ in ranked] == [1, 2]
    assert ranked[0][1] >= ranked[1][1]


def test_rank_vectors_ties_keep_input_order():
    ranked = rank_vectors([1, 0], [[2, 0], [1, 0], [3, 0]], k=3)
    assert [i for i, _ in ranked] == [0, 1, 2]


def test_rank_vectors_skips_missing_and_mismatched(caplog):
    with caplog.at_level(logging.WARNING, logger="domain.ranking"):
        ranked = rank_vectors([1, 0], [None, [1, 0, 0], [1, 0]], k=5)
    assert ranked == [(2, pytest.approx(1.0))]
    assert "dimension" in caplog.text


def test_rank_vectors_non_positive_k_is_empty():
    assert rank_vectors([1, 0], [[1, 0]], k=0) == []


def test_rank_excludes_notes_without_embeddings():
    notes = [
        Note(id="a", title="A", embedding=(1.0, 0.0)),
        Note(id="b", title="B"),
        Note(id="c", title="C", embedding=(0.5, 0.5)),
    ]
    ranked = rank([1.0, 0.0], notes, k=10)
    assert [s.note.id for s in ranked] == ["a", "c"]
    assert all(-1.0 <= s.score <= 1.0 for s in ranked)
