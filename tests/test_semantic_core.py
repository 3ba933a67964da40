import math

import pytest

from mf_engine.semantic.core import (
    combine_embeddings,
    combine_profile_fields,
    cosine_similarity,
    is_valid_vector,
    l2_normalize,
    prepare_text,
    text_hash,
)


def _norm(vec) -> float:
    return math.sqrt(sum(v * v for v in vec))


def test_prepare_text_trims_collapses_and_truncates() -> None:
    assert prepare_text("  hello \n\t world  ") == "hello world"
    assert prepare_text(None) == ""
    assert prepare_text("   ") == ""
    assert prepare_text("abcdef ghij", max_chars=6) == "abcdef"


def test_text_hash_is_case_and_padding_insensitive() -> None:
    assert text_hash("  Hello ") == text_hash("hello")
    assert len(text_hash("hello")) == 16
    assert text_hash("hello") != text_hash("hello!")


def test_combine_sole_vector_takes_full_weight() -> None:
    bio = [3.0, 4.0, 0.0, 0.0]
    combined = combine_embeddings([bio, None, None], [0.5, 0.25, 0.25], dim=4)
    assert combined == l2_normalize(bio)
    assert combined == [0.6, 0.8, 0.0, 0.0]


def test_combine_renormalizes_over_present_vectors() -> None:
    a = [1.0, 0.0, 0.0, 0.0]
    b = [0.0, 1.0, 0.0, 0.0]
    combined = combine_embeddings([a, None, b], [0.5, 0.25, 0.25], dim=4)
    assert combined is not None
    # 0.5 and 0.25 renormalize to 2/3 and 1/3 before L2 normalization.
    expected = l2_normalize([2 / 3, 1 / 3, 0.0, 0.0])
    assert combined == pytest.approx(expected)
    assert _norm(combined) == pytest.approx(1.0)


@pytest.mark.parametrize(
    "vectors",
    [
        [[1.0, 2.0, 3.0, 4.0], [0.5, -1.0, 0.0, 2.0], [0.0, 0.0, 1.0, 0.0]],
        [None, [0.5, -1.0, 0.0, 2.0], [0.0, 0.0, 1.0, 0.0]],
        [[1.0, 2.0, 3.0, 4.0], None, None],
        [None, None, [-2.0, 0.0, 0.0, 0.0]],
    ],
)
def test_combine_result_is_unit_length_when_any_input_present(vectors) -> None:
    combined = combine_embeddings(vectors, [0.5, 0.25, 0.25], dim=4)
    assert combined is not None
    assert _norm(combined) == pytest.approx(1.0)


def test_combine_returns_none_without_usable_vectors() -> None:
    assert combine_embeddings([None, None, None], [0.5, 0.25, 0.25], dim=4) is None
    assert combine_embeddings([[1.0, 2.0], None, None], [0.5, 0.25, 0.25], dim=4) is None
    assert combine_embeddings([[1.0, 0.0, 0.0, 0.0], None, None], [0.0, 0.25, 0.25], dim=4) is None


def test_combine_ignores_wrong_dimension_and_non_finite_vectors() -> None:
    good = [0.0, 0.0, 2.0, 0.0]
    combined = combine_embeddings([[1.0, 1.0], [float("nan"), 0.0, 0.0, 0.0], good], [0.5, 0.25, 0.25], dim=4)
    assert combined == [0.0, 0.0, 1.0, 0.0]


def test_combine_leaves_zero_magnitude_unnormalized() -> None:
    assert combine_embeddings([[0.0, 0.0, 0.0, 0.0]], [1.0], dim=4) == [0.0, 0.0, 0.0, 0.0]


def test_combine_rejects_mismatched_or_negative_weights() -> None:
    with pytest.raises(ValueError):
        combine_embeddings([[1.0, 0.0, 0.0, 0.0]], [0.5, 0.5], dim=4)
    with pytest.raises(ValueError):
        combine_embeddings([[1.0, 0.0, 0.0, 0.0]], [-1.0], dim=4)


def test_combine_profile_fields_uses_field_names() -> None:
    combined = combine_profile_fields({"turn_ons": [0.0, 5.0, 0.0, 0.0]}, dim=4)
    assert combined == [0.0, 1.0, 0.0, 0.0]


def test_is_valid_vector() -> None:
    assert is_valid_vector([0.1, 0.2], dim=2)
    assert not is_valid_vector([0.1], dim=2)
    assert not is_valid_vector([0.1, True], dim=2)
    assert not is_valid_vector("ab", dim=2)


def test_cosine_similarity_edges() -> None:
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == 1.0
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == -1.0
    assert cosine_similarity([1.0, 0.0], [0.0, 0.0]) == 0.0
    assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0
    assert cosine_similarity(None, [1.0]) == 0.0
