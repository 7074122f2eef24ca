from __future__ import annotations

import numpy as np
import pytest

from snpqc.design import PlatformVocabulary, encode, encode_many
from snpqc.errors import InputValidationError, UnknownPlatformError


def test_encode_one_hot_and_stable():
    vocab = ["AFFY6", "ILLU550K", "ILLU1M"]
    for j, label in enumerate(vocab):
        first = encode(label, vocab)
        assert first.shape == (3,)
        assert first.sum() == 1
        assert first[j] == 1
        np.testing.assert_array_equal(first, encode(label, vocab))


def test_encode_unknown_label_raises():
    with pytest.raises(UnknownPlatformError, match="ILLU9000"):
        encode("ILLU9000", ["A", "B"])


def test_encode_many_matches_single_row_encoding():
    vocab = PlatformVocabulary(["A", "B"])
    x = encode_many(["A", "B", "A"], vocab)
    np.testing.assert_array_equal(x, [[1, 0], [0, 1], [1, 0]])
    np.testing.assert_array_equal(x.sum(axis=1), [1, 1, 1])
    for label, row in zip(["A", "B", "A"], x):
        np.testing.assert_array_equal(row, encode(label, vocab))


def test_encode_many_unknown_label_reports_offender():
    with pytest.raises(UnknownPlatformError) as excinfo:
        encode_many(["A", "Z", "B"], ["A", "B"])
    assert excinfo.value.offending == "Z"
    assert excinfo.value.stage == "encoding"
    assert "[encoding]" in str(excinfo.value)


def test_vocabulary_rejects_duplicates_and_empty():
    with pytest.raises(InputValidationError):
        PlatformVocabulary(["A", "B", "A"])
    with pytest.raises(InputValidationError):
        PlatformVocabulary([])


def test_vocabulary_preserves_order():
    vocab = PlatformVocabulary(["B", "A", "C"])
    assert list(vocab) == ["B", "A", "C"]
    assert vocab.index("A") == 1
    assert "C" in vocab and "D" not in vocab
    assert vocab == PlatformVocabulary(("B", "A", "C"))
