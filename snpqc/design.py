"""
Indicator (one-hot) coding of genotyping platforms.
"""

from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from snpqc.errors import InputValidationError, UnknownPlatformError


class PlatformVocabulary:
    """
    Closed, ordered set of platform codes.

    Column ``j`` of every design matrix built from a vocabulary is the
    indicator of ``vocabulary[j]``, for fitting and for prediction alike.
    """

    def __init__(self, platforms: Sequence[str]):
        platforms = tuple(str(p) for p in platforms)
        if not platforms:
            raise InputValidationError("Platform vocabulary is empty", offending=platforms)
        dupes = sorted({p for p in platforms if platforms.count(p) > 1})
        if dupes:
            raise InputValidationError(
                f"Platform vocabulary has duplicate codes: {dupes}", offending=platforms
            )
        self._platforms = platforms
        self._index = {p: j for j, p in enumerate(platforms)}

    @property
    def platforms(self) -> tuple:
        return self._platforms

    def index(self, label: str) -> int:
        try:
            return self._index[label]
        except KeyError:
            raise UnknownPlatformError(
                f"Platform {label!r} is not in the vocabulary {list(self._platforms)}",
                offending=label,
            ) from None

    def __len__(self):
        return len(self._platforms)

    def __iter__(self):
        return iter(self._platforms)

    def __getitem__(self, j):
        return self._platforms[j]

    def __contains__(self, label):
        return label in self._index

    def __eq__(self, other):
        return isinstance(other, PlatformVocabulary) and self._platforms == other._platforms

    def __hash__(self):
        return hash(self._platforms)

    def __repr__(self):
        return f"PlatformVocabulary({list(self._platforms)})"


def _as_vocabulary(vocabulary) -> PlatformVocabulary:
    if isinstance(vocabulary, PlatformVocabulary):
        return vocabulary
    return PlatformVocabulary(vocabulary)


def encode(label: str, vocabulary) -> np.ndarray:
    """
    Indicator vector of a single platform label.

    Parameters
    ----------
    label : str
        Platform code
    vocabulary : PlatformVocabulary or Sequence[str]
        Ordered platform codes

    Returns
    -------
    np.ndarray
        Length-P vector with a single 1 at the platform's position
    """
    vocab = _as_vocabulary(vocabulary)
    row = np.zeros(len(vocab))
    row[vocab.index(label)] = 1.0
    return row


def encode_many(labels: Iterable[str], vocabulary) -> np.ndarray:
    """
    Design matrix for a batch of platform labels.

    Parameters
    ----------
    labels : Iterable[str]
        One platform code per observation
    vocabulary : PlatformVocabulary or Sequence[str]
        Ordered platform codes

    Returns
    -------
    np.ndarray
        N×P indicator matrix, rows in input order
    """
    vocab = _as_vocabulary(vocabulary)
    labels = list(labels)
    pcat = pd.Categorical(labels, categories=list(vocab.platforms), ordered=True)
    codes = np.asarray(pcat.codes)

    unknown = [labels[i] for i in np.flatnonzero(codes < 0)]
    if unknown:
        raise UnknownPlatformError(
            f"Platform {unknown[0]!r} is not in the vocabulary {list(vocab.platforms)} "
            f"({len(unknown)} unknown label(s))",
            offending=unknown[0],
        )

    x = np.zeros((len(labels), len(vocab)))
    x[np.arange(len(labels)), codes] = 1.0
    return x
