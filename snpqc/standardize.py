"""
Centering and scaling of the outcome variable.
"""

from typing import Tuple

import numpy as np

from snpqc.errors import DegenerateScaleError


def fit_standardization(outcomes) -> Tuple[float, float]:
    """
    Sample mean and sample standard deviation (ddof=1) of the fitting outcomes.

    Parameters
    ----------
    outcomes : array-like
        Raw outcome values

    Returns
    -------
    Tuple[float, float]
        (mean, sd)
    """
    y = np.asarray(outcomes, dtype=float).ravel()
    if y.size < 2:
        raise DegenerateScaleError(
            f"Need at least 2 outcomes to standardize, got {y.size}", offending=y
        )
    if not np.all(np.isfinite(y)):
        raise DegenerateScaleError(
            f"{int((~np.isfinite(y)).sum())} non-finite outcome value(s)", offending=y
        )
    mean = float(y.mean())
    sd = float(y.std(ddof=1))
    if not sd > 0:
        raise DegenerateScaleError(
            f"Outcome standard deviation is zero (all values equal {mean})", offending=y
        )
    return mean, sd


def transform(y, mean: float, sd: float):
    return (np.asarray(y, dtype=float) - mean) / sd


def inverse_transform(z, mean: float, sd: float):
    return np.asarray(z, dtype=float) * sd + mean


class Standardizer:
    """
    Frozen (mean, sd) pair of a pipeline run.

    Fit once on the fitting outcomes and pass the same instance to every
    later transform; refitting on another sample changes every score.
    """

    __slots__ = ("mean", "sd")

    def __init__(self, mean: float, sd: float):
        if not (np.isfinite(mean) and np.isfinite(sd) and sd > 0):
            raise DegenerateScaleError(f"Invalid standardization (mean={mean}, sd={sd})")
        object.__setattr__(self, "mean", float(mean))
        object.__setattr__(self, "sd", float(sd))

    def __setattr__(self, name, value):
        raise AttributeError("Standardizer is immutable")

    @classmethod
    def fit(cls, outcomes) -> "Standardizer":
        return cls(*fit_standardization(outcomes))

    def transform(self, y):
        return transform(y, self.mean, self.sd)

    def inverse_transform(self, z):
        return inverse_transform(z, self.mean, self.sd)

    def __eq__(self, other):
        return isinstance(other, Standardizer) and (self.mean, self.sd) == (other.mean, other.sd)

    def __hash__(self):
        return hash((self.mean, self.sd))

    def __repr__(self):
        return f"Standardizer(mean={self.mean:.6g}, sd={self.sd:.6g})"
