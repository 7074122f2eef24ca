"""
Empirical anomaly scores of an observation against predictive replicates.
"""

from dataclasses import asdict, dataclass
from typing import Dict, Optional

import numpy as np

from snpqc.errors import InsufficientReplicatesError
from snpqc.standardize import Standardizer


@dataclass(frozen=True)
class AnomalyScore:
    p_value: float
    sd_distance: float
    observed: float
    replicate_mean: float
    replicate_sd: float
    n_replicates: int
    one_sided: bool
    platform: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def tail_proportion(replicates: np.ndarray, observed: float) -> float:
    """
    Tail share used by ``score``.

    At or below the replicate mean this is the fraction of replicates at or
    above ``observed``; above the mean, the fraction at or below it.
    """
    if observed <= replicates.mean():
        return float((replicates >= observed).mean())
    return float((replicates <= observed).mean())


def score(replicate_outcomes, observed_value: float, one_sided: bool = True) -> AnomalyScore:
    """
    Tail probability and SD-distance of ``observed_value``.

    p_value = 1 - proportion (one-sided) or 1 - proportion / 2 (two-sided);
    sd_distance = |mean - observed| / sd, with the sample sd (ddof=1).

    Parameters
    ----------
    replicate_outcomes : array-like
        Predictive replicates, in the same unit as ``observed_value``
    observed_value : float
        Real or hypothetical observation
    one_sided : bool
        One- or two-sided p-value

    Returns
    -------
    AnomalyScore
    """
    reps = np.asarray(replicate_outcomes, dtype=float).ravel()
    if reps.size < 2:
        raise InsufficientReplicatesError(
            f"Need at least 2 replicates to score, got {reps.size}", offending=reps
        )
    if not np.all(np.isfinite(reps)):
        raise InsufficientReplicatesError("Replicate set has non-finite values", offending=reps)
    observed_value = float(observed_value)

    mean = float(reps.mean())
    sd = float(reps.std(ddof=1))
    if not sd > 0:
        raise InsufficientReplicatesError(
            f"Replicate set has zero variance (all {reps.size} values equal {mean})",
            offending=reps,
        )

    proportion = tail_proportion(reps, observed_value)
    p_value = 1.0 - (proportion if one_sided else proportion / 2.0)

    return AnomalyScore(
        p_value=p_value,
        sd_distance=abs(mean - observed_value) / sd,
        observed=observed_value,
        replicate_mean=mean,
        replicate_sd=sd,
        n_replicates=int(reps.size),
        one_sided=bool(one_sided),
    )


def score_standardized(
    replicates_standardized,
    observed_value: float,
    standardizer: Standardizer,
    one_sided: bool = True,
) -> AnomalyScore:
    """Score a raw-unit observation against standardized-scale replicates."""
    raw = standardizer.inverse_transform(replicates_standardized)
    return score(raw, observed_value, one_sided=one_sided)
