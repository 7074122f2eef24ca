"""
Posterior-predictive check of observed outcomes against their replicates.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from snpqc.config import HDI_PROB, N_CHECK_ROWS
from snpqc.errors import InputValidationError
from snpqc.models import PosteriorDraws, validate_draws
from snpqc.predictive import simulate_in_sample


@dataclass(frozen=True, eq=False)
class ModelCheck:
    """
    Rendering-ready comparison of replicates and observations.

    Attributes
    ----------
    replicates : pd.DataFrame
        Long form, columns ``row`` and ``value`` (one line per replicate)
    observed : pd.DataFrame
        Columns ``row`` and ``observed``
    summary : pd.DataFrame
        Per row: replicate mean/sd, central interval, ``Pr(rep<=obs)``
    """

    replicates: pd.DataFrame
    observed: pd.DataFrame
    summary: pd.DataFrame


def check(
    replicates_per_observation,
    observed_outcomes_standardized,
    n_rows: int = N_CHECK_ROWS,
    interval_prob: float = HDI_PROB,
    labels=None,
) -> ModelCheck:
    """
    Overlay the first ``n_rows`` observations on their replicate distributions.

    Parameters
    ----------
    replicates_per_observation : array-like
        Shape (R, N); column i holds the replicates of observation i
    observed_outcomes_standardized : array-like
        Length N, same (standardized) scale as the replicates
    n_rows : int
        Number of leading observations to include
    interval_prob : float
        Mass of the central replicate interval in the summary
    labels : Sequence, optional
        Identifiers for the N observations (e.g. study ids)

    Returns
    -------
    ModelCheck
    """
    reps = np.asarray(replicates_per_observation, dtype=float)
    obs = np.asarray(observed_outcomes_standardized, dtype=float).ravel()
    if reps.ndim != 2 or reps.shape[0] == 0:
        raise InputValidationError(
            f"Replicates must be a non-empty (R, N) array, got shape {reps.shape}",
            offending=reps.shape,
        )
    if reps.shape[1] != obs.shape[0]:
        raise InputValidationError(
            f"Replicates cover {reps.shape[1]} observations, {obs.shape[0]} observed",
            offending=reps.shape,
        )
    if not (np.all(np.isfinite(reps)) and np.all(np.isfinite(obs))):
        raise InputValidationError("Non-finite values in model-check input")
    if int(n_rows) < 0:
        raise InputValidationError(f"n_rows must be non-negative, got {n_rows}", offending=n_rows)

    k = min(int(n_rows), obs.shape[0])
    row_ids = list(labels)[:k] if labels is not None else list(range(k))
    reps_k = reps[:, :k]
    obs_k = obs[:k]

    replicates_df = pd.DataFrame(
        {
            "row": np.repeat(row_ids, reps_k.shape[0]),
            "value": reps_k.T.ravel(),
        }
    )
    observed_df = pd.DataFrame({"row": row_ids, "observed": obs_k})

    lo_q = (1.0 - interval_prob) / 2.0
    summary = pd.DataFrame(
        {
            "row": row_ids,
            "observed": obs_k,
            "rep_mean": reps_k.mean(axis=0),
            "rep_sd": reps_k.std(axis=0, ddof=1) if reps_k.shape[0] > 1 else np.nan,
            "rep_lo": np.quantile(reps_k, lo_q, axis=0),
            "rep_hi": np.quantile(reps_k, 1.0 - lo_q, axis=0),
            "Pr(rep<=obs)": (reps_k <= obs_k).mean(axis=0),
        }
    )
    return ModelCheck(replicates_df, observed_df, summary)


def check_draws(
    draws: PosteriorDraws,
    design: np.ndarray,
    observed_outcomes_standardized,
    n_rows: int = N_CHECK_ROWS,
    rng: Optional[np.random.Generator] = None,
    labels=None,
) -> ModelCheck:
    """Model check straight from a draw set, simulating replicates if it has none."""
    validate_draws(draws)
    reps = draws.replicates
    if reps is None:
        reps = simulate_in_sample(draws, design, rng=rng)
    return check(reps, observed_outcomes_standardized, n_rows=n_rows, labels=labels)
