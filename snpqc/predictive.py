"""
Posterior-predictive simulation under the fitted platform model.
"""

from typing import Iterator, NamedTuple, Optional, Tuple

import numpy as np
from scipy.stats import norm

from snpqc.errors import InputValidationError
from snpqc.models import PosteriorDraws, validate_draws


class Replicate(NamedTuple):
    value: float
    loglik: float


def _check_row(draws: PosteriorDraws, design_row) -> np.ndarray:
    row = np.asarray(design_row, dtype=float).ravel()
    if row.shape[0] != draws.n_platforms:
        raise InputValidationError(
            f"Design row has {row.shape[0]} columns, draws cover {draws.n_platforms} platforms",
            offending=row,
        )
    return row


def simulate(
    draws: PosteriorDraws,
    design_row,
    rng: Optional[np.random.Generator] = None,
) -> Iterator[Replicate]:
    """
    Draw one predictive replicate per posterior draw.

    For draw d: eta_d = mu_d . design_row, y_d ~ Normal(eta_d, sigma_d), and
    loglik_d is the log-density of y_d under that same Normal. The result is a
    one-shot generator of length S; call again (with an equally seeded
    ``rng``) to re-simulate.

    Parameters
    ----------
    draws : PosteriorDraws
        Validated posterior draw set
    design_row : array-like
        Length-P indicator vector
    rng : np.random.Generator, optional
        Random source; a fresh unseeded generator when omitted

    Yields
    ------
    Replicate
        (value, loglik) on the standardized scale
    """
    validate_draws(draws)
    row = _check_row(draws, design_row)
    rng = np.random.default_rng() if rng is None else rng

    def _gen():
        for mu_d, sigma_d in zip(draws.mu, draws.sigma):
            eta = float(mu_d @ row)
            value = float(rng.normal(eta, sigma_d))
            yield Replicate(value, float(norm.logpdf(value, loc=eta, scale=sigma_d)))

    return _gen()


def collect_replicates(replicates) -> Tuple[np.ndarray, np.ndarray]:
    """Drain a replicate sequence into (values, logliks) arrays."""
    pairs = list(replicates)
    if not pairs:
        return np.zeros(0), np.zeros(0)
    values, logliks = zip(*pairs)
    return np.asarray(values, dtype=float), np.asarray(logliks, dtype=float)


def simulate_in_sample(
    draws: PosteriorDraws,
    design: np.ndarray,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Replicate datasets for every observed design row.

    Returns
    -------
    np.ndarray
        Shape (S, N): column i holds the predictive replicates of row i
    """
    validate_draws(draws)
    design = np.atleast_2d(np.asarray(design, dtype=float))
    if design.shape[1] != draws.n_platforms:
        raise InputValidationError(
            f"Design has {design.shape[1]} columns, draws cover {draws.n_platforms} platforms",
            offending=design.shape,
        )
    rng = np.random.default_rng() if rng is None else rng
    eta = draws.mu @ design.T
    return rng.normal(eta, draws.sigma[:, None])
