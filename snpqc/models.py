"""
Hierarchical platform model and the fitting-engine boundary.

The core only talks to a fitting engine through ``FitRequest`` ->
``PosteriorDraws``; ``PymcSampler`` is the engine used in production, tests
swap in a deterministic fake with the same ``fit`` signature.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import arviz as az
import numpy as np
import pymc as pm
from pymc.exceptions import SamplingError

from snpqc import console
from snpqc.config import (
    PRIOR_MU0_SD,
    PRIOR_TAU_SD,
    PRIOR_SIGMA_SD,
    RHAT_WARN,
    SamplerConfig,
)
from snpqc.errors import InputValidationError, SamplerConvergenceError


def _readonly(a) -> np.ndarray:
    a = np.array(a, dtype=float)
    a.setflags(write=False)
    return a


@dataclass(frozen=True, eq=False)
class FitRequest:
    """Everything the fitting engine needs for one model run."""

    design: np.ndarray
    y: np.ndarray
    n_obs: int
    n_platforms: int
    n_replicates: int = 0

    @classmethod
    def build(cls, design, y, n_replicates: int = 0) -> "FitRequest":
        design = _readonly(design)
        y = _readonly(np.asarray(y, dtype=float).ravel())
        if design.ndim != 2:
            raise InputValidationError(
                f"Design matrix must be 2-D, got shape {design.shape}", offending=design.shape
            )
        n_obs, n_platforms = design.shape
        if y.shape[0] != n_obs:
            raise InputValidationError(
                f"Design has {n_obs} rows but outcome vector has {y.shape[0]} values",
                offending=y.shape,
            )
        if n_obs == 0:
            raise InputValidationError("No observations to fit", offending=n_obs)
        if not np.all(np.isfinite(y)):
            raise InputValidationError("Outcome vector contains non-finite values", offending=y)
        if not (np.isin(design, (0.0, 1.0)).all() and np.all(design.sum(axis=1) == 1)):
            raise InputValidationError(
                "Design rows must be one-hot indicator vectors", offending=design
            )
        if isinstance(n_replicates, bool) or int(n_replicates) != n_replicates or n_replicates < 0:
            raise InputValidationError(
                f"n_replicates must be a non-negative integer, got {n_replicates!r}",
                offending=n_replicates,
            )
        return cls(design, y, int(n_obs), int(n_platforms), int(n_replicates))


@dataclass(frozen=True, eq=False)
class PosteriorDraws:
    """
    Posterior draw set of one model run (warmup already discarded).

    Attributes
    ----------
    mu : np.ndarray
        Per-platform means on the standardized scale, shape (S, P)
    sigma : np.ndarray
        Shared residual scale, shape (S,)
    platforms : tuple
        Platform codes labelling the columns of ``mu``
    replicates : Optional[np.ndarray]
        In-sample posterior-predictive outcomes, shape (R, N)
    """

    mu: np.ndarray
    sigma: np.ndarray
    platforms: tuple = ()
    replicates: Optional[np.ndarray] = None
    idata: Optional[az.InferenceData] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "mu", _readonly(np.atleast_2d(self.mu)))
        object.__setattr__(self, "sigma", _readonly(np.asarray(self.sigma).ravel()))
        object.__setattr__(self, "platforms", tuple(self.platforms))
        if self.replicates is not None:
            object.__setattr__(self, "replicates", _readonly(np.atleast_2d(self.replicates)))

    def __len__(self):
        return self.sigma.shape[0]

    @property
    def n_platforms(self) -> int:
        return self.mu.shape[1]


def validate_draws(draws: PosteriorDraws, config: Optional[SamplerConfig] = None) -> PosteriorDraws:
    """
    Reject draw sets no downstream step may run on.

    Raises ``SamplerConvergenceError`` for mismatched shapes, non-finite
    means, non-finite or non-positive scales, and (given ``config``) a draw
    count other than ``chains * (iterations - warmup)``.
    """
    if not isinstance(draws, PosteriorDraws):
        raise SamplerConvergenceError(
            f"Fitting engine returned {type(draws).__name__}, not PosteriorDraws", offending=draws
        )
    s_count = len(draws)
    if s_count == 0:
        raise SamplerConvergenceError("Fitting engine returned no draws", offending=s_count)
    if draws.mu.shape[0] != s_count:
        raise SamplerConvergenceError(
            f"{draws.mu.shape[0]} mean draws but {s_count} scale draws", offending=draws.mu.shape
        )
    if draws.platforms and len(draws.platforms) != draws.n_platforms:
        raise SamplerConvergenceError(
            f"{draws.n_platforms} platform columns but {len(draws.platforms)} platform labels",
            offending=draws.platforms,
        )
    if not np.all(np.isfinite(draws.mu)):
        raise SamplerConvergenceError(
            f"{int((~np.isfinite(draws.mu)).sum())} non-finite platform-mean draw(s)",
            offending=draws.mu,
        )
    if not (np.all(np.isfinite(draws.sigma)) and np.all(draws.sigma > 0)):
        raise SamplerConvergenceError(
            "Residual-scale draws must be finite and > 0", offending=draws.sigma
        )
    if draws.replicates is not None and not np.all(np.isfinite(draws.replicates)):
        raise SamplerConvergenceError("Non-finite in-sample replicates", offending=draws.replicates)
    if config is not None and s_count != config.total_draws:
        raise SamplerConvergenceError(
            f"Expected {config.total_draws} draws ({config.chains} chains x "
            f"{config.draws_per_chain} post-warmup iterations), got {s_count}",
            offending=s_count,
        )
    return draws


def thin_indices(n_available: int, n_keep: int) -> np.ndarray:
    """Evenly spaced draw indices, at most ``n_available`` of them."""
    n_keep = min(int(n_keep), int(n_available))
    if n_keep <= 0:
        return np.zeros(0, dtype=int)
    return np.linspace(0, n_available - 1, n_keep).round().astype(int)


def fit_platform_model(
    design: np.ndarray,
    y: np.ndarray,
    platforms: Sequence[str],
    n_replicates: int,
    config: SamplerConfig,
    progressbar: bool = True,
) -> Tuple[az.InferenceData, np.ndarray, np.ndarray, Optional[np.ndarray]]:
    """
    Fit the hierarchical platform model on a standardized outcome.

    mu0 ~ Normal(0, 1.5); tau ~ HalfNormal(1);
    mu[p] = mu0 + tau * z[p], z[p] ~ Normal(0, 1);
    sigma ~ HalfNormal(1); y[i] ~ Normal(X[i] . mu, sigma)

    Parameters
    ----------
    design : np.ndarray
        N×P indicator matrix
    y : np.ndarray
        Standardized outcomes, length N
    platforms : Sequence[str]
        Platform codes, one per design column
    n_replicates : int
        Posterior-predictive replicate datasets kept for the model check
    config : SamplerConfig
        Sampling budget
    progressbar : bool
        Show PyMC's progress bar

    Returns
    -------
    Tuple
        (idata, mu_draws (S, P), sigma_draws (S,), replicates (R, N) or None)
    """
    coords = {"platform": list(platforms), "obs": np.arange(design.shape[0])}

    with pm.Model(coords=coords) as model:
        x = pm.Data("X", design, dims=("obs", "platform"))

        # Hierarchical mean structure (non-centered)
        mu0 = pm.Normal("mu0", 0.0, PRIOR_MU0_SD)
        tau = pm.HalfNormal("tau", PRIOR_TAU_SD)
        z = pm.Normal("z", 0.0, 1.0, dims="platform")
        mu = pm.Deterministic("mu", mu0 + tau * z, dims="platform")

        sigma = pm.HalfNormal("sigma", sigma=PRIOR_SIGMA_SD)
        pm.Normal("y", mu=pm.math.dot(x, mu), sigma=sigma, observed=y, dims="obs")

        idata = pm.sample(
            draws=config.draws_per_chain,
            tune=config.warmup,
            chains=config.chains,
            target_accept=config.target_accept,
            random_seed=config.random_seed,
            return_inferencedata=True,
            progressbar=progressbar,
        )

        post_pred = None
        if n_replicates > 0:
            post_pred = pm.sample_posterior_predictive(
                idata, random_seed=config.random_seed, progressbar=progressbar
            )

    mu_draws = (
        idata.posterior["mu"]
        .stack(sample=("chain", "draw"))
        .transpose("sample", "platform")
        .values
    )
    sigma_draws = idata.posterior["sigma"].stack(sample=("chain", "draw")).to_numpy().ravel()

    replicates = None
    if post_pred is not None:
        y_rep = (
            post_pred.posterior_predictive["y"]
            .stack(sample=("chain", "draw"))
            .transpose("sample", "obs")
            .values
        )
        replicates = y_rep[thin_indices(y_rep.shape[0], n_replicates)]

    return idata, mu_draws, sigma_draws, replicates


class PymcSampler:
    """Fitting engine backed by PyMC's NUTS sampler."""

    def __init__(self, config: SamplerConfig = None, progressbar: bool = True):
        self.config = (config or SamplerConfig()).validate()
        self.progressbar = progressbar

    def fit(self, request: FitRequest, platforms: Sequence[str] = ()) -> PosteriorDraws:
        platforms = tuple(platforms) or tuple(f"p{j}" for j in range(request.n_platforms))
        try:
            idata, mu_draws, sigma_draws, replicates = fit_platform_model(
                np.asarray(request.design),
                np.asarray(request.y),
                platforms,
                request.n_replicates,
                self.config,
                progressbar=self.progressbar,
            )
        except (SamplingError, FloatingPointError) as exc:
            raise SamplerConvergenceError(f"PyMC sampling failed: {exc}", offending=request) from exc

        self._report_rhat(idata)

        return PosteriorDraws(
            mu=mu_draws,
            sigma=sigma_draws,
            platforms=platforms,
            replicates=replicates,
            idata=idata,
        )

    @staticmethod
    def _report_rhat(idata: az.InferenceData) -> None:
        if idata.posterior.sizes.get("chain", 1) < 2:
            return
        rhat = az.rhat(idata, var_names=["mu", "sigma"])
        worst = max(float(np.nanmax(rhat[v].values)) for v in rhat.data_vars)
        if worst > RHAT_WARN:
            console.warn(f"max R-hat {worst:.3f} exceeds {RHAT_WARN}; consider more iterations")
        else:
            console.info(f"max R-hat {worst:.3f}")


def fit_posterior(sampler, request: FitRequest, platforms: Sequence[str] = ()) -> PosteriorDraws:
    """
    Run the fitting engine and validate what it returns.

    Engine failures propagate unchanged; anything the engine returns that is
    not a complete, finite draw set becomes ``SamplerConvergenceError``.
    """
    draws = sampler.fit(request, platforms=platforms)
    validate_draws(draws, getattr(sampler, "config", None))
    if draws.n_platforms != request.n_platforms:
        raise SamplerConvergenceError(
            f"Engine returned {draws.n_platforms} platform means for a "
            f"{request.n_platforms}-platform design",
            offending=draws.mu.shape,
        )
    if draws.replicates is not None and draws.replicates.shape[1] != request.n_obs:
        raise SamplerConvergenceError(
            f"In-sample replicates cover {draws.replicates.shape[1]} observations, "
            f"expected {request.n_obs}",
            offending=draws.replicates.shape,
        )
    return draws
