"""
Run context and per-platform evaluation.

``fit_context`` runs encoding -> standardization -> fitting once and freezes
the result; ``evaluate_platform`` is a pure function of that context, so the
per-platform loop can run in any order (or in parallel).
"""

from dataclasses import dataclass, replace
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from tqdm import tqdm

from snpqc import console
from snpqc.config import (
    STUDY_COL,
    OUTCOME_COL,
    PLATFORM_COL,
    N_REPLICATES,
    N_CHECK_ROWS,
    ONE_SIDED,
    RANDOM_SEED,
)
from snpqc.design import PlatformVocabulary, encode, encode_many
from snpqc.errors import InputValidationError
from snpqc.model_check import ModelCheck, check_draws
from snpqc.models import FitRequest, PosteriorDraws, fit_posterior, validate_draws
from snpqc.predictive import collect_replicates, simulate
from snpqc.scoring import AnomalyScore, score_standardized
from snpqc.standardize import Standardizer


@dataclass(frozen=True, eq=False)
class AnalysisContext:
    """Immutable state shared by every evaluation of one model run."""

    vocabulary: PlatformVocabulary
    standardizer: Standardizer
    draws: PosteriorDraws
    design: np.ndarray
    y_standardized: np.ndarray
    studies: tuple = ()
    random_seed: int = RANDOM_SEED


def _validate_observations(observations: pd.DataFrame) -> pd.DataFrame:
    missing = [c for c in (OUTCOME_COL, PLATFORM_COL) if c not in observations.columns]
    if missing:
        raise InputValidationError(
            f"Observations are missing columns {missing}", offending=missing
        )
    if observations.empty:
        raise InputValidationError("No observations reached the model", offending=observations)

    y = pd.to_numeric(observations[OUTCOME_COL], errors="coerce")
    bad = observations.index[y.isna() | ~np.isfinite(y.fillna(0.0))]
    if len(bad):
        raise InputValidationError(
            f"{len(bad)} observation(s) with a missing or non-numeric {OUTCOME_COL!r}, "
            f"first at row {bad[0]!r}",
            offending=observations.loc[bad[0]].to_dict(),
        )
    no_platform = observations.index[observations[PLATFORM_COL].isna()]
    if len(no_platform):
        raise InputValidationError(
            f"{len(no_platform)} observation(s) without a platform label, "
            f"first at row {no_platform[0]!r}",
            offending=observations.loc[no_platform[0]].to_dict(),
        )
    return observations


def fit_context(
    observations: pd.DataFrame,
    vocabulary,
    sampler,
    n_replicates: int = N_REPLICATES,
) -> AnalysisContext:
    """
    Encode, standardize and fit once; return the frozen run context.

    Parameters
    ----------
    observations : pd.DataFrame
        Filtered studies with outcome and platform columns
    vocabulary : PlatformVocabulary or Sequence[str]
        Ordered platform codes
    sampler
        Fitting engine with ``config`` and ``fit(request, platforms=...)``
    n_replicates : int
        In-sample posterior-predictive replicates to request

    Returns
    -------
    AnalysisContext
    """
    if not isinstance(vocabulary, PlatformVocabulary):
        vocabulary = PlatformVocabulary(vocabulary)
    observations = _validate_observations(observations)

    t0 = console.stage("Encoding platforms")
    design = encode_many(observations[PLATFORM_COL].tolist(), vocabulary)
    counts = design.sum(axis=0).astype(int)
    console.info(", ".join(f"{p}={n}" for p, n in zip(vocabulary, counts)))
    console.stage_done("encoding", t0)

    t0 = console.stage("Standardizing outcome")
    y_raw = observations[OUTCOME_COL].to_numpy(dtype=float)
    standardizer = Standardizer.fit(y_raw)
    y_std = standardizer.transform(y_raw)
    console.info(f"mean={standardizer.mean:,.1f} sd={standardizer.sd:,.1f}")
    console.stage_done("standardization", t0)

    t0 = console.stage("Fitting hierarchical platform model")
    request = FitRequest.build(design, y_std, n_replicates=n_replicates)
    draws = fit_posterior(sampler, request, platforms=vocabulary.platforms)
    console.info(f"{len(draws)} posterior draws")
    console.stage_done("fitting", t0)

    studies = tuple(observations[STUDY_COL]) if STUDY_COL in observations.columns else ()
    design.setflags(write=False)
    y_std.setflags(write=False)
    return AnalysisContext(
        vocabulary=vocabulary,
        standardizer=standardizer,
        draws=draws,
        design=design,
        y_standardized=y_std,
        studies=studies,
        random_seed=getattr(getattr(sampler, "config", None), "random_seed", RANDOM_SEED),
    )


def evaluate_platform(
    context: AnalysisContext,
    platform: str,
    hypothetical_value: float,
    one_sided: bool = ONE_SIDED,
    rng: Optional[np.random.Generator] = None,
) -> AnomalyScore:
    """
    Score a raw SNP count against the predictive distribution of ``platform``.

    Parameters
    ----------
    context : AnalysisContext
        Frozen run context
    platform : str
        Platform code from the context's vocabulary
    hypothetical_value : float
        Real or hypothetical post-QC SNP count (raw units)
    one_sided : bool
        One- or two-sided p-value
    rng : np.random.Generator, optional
        Random source for the predictive replicates

    Returns
    -------
    AnomalyScore
    """
    try:
        value = float(hypothetical_value)
    except (TypeError, ValueError):
        raise InputValidationError(
            f"Observed value must be a number, got {hypothetical_value!r}",
            offending=hypothetical_value,
        ) from None
    if not np.isfinite(value):
        raise InputValidationError(
            f"Observed value must be finite, got {hypothetical_value!r}",
            offending=hypothetical_value,
        )
    row = encode(platform, context.vocabulary)
    values, _ = collect_replicates(simulate(context.draws, row, rng=rng))
    result = score_standardized(values, value, context.standardizer, one_sided=one_sided)
    return replace(result, platform=platform)


def evaluate_platforms(
    context: AnalysisContext,
    hypothetical_value: float,
    platforms: Optional[Sequence[str]] = None,
    one_sided: bool = ONE_SIDED,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """
    ``evaluate_platform`` for every platform, one independent stream each.

    Returns
    -------
    pd.DataFrame
        One row per platform (AnomalyScore fields)
    """
    validate_draws(context.draws)
    platforms = list(context.vocabulary) if platforms is None else list(platforms)
    seed = context.random_seed if seed is None else seed
    streams = np.random.SeedSequence(seed).spawn(len(platforms))

    rows = []
    for platform, stream in tqdm(
        list(zip(platforms, streams)), desc="Scoring platforms", leave=False
    ):
        res = evaluate_platform(
            context,
            platform,
            hypothetical_value,
            one_sided=one_sided,
            rng=np.random.default_rng(stream),
        )
        rows.append(res.to_dict())

    return pd.DataFrame(rows)


def model_check(
    context: AnalysisContext,
    n_rows: int = N_CHECK_ROWS,
    rng: Optional[np.random.Generator] = None,
) -> ModelCheck:
    """Posterior-predictive check of the run's own fitting data."""
    return check_draws(
        context.draws,
        context.design,
        context.y_standardized,
        n_rows=n_rows,
        rng=rng,
        labels=list(context.studies) or None,
    )
