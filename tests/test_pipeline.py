from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from snpqc.errors import (
    DegenerateScaleError,
    InputValidationError,
    SamplerConvergenceError,
    UnknownPlatformError,
)
from snpqc.pipeline import evaluate_platform, evaluate_platforms, fit_context, model_check

from conftest import FakeSampler

VOCAB = ["A", "B", "C"]


def test_fit_context_freezes_standardization(observations, fake_sampler):
    ctx = fit_context(observations, VOCAB, fake_sampler, n_replicates=20)
    y = observations["snps"].to_numpy()
    assert ctx.standardizer.mean == pytest.approx(y.mean())
    assert ctx.standardizer.sd == pytest.approx(y.std(ddof=1))
    np.testing.assert_allclose(ctx.y_standardized, (y - y.mean()) / y.std(ddof=1))
    assert len(ctx.draws) == fake_sampler.config.total_draws
    assert ctx.draws.platforms == ("A", "B", "C")
    assert ctx.studies[0] == "A0"

    req = fake_sampler.requests[0]
    assert (req.n_obs, req.n_platforms, req.n_replicates) == (24, 3, 20)
    np.testing.assert_array_equal(req.design.sum(axis=1), np.ones(24))


def test_evaluate_platform_typical_and_extreme(observations, fake_sampler):
    ctx = fit_context(observations, VOCAB, fake_sampler)
    a_mean = observations.loc[observations["platform"] == "A", "snps"].mean()

    typical = evaluate_platform(ctx, "A", a_mean, rng=np.random.default_rng(0))
    assert typical.platform == "A"
    assert typical.replicate_mean == pytest.approx(a_mean, rel=0.02)
    assert typical.sd_distance < 0.2
    assert typical.p_value > 0.3
    assert typical.n_replicates == len(ctx.draws)

    # a Platform-A-sized yield is far out on platform B
    extreme = evaluate_platform(ctx, "B", a_mean, rng=np.random.default_rng(0))
    assert extreme.p_value < 0.01
    assert extreme.sd_distance > 3


def test_evaluate_platform_two_sided(observations, fake_sampler):
    ctx = fit_context(observations, VOCAB, fake_sampler)
    one = evaluate_platform(ctx, "C", 400_000, one_sided=True, rng=np.random.default_rng(9))
    two = evaluate_platform(ctx, "C", 400_000, one_sided=False, rng=np.random.default_rng(9))
    assert two.p_value == pytest.approx(1 - (1 - one.p_value) / 2)


def test_evaluate_platform_unknown_label(observations, fake_sampler):
    ctx = fit_context(observations, VOCAB, fake_sampler)
    with pytest.raises(UnknownPlatformError):
        evaluate_platform(ctx, "ILLU9000", 500_000)
    with pytest.raises(InputValidationError):
        evaluate_platform(ctx, "A", float("nan"))
    with pytest.raises(InputValidationError, match=r"^\[input\] .*must be a number"):
        evaluate_platform(ctx, "A", "lots")
    with pytest.raises(InputValidationError):
        evaluate_platform(ctx, "A", None)
    # numpy scalars are accepted
    assert evaluate_platform(ctx, "A", np.float32(500_000), rng=np.random.default_rng(0)).observed == 500_000


def test_evaluate_platforms_is_deterministic(observations, fake_sampler):
    ctx = fit_context(observations, VOCAB, fake_sampler)
    first = evaluate_platforms(ctx, 500_000)
    second = evaluate_platforms(ctx, 500_000)
    assert first["platform"].tolist() == VOCAB
    pd.testing.assert_frame_equal(first, second)
    assert first.loc[first["platform"] == "A", "p_value"].iloc[0] > 0.05
    assert first.loc[first["platform"] == "C", "p_value"].iloc[0] < 0.01


def test_evaluation_does_not_touch_context(observations, fake_sampler):
    ctx = fit_context(observations, VOCAB, fake_sampler)
    scaler_before = ctx.standardizer
    mu_before = ctx.draws.mu.copy()
    evaluate_platforms(ctx, 123_456)
    assert ctx.standardizer == scaler_before
    np.testing.assert_array_equal(ctx.draws.mu, mu_before)


def test_model_check_uses_study_labels(observations, fake_sampler):
    ctx = fit_context(observations, VOCAB, fake_sampler, n_replicates=30)
    out = model_check(ctx, n_rows=4)
    assert out.observed["row"].tolist() == ["A0", "A1", "A2", "A3"]
    assert len(out.replicates) == 4 * 30


def test_unknown_platform_in_observations_fails_encoding(observations, fake_sampler):
    with pytest.raises(UnknownPlatformError) as excinfo:
        fit_context(observations, ["A", "B"], fake_sampler)
    assert excinfo.value.offending == "C"
    assert not fake_sampler.requests


def test_constant_outcome_fails_standardization(observations, fake_sampler):
    obs = observations.assign(snps=400_000.0)
    with pytest.raises(DegenerateScaleError):
        fit_context(obs, VOCAB, fake_sampler)


def test_incomplete_observations_rejected(observations, fake_sampler):
    with pytest.raises(InputValidationError):
        fit_context(observations.drop(columns=["snps"]), VOCAB, fake_sampler)
    broken = observations.copy()
    broken.loc[3, "snps"] = np.nan
    with pytest.raises(InputValidationError):
        fit_context(broken, VOCAB, fake_sampler)
    broken = observations.copy()
    broken.loc[5, "platform"] = None
    with pytest.raises(InputValidationError):
        fit_context(broken, VOCAB, fake_sampler)


def test_sampler_failure_aborts_the_run(observations):
    class FailingSampler(FakeSampler):
        def fit(self, request, platforms=()):
            raise SamplerConvergenceError("non-finite log-likelihood")

    with pytest.raises(SamplerConvergenceError, match="non-finite"):
        fit_context(observations, VOCAB, FailingSampler())
