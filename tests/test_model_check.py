from __future__ import annotations

import numpy as np
import pytest

from snpqc.errors import InputValidationError, SamplerConvergenceError
from snpqc.model_check import check, check_draws
from snpqc.models import PosteriorDraws


def test_check_builds_long_form_overlay():
    rng = np.random.default_rng(4)
    reps = rng.normal(0.0, 1.0, size=(100, 20))
    obs = rng.normal(0.0, 1.0, size=20)
    out = check(reps, obs, n_rows=5)

    assert len(out.replicates) == 500
    assert set(out.replicates["row"]) == set(range(5))
    np.testing.assert_allclose(out.observed["observed"], obs[:5])
    assert list(out.summary.columns) == [
        "row", "observed", "rep_mean", "rep_sd", "rep_lo", "rep_hi", "Pr(rep<=obs)"
    ]
    assert (out.summary["rep_lo"] < out.summary["rep_hi"]).all()
    np.testing.assert_allclose(out.summary["Pr(rep<=obs)"], (reps[:, :5] <= obs[:5]).mean(axis=0))


def test_check_uses_labels_and_caps_rows():
    reps = np.arange(12, dtype=float).reshape(4, 3)
    out = check(reps, [0.0, 1.0, 2.0], n_rows=10, labels=["s1", "s2", "s3"])
    assert out.observed["row"].tolist() == ["s1", "s2", "s3"]
    assert out.replicates.loc[out.replicates["row"] == "s2", "value"].tolist() == [1.0, 4.0, 7.0, 10.0]


def test_check_does_not_modify_inputs():
    reps = np.ones((3, 2))
    reps[:, 1] = 2.0
    before = reps.copy()
    check(reps, [1.0, 2.0])
    np.testing.assert_array_equal(reps, before)


def test_check_shape_mismatch():
    with pytest.raises(InputValidationError):
        check(np.zeros((10, 3)), np.zeros(4))


def test_check_draws_simulates_when_no_replicates():
    draws = PosteriorDraws(mu=np.zeros((50, 2)), sigma=np.ones(50))
    x = np.array([[1, 0], [0, 1]])
    out = check_draws(draws, x, [0.1, -0.1], rng=np.random.default_rng(0))
    assert len(out.replicates) == 100


def test_check_draws_refuses_invalid_draws():
    draws = PosteriorDraws(mu=np.zeros((5, 2)), sigma=-np.ones(5))
    with pytest.raises(SamplerConvergenceError):
        check_draws(draws, np.eye(2), [0.0, 0.0])


def test_check_rejects_negative_row_count():
    reps = np.arange(12, dtype=float).reshape(4, 3)
    with pytest.raises(InputValidationError, match="non-negative"):
        check(reps, [0.0, 1.0, 2.0], n_rows=-1)
    assert check(reps, [0.0, 1.0, 2.0], n_rows=0).observed.empty
