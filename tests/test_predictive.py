from __future__ import annotations

import numpy as np
import pytest
from scipy.stats import norm

from snpqc.design import encode
from snpqc.errors import InputValidationError, SamplerConvergenceError
from snpqc.models import PosteriorDraws
from snpqc.predictive import Replicate, collect_replicates, simulate, simulate_in_sample


def _draws(s_count=400):
    rng = np.random.default_rng(11)
    mu = np.column_stack([rng.normal(-1.0, 0.05, s_count), rng.normal(2.0, 0.05, s_count)])
    sigma = np.full(s_count, 0.5)
    return PosteriorDraws(mu=mu, sigma=sigma, platforms=("A", "B"))


def test_one_replicate_per_draw_with_matching_loglik():
    draws = _draws()
    reps = list(simulate(draws, encode("B", ["A", "B"]), rng=np.random.default_rng(0)))
    assert len(reps) == len(draws)
    assert all(isinstance(r, Replicate) for r in reps)
    for d, rep in enumerate(reps[:25]):
        eta = draws.mu[d, 1]
        assert rep.loglik == pytest.approx(norm.logpdf(rep.value, eta, draws.sigma[d]))


def test_row_selects_platform_mean():
    draws = _draws(4000)
    a, _ = collect_replicates(simulate(draws, [1, 0], rng=np.random.default_rng(1)))
    b, _ = collect_replicates(simulate(draws, [0, 1], rng=np.random.default_rng(1)))
    assert a.mean() == pytest.approx(-1.0, abs=0.05)
    assert b.mean() == pytest.approx(2.0, abs=0.05)
    assert a.std() == pytest.approx(0.5, abs=0.05)


def test_sequence_is_one_shot_and_reproducible():
    draws = _draws(50)
    gen = simulate(draws, [1, 0], rng=np.random.default_rng(5))
    first = list(gen)
    assert list(gen) == []
    again = list(simulate(draws, [1, 0], rng=np.random.default_rng(5)))
    assert first == again


def test_bad_row_width_rejected():
    with pytest.raises(InputValidationError):
        simulate(_draws(10), [1, 0, 0])


def test_invalid_draws_refused():
    bad = PosteriorDraws(mu=np.array([[0.0, np.nan]]), sigma=np.array([1.0]))
    with pytest.raises(SamplerConvergenceError):
        simulate(bad, [1, 0])


def test_in_sample_shape():
    draws = _draws(30)
    x = np.array([[1, 0], [0, 1], [1, 0]])
    reps = simulate_in_sample(draws, x, rng=np.random.default_rng(2))
    assert reps.shape == (30, 3)
