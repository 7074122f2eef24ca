from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from snpqc.config import SamplerConfig
from snpqc.models import FitRequest, PosteriorDraws


class FakeSampler:
    """Deterministic stand-in for the PyMC engine.

    Platform means are the per-platform sample means of the standardized
    outcome plus small seeded jitter; sigma is the pooled residual sd.
    """

    def __init__(self, config: SamplerConfig | None = None, mu_override=None, sigma_override=None):
        self.config = (config or SamplerConfig(chains=2, iterations=300, warmup=100)).validate()
        self.mu_override = mu_override
        self.sigma_override = sigma_override
        self.requests = []

    def fit(self, request: FitRequest, platforms=()):
        self.requests.append(request)
        rng = np.random.default_rng(self.config.random_seed)
        s_count = self.config.total_draws
        x = np.asarray(request.design)
        y = np.asarray(request.y)

        counts = x.sum(axis=0)
        means = (x.T @ y) / np.where(counts > 0, counts, 1)
        resid = y - x @ means
        sigma = max(float(resid.std(ddof=1)) if len(y) > 1 else 1.0, 0.05)

        mu = means + rng.normal(0.0, 0.01, size=(s_count, request.n_platforms))
        sig = sigma * (1.0 + 0.01 * np.abs(rng.normal(size=s_count)))
        if self.mu_override is not None:
            mu = np.broadcast_to(self.mu_override, mu.shape).copy()
        if self.sigma_override is not None:
            sig = np.broadcast_to(self.sigma_override, sig.shape).copy()

        replicates = None
        if request.n_replicates:
            replicates = rng.normal(
                mu[: request.n_replicates] @ x.T, sig[: request.n_replicates, None]
            )
        return PosteriorDraws(mu=mu, sigma=sig, platforms=tuple(platforms), replicates=replicates)


@pytest.fixture
def fake_sampler():
    return FakeSampler()


@pytest.fixture
def vocab_ab():
    return ["A", "B"]


@pytest.fixture
def observations():
    rng = np.random.default_rng(7)
    rows = []
    for platform, centre in (("A", 500_000), ("B", 650_000), ("C", 300_000)):
        for i in range(8):
            rows.append(
                {
                    "study": f"{platform}{i}",
                    "snps": float(np.round(rng.normal(centre, 20_000))),
                    "platform": platform,
                    "samples": 1000 + i,
                    "known_locus_exclusions": 10,
                }
            )
    return pd.DataFrame(rows)
