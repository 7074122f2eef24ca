from __future__ import annotations

import numpy as np
import pytest

from snpqc.errors import DegenerateScaleError
from snpqc.standardize import Standardizer, fit_standardization, inverse_transform, transform


def test_round_trip_within_tolerance():
    rng = np.random.default_rng(3)
    for _ in range(20):
        y = rng.normal(0, 1e6, size=5)
        mean = float(rng.normal(0, 1e5))
        sd = float(rng.uniform(1e-3, 1e5))
        np.testing.assert_allclose(inverse_transform(transform(y, mean, sd), mean, sd), y, rtol=1e-9, atol=1e-6)


def test_transform_of_fitting_sample_is_standard():
    y = np.array([310_000.0, 450_000.0, 520_000.0, 560_000.0, 870_000.0, 640_000.0])
    scaler = Standardizer.fit(y)
    z = scaler.transform(y)
    assert abs(z.mean()) < 1e-12
    assert z.std(ddof=1) == pytest.approx(1.0)


def test_fit_uses_sample_sd():
    mean, sd = fit_standardization([90, 95, 100, 105, 110])
    assert mean == pytest.approx(100.0)
    assert sd == pytest.approx(np.sqrt(62.5))


@pytest.mark.parametrize("bad", [[], [5.0], [4.0, 4.0, 4.0], [1.0, np.nan, 2.0]])
def test_degenerate_samples_rejected(bad):
    with pytest.raises(DegenerateScaleError):
        Standardizer.fit(bad)


def test_standardizer_is_frozen():
    scaler = Standardizer(10.0, 2.0)
    with pytest.raises(AttributeError):
        scaler.mean = 0.0
    assert scaler.inverse_transform(scaler.transform(14.0)) == pytest.approx(14.0)
    with pytest.raises(DegenerateScaleError):
        Standardizer(0.0, 0.0)
