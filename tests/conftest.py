"""
Shared fixtures for expsmooth tests.
"""
import numpy as np
import pytest

from expsmooth import TimeSeries


@pytest.fixture
def linear_series():
    return TimeSeries([10, 12, 14, 16, 18, 20])


@pytest.fixture
def additive_seasonal():
    """Trend + period-4 additive season + small noise, 48 points."""
    rng = np.random.default_rng(7)
    t = np.arange(48)
    pattern = np.array([5.0, -2.0, 3.0, -6.0])
    values = 50 + 0.5 * t + pattern[t % 4] + rng.normal(0, 0.3, size=48)
    return TimeSeries(values, period=4)


@pytest.fixture
def multiplicative_seasonal():
    """Positive series with a period-4 multiplicative season."""
    rng = np.random.default_rng(11)
    t = np.arange(40)
    factors = np.array([1.2, 0.8, 1.1, 0.9])
    values = (100 + 2.0 * t) * factors[t % 4] * (1 + rng.normal(0, 0.01, size=40))
    return TimeSeries(values, period=4)


@pytest.fixture
def noisy_level():
    rng = np.random.default_rng(3)
    return TimeSeries(20 + np.cumsum(rng.normal(0, 1, size=60)) + rng.normal(0, 2, size=60))
