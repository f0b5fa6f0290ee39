"""
Tests for point forecasts and prediction intervals.
"""
import dataclasses

import numpy as np
import pandas as pd
import pytest
from scipy.stats import norm

from expsmooth import (
    ForecastConfig,
    InsufficientHistoryError,
    InvalidParameterError,
    TimeSeries,
    fit,
    forecast,
    point_forecast,
)


def test_damped_trend_increment_converges(linear_series):
    phi = 0.9
    model = fit(linear_series, "AAdN", {"alpha": 0.5, "beta": 0.5, "phi": phi})
    level, trend = model.state.final_level, model.state.final_trend
    points = point_forecast(model, 2000)
    assert points[-1] - level == pytest.approx(trend * phi / (1 - phi), rel=1e-9)
    # increments shrink geometrically
    steps = np.diff(points[:10])
    np.testing.assert_allclose(steps[1:] / steps[:-1], phi)


def test_undamped_trend_grows_linearly(linear_series):
    model = fit(linear_series, "AAN", {"alpha": 0.5, "beta": 0.5})
    points = point_forecast(model, 50)
    np.testing.assert_allclose(np.diff(points), model.state.final_trend)
    assert points[-1] == pytest.approx(model.state.final_level + 50 * model.state.final_trend)


def test_seasonal_index_cycles(additive_seasonal):
    m = additive_seasonal.period
    model = fit(additive_seasonal, "ANA", {"alpha": 0.3, "gamma": 0.2})
    points = point_forecast(model, 3 * m)
    np.testing.assert_allclose(points[m:], points[:-m])
    np.testing.assert_allclose(points[:m] - model.state.final_level, model.state.last_cycle)


def test_additive_holt_winters_forecast(additive_seasonal):
    m = additive_seasonal.period
    model = fit(additive_seasonal, "AAA", {"alpha": 0.3, "beta": 0.1, "gamma": 0.2})
    points = point_forecast(model, 2 * m)
    np.testing.assert_allclose(points[m:] - points[:-m], m * model.state.final_trend)


def test_multiplicative_season_forecast(multiplicative_seasonal):
    model = fit(multiplicative_seasonal, "AAM", {"alpha": 0.3, "beta": 0.1, "gamma": 0.2})
    state = model.state
    points = point_forecast(model, 4)
    expected = [(state.final_level + k * state.final_trend) * state.last_cycle[k - 1] for k in range(1, 5)]
    np.testing.assert_allclose(points, expected)


def test_first_width_is_one_step_sigma(noisy_level):
    model = fit(noisy_level, "ANN", {"alpha": 0.4})
    fc = forecast(model, 1, level=0.95)
    assert fc.width[0] == pytest.approx(norm.ppf(0.975) * np.sqrt(model.sigma2))


def test_ses_interval_matches_closed_form(noisy_level):
    alpha = 0.4
    model = fit(noisy_level, "ANN", {"alpha": alpha})
    fc = forecast(model, 5, level=0.8)
    h = np.arange(1, 6)
    expected = norm.ppf(0.9) * np.sqrt(model.sigma2 * (1 + (h - 1) * alpha ** 2))
    np.testing.assert_allclose(fc.width, expected)


@pytest.mark.parametrize("code", ["ANN", "AAN", "AAA", "AAdA"])
def test_analytic_widths_are_non_decreasing(additive_seasonal, code):
    params = {"alpha": 0.3, "beta": 0.1, "gamma": 0.2, "phi": 0.9}
    model = fit(additive_seasonal, code, {k: v for k, v in params.items() if k in _required(code)})
    width = forecast(model, 24).width
    assert np.all(np.diff(width) >= 0)


@pytest.mark.parametrize("code", ["MAM", "AAM", "MNN", "AMdN"])
def test_simulated_widths_are_non_decreasing(multiplicative_seasonal, code):
    params = {"alpha": 0.3, "beta": 0.1, "gamma": 0.2, "phi": 0.9}
    model = fit(multiplicative_seasonal, code, {k: v for k, v in params.items() if k in _required(code)})
    fc = forecast(model, 12, config=ForecastConfig(n_simulations=500, seed=1))
    assert np.all(fc.width > 0)
    assert np.all(np.diff(fc.width) >= 0)


def test_simulation_is_reproducible(multiplicative_seasonal):
    model = fit(multiplicative_seasonal, "MAM", {"alpha": 0.3, "beta": 0.1, "gamma": 0.2})
    config = ForecastConfig(n_simulations=300, seed=5)
    np.testing.assert_array_equal(forecast(model, 6, config=config).width,
                                  forecast(model, 6, config=config).width)


def test_forecast_container(additive_seasonal):
    model = fit(additive_seasonal, "AAA", {"alpha": 0.3, "beta": 0.1, "gamma": 0.2})
    fc = forecast(model, 6)
    assert len(fc) == 6
    assert list(fc.index) == list(range(48, 54))
    np.testing.assert_allclose(fc.upper - fc.lower, 2 * fc.width)
    pairs = list(fc)
    assert pairs[0] == (fc.point[0], fc.width[0])

    frame = fc.to_frame()
    assert list(frame.columns) == ["forecast", "lower", "upper", "width"]
    with pytest.raises(ValueError):
        fc.point[0] = 0.0


def test_forecast_dates_follow_series_index():
    index = pd.date_range("2023-01-01", periods=12, freq="D")
    series = TimeSeries.from_series(pd.Series(np.linspace(1, 12, 12), index=index))
    fc = forecast(fit(series, "AAN", {"alpha": 0.5, "beta": 0.5}), 2)
    assert list(fc.index) == [pd.Timestamp("2023-01-13"), pd.Timestamp("2023-01-14")]


@pytest.mark.parametrize("horizon", [0, -1, 1.5])
def test_invalid_horizon(linear_series, horizon):
    model = fit(linear_series, "AAN", {"alpha": 0.5, "beta": 0.5})
    with pytest.raises(InvalidParameterError):
        forecast(model, horizon)


@pytest.mark.parametrize("level", [0.0, 1.0, 1.5])
def test_invalid_level(linear_series, level):
    model = fit(linear_series, "AAN", {"alpha": 0.5, "beta": 0.5})
    with pytest.raises(InvalidParameterError):
        forecast(model, 3, level=level)


def test_forecast_needs_two_cycles(additive_seasonal):
    model = fit(additive_seasonal, "ANA", {"alpha": 0.3, "gamma": 0.2})
    short = dataclasses.replace(model, series=additive_seasonal.slice((0, 7)))
    with pytest.raises(InsufficientHistoryError):
        forecast(short, 4)


def _required(code):
    from expsmooth import ModelSpec
    return ModelSpec.parse(code).required_parameters


def test_damped_interval_multipliers_bounded_variance_linear(noisy_level):
    alpha, beta, phi = 0.3, 0.2, 0.8
    model = fit(noisy_level, "AAdN", {"alpha": alpha, "beta": beta, "phi": phi})
    z = norm.ppf(0.975)
    width = forecast(model, 2000).width

    # c_j = alpha (1 + beta (phi + ... + phi^j)) stays below its limit
    limit = alpha * (1 + beta * phi / (1 - phi))
    variance = (width / z) ** 2 / model.sigma2
    steps = np.diff(variance)
    assert np.all(np.sqrt(steps) <= limit + 1e-12)
    # variance grows by a constant c_inf^2 per step, so widths never level off
    np.testing.assert_allclose(steps[-100:], limit ** 2, rtol=1e-9)
    assert width[-1] > width[99] > width[9]
