"""
Tests for the immutable TimeSeries container.
"""
import numpy as np
import pandas as pd
import pytest

from expsmooth import InvalidParameterError, TimeSeries, as_timeseries


def test_values_are_read_only():
    ts = TimeSeries([1, 2, 3])
    with pytest.raises(ValueError):
        ts.values[0] = 10.0


def test_source_array_is_copied():
    raw = np.array([1.0, 2.0, 3.0])
    ts = TimeSeries(raw)
    raw[0] = 99.0
    assert ts[0] == 1.0


def test_defaults():
    ts = TimeSeries([1, 2, 3])
    assert ts.period == 1
    assert len(ts) == 3
    assert isinstance(ts.index, pd.RangeIndex)


def test_rejects_non_finite_values():
    with pytest.raises(InvalidParameterError):
        TimeSeries([1.0, np.nan, 3.0])


@pytest.mark.parametrize("period", [0, -1, 2.5, True])
def test_rejects_bad_period(period):
    with pytest.raises(InvalidParameterError):
        TimeSeries([1, 2, 3], period=period)


def test_rejects_index_length_mismatch():
    with pytest.raises(InvalidParameterError):
        TimeSeries([1, 2, 3], index=[0, 1])


def test_slice_keeps_period_and_index():
    ts = TimeSeries(np.arange(10.0), period=2)
    part = ts.slice((2, 5))
    assert part.period == 2
    assert list(part.values) == [2.0, 3.0, 4.0]
    assert list(part.index) == [2, 3, 4]

    tail = ts.slice(slice(-3, None))
    assert list(tail.values) == [7.0, 8.0, 9.0]


def test_empty_slice_is_rejected():
    with pytest.raises(InvalidParameterError):
        TimeSeries(np.arange(5.0)).slice((3, 3))


def test_future_index_range():
    ts = TimeSeries(np.arange(5.0))
    assert list(ts.future_index(3)) == [5, 6, 7]


def test_future_index_dates():
    index = pd.date_range("2024-01-01", periods=6, freq="MS")
    ts = TimeSeries.from_series(pd.Series(np.arange(6.0), index=index), period=3)
    future = ts.future_index(2)
    assert list(future) == [pd.Timestamp("2024-07-01"), pd.Timestamp("2024-08-01")]


def test_as_timeseries_from_series():
    s = pd.Series([1.0, 2.0, 3.0], name="demand")
    ts = as_timeseries(s, period=1)
    assert ts.name == "demand"
    assert as_timeseries(ts) is ts
    assert as_timeseries(ts, period=3).period == 3
