"""
时间序列容器

提供不可变的 TimeSeries，用于模型拟合、预测和参数优化
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple, Union

import numpy as np
import pandas as pd

from expsmooth._utils import InvalidParameterError, as_float_array, validate_span


@dataclass(frozen=True, eq=False)
class TimeSeries:
    """
    不可变时间序列

    值保存为只读 float64 数组，index 为 pandas Index（默认 RangeIndex），
    period 为季节周期 m（非季节序列为 1）。
    """

    values: np.ndarray
    index: pd.Index = None
    period: int = 1
    name: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        values = as_float_array(self.values).copy()
        if not np.all(np.isfinite(values)):
            raise InvalidParameterError("series values must be finite", field="values")

        if isinstance(self.period, (bool, np.bool_)) or not isinstance(self.period, (int, np.integer)) \
                or self.period < 1:
            raise InvalidParameterError(f"period must be an integer >= 1, got {self.period!r}",
                                        field="period", value=self.period)

        index = self.index
        if index is None:
            index = pd.RangeIndex(len(values))
        else:
            index = pd.Index(index)
            if len(index) != len(values):
                raise InvalidParameterError(
                    f"index length {len(index)} does not match values length {len(values)}", field="index")

        values.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "index", index)
        object.__setattr__(self, "period", int(self.period))

    @classmethod
    def from_series(cls, series: pd.Series, period: int = 1) -> "TimeSeries":
        """从 pandas Series 构造，保留索引和名称"""
        return cls(series.to_numpy(dtype=np.float64), index=series.index, period=period, name=series.name)

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, item):
        return self.values[item]

    def __array__(self, dtype=None, copy=None):
        return np.asarray(self.values, dtype=dtype)

    @property
    def is_positive(self) -> bool:
        return bool(np.all(self.values > 0))

    def slice(self, span: Union[slice, Tuple[Optional[int], Optional[int]]]) -> "TimeSeries":
        """
        按位置区间截取子序列

        Args:
            span: slice 或 (start, stop) 元组

        Returns:
            新的 TimeSeries，周期不变
        """
        start, stop = validate_span(span, len(self))
        return TimeSeries(self.values[start:stop], index=self.index[start:stop],
                          period=self.period, name=self.name)

    def with_period(self, period: int) -> "TimeSeries":
        return TimeSeries(self.values, index=self.index, period=period, name=self.name)

    def future_index(self, horizon: int) -> pd.Index:
        """
        生成未来 horizon 步的索引

        RangeIndex 继续递增；带频率的 DatetimeIndex 按频率延伸；其余情况返回整数位置。
        """
        n = len(self)
        if isinstance(self.index, pd.RangeIndex):
            step = self.index.step
            start = self.index.start + n * step
            return pd.RangeIndex(start, start + horizon * step, step)

        if isinstance(self.index, pd.DatetimeIndex):
            freq = self.index.freq or (pd.infer_freq(self.index) if n >= 3 else None)
            if freq is not None:
                return pd.date_range(self.index[-1], periods=horizon + 1, freq=freq)[1:]

        return pd.RangeIndex(n, n + horizon)

    def to_series(self) -> pd.Series:
        return pd.Series(self.values, index=self.index, name=self.name)


def as_timeseries(data: Any, period: Optional[int] = None) -> TimeSeries:
    """
    将输入统一转换为 TimeSeries

    Args:
        data: TimeSeries、pandas Series 或任意一维数组
        period: 季节周期；为 None 时沿用 TimeSeries 自带周期（其他输入默认为 1）
    """
    if isinstance(data, TimeSeries):
        return data if period is None or period == data.period else data.with_period(period)
    if isinstance(data, pd.Series):
        return TimeSeries.from_series(data, period=period or 1)
    return TimeSeries(data, period=period or 1)
