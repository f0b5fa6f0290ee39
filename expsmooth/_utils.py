from typing import Any, Optional, Tuple, Union
import math

import numpy as np


class ForecastError(Exception):
    """预测库异常基类"""
    def __init__(self, message: str, field: str = None, value=None):
        super().__init__(message)
        self.field = field
        self.value = value


class InvalidParameterError(ForecastError, ValueError):
    """平滑参数或调用参数越界"""


class NonPositiveValueError(ForecastError, ValueError):
    """乘法分量遇到非正数据"""


class InsufficientHistoryError(ForecastError):
    """序列长度不足以初始化季节分解"""


class LengthMismatchError(ForecastError, ValueError):
    """预测序列与实际序列长度不一致"""


class DivisionByZeroError(ForecastError, ZeroDivisionError):
    """MAPE 计算时实际值为 0"""


class NoValidConfigurationError(ForecastError):
    """网格搜索中所有参数点均失败"""


def validate_unit_interval(name: str, value: Any, open_low: bool = False) -> float:
    """
    验证参数位于 [0, 1] 或 (0, 1] 区间

    Args:
        name: 参数名
        value: 参数值
        open_low: 是否排除下界 0

    Returns:
        转换后的 float 值

    Raises:
        InvalidParameterError: 参数越界或不是有限数值
    """
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(f"{name} must be a number, got {value!r}", field=name, value=value)

    if math.isnan(value):
        raise InvalidParameterError(f"{name} must not be NaN", field=name, value=value)

    low_ok = value > 0.0 if open_low else value >= 0.0
    if not (low_ok and value <= 1.0):
        interval = "(0, 1]" if open_low else "[0, 1]"
        raise InvalidParameterError(f"{name} must be in {interval}, got {value}", field=name, value=value)
    return value


def validate_horizon(horizon: Any) -> int:
    """验证预测步长为正整数"""
    if isinstance(horizon, (bool, np.bool_)) or not isinstance(horizon, (int, np.integer)):
        raise InvalidParameterError(f"horizon must be an integer, got {horizon!r}", field="horizon", value=horizon)
    if horizon < 1:
        raise InvalidParameterError(f"horizon must be >= 1, got {horizon}", field="horizon", value=horizon)
    return int(horizon)


def validate_span(span: Union[slice, Tuple[Optional[int], Optional[int]]], length: int, name: str = "span") -> Tuple[int, int]:
    """
    将位置区间规范化为 (start, stop)

    Args:
        span: slice 或 (start, stop) 元组，支持负索引和 None
        length: 序列长度
        name: 参数名，用于错误信息

    Returns:
        (start, stop) 元组，满足 0 <= start < stop <= length

    Raises:
        InvalidParameterError: 区间为空或步长不为 1
    """
    if isinstance(span, slice):
        if span.step not in (None, 1):
            raise InvalidParameterError(f"{name} must be contiguous", field=name, value=span)
        start, stop = span.start, span.stop
    else:
        try:
            start, stop = span
        except (TypeError, ValueError):
            raise InvalidParameterError(f"{name} must be a slice or (start, stop) tuple", field=name, value=span)

    start, stop, _ = slice(start, stop).indices(length)
    if start >= stop:
        raise InvalidParameterError(f"{name} is empty: [{start}, {stop})", field=name, value=span)
    return start, stop


def as_float_array(values: Any, name: str = "values") -> np.ndarray:
    """转换为一维 float64 数组"""
    try:
        arr = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidParameterError(f"{name} must be numeric: {e}", field=name)
    if arr.ndim != 1:
        raise InvalidParameterError(f"{name} must be one-dimensional, got shape {arr.shape}", field=name)
    return arr
