"""
预测精度评估

RMSE、MAE、MAPE 三个误差指标，输入为等长的预测序列与实际序列。
"""

from dataclasses import asdict, dataclass
from typing import Any, Optional, Tuple

import numpy as np

from expsmooth._utils import DivisionByZeroError, LengthMismatchError, InvalidParameterError, as_float_array

METRICS = ("rmse", "mae", "mape")


@dataclass(frozen=True)
class AccuracyReport:
    rmse: float
    mae: float
    mape: Optional[float]

    def as_dict(self) -> dict:
        return asdict(self)

    def __getitem__(self, metric: str) -> Optional[float]:
        if metric.lower() not in METRICS:
            raise KeyError(metric)
        return getattr(self, metric.lower())


def _aligned(forecast: Any, actuals: Any) -> Tuple[np.ndarray, np.ndarray]:
    """转换为等长数组，长度不一致或为空时抛出 LengthMismatchError"""
    forecast = as_float_array(forecast, "forecast")
    actuals = as_float_array(actuals, "actuals")
    if len(forecast) != len(actuals):
        raise LengthMismatchError(f"forecast has {len(forecast)} values but actuals has {len(actuals)}",
                                  field="actuals", value=len(actuals))
    if len(actuals) == 0:
        raise LengthMismatchError("cannot score empty sequences", field="actuals", value=0)
    return forecast, actuals


def rmse(forecast: Any, actuals: Any) -> float:
    forecast, actuals = _aligned(forecast, actuals)
    return float(np.sqrt(np.mean((forecast - actuals) ** 2)))


def mae(forecast: Any, actuals: Any) -> float:
    forecast, actuals = _aligned(forecast, actuals)
    return float(np.mean(np.abs(forecast - actuals)))


def mape(forecast: Any, actuals: Any) -> float:
    """
    平均绝对百分比误差（百分数）

    Raises:
        DivisionByZeroError: 任一实际值为 0
    """
    forecast, actuals = _aligned(forecast, actuals)
    zeros = np.flatnonzero(actuals == 0)
    if len(zeros):
        raise DivisionByZeroError(f"MAPE undefined: actuals[{zeros[0]}] is 0", field="actuals", value=int(zeros[0]))
    return float(np.mean(np.abs(forecast - actuals) / np.abs(actuals)) * 100)


def accuracy(forecast: Any, actuals: Any, zero_actuals: str = "raise") -> AccuracyReport:
    """
    计算全部误差指标

    Args:
        forecast: Forecast 对象或一维数组
        actuals: 实际值
        zero_actuals: 实际值含 0 时的处理方式，"raise" 抛出异常，"skip" 令 mape 为 None

    Returns:
        AccuracyReport

    Raises:
        LengthMismatchError: 长度不一致
        DivisionByZeroError: zero_actuals="raise" 且实际值含 0
    """
    if zero_actuals not in ("raise", "skip"):
        raise InvalidParameterError(f"zero_actuals must be 'raise' or 'skip', got {zero_actuals!r}",
                                    field="zero_actuals", value=zero_actuals)

    forecast, actuals = _aligned(forecast, actuals)
    try:
        mape_value = mape(forecast, actuals)
    except DivisionByZeroError:
        if zero_actuals == "raise":
            raise
        mape_value = None

    return AccuracyReport(rmse=rmse(forecast, actuals), mae=mae(forecast, actuals), mape=mape_value)


def score(forecast: Any, actuals: Any, metric: str = "rmse") -> float:
    """按名称计算单个指标"""
    funcs = {"rmse": rmse, "mae": mae, "mape": mape}
    try:
        func = funcs[metric.lower()]
    except (KeyError, AttributeError):
        raise InvalidParameterError(f"metric must be one of {METRICS}, got {metric!r}", field="metric", value=metric)
    return func(forecast, actuals)
