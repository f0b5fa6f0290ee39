"""
expsmooth 指数平滑预测库

提供简单指数平滑、Holt 线性趋势、Holt-Winters 季节及阻尼趋势模型的
状态递推、预测区间、精度评估和参数优化

模块结构:
- timeseries: 不可变时间序列
- holt_winters: 状态递推、预测和参数优化
- accuracy: 误差指标 (RMSE, MAE, MAPE)
"""

# 版本信息
__version__ = "0.1.0"
__description__ = "Exponential smoothing forecasting library"
__license__ = "MIT"

from expsmooth._utils import (
    ForecastError,
    InvalidParameterError,
    NonPositiveValueError,
    InsufficientHistoryError,
    LengthMismatchError,
    DivisionByZeroError,
    NoValidConfigurationError,
)

from expsmooth.timeseries import TimeSeries, as_timeseries

from expsmooth.holt_winters import *
from expsmooth.holt_winters import __all__ as _hw_all

from expsmooth.accuracy import AccuracyReport, accuracy, rmse, mae, mape

# 定义公开API
__all__ = [
    # 版本信息
    "__version__",
    "__description__",
    "__license__",

    # 异常
    "ForecastError",
    "InvalidParameterError",
    "NonPositiveValueError",
    "InsufficientHistoryError",
    "LengthMismatchError",
    "DivisionByZeroError",
    "NoValidConfigurationError",

    # 数据与精度
    "TimeSeries",
    "as_timeseries",
    "AccuracyReport",
    "accuracy",
    "rmse",
    "mae",
    "mape",
] + list(_hw_all)
