"""
Holt-Winters 指数平滑模块

提供 误差/趋势/季节 三分量指数平滑的状态递推、预测和参数优化

模块结构:
- _spec: 模型规格与平滑参数
- _holt_winters: 核心数值内核（numba）
- _state: 状态递推引擎与拟合结果
- _forecast: 点预测与预测区间
- _optimization: 参数优化功能
- indicators: vectorbt 批量平滑指标

主要功能:
- fit / forecast: 拟合与外推
- estimate_parameters: 训练拟合，最小化一步预测误差
- optimize_parameter: 单参数网格搜索，留出区间评分
- select_period: 季节长度选择
"""

from expsmooth.holt_winters._spec import (
    ErrorType,
    TrendType,
    SeasonType,
    ModelSpec,
    SmoothingParameters,
    InitialState,
)

from expsmooth.holt_winters._state import (
    ComponentState,
    FittedModel,
    initial_state,
    smooth,
)

from expsmooth.holt_winters._forecast import (
    Forecast,
    ForecastConfig,
    forecast,
    point_forecast,
)

from expsmooth.holt_winters._optimization import (
    OptimizerConfig,
    GridSearchResult,
    fit,
    estimate_parameters,
    optimize_parameter,
    select_period,
    default_grid,
)

from expsmooth.holt_winters.indicators import ETS

__all__ = [
    # 模型规格
    "ErrorType",
    "TrendType",
    "SeasonType",
    "ModelSpec",
    "SmoothingParameters",
    "InitialState",

    # 核心算法
    "ComponentState",
    "FittedModel",
    "initial_state",
    "smooth",
    "Forecast",
    "ForecastConfig",
    "forecast",
    "point_forecast",

    # 优化功能
    "OptimizerConfig",
    "GridSearchResult",
    "fit",
    "estimate_parameters",
    "optimize_parameter",
    "select_period",
    "default_grid",

    # 批量指标
    "ETS",
]
