"""
预测生成

由拟合模型的最终状态外推点预测，并给出预测区间半宽。
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.stats import norm

from expsmooth._utils import InsufficientHistoryError, InvalidParameterError, validate_horizon
from expsmooth.holt_winters._holt_winters import (
    ets_forecast_1d_nb,
    ets_simulate_nb,
    innovation_multipliers_nb,
)
from expsmooth.holt_winters._spec import ERROR_ADD, SEASON_MUL, TREND_MUL, ModelSpec
from expsmooth.holt_winters._state import FittedModel


@dataclass
class ForecastConfig:
    """预测区间配置"""
    level: float = 0.95
    n_simulations: int = 2000
    seed: Optional[int] = 42


@dataclass(frozen=True, eq=False)
class Forecast:
    """
    h 步预测：点预测与预测区间半宽

    区间为 point ± width，置信水平为 level。
    """

    point: np.ndarray
    width: np.ndarray
    level: float
    index: pd.Index
    spec: ModelSpec

    def __len__(self) -> int:
        return len(self.point)

    def __iter__(self) -> Iterator[Tuple[float, float]]:
        return iter(zip(self.point.tolist(), self.width.tolist()))

    def __array__(self, dtype=None, copy=None):
        return np.asarray(self.point, dtype=dtype)

    @property
    def lower(self) -> np.ndarray:
        return self.point - self.width

    @property
    def upper(self) -> np.ndarray:
        return self.point + self.width

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"forecast": self.point,
                             "lower": self.lower,
                             "upper": self.upper,
                             "width": self.width}, index=self.index)


def has_analytic_intervals(spec: ModelSpec) -> bool:
    """加法误差、非乘法趋势和季节时存在闭式预测方差"""
    return (spec.error_code == ERROR_ADD
            and spec.trend_code != TREND_MUL
            and spec.season_code != SEASON_MUL)


def _analytic_width(model: FittedModel, horizon: int, z: float) -> np.ndarray:
    alpha, beta, gamma, phi = model.params.kernel_args()
    c = innovation_multipliers_nb(alpha, beta, gamma, phi, model.state.period, horizon,
                                  model.spec.trend_code, model.spec.season_code)
    variance = model.sigma2 * (1.0 + np.concatenate(([0.0], np.cumsum(c ** 2))))
    return z * np.sqrt(variance)


def _simulated_width(model: FittedModel, horizon: int, level: float, config: ForecastConfig) -> np.ndarray:
    alpha, beta, gamma, phi = model.params.kernel_args()
    state = model.state
    rng = np.random.default_rng(config.seed)
    errors = rng.normal(0.0, np.sqrt(model.sigma2), size=(config.n_simulations, horizon))

    paths = ets_simulate_nb(state.final_level, state.final_trend, np.array(state.last_cycle),
                            alpha, beta, gamma, phi,
                            model.spec.trend_code, model.spec.season_code, model.spec.error_code,
                            errors)
    paths = paths[np.all(np.isfinite(paths), axis=1)]
    lower, upper = np.quantile(paths, [(1 - level) / 2, (1 + level) / 2], axis=0)
    # 抽样误差可能使半宽轻微回落
    return np.maximum.accumulate((upper - lower) / 2)


def point_forecast(model: FittedModel, horizon: int) -> np.ndarray:
    """仅计算点预测，不含区间"""
    horizon = validate_horizon(horizon)
    state = model.state
    _, _, _, phi = model.params.kernel_args()
    return ets_forecast_1d_nb(state.final_level, state.final_trend, np.array(state.last_cycle), phi,
                              horizon, model.spec.trend_code, model.spec.season_code)


def forecast(model: FittedModel,
             horizon: int,
             level: Optional[float] = None,
             config: Optional[ForecastConfig] = None) -> Forecast:
    """
    生成 h 步预测

    Args:
        model: 拟合模型
        horizon: 预测步数，>= 1
        level: 预测区间置信水平，默认取 config.level
        config: 区间配置

    Returns:
        Forecast

    Raises:
        InvalidParameterError: horizon 或 level 无效
        InsufficientHistoryError: 拟合序列短于两个季节周期
    """
    horizon = validate_horizon(horizon)
    config = config or ForecastConfig()
    level = config.level if level is None else level
    if not 0 < level < 1:
        raise InvalidParameterError(f"level must be in (0, 1), got {level}", field="level", value=level)

    m = model.state.period
    if model.nobs < 2 * m:
        raise InsufficientHistoryError(f"forecasting needs two seasonal cycles ({2 * m}), got {model.nobs}",
                                       field="series", value=model.nobs)

    point = point_forecast(model, horizon)
    if has_analytic_intervals(model.spec):
        width = _analytic_width(model, horizon, norm.ppf(0.5 + level / 2))
    else:
        width = _simulated_width(model, horizon, level, config)

    point.setflags(write=False)
    width.setflags(write=False)
    return Forecast(point=point, width=width, level=level,
                    index=model.series.future_index(horizon), spec=model.spec)
