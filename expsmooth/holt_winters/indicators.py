"""
vectorbt 批量平滑指标

对价格/数值表的每一列运行状态递推，输出一步拟合值和残差，支持参数组合。
"""

import numpy as np
from vectorbt import _typing as tp
from vectorbt.indicators.factory import IndicatorFactory

from expsmooth._utils import InsufficientHistoryError, NonPositiveValueError
from expsmooth.holt_winters._holt_winters import ets_fitted_nb
from expsmooth.holt_winters._spec import ModelSpec, SmoothingParameters


def ets_apply_func(close: tp.Array2d,
                   alpha: float,
                   beta: float,
                   gamma: float,
                   phi: float,
                   m: int,
                   trend: str,
                   season: str):
    """Apply function for ETS indicators: one-step fitted values and residuals of each column."""
    spec = ModelSpec(trend=trend, season=season)
    params = SmoothingParameters(alpha, beta, gamma, phi)
    m = int(m) if spec.has_season else 1

    close = np.asarray(close, dtype=np.float64)
    if close.shape[0] < max(2 * m, m + 2):
        raise InsufficientHistoryError(f"{spec} needs at least {max(2 * m, m + 2)} rows, got {close.shape[0]}")
    if spec.is_multiplicative and np.any(close <= 0):
        raise NonPositiveValueError(f"{spec} requires all values to be positive")

    fitted = ets_fitted_nb(close, params.alpha, params.beta, params.gamma,
                           params.phi if spec.damped else 1.0,
                           m, spec.trend_code, spec.season_code)
    return fitted, close - fitted


ETS = IndicatorFactory(
    class_name='ETS',
    module_name=__name__,
    short_name='ets',
    input_names=['close'],
    param_names=['alpha', 'beta', 'gamma', 'phi', 'm', 'trend', 'season'],
    output_names=['fitted', 'resid']
).from_apply_func(
    ets_apply_func,
    beta=0.1,
    gamma=0.1,
    phi=1.0,
    m=1,
    trend='additive',
    season='none'
)
