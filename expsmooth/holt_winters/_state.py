"""
状态递推引擎

在数值内核之上提供参数校验、初始状态分解和不可变的拟合结果。
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from expsmooth._utils import (
    InsufficientHistoryError,
    InvalidParameterError,
    NonPositiveValueError,
)
from expsmooth.holt_winters._holt_winters import init_state_1d_nb, ets_recursion_1d_nb
from expsmooth.holt_winters._spec import ERROR_MUL, InitialState, ModelSpec, SmoothingParameters
from expsmooth.timeseries import TimeSeries


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr = np.array(arr, dtype=np.float64)
    arr.setflags(write=False)
    return arr


def min_history(spec: ModelSpec, period: int) -> int:
    """拟合所需的最短序列长度"""
    m = period if spec.has_season else 1
    return max(2 * m, m + 2)


def check_series(series: TimeSeries, spec: ModelSpec) -> int:
    """
    验证序列可用于该模型规格

    Returns:
        内核使用的季节长度（无季节分量时为 1）

    Raises:
        InvalidParameterError: 季节模型的周期小于 2
        InsufficientHistoryError: 序列过短
        NonPositiveValueError: 乘法分量遇到非正数据
    """
    if spec.has_season and series.period < 2:
        raise InvalidParameterError(f"{spec} needs a seasonal period >= 2, got {series.period}",
                                    field="period", value=series.period)

    needed = min_history(spec, series.period)
    if len(series) < needed:
        raise InsufficientHistoryError(f"{spec} needs at least {needed} observations, got {len(series)}",
                                       field="series", value=len(series))

    if spec.is_multiplicative and not series.is_positive:
        bad = int(np.argmax(series.values <= 0))
        raise NonPositiveValueError(
            f"{spec} has a multiplicative component but series[{bad}] = {series.values[bad]}",
            field="series", value=series.values[bad])

    return series.period if spec.has_season else 1


def initial_state(series: TimeSeries, spec: ModelSpec) -> InitialState:
    """
    由前两个季节周期分解得到初始状态

    Args:
        series: 训练序列
        spec: 模型规格

    Returns:
        InitialState，不含的分量为 None
    """
    m = check_series(series, spec)
    l0, b0, s0 = init_state_1d_nb(series.values, m, spec.trend_code, spec.season_code)
    state = InitialState(level=l0,
                         trend=b0 if spec.has_trend else None,
                         seasonal=s0 if spec.has_season else None)
    return state.check(spec, m)


@dataclass(frozen=True, eq=False)
class ComponentState:
    """
    拟合后的分量状态快照

    level: L_0..L_T；trend: T_0..T_T 或 None；seasonal: S_{1-m}..S_T 或 None。
    """

    spec: ModelSpec
    level: np.ndarray
    trend: Optional[np.ndarray]
    seasonal: Optional[np.ndarray]
    period: int

    @property
    def final_level(self) -> float:
        return float(self.level[-1])

    @property
    def final_trend(self) -> float:
        return 0.0 if self.trend is None else float(self.trend[-1])

    @property
    def last_cycle(self) -> np.ndarray:
        """最近一个完整季节周期 S_{T-m+1}..S_T；无季节时为单个中性值"""
        if self.seasonal is None:
            return np.zeros(1)
        return self.seasonal[-self.period:]

    def to_frame(self, index: pd.Index = None) -> pd.DataFrame:
        """按观测时刻 1..T 输出分量（不含种子）"""
        data = {"level": self.level[1:]}
        if self.trend is not None:
            data["trend"] = self.trend[1:]
        if self.seasonal is not None:
            data["seasonal"] = self.seasonal[self.period:]
        return pd.DataFrame(data, index=index)


@dataclass(frozen=True, eq=False)
class FittedModel:
    """拟合完成的模型：参数、状态、一步拟合值和残差"""

    series: TimeSeries
    spec: ModelSpec
    params: SmoothingParameters
    initial: InitialState
    state: ComponentState
    fitted: np.ndarray
    residuals: np.ndarray

    @property
    def nobs(self) -> int:
        return len(self.series)

    @property
    def sse(self) -> float:
        return float(np.sum(self.residuals ** 2))

    @property
    def relative_residuals(self) -> np.ndarray:
        return self.residuals / self.fitted

    @property
    def sigma2(self) -> float:
        """新息方差：加法误差为残差均方，乘法误差为相对残差均方"""
        if self.spec.error_code == ERROR_MUL:
            return float(np.mean(self.relative_residuals ** 2))
        return self.sse / self.nobs

    @property
    def loglik(self) -> float:
        """高斯新息下的对数似然"""
        n = self.nobs
        if self.sigma2 == 0:
            # 完全拟合
            return np.inf
        loglik = -0.5 * n * (np.log(2 * np.pi * self.sigma2) + 1)
        if self.spec.error_code == ERROR_MUL:
            loglik -= float(np.sum(np.log(np.abs(self.fitted))))
        return float(loglik)

    @property
    def n_parameters(self) -> int:
        # 平滑参数 + 水平种子 + 趋势种子 + 季节种子 + 方差
        count = len(self.spec.required_parameters) + 1
        if self.spec.has_trend:
            count += 1
        if self.spec.has_season:
            count += self.state.period
        return count + 1

    @property
    def aic(self) -> float:
        return -2 * self.loglik + 2 * self.n_parameters

    def fitted_series(self) -> pd.Series:
        return pd.Series(self.fitted, index=self.series.index, name="fitted")

    def summary(self) -> dict:
        out = {"model": str(self.spec), "nobs": self.nobs}
        out.update(self.params.as_dict())
        out.update({"sse": self.sse, "sigma2": self.sigma2, "loglik": self.loglik, "aic": self.aic})
        return out


def smooth(series: TimeSeries,
           spec: ModelSpec,
           params: SmoothingParameters,
           initial: Optional[InitialState] = None) -> FittedModel:
    """
    以给定参数运行状态递推

    Args:
        series: 训练序列
        spec: 模型规格
        params: 完整的平滑参数（与 spec 的分量一一对应）
        initial: 初始状态；为 None 时由前两个周期分解得到

    Returns:
        FittedModel

    Raises:
        InvalidParameterError: 参数越界、与规格不匹配，或递推产生非有限值
        NonPositiveValueError: 乘法分量遇到非正数据
        InsufficientHistoryError: 序列过短
    """
    params.check(spec)
    m = check_series(series, spec)
    if initial is None:
        initial = initial_state(series, spec)
    else:
        initial.check(spec, m)

    alpha, beta, gamma, phi = params.kernel_args()
    s0 = initial.seasonal if initial.seasonal is not None else np.zeros(1)
    b0 = initial.trend if initial.trend is not None else 0.0

    fitted, level, trend, season = ets_recursion_1d_nb(
        series.values, alpha, beta, gamma, phi, m,
        spec.trend_code, spec.season_code,
        initial.level, b0, np.asarray(s0, dtype=np.float64))

    if not (np.all(np.isfinite(fitted)) and np.all(np.isfinite(level))
            and np.all(np.isfinite(trend)) and np.all(np.isfinite(season))):
        raise InvalidParameterError(f"{spec} with {params.as_dict()} produced non-finite states",
                                    field="params", value=params.as_dict())

    state = ComponentState(spec=spec,
                           level=_readonly(level),
                           trend=_readonly(trend) if spec.has_trend else None,
                           seasonal=_readonly(season) if spec.has_season else None,
                           period=m)
    fitted = _readonly(fitted)
    return FittedModel(series=series, spec=spec, params=params, initial=initial, state=state,
                       fitted=fitted, residuals=_readonly(series.values - fitted))
