import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import scipy.optimize as opt
from tqdm import tqdm

from expsmooth._utils import (
    ForecastError,
    InvalidParameterError,
    NoValidConfigurationError,
    validate_span,
)
from expsmooth.accuracy import METRICS, score
from expsmooth.holt_winters._forecast import point_forecast
from expsmooth.holt_winters._spec import PARAMETER_NAMES, InitialState, ModelSpec, SmoothingParameters
from expsmooth.holt_winters._state import FittedModel, check_series, initial_state, smooth
from expsmooth.timeseries import TimeSeries, as_timeseries

logger = logging.getLogger(__name__)

OBJECTIVES = ("sse", "likelihood")

# 训练拟合时的参数搜索边界
PARAMETER_BOUNDS = {
    "alpha": (1e-4, 1.0),
    "beta": (0.0, 1.0),
    "gamma": (0.0, 1.0),
    "phi": (0.8, 0.98),
}


@dataclass
class OptimizerConfig:
    """参数优化配置"""
    method: str = "L-BFGS-B"
    options: Dict[str, Any] = field(default_factory=lambda: {
        'ftol': 1e-9,
        'gtol': 1e-6,
        'maxiter': 1000,
        'maxfun': 10000,
    })
    bounds: Dict[str, Tuple[float, float]] = field(default_factory=lambda: dict(PARAMETER_BOUNDS))
    grid_size: int = 100
    n_starts: int = 1
    seed: int = 0
    max_workers: Optional[int] = None
    show_progress: bool = False
    penalty: float = 1e10  # 计算失败时的目标函数值


@dataclass(frozen=True, eq=False)
class GridSearchResult:
    """单参数网格搜索结果：最优取值、对应模型和完整 (取值, 得分) 曲线"""

    parameter: str
    best_value: float
    best_score: float
    metric: str
    params: SmoothingParameters
    model: FittedModel
    curve: pd.DataFrame

    @property
    def valid_curve(self) -> pd.DataFrame:
        return self.curve[self.curve["valid"]]


def _coerce(series: Any, spec: Union[ModelSpec, str], params: Any = None, period: Optional[int] = None):
    series = as_timeseries(series, period)
    if isinstance(spec, str):
        spec = ModelSpec.parse(spec)
    if params is None or isinstance(params, dict):
        params = SmoothingParameters.from_dict(params)
    return series, spec, params


def _check_known(params: SmoothingParameters, spec: ModelSpec) -> None:
    for name, value in params.as_dict().items():
        if name not in spec.required_parameters:
            raise InvalidParameterError(f"{name} given but {spec} has no matching component",
                                        field=name, value=value)


def _parallel_map(func: Callable, items: Sequence, max_workers: Optional[int] = None,
                  show_progress: bool = False, desc: str = None) -> List:
    """
    依次或并行地对 items 求值，结果按输入顺序返回

    max_workers > 1 时使用进程池，func 必须可被 pickle（模块级函数或其 partial）。
    """
    if not max_workers or max_workers <= 1 or len(items) <= 1:
        return [func(item) for item in tqdm(items, desc=desc, disable=not show_progress)]

    results = [None] * len(items)
    with ProcessPoolExecutor(max_workers=min(len(items), max_workers)) as executor:
        futures = {executor.submit(func, item): i for i, item in enumerate(items)}
        for future in tqdm(as_completed(futures), total=len(futures), desc=desc, disable=not show_progress):
            results[futures[future]] = future.result()
    return results


def initial_guess(spec: ModelSpec, period: int) -> Dict[str, float]:
    """
    按季节长度给出经验初始猜测
    """
    if not spec.has_season or period <= 7:
        # 短周期：较高的alpha(跟踪快)，较低的beta和gamma
        guess = {"alpha": 0.3, "beta": 0.05, "gamma": 0.1}
    elif period <= 15:
        guess = {"alpha": 0.2, "beta": 0.1, "gamma": 0.3}
    else:
        # 长周期：较低的alpha(平滑)，较高的beta和gamma
        guess = {"alpha": 0.1, "beta": 0.15, "gamma": 0.4}
    guess["phi"] = 0.95
    return guess


def objective_value(model: FittedModel, objective: str = "sse") -> float:
    """训练目标：一步预测误差平方和，或高斯负对数似然"""
    if objective == "sse":
        return model.sse
    if objective == "likelihood":
        return -model.loglik
    raise InvalidParameterError(f"objective must be one of {OBJECTIVES}, got {objective!r}",
                                field="objective", value=objective)


def _local_objective(x: np.ndarray, series: TimeSeries, spec: ModelSpec, fixed: SmoothingParameters,
                     free: Tuple[str, ...], initial: InitialState, objective: str, penalty: float) -> float:
    try:
        params = fixed.replace(**dict(zip(free, (float(v) for v in x))))
        value = objective_value(smooth(series, spec, params, initial), objective)
    except ForecastError:
        return penalty
    return value if np.isfinite(value) else penalty


def _minimize_from(start: Tuple[float, ...], series: TimeSeries, spec: ModelSpec, fixed: SmoothingParameters,
                   free: Tuple[str, ...], initial: InitialState, objective: str,
                   config: OptimizerConfig) -> Dict[str, Any]:
    """单个初始点的最小化，用于并行计算"""
    bounds = [config.bounds[name] for name in free]
    res = opt.minimize(_local_objective,
                       np.asarray(start, dtype=float),
                       args=(series, spec, fixed, free, initial, objective, config.penalty),
                       bounds=bounds,
                       method=config.method,
                       options=config.options)
    return {
        'start': start,
        'success': bool(res.success),
        'fun': float(res.fun),
        'x': np.clip(res.x, [b[0] for b in bounds], [b[1] for b in bounds]),
        'message': str(res.message),
    }


def _start_points(spec: ModelSpec, period: int, free: Tuple[str, ...], config: OptimizerConfig) -> List[Tuple]:
    guess = initial_guess(spec, period)
    starts = [tuple(float(np.clip(guess[name], *config.bounds[name])) for name in free)]
    rng = np.random.default_rng(config.seed)
    for _ in range(max(config.n_starts, 1) - 1):
        starts.append(tuple(float(rng.uniform(*config.bounds[name])) for name in free))
    return starts


def estimate_parameters(series: Any,
                        spec: Union[ModelSpec, str],
                        fixed: Union[SmoothingParameters, Dict[str, float], None] = None,
                        objective: str = "sse",
                        initial: Optional[InitialState] = None,
                        config: Optional[OptimizerConfig] = None) -> Tuple[SmoothingParameters, float]:
    """
    训练拟合：在训练序列上最小化一步预测误差平方和（或负对数似然）

    Args:
        series: 训练序列
        spec: 模型规格
        fixed: 固定的参数，其余 spec 需要的参数参与优化
        objective: "sse" 或 "likelihood"
        initial: 初始状态，为 None 时使用分解得到的种子
        config: 优化配置

    Returns:
        (最优参数, 目标函数值)

    Raises:
        NoValidConfigurationError: 所有初始点都无法得到有效模型
    """
    series, spec, fixed = _coerce(series, spec, fixed)
    config = config or OptimizerConfig()
    if objective not in OBJECTIVES:
        raise InvalidParameterError(f"objective must be one of {OBJECTIVES}, got {objective!r}",
                                    field="objective", value=objective)
    _check_known(fixed, spec)

    # 数据本身的错误直接抛出，不进入优化循环
    check_series(series, spec)
    initial = initial or initial_state(series, spec)

    free = fixed.missing(spec)
    if not free:
        return fixed, objective_value(smooth(series, spec, fixed, initial), objective)

    starts = _start_points(spec, series.period, free, config)
    logger.debug(f"{spec}: 优化 {free}，初始点 {len(starts)} 个")

    worker = partial(_minimize_from, series=series, spec=spec, fixed=fixed, free=free,
                     initial=initial, objective=objective, config=config)
    results = _parallel_map(worker, starts, config.max_workers, config.show_progress,
                            desc=f"Estimating {spec}")

    converged = [r for r in results if r['success']]
    if not converged:
        logger.warning(f"{spec}: 所有初始点均未收敛，使用目标值最小的结果")
        converged = results
    best = min(converged, key=lambda r: r['fun'])
    if best['fun'] >= config.penalty:
        raise NoValidConfigurationError(f"no valid parameters found for {spec}", field="params")

    params = fixed.replace(**dict(zip(free, (float(v) for v in best['x']))))
    logger.info(f"{spec}: {params.as_dict()}, {objective}={best['fun']:.6f}")
    return params, best['fun']


def fit(series: Any,
        spec: Union[ModelSpec, str],
        params: Union[SmoothingParameters, Dict[str, float], None] = None,
        initial: Optional[InitialState] = None,
        objective: str = "sse",
        config: Optional[OptimizerConfig] = None,
        period: Optional[int] = None) -> FittedModel:
    """
    拟合指数平滑模型

    Args:
        series: TimeSeries、pandas Series 或一维数组
        spec: ModelSpec 或简写（如 "AAdM"）
        params: 平滑参数；缺失的参数通过训练拟合估计
        initial: 初始状态，为 None 时由前两个周期分解得到
        objective: 估计参数时的目标函数
        config: 优化配置
        period: 季节周期；为 None 时沿用 TimeSeries 自带周期

    Returns:
        FittedModel
    """
    series, spec, params = _coerce(series, spec, params, period)
    _check_known(params, spec)
    if params.missing(spec):
        params, _ = estimate_parameters(series, spec, params, objective, initial, config)
    return smooth(series, spec, params, initial)


def default_grid(name: str, size: int = 100) -> np.ndarray:
    """参数有效区间上的稠密网格，alpha 和 phi 不含 0"""
    if name not in PARAMETER_NAMES:
        raise InvalidParameterError(f"Unknown smoothing parameter {name!r}", field="target", value=name)
    grid = np.linspace(0.0, 1.0, size + 1)
    return grid[1:] if name in ("alpha", "phi") else grid


def _evaluate_grid_point(value: float, train: TimeSeries, spec: ModelSpec, base: Dict[str, float],
                         target: str, actuals: np.ndarray, horizon: int, offset: int,
                         metric: str) -> Dict[str, Any]:
    """在一个网格点上重新拟合、预测并评分，失败记为无效"""
    try:
        params = SmoothingParameters(**{**base, target: value})
        model = smooth(train, spec, params)
        preds = point_forecast(model, horizon)[offset:]
        point_score = score(preds, actuals, metric)
    except ForecastError as e:
        logger.debug(f"{target}={value}: {type(e).__name__}: {e}")
        return {"value": value, "score": np.nan, "valid": False, "error": f"{type(e).__name__}: {e}"}

    if not np.isfinite(point_score):
        return {"value": value, "score": np.nan, "valid": False, "error": "non-finite score"}
    return {"value": value, "score": point_score, "valid": True, "error": None}


def optimize_parameter(series: Any,
                       spec: Union[ModelSpec, str],
                       target: str,
                       train_span: Union[slice, Tuple[int, int]],
                       test_span: Union[slice, Tuple[int, int]],
                       values: Optional[Iterable[float]] = None,
                       params: Union[SmoothingParameters, Dict[str, float], None] = None,
                       metric: str = "rmse",
                       objective: str = "sse",
                       max_workers: Optional[int] = None,
                       config: Optional[OptimizerConfig] = None) -> GridSearchResult:
    """
    单参数网格搜索

    固定其余参数（给定值，或在训练区间上估计一次），对 target 的每个网格点在训练区间
    重新拟合，预测到测试区间末尾，按 metric 评分。

    Args:
        series: 完整序列
        spec: 模型规格
        target: 搜索的参数名
        train_span: 训练区间（位置），拟合只使用该区间数据
        test_span: 测试区间，起点不得早于训练区间终点
        values: 网格点；为 None 时使用 default_grid
        params: 其余参数的固定值
        metric: "rmse"、"mae" 或 "mape"
        objective: 估计缺失参数时的训练目标
        max_workers: 并行进程数，None 使用 config.max_workers
        config: 优化配置

    Returns:
        GridSearchResult，最小得分并列时取最小的参数值

    Raises:
        InvalidParameterError: target 不属于 spec，或测试区间与训练区间重叠
        NoValidConfigurationError: 所有网格点均失败
    """
    series, spec, params = _coerce(series, spec, params)
    config = config or OptimizerConfig()
    _check_known(params, spec)
    if target not in spec.required_parameters:
        raise InvalidParameterError(f"{target!r} is not a parameter of {spec}", field="target", value=target)
    if metric.lower() not in METRICS:
        raise InvalidParameterError(f"metric must be one of {METRICS}, got {metric!r}", field="metric", value=metric)

    n = len(series)
    train_start, train_stop = validate_span(train_span, n, "train_span")
    test_start, test_stop = validate_span(test_span, n, "test_span")
    if test_start < train_stop:
        raise InvalidParameterError(
            f"test span [{test_start}, {test_stop}) overlaps training span [{train_start}, {train_stop})",
            field="test_span", value=test_span)

    train = series.slice((train_start, train_stop))
    actuals = np.array(series.values[test_start:test_stop])
    horizon = test_stop - train_stop
    offset = test_start - train_stop

    base = params.replace(**{target: None})
    others = tuple(name for name in base.missing(spec) if name != target)
    if others:
        try:
            estimated, _ = estimate_parameters(train, spec, base, objective, config=config)
        except ForecastError as e:
            # 训练区间无法拟合时，所有网格点都不可能有效
            raise NoValidConfigurationError(
                f"no valid configuration found for {target}: estimating {others} failed ({type(e).__name__}: {e})",
                field=target) from e
        base = base.replace(**{name: getattr(estimated, name) for name in others})
        logger.info(f"{spec}: 固定参数 {base.as_dict()} 由训练区间估计")

    grid = default_grid(target, config.grid_size) if values is None else np.asarray(list(values), dtype=float)
    if grid.size == 0:
        raise InvalidParameterError("values must not be empty", field="values")

    worker = partial(_evaluate_grid_point, train=train, spec=spec, base=base.as_dict(), target=target,
                     actuals=actuals, horizon=horizon, offset=offset, metric=metric)
    rows = _parallel_map(worker, [float(v) for v in grid],
                         max_workers if max_workers is not None else config.max_workers,
                         config.show_progress, desc=f"Grid search {target}")

    curve = pd.DataFrame(rows, columns=["value", "score", "valid", "error"])
    curve = curve.sort_values("value", kind="mergesort").reset_index(drop=True)
    valid = curve[curve["valid"]]
    if valid.empty:
        raise NoValidConfigurationError(f"no valid configuration found for {target} over {len(curve)} grid points",
                                        field=target)

    best_score = float(valid["score"].min())
    best_value = float(valid.loc[valid["score"] == best_score, "value"].min())
    logger.info(f"{spec}: {target}={best_value:.6f}, {metric}={best_score:.6f} "
                f"({len(valid)}/{len(curve)} 有效网格点)")

    best_params = base.replace(**{target: best_value})
    return GridSearchResult(parameter=target, best_value=best_value, best_score=best_score, metric=metric,
                            params=best_params, model=smooth(train, spec, best_params), curve=curve)


def _estimate_for_period(period: int, series: TimeSeries, spec: ModelSpec, fixed: SmoothingParameters,
                         objective: str, config: OptimizerConfig) -> Dict[str, Any]:
    """单个季节长度的训练拟合，用于并行计算"""
    try:
        params, value = estimate_parameters(series.with_period(period), spec, fixed, objective, config=config)
    except ForecastError as e:
        logger.debug(f"period={period}: {type(e).__name__}: {e}")
        return {'period': period, 'params': None, 'fun': np.inf}
    return {'period': period, 'params': params, 'fun': value}


def select_period(series: Any,
                  spec: Union[ModelSpec, str],
                  periods: Iterable[int],
                  fixed: Union[SmoothingParameters, Dict[str, float], None] = None,
                  objective: str = "sse",
                  config: Optional[OptimizerConfig] = None) -> Tuple[int, SmoothingParameters, float]:
    """
    在候选季节长度中选择训练目标最小者

    Returns:
        (最优季节长度, 最优参数, 目标函数值)

    Raises:
        InvalidParameterError: spec 不含季节分量
        NoValidConfigurationError: 所有季节长度均失败
    """
    series, spec, fixed = _coerce(series, spec, fixed)
    config = config or OptimizerConfig()
    if not spec.has_season:
        raise InvalidParameterError(f"{spec} has no seasonal component", field="spec")

    # 每个季节长度内部串行优化，并行只发生在季节长度之间
    inner = OptimizerConfig(**{**config.__dict__, 'max_workers': None, 'show_progress': False})
    worker = partial(_estimate_for_period, series=series, spec=spec, fixed=fixed,
                     objective=objective, config=inner)
    results = _parallel_map(worker, list(periods), config.max_workers, config.show_progress,
                            desc=f"Optimizing seasons for {spec}")

    results = [r for r in results if r['params'] is not None]
    if not results:
        raise NoValidConfigurationError(f"no valid seasonal period found for {spec}", field="period")
    best = min(results, key=lambda r: (r['fun'], r['period']))
    return best['period'], best['params'], best['fun']
