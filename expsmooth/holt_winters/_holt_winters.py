from numba import njit
import numpy as np

from expsmooth.holt_winters._spec import (
    TREND_ADD, TREND_MUL,
    SEASON_ADD, SEASON_MUL,
    ERROR_MUL,
)


@njit(cache=True)
def trend_combine_nb(level: float, trend: float, phi: float, trend_kind: int) -> float:
    """L ⊕ φT: level plus (or times) the damped trend."""
    if trend_kind == TREND_ADD:
        return level + phi * trend
    if trend_kind == TREND_MUL:
        return level * trend ** phi
    return level


@njit(cache=True)
def trend_update_nb(level: float, level_prev: float, trend_prev: float,
                    beta: float, phi: float, trend_kind: int) -> float:
    if trend_kind == TREND_ADD:
        return beta * (level - level_prev) + (1 - beta) * phi * trend_prev
    if trend_kind == TREND_MUL:
        if level_prev == 0:
            return np.nan
        return beta * (level / level_prev) + (1 - beta) * trend_prev ** phi
    return 0.0


@njit(cache=True)
def deseason_nb(y: float, s: float, season_kind: int) -> float:
    """y ⊘ S: remove the seasonal component from an observation."""
    if season_kind == SEASON_ADD:
        return y - s
    if season_kind == SEASON_MUL:
        if s == 0:
            return np.nan
        return y / s
    return y


@njit(cache=True)
def reseason_nb(x: float, s: float, season_kind: int) -> float:
    if season_kind == SEASON_ADD:
        return x + s
    if season_kind == SEASON_MUL:
        return x * s
    return x


@njit(cache=True)
def season_update_nb(y: float, level: float, s_prev: float, gamma: float, season_kind: int) -> float:
    if season_kind == SEASON_ADD:
        return gamma * (y - level) + (1 - gamma) * s_prev
    if season_kind == SEASON_MUL:
        if level == 0:
            return np.nan
        return gamma * (y / level) + (1 - gamma) * s_prev
    return s_prev


@njit(cache=True)
def damped_sum_nb(phi: float, k: int) -> float:
    """φ + φ² + … + φ^k (equals k when φ = 1)."""
    if phi == 1.0:
        return float(k)
    total = 0.0
    power = 1.0
    for _ in range(k):
        power *= phi
        total += power
    return total


@njit(cache=True)
def trend_horizon_nb(level: float, trend: float, phi: float, k: int, trend_kind: int) -> float:
    """Trend-projected level k steps after the final state."""
    k_eff = damped_sum_nb(phi, k)
    if trend_kind == TREND_ADD:
        return level + k_eff * trend
    if trend_kind == TREND_MUL:
        return level * trend ** k_eff
    return level


@njit(cache=True)
def init_state_1d_nb(a: np.ndarray, m: int, trend_kind: int, season_kind: int):
    """
    Heuristic initial state from the first two seasonal cycles.

    Parameters
    ----------
    a : 1d array
        输入时间序列，长度至少 2 * m。
    m : int
        季节长度；无季节分量时为 1。
    trend_kind, season_kind : int
        分量编码。

    Returns
    -------
    l0 : float
        时刻 0 的水平（第一周期均值回推到序列起点之前）。
    b0 : float
        时刻 0 的趋势；无趋势时为 0。
    s0 : 1d array
        S_{1-m}..S_0，加法模型和为 0，乘法模型均值为 1。
    """
    mean1 = np.mean(a[:m])
    mean2 = np.mean(a[m:2 * m])
    offset = (m + 1) / 2.0

    if trend_kind == TREND_ADD:
        b0 = (mean2 - mean1) / m
        l0 = mean1 - b0 * offset
    elif trend_kind == TREND_MUL:
        b0 = (mean2 / mean1) ** (1.0 / m)
        l0 = mean1 / b0 ** offset
    else:
        b0 = 0.0
        l0 = mean1

    s0 = np.zeros(m, dtype=np.float64)
    if season_kind == SEASON_ADD or season_kind == SEASON_MUL:
        for i in range(m):
            total = 0.0
            count = 0
            for j in range(i, 2 * m, m):
                # 去趋势后的水平，观测 j 对应时刻 j + 1
                if trend_kind == TREND_ADD:
                    detrended = l0 + b0 * (j + 1)
                elif trend_kind == TREND_MUL:
                    detrended = l0 * b0 ** (j + 1)
                else:
                    detrended = l0
                if season_kind == SEASON_MUL:
                    total += a[j] / detrended
                else:
                    total += a[j] - detrended
                count += 1
            s0[i] = total / count

        s0_mean = np.mean(s0)
        if season_kind == SEASON_MUL:
            for i in range(m):
                s0[i] = s0[i] / s0_mean
        else:
            for i in range(m):
                s0[i] -= s0_mean

    return l0, b0, s0


@njit(cache=True)
def ets_recursion_1d_nb(a: np.ndarray,
                        alpha: float,
                        beta: float,
                        gamma: float,
                        phi: float,
                        m: int,
                        trend_kind: int,
                        season_kind: int,
                        l0: float,
                        b0: float,
                        s0: np.ndarray):
    """
    Level / trend / seasonal state recursion with one-step-ahead fitted values.

    Parameters
    ----------
    a : 1d array
        输入时间序列（float），无 NaN。
    alpha, beta, gamma : float
        水平/趋势/季节 平滑参数。
    phi : float
        阻尼系数，无阻尼时为 1。
    m : int
        季节长度；无季节分量时为 1。
    l0, b0, s0 :
        初始状态种子。

    Returns
    -------
    fitted : 1d array
        一步先验拟合值，长度 n。
    level, trend : 1d array
        L_0..L_n 和 T_0..T_n，长度 n + 1。
    season : 1d array
        S_{1-m}..S_n，长度 n + m；位置 t 对应观测 t 使用的 S_{t-m}。
    """
    n = len(a)
    fitted = np.empty(n, dtype=np.float64)
    level = np.empty(n + 1, dtype=np.float64)
    trend = np.empty(n + 1, dtype=np.float64)
    season = np.empty(n + m, dtype=np.float64)

    level[0] = l0
    trend[0] = b0
    season[:m] = s0

    for t in range(n):
        s_tm = season[t]
        base = trend_combine_nb(level[t], trend[t], phi, trend_kind)
        fitted[t] = reseason_nb(base, s_tm, season_kind)

        level[t + 1] = alpha * deseason_nb(a[t], s_tm, season_kind) + (1 - alpha) * base
        trend[t + 1] = trend_update_nb(level[t + 1], level[t], trend[t], beta, phi, trend_kind)
        season[t + m] = season_update_nb(a[t], level[t + 1], s_tm, gamma, season_kind)

    return fitted, level, trend, season


@njit(cache=True)
def ets_fitted_nb(a: np.ndarray,
                  alpha: float,
                  beta: float,
                  gamma: float,
                  phi: float,
                  m: int,
                  trend_kind: int,
                  season_kind: int) -> np.ndarray:
    """
    2-dim version of `ets_recursion_1d_nb` with heuristic initialisation.

    Applies the recursion to each column and returns the fitted values only.
    """
    out = np.empty_like(a, dtype=np.float64)
    for col in range(a.shape[1]):
        l0, b0, s0 = init_state_1d_nb(a[:, col], m, trend_kind, season_kind)
        fitted, _, _, _ = ets_recursion_1d_nb(a[:, col], alpha, beta, gamma, phi, m,
                                              trend_kind, season_kind, l0, b0, s0)
        out[:, col] = fitted
    return out


@njit(cache=True)
def ets_forecast_1d_nb(level: float,
                       trend: float,
                       season_last: np.ndarray,
                       phi: float,
                       h: int,
                       trend_kind: int,
                       season_kind: int) -> np.ndarray:
    """Point forecasts for steps 1..h from the final state; seasons cycle over `season_last`."""
    m = len(season_last)
    out = np.empty(h, dtype=np.float64)
    for k in range(1, h + 1):
        base = trend_horizon_nb(level, trend, phi, k, trend_kind)
        out[k - 1] = reseason_nb(base, season_last[(k - 1) % m], season_kind)
    return out


@njit(cache=True)
def innovation_multipliers_nb(alpha: float,
                              beta: float,
                              gamma: float,
                              phi: float,
                              m: int,
                              h: int,
                              trend_kind: int,
                              season_kind: int) -> np.ndarray:
    """
    c_j, j = 1..h-1, of the additive-error forecast variance
    ``σ² (1 + Σ c_j²)``: ``c_j = α + αβ φ_j + γ(1-α) [j mod m = 0]``.
    """
    out = np.zeros(max(h - 1, 0), dtype=np.float64)
    for j in range(1, h):
        c = alpha
        if trend_kind == TREND_ADD:
            c += alpha * beta * damped_sum_nb(phi, j)
        if season_kind == SEASON_ADD and j % m == 0:
            c += gamma * (1 - alpha)
        out[j - 1] = c
    return out


@njit(cache=True)
def ets_simulate_nb(level: float,
                    trend: float,
                    season_last: np.ndarray,
                    alpha: float,
                    beta: float,
                    gamma: float,
                    phi: float,
                    trend_kind: int,
                    season_kind: int,
                    error_kind: int,
                    errors: np.ndarray) -> np.ndarray:
    """
    Simulate future sample paths from the final state.

    Parameters
    ----------
    errors : 2d array
        (路径数, h) 的新息；加法误差直接相加，乘法误差按 ŷ(1 + e) 作用。

    Returns
    -------
    paths : 2d array
        与 errors 同形状的模拟观测值。
    """
    n_paths, h = errors.shape
    m = len(season_last)
    paths = np.empty((n_paths, h), dtype=np.float64)
    season = np.empty(m, dtype=np.float64)

    for p in range(n_paths):
        l = level
        b = trend
        season[:] = season_last
        for k in range(h):
            idx = k % m
            s_k = season[idx]
            base = trend_combine_nb(l, b, phi, trend_kind)
            mu = reseason_nb(base, s_k, season_kind)
            if error_kind == ERROR_MUL:
                y = mu * (1 + errors[p, k])
            else:
                y = mu + errors[p, k]
            paths[p, k] = y

            l_new = alpha * deseason_nb(y, s_k, season_kind) + (1 - alpha) * base
            b = trend_update_nb(l_new, l, b, beta, phi, trend_kind)
            season[idx] = season_update_nb(y, l_new, s_k, gamma, season_kind)
            l = l_new
    return paths
