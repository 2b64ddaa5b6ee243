"""
Forecast Models Module

Independent single-method projections over an evenly spaced series:
- Linear trend (least squares, floored at 0)
- Moving average with per-step decay (regression toward the mean)
- Simple exponential smoothing (flat forecast)
- Holt's linear (level + trend) smoothing
- Seasonal decomposition (seasonal indices + linear trend on the deseasonalized series)

Each model returns a list of `periods` future values. Short histories degrade to a
defined forecast; only an empty history raises InsufficientDataError.

Performance Optimizations:
- Numba JIT compilation for the smoothing recursions
"""

import numpy as np
from numba import jit

from forecast_types import InsufficientDataError
from insight_rules import FORECAST_RULES
from series_statistics import to_array, fit_linear_regression


# ===== NUMBA JIT-COMPILED FUNCTIONS FOR SPEED =====

@jit(nopython=True, cache=True)
def _exp_smooth_jit(values: np.ndarray, alpha: float) -> float:
    """JIT-compiled exponential smoothing - returns the final smoothed level"""
    if len(values) == 0:
        return 0.0
    smoothed = values[0]
    for i in range(1, len(values)):
        smoothed = alpha * values[i] + (1.0 - alpha) * smoothed
    return smoothed


@jit(nopython=True, cache=True)
def _holt_jit(values: np.ndarray, alpha: float, beta: float) -> tuple:
    """JIT-compiled Holt recursion - returns the final (level, trend)"""
    n = len(values)
    level = values[0]
    trend = values[1] - values[0] if n > 1 else 0.0

    for i in range(1, n):
        new_level = alpha * values[i] + (1.0 - alpha) * (level + trend)
        trend = beta * (new_level - level) + (1.0 - beta) * trend
        level = new_level

    return level, trend


def _validate(data, periods, model_name):
    values = to_array(data)
    if len(values) == 0:
        raise InsufficientDataError(model_name, 1, 0)
    if periods < 0:
        raise ValueError(f"periods must be non-negative (got {periods})")
    return values


def _validate_smoothing(name, value):
    if not 0 < value <= 1:
        raise ValueError(f"{name} must be in (0, 1] (got {value})")


# ===== MODELS =====

def forecast_linear(data, periods):
    """
    Linear regression forecast

    Fits a least squares line to (index, value) and evaluates it at the next
    `periods` indices.

    Args:
        data: Historical values in period order
        periods: Number of future periods

    Returns:
        list: Forecast values, floored at 0
    """
    values = _validate(data, periods, "linear forecast")
    slope, intercept = fit_linear_regression(values)
    n = len(values)
    return [max(0.0, intercept + slope * (n + i)) for i in range(periods)]


def forecast_moving_average(data, periods, window=FORECAST_RULES['moving_average']['window'],
                            decay_per_step=FORECAST_RULES['moving_average']['decay_per_step']):
    """
    Moving average forecast

    Projects the mean of the last `window` observations forward, decaying it by
    `decay_per_step` each step. The decay factor never drops below 0.

    Args:
        data: Historical values in period order
        periods: Number of future periods
        window: Trailing observations in the average (default 3)
        decay_per_step: Fractional decay per forecast step (default 0.02)

    Returns:
        list: Forecast values
    """
    values = _validate(data, periods, "moving average forecast")
    if window <= 0:
        raise ValueError(f"window must be positive (got {window})")

    last_ma = float(values[-window:].mean())
    return [last_ma * max(0.0, 1 - i * decay_per_step) for i in range(periods)]


def forecast_exponential_smoothing(data, periods, alpha=FORECAST_RULES['exponential_smoothing']['alpha']):
    """
    Simple exponential smoothing forecast

    Args:
        data: Historical values in period order
        periods: Number of future periods
        alpha: Smoothing factor (0-1), higher = more weight on recent data

    Returns:
        list: The final smoothed level repeated for every period
    """
    values = _validate(data, periods, "exponential smoothing forecast")
    _validate_smoothing("alpha", alpha)
    smoothed = float(_exp_smooth_jit(values, alpha))
    return [smoothed] * periods


def forecast_holt(data, periods, alpha=FORECAST_RULES['holt']['alpha'], beta=FORECAST_RULES['holt']['beta']):
    """
    Holt's linear exponential smoothing for trending data

    Level and trend are seeded with data[0] and data[1] - data[0]; a single
    observation seeds a zero trend.

    Args:
        data: Historical values in period order
        periods: Number of future periods
        alpha: Level smoothing factor
        beta: Trend smoothing factor

    Returns:
        list: level + (i+1) * trend for each step, floored at 0
    """
    values = _validate(data, periods, "Holt forecast")
    _validate_smoothing("alpha", alpha)
    _validate_smoothing("beta", beta)

    level, trend = _holt_jit(values, alpha, beta)
    return [max(0.0, float(level + (i + 1) * trend)) for i in range(periods)]


def forecast_seasonal(data, periods, seasonal_period=FORECAST_RULES['seasonal']['period']):
    """
    Seasonal decomposition forecast

    1. Seasonal index per phase = mean of the observations in that phase,
       normalized so the indices average 1
    2. Deseasonalize, forecast the result with the linear model
    3. Re-apply the index of each future phase

    Falls back to the linear model when history is shorter than one season.

    Args:
        data: Historical values in period order
        periods: Number of future periods
        seasonal_period: Season length in periods (default 12)

    Returns:
        list: Forecast values
    """
    values = _validate(data, periods, "seasonal forecast")
    if seasonal_period <= 0:
        raise ValueError(f"seasonal_period must be positive (got {seasonal_period})")

    n = len(values)
    if n < seasonal_period:
        return forecast_linear(values, periods)

    phases = np.arange(n) % seasonal_period
    seasonal_indices = np.array([values[phases == p].mean() for p in range(seasonal_period)])

    index_mean = seasonal_indices.mean()
    if index_mean == 0:
        return forecast_linear(values, periods)
    normalized = seasonal_indices / index_mean

    # Phases averaging 0 carry no seasonal scale
    divisors = np.where(normalized[phases] == 0, 1.0, normalized[phases])
    deseasonalized = values / divisors
    trend_forecast = forecast_linear(deseasonalized, periods)

    next_phase = n % seasonal_period
    return [
        float(value * normalized[(next_phase + i) % seasonal_period])
        for i, value in enumerate(trend_forecast)
    ]


FORECAST_MODELS = {
    'linear': forecast_linear,
    'moving_average': forecast_moving_average,
    'exponential_smoothing': forecast_exponential_smoothing,
    'holt': forecast_holt,
    'seasonal': forecast_seasonal,
}


def get_forecast_model(name):
    """
    Look up a forecast model by name

    Returns:
        callable: model(data, periods) -> list
    """
    if name not in FORECAST_MODELS:
        raise ValueError(f"Unknown forecast model '{name}'. Available: {', '.join(FORECAST_MODELS)}")
    return FORECAST_MODELS[name]
