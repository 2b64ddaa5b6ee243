"""
Trend Analysis Module

Characterizes a series by:
- Direction and strength of its linear trend
- Change rate (percent of the mean per period)
- Seasonality, detected by autocorrelation at candidate lags (4, 6, 12)
- Structural breakpoints (level shifts), found by a difference-in-means scan

Short series degrade gracefully: seasonality is reported as not detected and no
breakpoints are reported rather than raising.
"""

import numpy as np
from numba import jit

from forecast_types import TrendAnalysis, TrendDirection, Seasonality, Breakpoint, BreakpointType
from insight_rules import TREND_RULES
from series_statistics import (
    to_array,
    fit_linear_regression,
    calculate_correlation,
    calculate_standard_deviation,
    build_history_labels,
)


@jit(nopython=True, cache=True)
def _change_point_scan_jit(values: np.ndarray, margin: int) -> tuple:
    """
    JIT-compiled level shift scan - returns (split_index, max_abs_mean_difference).

    Split i compares mean(values[:i]) with mean(values[i:]) for margin <= i < n - margin.
    split_index is -1 when no split improves on a difference of 0.
    """
    n = len(values)
    total = 0.0
    for i in range(n):
        total += values[i]

    prefix = 0.0
    for i in range(margin):
        prefix += values[i]

    max_diff = 0.0
    change_index = -1
    for i in range(margin, n - margin):
        before_mean = prefix / i
        after_mean = (total - prefix) / (n - i)
        diff = abs(after_mean - before_mean)
        if diff > max_diff:
            max_diff = diff
            change_index = i
        prefix += values[i]

    return change_index, max_diff


def calculate_autocorrelation(data, lag):
    """
    Correlation between a series and itself shifted by `lag` periods

    Returns:
        float: Autocorrelation, 0 when the series is not longer than the lag
    """
    values = to_array(data)
    if lag <= 0 or len(values) <= lag:
        return 0.0
    return calculate_correlation(values[:len(values) - lag], values[lag:])


def detect_seasonality(data, candidate_periods=None):
    """
    Detect a repeating seasonal cycle

    Each candidate period is tested only when the series covers at least two full
    cycles; the candidate with the highest autocorrelation above the minimum wins
    (earlier candidates win ties).

    Args:
        data: Historical values in period order
        candidate_periods: Lags to test (default 4, 6, 12)

    Returns:
        Seasonality: detected flag, period and amplitude (autocorrelation at the period)
    """
    rules = TREND_RULES['seasonality']
    values = to_array(data)
    if len(values) < rules['minimum_points']:
        return Seasonality(detected=False)

    best_period = 0
    best_correlation = 0.0

    for period in candidate_periods or rules['candidate_periods']:
        if len(values) < period * 2:
            continue
        autocorr = calculate_autocorrelation(values, period)
        if autocorr > best_correlation and autocorr > rules['min_autocorrelation']:
            best_correlation = autocorr
            best_period = period

    if best_period == 0:
        return Seasonality(detected=False)
    return Seasonality(detected=True, period=best_period, amplitude=best_correlation)


def detect_change_point(data):
    """
    Find the most significant level shift in a series

    The split maximizing |mean(after) - mean(before)| is reported only when that
    difference exceeds the series standard deviation.

    Args:
        data: Historical values in period order

    Returns:
        dict or None: {'index': int, 'type': BreakpointType, 'before_mean', 'after_mean'}
    """
    rules = TREND_RULES['change_point']
    values = to_array(data)
    if len(values) < rules['minimum_points']:
        return None

    std_dev = calculate_standard_deviation(values)
    if std_dev <= rules['flat_tolerance']:
        return None

    change_index, max_diff = _change_point_scan_jit(values, rules['edge_margin'])
    if change_index <= 0 or max_diff <= std_dev:
        return None

    before_mean = float(values[:change_index].mean())
    after_mean = float(values[change_index:].mean())
    return {
        'index': int(change_index),
        'type': BreakpointType.INCREASE if after_mean > before_mean else BreakpointType.DECREASE,
        'before_mean': before_mean,
        'after_mean': after_mean,
    }


def analyze_trend(data, period_labels=None, reference_date=None, freq=None):
    """
    Analyze the trend of a series

    Args:
        data: Historical values in period order
        period_labels: Optional label per observation (attached to breakpoints)
        reference_date: Date of the last observation, used to derive labels
        freq: Period frequency for derived labels (default 1 month)

    Returns:
        TrendAnalysis: direction, strength, change_rate, seasonality, breakpoints
    """
    values = to_array(data)
    if len(values) < 2:
        return TrendAnalysis()

    slope, intercept = fit_linear_regression(values)
    data_mean = float(values.mean())
    normalized_slope = slope / data_mean if data_mean != 0 else 0.0

    threshold = TREND_RULES['direction_threshold']
    if normalized_slope > threshold:
        direction = TrendDirection.UP
    elif normalized_slope < -threshold:
        direction = TrendDirection.DOWN
    else:
        direction = TrendDirection.STABLE

    fitted = intercept + slope * np.arange(len(values))
    strength = abs(calculate_correlation(values, fitted))

    breakpoints = []
    change_point = detect_change_point(values)
    if change_point is not None:
        labels = build_history_labels(len(values), period_labels, reference_date, freq)
        breakpoints.append(Breakpoint(
            period=change_point['index'],
            type=change_point['type'],
            magnitude=abs(slope),
            label=labels[change_point['index']],
        ))

    return TrendAnalysis(
        direction=direction,
        strength=strength,
        change_rate=normalized_slope * 100,
        seasonality=detect_seasonality(values),
        breakpoints=breakpoints,
    )
