"""
Series Statistics Module

Primitive statistics over numeric series used by every forecasting and insight
component. All functions are pure and never divide by zero: a zero denominator
returns a defined sentinel (0) instead of NaN/inf.

Performance Optimizations:
- Numba JIT compilation for the regression and correlation sums
"""

import numpy as np
import pandas as pd
from numba import jit

# Variance terms below this are treated as zero (constant series)
_VARIANCE_EPSILON = 1e-12


# ===== NUMBA JIT-COMPILED FUNCTIONS FOR SPEED =====

@jit(nopython=True, cache=True)
def _linear_regression_jit(values: np.ndarray) -> tuple:
    """JIT-compiled least squares fit of values against their index - returns (slope, intercept)"""
    n = len(values)
    if n == 0:
        return 0.0, 0.0
    if n == 1:
        return 0.0, values[0]

    sum_x = 0.0
    sum_y = 0.0
    sum_xy = 0.0
    sum_xx = 0.0

    for i in range(n):
        x = float(i)
        y = values[i]
        sum_x += x
        sum_y += y
        sum_xy += x * y
        sum_xx += x * x

    denominator = n * sum_xx - sum_x * sum_x
    if abs(denominator) < 1e-10:
        return 0.0, sum_y / n

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


@jit(nopython=True, cache=True)
def _correlation_jit(x: np.ndarray, y: np.ndarray) -> float:
    """JIT-compiled Pearson correlation on centered sums"""
    n = len(x)
    mean_x = 0.0
    mean_y = 0.0
    for i in range(n):
        mean_x += x[i]
        mean_y += y[i]
    mean_x /= n
    mean_y /= n

    cov = 0.0
    var_x = 0.0
    var_y = 0.0
    for i in range(n):
        dx = x[i] - mean_x
        dy = y[i] - mean_y
        cov += dx * dy
        var_x += dx * dx
        var_y += dy * dy

    if var_x <= _VARIANCE_EPSILON or var_y <= _VARIANCE_EPSILON:
        return 0.0

    r = cov / np.sqrt(var_x * var_y)
    # Clip float noise
    if r > 1.0:
        return 1.0
    if r < -1.0:
        return -1.0
    return r


def to_array(data) -> np.ndarray:
    """Convert any numeric sequence (list, tuple, Series, ndarray) to a float64 array."""
    return np.asarray(data, dtype=np.float64).ravel()


# ===== PRIMITIVE STATISTICS =====

def calculate_mean(data):
    """
    Arithmetic mean of a series

    Returns:
        float: Mean value, 0.0 for an empty series
    """
    values = to_array(data)
    if len(values) == 0:
        return 0.0
    return float(values.mean())


def calculate_standard_deviation(data):
    """
    Population standard deviation of a series

    Returns:
        float: Standard deviation, 0.0 for an empty series
    """
    values = to_array(data)
    if len(values) == 0:
        return 0.0
    return float(values.std())


def calculate_percentage_change(current, previous):
    """
    Percentage change from previous to current

    Args:
        current: Current value
        previous: Previous value

    Returns:
        float: Percent change; 100 when previous is 0 and current grew, 0 when both are 0
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def calculate_z_score(value, mean, std_dev):
    """Number of standard deviations value lies from mean; 0 when std_dev is 0."""
    if std_dev == 0:
        return 0.0
    return (value - mean) / std_dev


def calculate_correlation(x, y):
    """
    Pearson correlation coefficient between two series

    Args:
        x: First series
        y: Second series

    Returns:
        float: Correlation in [-1, 1]; 0 for unequal/zero lengths or a zero denominator
    """
    x_values = to_array(x)
    y_values = to_array(y)
    if len(x_values) != len(y_values) or len(x_values) == 0:
        return 0.0
    return float(_correlation_jit(x_values, y_values))


def calculate_growth_rate(start_value, end_value, periods):
    """
    Compound growth rate per period (CAGR-style)

    Args:
        start_value: Value at the start of the window
        end_value: Value at the end of the window
        periods: Number of compounding periods

    Returns:
        float: Growth rate in percent per period; 0 when start <= 0, end < 0 or periods <= 0
    """
    if start_value <= 0 or periods <= 0 or end_value < 0:
        return 0.0
    return ((end_value / start_value) ** (1 / periods) - 1) * 100


def calculate_coefficient_of_variation(data):
    """Standard deviation relative to the mean (as a fraction); 0 when the mean is 0."""
    mean = calculate_mean(data)
    if mean == 0:
        return 0.0
    return calculate_standard_deviation(data) / mean


def calculate_moving_average(data, window):
    """
    Trailing moving average series

    The first window-1 points have no full window and are passed through unchanged.

    Args:
        data: Series of values
        window: Number of trailing observations to average

    Returns:
        list: Moving average series, same length as data
    """
    if window <= 0:
        raise ValueError(f"window must be positive (got {window})")
    values = to_array(data)
    rolling = pd.Series(values).rolling(window=window).mean()
    result = np.where(rolling.isna(), values, rolling)
    return result.tolist()


def fit_linear_regression(data):
    """
    Ordinary least squares fit of (index, value) pairs

    Args:
        data: Series of values, implicitly at x = 0, 1, 2, ...

    Returns:
        tuple: (slope, intercept)
    """
    slope, intercept = _linear_regression_jit(to_array(data))
    return float(slope), float(intercept)


def aggregate_by_period(df, period, value_col, date_col='date'):
    """
    Average a dated series into day, week or month buckets

    Weeks start on Sunday; months are keyed by their first day.

    Args:
        df: DataFrame with a date column and a numeric value column
        period: 'day', 'week' or 'month'
        value_col: Name of the value column to average
        date_col: Name of the date column

    Returns:
        pd.DataFrame: Columns [date_col, value_col], one row per bucket in date order
    """
    if df.empty:
        return pd.DataFrame(columns=[date_col, value_col])

    work = df[[date_col, value_col]].copy()
    work[date_col] = pd.to_datetime(work[date_col], errors='coerce')
    work = work[work[date_col].notna()]

    if period == 'week':
        work[date_col] = work[date_col].dt.to_period('W-SAT').dt.start_time
    elif period == 'month':
        work[date_col] = work[date_col].dt.to_period('M').dt.to_timestamp()
    elif period == 'day':
        work[date_col] = work[date_col].dt.normalize()
    else:
        raise ValueError(f"Unknown aggregation period: {period}")

    return work.groupby(date_col, as_index=False)[value_col].mean()


# ===== PERIOD LABELS =====
# Observations are implicitly periodic. Calendar labels are only attached when the
# caller supplies them, or supplies the date of the last observation plus a frequency.

DEFAULT_PERIOD_FREQ = pd.DateOffset(months=1)


def _shift_date(reference, offset, steps):
    if steps == 0:
        return reference
    if steps > 0:
        return reference + offset * steps
    return reference - offset * (-steps)


def build_history_labels(n, period_labels=None, reference_date=None, freq=None):
    """
    Label each of n historical observations

    Args:
        n: Number of observations
        period_labels: Optional explicit labels (one per observation), returned as a list
        reference_date: Date of the LAST observation, used when no labels are given
        freq: pandas offset or alias between observations (default: 1 calendar month)

    Returns:
        list: n labels, or n Nones when neither labels nor reference_date are supplied
    """
    if period_labels is not None:
        labels = list(period_labels)
        if len(labels) != n:
            raise ValueError(f"Expected {n} period labels, got {len(labels)}")
        return labels
    if reference_date is None:
        return [None] * n

    reference = pd.Timestamp(reference_date)
    offset = pd.tseries.frequencies.to_offset(freq if freq is not None else DEFAULT_PERIOD_FREQ)
    return [_shift_date(reference, offset, index - (n - 1)) for index in range(n)]


def build_future_labels(periods, reference_date=None, freq=None):
    """
    Label forecast steps 1..periods after the last observation

    Returns:
        list: Timestamps reference_date + (i+1)*freq, or Nones when reference_date is missing
    """
    if reference_date is None:
        return [None] * periods

    reference = pd.Timestamp(reference_date)
    offset = pd.tseries.frequencies.to_offset(freq if freq is not None else DEFAULT_PERIOD_FREQ)
    return [_shift_date(reference, offset, step + 1) for step in range(periods)]
