"""
Series Analysis Module

One-call descriptive analysis of a historical series without generating a full
forecast: trend, anomalies, backtest accuracy, summary statistics and growth.
"""

import numpy as np

from anomaly_detection import detect_anomalies
from forecast_accuracy import calculate_forecast_accuracy
from forecast_types import InsufficientDataError
from insight_rules import ANOMALY_RULES, ACCURACY_RULES
from series_statistics import to_array, calculate_growth_rate
from trend_analysis import analyze_trend

MIN_ANALYSIS_POINTS = 3


def summarize_statistics(data):
    """
    Descriptive statistics of a series

    Returns:
        dict: count, sum, mean, median, min, max, range, variance,
              standard_deviation, coefficient_of_variation (0 when mean is 0)
    """
    values = to_array(data)
    if len(values) == 0:
        return {
            'count': 0, 'sum': 0.0, 'mean': 0.0, 'median': 0.0, 'min': 0.0, 'max': 0.0,
            'range': 0.0, 'variance': 0.0, 'standard_deviation': 0.0,
            'coefficient_of_variation': 0.0
        }

    mean = float(values.mean())
    variance = float(values.var())
    std_dev = float(np.sqrt(variance))

    return {
        'count': len(values),
        'sum': float(values.sum()),
        'mean': mean,
        'median': float(np.median(values)),
        'min': float(values.min()),
        'max': float(values.max()),
        'range': float(values.max() - values.min()),
        'variance': variance,
        'standard_deviation': std_dev,
        'coefficient_of_variation': std_dev / mean if mean != 0 else 0.0
    }


def analyze_growth(data):
    """
    Growth profile of a series

    Returns:
        dict: total_growth (% first to last), cagr (% per period), average_growth,
              period_growth (period-over-period %, 0 where the predecessor is 0)
    """
    values = to_array(data)
    if len(values) == 0:
        return {'total_growth': 0.0, 'cagr': 0.0, 'average_growth': 0.0, 'period_growth': []}

    first_value = values[0]
    last_value = values[-1]
    total_growth = (last_value - first_value) / first_value * 100 if first_value != 0 else 0.0

    # CAGR only makes sense between two positive values
    cagr = calculate_growth_rate(first_value, last_value, len(values) - 1) if last_value > 0 else 0.0

    period_growth = [
        float((current - previous) / previous * 100) if previous != 0 else 0.0
        for previous, current in zip(values[:-1], values[1:])
    ]

    return {
        'total_growth': float(total_growth),
        'cagr': float(cagr),
        'average_growth': float(np.mean(period_growth)) if period_growth else 0.0,
        'period_growth': period_growth
    }


def analyze_series(data, trend=True, anomalies=True, accuracy=True, statistics=True, growth=True,
                   anomaly_threshold=ANOMALY_RULES['z_score_threshold'], period_labels=None,
                   reference_date=None, freq=None):
    """
    Analyze historical data without generating a full forecast

    Args:
        data: Historical values in period order (at least 3)
        trend, anomalies, accuracy, statistics, growth: Sections to include
        anomaly_threshold: Z-score threshold for anomaly detection
        period_labels, reference_date, freq: Optional period labelling

    Returns:
        dict: The requested sections; 'accuracy' only appears with 6+ points

    Raises:
        InsufficientDataError: fewer than 3 points
    """
    values = to_array(data)
    if len(values) < MIN_ANALYSIS_POINTS:
        raise InsufficientDataError("analysis", MIN_ANALYSIS_POINTS, len(values))

    results = {}
    if trend:
        results['trend'] = analyze_trend(values, period_labels, reference_date, freq)
    if anomalies:
        results['anomalies'] = detect_anomalies(values, anomaly_threshold, period_labels,
                                                reference_date, freq)
    if accuracy and len(values) >= ACCURACY_RULES['minimum_points']:
        results['accuracy'] = calculate_forecast_accuracy(values)
    if statistics:
        results['statistics'] = summarize_statistics(values)
    if growth:
        results['growth'] = analyze_growth(values)

    return results
