"""
Anomaly Detection Module

Flags outlier observations by z-score against the series mean and (population)
standard deviation, with three severity tiers:
- high:   |z| > 4
- medium: |z| > 3
- low:    |z| > threshold (default 2.5)

A constant series (std = 0) has no anomalies.
"""

import pandas as pd

from forecast_types import AnomalyRecord, Severity
from insight_rules import ANOMALY_RULES, get_severity_for_z
from series_statistics import to_array, calculate_z_score, build_history_labels


def classify_severity(abs_z_score):
    """Map |z| of a flagged observation to its Severity tier."""
    return Severity(get_severity_for_z(abs_z_score))


def detect_anomalies(data, threshold=ANOMALY_RULES['z_score_threshold'], period_labels=None,
                     reference_date=None, freq=None):
    """
    Detect anomalies in a series using the Z-score method

    Args:
        data: Historical values in period order
        threshold: |z| above which an observation is flagged (default 2.5)
        period_labels: Optional label per observation
        reference_date: Date of the last observation, used to derive labels
        freq: Period frequency for derived labels (default 1 month)

    Returns:
        list: AnomalyRecord per flagged observation, in period order
    """
    values = to_array(data)
    if len(values) == 0:
        return []

    mean = float(values.mean())
    std = float(values.std())
    if std == 0:
        return []

    labels = build_history_labels(len(values), period_labels, reference_date, freq)
    anomalies = []

    for index, value in enumerate(values):
        z_score = float(calculate_z_score(value, mean, std))
        abs_z = abs(z_score)
        if abs_z <= threshold:
            continue

        kind = 'Spike' if z_score > 0 else 'Dip'
        anomalies.append(AnomalyRecord(
            period=index,
            actual_value=float(value),
            expected_value=mean,
            deviation=float(value - mean),
            z_score=z_score,
            severity=classify_severity(abs_z),
            explanation=f"{kind} detected with z-score of {abs_z:.2f}",
            label=labels[index],
        ))

    return anomalies


def get_anomaly_summary(anomalies):
    """
    Summarize detected anomalies for display

    Args:
        anomalies: List of AnomalyRecord from detect_anomalies()

    Returns:
        dict: total, counts by severity, spike/dip counts, largest absolute deviation
    """
    if not anomalies:
        return {
            'total': 0,
            'high_count': 0,
            'medium_count': 0,
            'low_count': 0,
            'spike_count': 0,
            'dip_count': 0,
            'max_abs_deviation': 0.0
        }

    df = pd.DataFrame([a.to_dict() for a in anomalies])
    severity_counts = df['severity'].value_counts()

    return {
        'total': len(df),
        'high_count': int(severity_counts.get('high', 0)),
        'medium_count': int(severity_counts.get('medium', 0)),
        'low_count': int(severity_counts.get('low', 0)),
        'spike_count': int((df['deviation'] > 0).sum()),
        'dip_count': int((df['deviation'] < 0).sum()),
        'max_abs_deviation': float(df['deviation'].abs().max())
    }
