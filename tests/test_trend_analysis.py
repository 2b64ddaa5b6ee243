"""
Tests for trend, seasonality and breakpoint analysis
"""

import pytest
import pandas as pd

from forecast_types import TrendDirection, BreakpointType
from trend_analysis import (
    analyze_trend,
    calculate_autocorrelation,
    detect_seasonality,
    detect_change_point,
)


class TestTrendDirection:
    """Test direction, strength and change rate"""

    def test_increasing_series_is_up(self, increasing_series):
        """Test that a strictly increasing series trends up"""
        trend = analyze_trend(increasing_series)
        assert trend.direction == TrendDirection.UP
        assert trend.strength > 0
        assert trend.strength == pytest.approx(1.0)

    def test_decreasing_series_is_down(self, increasing_series):
        """Test that a strictly decreasing series trends down"""
        trend = analyze_trend(list(reversed(increasing_series)))
        assert trend.direction == TrendDirection.DOWN
        assert trend.change_rate < 0

    def test_constant_series_is_stable(self, constant_series):
        """Test that a flat series is stable with no strength"""
        trend = analyze_trend(constant_series)
        assert trend.direction == TrendDirection.STABLE
        assert trend.strength == pytest.approx(0.0)
        assert trend.change_rate == pytest.approx(0.0)

    def test_change_rate_is_percent_of_mean(self):
        """Test change rate as slope over mean"""
        # slope 10, mean 125
        trend = analyze_trend([100, 110, 120, 130, 140, 150])
        assert trend.change_rate == pytest.approx(8.0)

    def test_short_series_defaults(self):
        """Test that a single point yields the default analysis"""
        trend = analyze_trend([5])
        assert trend.direction == TrendDirection.STABLE
        assert trend.breakpoints == []
        assert not trend.seasonality.detected


class TestSeasonality:
    """Test autocorrelation-based seasonality detection"""

    def test_twelve_period_pattern(self, seasonal_series):
        """Test that a repeating 12-period pattern is found"""
        seasonality = detect_seasonality(seasonal_series)
        assert seasonality.detected
        assert seasonality.period == 12
        assert seasonality.amplitude == pytest.approx(1.0)

    def test_trend_analysis_reports_seasonality(self, seasonal_series):
        """Test that analyze_trend carries the seasonality result"""
        assert analyze_trend(seasonal_series * 2).seasonality.period == 12

    def test_too_short_for_seasonality(self):
        """Test that fewer than 12 points is never seasonal"""
        assert not detect_seasonality([1, 5, 1, 5, 1, 5, 1, 5, 1, 5, 1]).detected

    def test_autocorrelation_lag_beyond_length(self):
        """Test that a lag at least as long as the series gives 0"""
        assert calculate_autocorrelation([1, 2, 3], 3) == 0.0


class TestChangePoint:
    """Test level shift detection"""

    def test_level_shift_detected(self, level_shift_series):
        """Test that a jump in level is found at the first shifted index"""
        change_point = detect_change_point(level_shift_series)
        assert change_point['index'] == 6
        assert change_point['type'] == BreakpointType.INCREASE
        assert change_point['after_mean'] > change_point['before_mean']

    def test_level_drop_detected(self, level_shift_series):
        """Test that a drop in level is a decrease"""
        change_point = detect_change_point(list(reversed(level_shift_series)))
        assert change_point['type'] == BreakpointType.DECREASE

    def test_no_shift_in_noisy_flat_series(self):
        """Test that small fluctuations stay below one standard deviation"""
        assert detect_change_point([10, 11, 9, 10, 11, 10, 9, 10, 11, 10, 9, 10]) is None

    @pytest.mark.parametrize("value", [0.1, 0.3, 7.7])
    def test_no_shift_in_constant_float_series(self, value):
        """Test that rounding noise in a flat series is not a level shift"""
        assert detect_change_point([value] * 12) is None
        assert analyze_trend([value] * 12).breakpoints == []

    def test_short_series(self):
        """Test that fewer than 6 points has no breakpoint"""
        assert detect_change_point([1, 1, 50, 50, 50]) is None

    def test_breakpoint_carries_label(self, level_shift_series, monthly_labels):
        """Test that breakpoints are labelled with the caller's periods"""
        trend = analyze_trend(level_shift_series, period_labels=monthly_labels)
        assert len(trend.breakpoints) == 1
        breakpoint = trend.breakpoints[0]
        assert breakpoint.period == 6
        assert breakpoint.label == pd.Timestamp('2024-01-01')
        assert breakpoint.magnitude > 0
