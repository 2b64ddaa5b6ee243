"""
Tests for series statistics primitives and period labelling
"""

import pytest
import pandas as pd
import numpy as np

from series_statistics import (
    calculate_mean,
    calculate_standard_deviation,
    calculate_percentage_change,
    calculate_z_score,
    calculate_correlation,
    calculate_growth_rate,
    calculate_coefficient_of_variation,
    calculate_moving_average,
    fit_linear_regression,
    aggregate_by_period,
    build_history_labels,
    build_future_labels,
)


class TestPrimitiveStatistics:
    """Test zero-safe primitive statistics"""

    def test_mean_and_std_of_empty_series(self):
        """Test that an empty series yields 0 instead of NaN"""
        assert calculate_mean([]) == 0.0
        assert calculate_standard_deviation([]) == 0.0

    def test_standard_deviation_is_population(self):
        """Test that the standard deviation divides by n"""
        assert calculate_standard_deviation([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)

    def test_percentage_change_from_zero(self):
        """Test the zero-denominator sentinels"""
        assert calculate_percentage_change(50, 0) == 100
        assert calculate_percentage_change(0, 0) == 0
        assert calculate_percentage_change(-5, 0) == 0

    def test_percentage_change_regular(self):
        """Test a regular percentage change"""
        assert calculate_percentage_change(115, 100) == pytest.approx(15.0)
        assert calculate_percentage_change(85, 100) == pytest.approx(-15.0)

    def test_z_score_with_zero_std(self):
        """Test that a zero standard deviation gives a z-score of 0"""
        assert calculate_z_score(42, 10, 0) == 0
        assert calculate_z_score(-3, 7, 0) == 0

    def test_z_score_regular(self):
        """Test a regular z-score"""
        assert calculate_z_score(13, 10, 1.5) == pytest.approx(2.0)

    def test_correlation_perfect(self):
        """Test perfect positive and negative correlation"""
        x = [1, 2, 3, 4, 5]
        assert calculate_correlation(x, [2, 4, 6, 8, 10]) == pytest.approx(1.0)
        assert calculate_correlation(x, [10, 8, 6, 4, 2]) == pytest.approx(-1.0)

    def test_correlation_degenerate_inputs(self):
        """Test that mismatched, empty or constant inputs give 0"""
        assert calculate_correlation([1, 2, 3], [1, 2]) == 0.0
        assert calculate_correlation([], []) == 0.0
        assert calculate_correlation([5, 5, 5], [1, 2, 3]) == 0.0

    def test_growth_rate(self):
        """Test compound growth per period"""
        assert calculate_growth_rate(100, 121, 2) == pytest.approx(10.0)
        assert calculate_growth_rate(0, 121, 2) == 0.0
        assert calculate_growth_rate(100, 121, 0) == 0.0

    def test_coefficient_of_variation(self):
        """Test CV and its zero-mean sentinel"""
        assert calculate_coefficient_of_variation([10, 10, 10]) == 0.0
        assert calculate_coefficient_of_variation([0, 0, 0]) == 0.0
        assert calculate_coefficient_of_variation([5, 15]) == pytest.approx(0.5)


class TestMovingAverageAndRegression:
    """Test moving average and least squares helpers"""

    def test_moving_average_passes_through_first_points(self):
        """Test that points without a full window are returned unchanged"""
        result = calculate_moving_average([1, 2, 3, 4, 5], 3)
        assert result[:2] == [1, 2]
        assert result[2:] == pytest.approx([2, 3, 4])

    def test_moving_average_rejects_bad_window(self):
        """Test that a non-positive window is rejected"""
        with pytest.raises(ValueError):
            calculate_moving_average([1, 2, 3], 0)

    def test_linear_regression_exact_line(self):
        """Test recovery of an exact line"""
        slope, intercept = fit_linear_regression([3, 5, 7, 9])
        assert slope == pytest.approx(2.0)
        assert intercept == pytest.approx(3.0)

    def test_linear_regression_short_series(self):
        """Test the single-point and empty fits"""
        assert fit_linear_regression([7]) == (0.0, 7.0)
        assert fit_linear_regression([]) == (0.0, 0.0)


class TestAggregateByPeriod:
    """Test day/week/month bucketing"""

    @pytest.fixture
    def daily_df(self):
        return pd.DataFrame({
            'date': pd.date_range('2024-01-01', '2024-02-29', freq='D'),
            'value': np.arange(60, dtype=float)
        })

    def test_month_buckets(self, daily_df):
        """Test that months are keyed by their first day"""
        result = aggregate_by_period(daily_df, 'month', 'value')
        assert len(result) == 2
        assert result['date'].iloc[0] == pd.Timestamp('2024-01-01')
        assert result['value'].iloc[0] == pytest.approx(15.0)

    def test_week_buckets_start_on_sunday(self, daily_df):
        """Test that week buckets start on a Sunday"""
        result = aggregate_by_period(daily_df, 'week', 'value')
        assert (result['date'].dt.dayofweek == 6).all()

    def test_unknown_period(self, daily_df):
        """Test that an unknown period is rejected"""
        with pytest.raises(ValueError):
            aggregate_by_period(daily_df, 'fortnight', 'value')

    def test_empty_input(self):
        """Test that an empty frame returns an empty frame"""
        result = aggregate_by_period(pd.DataFrame(columns=['date', 'value']), 'day', 'value')
        assert result.empty


class TestPeriodLabels:
    """Test explicit and derived period labels"""

    def test_no_labels_without_reference(self):
        """Test that unlabelled series get None labels"""
        assert build_history_labels(3) == [None, None, None]
        assert build_future_labels(2) == [None, None]

    def test_explicit_labels_must_match_length(self):
        """Test that label count must equal observation count"""
        assert build_history_labels(2, ['Q1', 'Q2']) == ['Q1', 'Q2']
        with pytest.raises(ValueError):
            build_history_labels(3, ['Q1', 'Q2'])

    def test_monthly_labels_from_reference_date(self):
        """Test that history ends and the forecast starts from the reference date"""
        history = build_history_labels(3, reference_date='2024-03-31')
        assert history[-1] == pd.Timestamp('2024-03-31')
        assert history[0] == pd.Timestamp('2024-01-31')

        future = build_future_labels(2, reference_date='2024-03-31')
        assert future == [pd.Timestamp('2024-04-30'), pd.Timestamp('2024-05-31')]

    def test_weekly_frequency(self):
        """Test a weekly frequency alias"""
        future = build_future_labels(2, reference_date='2024-01-07', freq='7D')
        assert future == [pd.Timestamp('2024-01-14'), pd.Timestamp('2024-01-21')]
