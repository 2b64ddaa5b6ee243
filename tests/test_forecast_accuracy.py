"""
Tests for backtest accuracy metrics
"""

import pytest
import pandas as pd

from forecast_accuracy import calculate_mape, calculate_forecast_accuracy, compare_model_accuracy
from forecast_types import ForecastAccuracy


class TestMape:
    """Test MAPE calculation"""

    def test_regular_mape(self):
        """Test mean absolute percentage error"""
        assert calculate_mape([100, 200], [110, 180]) == pytest.approx(10.0)

    def test_zero_actuals_contribute_zero(self):
        """Test that zero actuals count as zero error"""
        assert calculate_mape([0, 100], [50, 150]) == pytest.approx(25.0)

    def test_capped_at_100(self):
        """Test the 100% cap"""
        assert calculate_mape([1, 1], [10, 10]) == 100.0

    def test_empty(self):
        """Test empty input"""
        assert calculate_mape([], []) == 0.0


class TestForecastAccuracy:
    """Test 80/20 backtesting"""

    def test_short_series_returns_zeros(self):
        """Test that fewer than 6 points gives all-zero accuracy"""
        accuracy = calculate_forecast_accuracy([1, 2, 3, 4, 5])
        assert accuracy == ForecastAccuracy()
        assert accuracy.is_empty

    def test_exact_line_has_zero_error(self, increasing_series):
        """Test that a perfectly linear series backtests with no error"""
        accuracy = calculate_forecast_accuracy(increasing_series)
        assert accuracy.mape == pytest.approx(0.0, abs=1e-9)
        assert accuracy.rmse == pytest.approx(0.0, abs=1e-9)
        assert accuracy.mae == pytest.approx(0.0, abs=1e-9)

    def test_train_test_split(self):
        """Test that the last 20% (floor train size) is held out"""
        # 10 points: train on 8 flat values, test on 2 values of 20
        data = [10] * 8 + [20, 20]
        accuracy = calculate_forecast_accuracy(data)
        assert accuracy.mae == pytest.approx(10.0)
        assert accuracy.rmse == pytest.approx(10.0)
        assert accuracy.mape == pytest.approx(50.0)

    def test_mape_within_bounds(self, spike_series):
        """Test that MAPE stays in [0, 100]"""
        accuracy = calculate_forecast_accuracy(spike_series)
        assert 0 <= accuracy.mape <= 100

    def test_unknown_model(self, increasing_series):
        """Test that an unknown backtest model is rejected"""
        with pytest.raises(ValueError):
            calculate_forecast_accuracy(increasing_series, model='prophet')


class TestCompareModelAccuracy:
    """Test side-by-side model backtests"""

    def test_sorted_by_mape(self, increasing_series):
        """Test that models are ranked best first"""
        result = compare_model_accuracy(increasing_series)
        assert isinstance(result, pd.DataFrame)
        assert list(result.columns) == ['model', 'mape', 'rmse', 'mae']
        assert len(result) == 5
        assert result['mape'].is_monotonic_increasing
        assert result['mape'].iloc[0] == pytest.approx(0.0, abs=1e-9)

    def test_subset_of_models(self, increasing_series):
        """Test comparing a chosen subset"""
        result = compare_model_accuracy(increasing_series, models=['linear', 'holt'])
        assert set(result['model']) == {'linear', 'holt'}
