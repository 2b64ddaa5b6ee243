"""
Tests for one-call series analysis
"""

import pytest

from forecast_types import InsufficientDataError, TrendDirection
from series_analysis import analyze_series, summarize_statistics, analyze_growth


class TestAnalyzeSeries:
    """Test section selection and minimum history"""

    def test_all_sections(self, increasing_series):
        """Test that every section is present by default"""
        result = analyze_series(increasing_series)
        assert set(result) == {'trend', 'anomalies', 'accuracy', 'statistics', 'growth'}
        assert result['trend'].direction == TrendDirection.UP

    def test_selected_sections(self, increasing_series):
        """Test turning sections off"""
        result = analyze_series(increasing_series, anomalies=False, accuracy=False, growth=False)
        assert set(result) == {'trend', 'statistics'}

    def test_accuracy_needs_six_points(self):
        """Test that accuracy is omitted for short series"""
        result = analyze_series([1, 2, 3, 4, 5])
        assert 'accuracy' not in result
        assert 'trend' in result

    def test_insufficient_data(self):
        """Test that fewer than 3 points raises"""
        with pytest.raises(InsufficientDataError):
            analyze_series([1, 2])

    def test_anomaly_threshold(self, spike_series):
        """Test that the anomaly threshold is passed through"""
        assert len(analyze_series(spike_series)['anomalies']) == 1
        assert analyze_series(spike_series, anomaly_threshold=10)['anomalies'] == []


class TestSummaryStatistics:
    """Test descriptive statistics"""

    def test_statistics(self):
        """Test descriptive statistics on a small series"""
        stats = summarize_statistics([2, 4, 4, 4, 5, 5, 7, 9])
        assert stats['count'] == 8
        assert stats['sum'] == 40
        assert stats['mean'] == pytest.approx(5.0)
        assert stats['median'] == pytest.approx(4.5)
        assert stats['range'] == 7
        assert stats['variance'] == pytest.approx(4.0)
        assert stats['standard_deviation'] == pytest.approx(2.0)
        assert stats['coefficient_of_variation'] == pytest.approx(0.4)

    def test_empty(self):
        """Test statistics of an empty series"""
        assert summarize_statistics([])['count'] == 0


class TestGrowth:
    """Test growth profile"""

    def test_growth(self):
        """Test total, compound and period growth"""
        growth = analyze_growth([100, 110, 121])
        assert growth['total_growth'] == pytest.approx(21.0)
        assert growth['cagr'] == pytest.approx(10.0)
        assert growth['period_growth'] == pytest.approx([10.0, 10.0])
        assert growth['average_growth'] == pytest.approx(10.0)

    def test_growth_from_zero(self):
        """Test that a zero start does not divide by zero"""
        growth = analyze_growth([0, 10, 20])
        assert growth['total_growth'] == 0.0
        assert growth['cagr'] == 0.0
        assert growth['period_growth'] == pytest.approx([0.0, 100.0])
