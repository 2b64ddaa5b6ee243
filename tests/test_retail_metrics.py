"""
Tests for retail KPI helpers
"""

import pytest

from retail_metrics import (
    calculate_sell_through,
    calculate_gross_margin,
    calculate_inventory_turn,
    calculate_weeks_of_supply,
    calculate_stock_to_sales,
    calculate_otb_utilization,
    calculate_sku_productivity,
    calculate_markdown_rate,
    calculate_stock_out_rate,
    calculate_receipt_flow_rate,
    determine_trend,
    calculate_status,
    create_metric_data,
    create_comparison_data,
)


class TestRatios:
    """Test KPI ratios and their zero-denominator sentinels"""

    @pytest.mark.parametrize("func,args,expected", [
        (calculate_sell_through, (70, 100), 70.0),
        (calculate_gross_margin, (200, 120), 40.0),
        (calculate_inventory_turn, (600, 150), 4.0),
        (calculate_weeks_of_supply, (1300, 100), 13.0),
        (calculate_stock_to_sales, (500, 250), 2.0),
        (calculate_otb_utilization, (45, 60), 75.0),
        (calculate_sku_productivity, (1000, 4), 250.0),
        (calculate_markdown_rate, (15, 300), 5.0),
        (calculate_stock_out_rate, (8, 100), 8.0),
        (calculate_receipt_flow_rate, (90, 120), 75.0),
    ])
    def test_ratio_values(self, func, args, expected):
        """Test each ratio on a regular input"""
        assert func(*args) == pytest.approx(expected)

    @pytest.mark.parametrize("func,args", [
        (calculate_sell_through, (10, 0)),
        (calculate_gross_margin, (0, 10)),
        (calculate_inventory_turn, (10, 0)),
        (calculate_weeks_of_supply, (10, 0)),
        (calculate_stock_to_sales, (10, 0)),
        (calculate_otb_utilization, (10, 0)),
        (calculate_sku_productivity, (10, 0)),
        (calculate_markdown_rate, (10, 0)),
        (calculate_stock_out_rate, (10, 0)),
        (calculate_receipt_flow_rate, (10, 0)),
    ])
    def test_zero_denominator(self, func, args):
        """Test that every ratio returns 0 when its denominator is 0"""
        assert func(*args) == 0.0


class TestStatusAndTrend:
    """Test KPI grading helpers"""

    def test_determine_trend(self):
        """Test up/down/neutral classification"""
        assert determine_trend(110, 100) == 'up'
        assert determine_trend(90, 100) == 'down'
        assert determine_trend(100.2, 100) == 'neutral'

    def test_status_higher_is_better(self):
        """Test grading when more is better"""
        assert calculate_status(110, 100, 'higher') == 'excellent'
        assert calculate_status(95, 100, 'higher') == 'good'
        assert calculate_status(85, 100, 'higher') == 'warning'
        assert calculate_status(70, 100, 'higher') == 'critical'

    def test_status_lower_is_better(self):
        """Test grading when less is better"""
        assert calculate_status(90, 100, 'lower') == 'excellent'
        assert calculate_status(130, 100, 'lower') == 'critical'

    def test_status_target(self):
        """Test grading against a point target"""
        assert calculate_status(102, 100, 'target') == 'excellent'
        assert calculate_status(108, 100, 'target') == 'good'

    def test_status_zero_target(self):
        """Test that a zero target does not divide by zero"""
        assert calculate_status(5, 0, 'target') == 'excellent'


class TestCardRecords:
    """Test KPI card and comparison records"""

    def test_metric_data(self):
        """Test that a metric card carries change and trend"""
        card = create_metric_data('Revenue', 120, 100, target=110, unit='$', sparkline_data=(1, 2, 3))
        assert card['change_percent'] == pytest.approx(20.0)
        assert card['trend'] == 'up'
        assert card['sparkline_data'] == [1, 2, 3]

    def test_comparison_data(self):
        """Test current-vs-previous comparison"""
        row = create_comparison_data('Shoes', 80, 100)
        assert row['change'] == -20
        assert row['change_percent'] == pytest.approx(-20.0)
