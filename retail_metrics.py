"""
Retail Metrics Module

Zero-denominator-safe retail KPI ratios (sell-through, margin, weeks of supply,
OTB utilization, ...) plus small helpers that turn current/previous values into
KPI card records. Every ratio returns 0 when its denominator is 0.
"""

from series_statistics import calculate_percentage_change


def calculate_sell_through(units_sold, units_received):
    """Units sold / units received, as a percentage."""
    if units_received == 0:
        return 0.0
    return units_sold / units_received * 100


def calculate_gross_margin(revenue, cogs):
    """(Revenue - COGS) / revenue, as a percentage."""
    if revenue == 0:
        return 0.0
    return (revenue - cogs) / revenue * 100


def calculate_inventory_turn(cogs, average_inventory):
    if average_inventory == 0:
        return 0.0
    return cogs / average_inventory


def calculate_weeks_of_supply(inventory, weekly_average_sales):
    """Inventory / average weekly demand."""
    if weekly_average_sales == 0:
        return 0.0
    return inventory / weekly_average_sales


def calculate_stock_to_sales(inventory, weekly_sales):
    if weekly_sales == 0:
        return 0.0
    return inventory / weekly_sales


def calculate_otb_utilization(committed, allocated):
    """Open-To-Buy budget committed / allocated, as a percentage."""
    if allocated == 0:
        return 0.0
    return committed / allocated * 100


def calculate_sku_productivity(revenue, active_skus):
    if active_skus == 0:
        return 0.0
    return revenue / active_skus


def calculate_markdown_rate(markdown_amount, original_amount):
    if original_amount == 0:
        return 0.0
    return markdown_amount / original_amount * 100


def calculate_stock_out_rate(stock_out_skus, total_skus):
    """Share of SKUs out of stock, as a percentage."""
    if total_skus == 0:
        return 0.0
    return stock_out_skus / total_skus * 100


def calculate_receipt_flow_rate(received_units, planned_units):
    if planned_units == 0:
        return 0.0
    return received_units / planned_units * 100


def determine_trend(current, previous, threshold=0.5):
    """
    Classify period-over-period movement

    Args:
        current: Current value
        previous: Previous value
        threshold: Percent change needed to count as movement

    Returns:
        str: 'up', 'down' or 'neutral'
    """
    change = calculate_percentage_change(current, previous)
    if change > threshold:
        return 'up'
    if change < -threshold:
        return 'down'
    return 'neutral'


def calculate_status(value, target, target_type, warning_threshold=0.1, critical_threshold=0.2):
    """
    Grade a metric against its target

    Args:
        value: Actual value
        target: Target value
        target_type: 'higher' (more is better), 'lower' (less is better) or 'target' (closer is better)
        warning_threshold: Relative variance still considered 'good'
        critical_threshold: Relative variance still considered 'warning'

    Returns:
        str: 'excellent', 'good', 'warning' or 'critical'
    """
    variance = abs(value - target) / target if target != 0 else 0.0

    if target_type == 'higher' and value >= target:
        return 'excellent'
    if target_type == 'lower' and value <= target:
        return 'excellent'
    if target_type == 'target' and variance <= warning_threshold / 2:
        return 'excellent'

    if variance <= warning_threshold:
        return 'good'
    if variance <= critical_threshold:
        return 'warning'
    return 'critical'


def create_metric_data(label, value, previous_value, target=None, unit=None, sparkline_data=None):
    """
    Build a KPI card record

    Returns:
        dict: label, value, previous_value, change_percent, trend, target, unit, sparkline_data
    """
    return {
        'label': label,
        'value': value,
        'previous_value': previous_value,
        'change_percent': calculate_percentage_change(value, previous_value),
        'trend': determine_trend(value, previous_value),
        'target': target,
        'unit': unit,
        'sparkline_data': list(sparkline_data) if sparkline_data is not None else None
    }


def create_comparison_data(category, current, previous):
    """Build a current-vs-previous comparison record for one category."""
    return {
        'category': category,
        'current': current,
        'previous': previous,
        'change': current - previous,
        'change_percent': calculate_percentage_change(current, previous)
    }
