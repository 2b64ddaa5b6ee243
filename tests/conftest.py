"""
Pytest configuration and shared fixtures for all tests
Centralized sample series and utilities
"""

import pytest
import pandas as pd
import os
import sys
from datetime import datetime

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# ===== SHARED SERIES FIXTURES =====

SEASONAL_PATTERN = [10, 12, 15, 20, 30, 45, 50, 40, 28, 18, 12, 10]


@pytest.fixture
def increasing_series():
    """Strictly increasing series (12 points)"""
    return [100 + 10 * i for i in range(12)]


@pytest.fixture
def constant_series():
    """Flat series with zero variance"""
    return [50.0] * 12


@pytest.fixture
def seasonal_series():
    """
    Two full cycles of a 12-period pattern:
    - Peak mid-cycle, trough at the cycle ends
    - Autocorrelation at lag 12 is exactly 1
    """
    return SEASONAL_PATTERN * 2


@pytest.fixture
def spike_series():
    """Flat-ish series with one large spike at index 10"""
    values = [100.0, 102.0, 98.0, 101.0, 99.0, 100.0, 103.0, 97.0, 100.0, 101.0,
              400.0, 99.0, 100.0, 102.0, 98.0, 100.0, 101.0, 99.0, 100.0, 100.0]
    return values


@pytest.fixture
def level_shift_series():
    """Series whose level jumps from ~10 to ~50 halfway through"""
    return [10, 11, 9, 10, 11, 10, 50, 51, 49, 50, 51, 50]


@pytest.fixture
def as_of():
    """Fixed generation timestamp for deterministic ids"""
    return datetime(2024, 6, 30, 12, 0, 0)


@pytest.fixture
def monthly_labels():
    """Month-start labels for a 12-point series ending June 2024"""
    return list(pd.date_range(end='2024-06-01', periods=12, freq='MS'))


@pytest.fixture
def excess_inventory_context():
    """Inventory context well above the weeks-of-supply band"""
    return {
        'current_inventory': 130000,
        'average_weekly_sales': 10000,
        'weeks_of_supply': 13,
    }


# ===== HELPER FUNCTIONS FOR TESTS =====

def assert_log_contains(logs, expected_message):
    """
    Helper to assert that a log message contains expected text

    Args:
        logs: List of log messages
        expected_message: Text expected to be in one of the logs
    """
    log_text = " ".join(logs)
    assert expected_message in log_text, f"Expected '{expected_message}' not found in logs: {log_text}"


def assert_columns_exist(df, columns):
    """
    Helper to assert that DataFrame has expected columns

    Args:
        df: DataFrame to check
        columns: List of expected column names
    """
    missing = set(columns) - set(df.columns)
    assert not missing, f"Missing columns: {missing}"
