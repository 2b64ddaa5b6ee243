"""
Forecast Accuracy Module

Backtests a forecast model with a train/test split (80/20, floor) and reports
MAPE, RMSE and MAE against the held-out actuals. Series shorter than 6 points
return an all-zero ForecastAccuracy, which callers treat as "not enough data".
"""

import numpy as np
import pandas as pd

from forecast_types import ForecastAccuracy
from forecast_models import FORECAST_MODELS, get_forecast_model
from insight_rules import ACCURACY_RULES
from series_statistics import to_array


def calculate_mape(actual, forecast):
    """
    Calculate Mean Absolute Percentage Error

    Periods with an actual value of 0 contribute an error of 0.

    Args:
        actual: Actual values
        forecast: Forecasted values (same length)

    Returns:
        float: MAPE percentage, capped at 100
    """
    actual = to_array(actual)
    forecast = to_array(forecast)
    if len(actual) == 0:
        return 0.0

    nonzero = actual != 0
    pct_errors = np.zeros(len(actual))
    pct_errors[nonzero] = np.abs((actual[nonzero] - forecast[nonzero]) / actual[nonzero]) * 100

    return float(min(pct_errors.mean(), ACCURACY_RULES['mape_cap']))


def calculate_forecast_accuracy(data, model='linear'):
    """
    Calculate forecast accuracy metrics by backtesting

    Args:
        data: Historical values in period order
        model: Registered model name used for the backtest (default 'linear')

    Returns:
        ForecastAccuracy: mape (0-100), rmse, mae; all zeros below 6 points
    """
    values = to_array(data)
    forecaster = get_forecast_model(model)

    if len(values) < ACCURACY_RULES['minimum_points']:
        return ForecastAccuracy()

    train_size = int(np.floor(len(values) * ACCURACY_RULES['train_fraction']))
    train = values[:train_size]
    test = values[train_size:]

    forecast = np.asarray(forecaster(train, len(test)), dtype=np.float64)
    errors = test - forecast

    return ForecastAccuracy(
        mape=calculate_mape(test, forecast),
        rmse=float(np.sqrt(np.mean(errors ** 2))),
        mae=float(np.mean(np.abs(errors))),
    )


def compare_model_accuracy(data, models=None):
    """
    Backtest every registered model on the same series

    Args:
        data: Historical values in period order
        models: Optional list of model names (default: all registered models)

    Returns:
        pd.DataFrame: columns model, mape, rmse, mae sorted by mape (best first)
    """
    rows = []
    for name in models or list(FORECAST_MODELS):
        accuracy = calculate_forecast_accuracy(data, model=name)
        rows.append({'model': name, **accuracy.to_dict()})

    return pd.DataFrame(rows, columns=['model', 'mape', 'rmse', 'mae']).sort_values(
        'mape', kind='stable').reset_index(drop=True)
