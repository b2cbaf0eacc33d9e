"""SARIMA estimation, forecasting and automatic order selection.

Example:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from optsarima.timeseries import SARIMA, forecast
    >>>
    >>> idx = pd.date_range("1949-01-01", periods=144, freq="MS")
    >>> rng = np.random.default_rng(0)
    >>> t = np.arange(144)
    >>> y = pd.Series(100 + t + 10 * np.sin(2 * np.pi * t / 12) + rng.normal(size=144), index=idx)
    >>>
    >>> model = SARIMA(y, p=0, d=1, q=1, seasonality=12, P=0, D=1, Q=1, allow_mean=False)
    >>> res = model.fit()
    >>> frame = forecast(model, steps_ahead=12, confidence_intervals=True)

References:
    - Box & Jenkins (1976): Time Series Analysis: Forecasting and Control
    - Hyndman & Khandakar (2008): "Automatic time series forecasting: the
      forecast package for R"
"""

from __future__ import annotations

from .calendar import Granularity, as_series, build_datetimes, identify_granularity
from .diagnostics import aic, aicc, bic, get_information_criteria, is_invertible, is_stationary
from .estimation import FitResult, fit_sarima, yule_walker
from .forecasting import forecast, forecast_errors, predict, simulate, to_ma
from .integration import select_integration_order, select_seasonal_integration_order
from .models import SARIMA, ModelKey
from .search import StepwiseSearch, auto, local_search
from .sparse_ari import SparseARI, SparseARIResult
from .utils import acov, differentiate, durbin_levinson, integrate

__all__ = [
    # Models
    "SARIMA",
    "ModelKey",
    # Estimation
    "FitResult",
    "fit_sarima",
    "yule_walker",
    # Forecasting
    "forecast",
    "forecast_errors",
    "predict",
    "simulate",
    "to_ma",
    # Search
    "StepwiseSearch",
    "auto",
    "local_search",
    "select_integration_order",
    "select_seasonal_integration_order",
    # Sparse ARI
    "SparseARI",
    "SparseARIResult",
    # Criteria and checks
    "aic",
    "aicc",
    "bic",
    "get_information_criteria",
    "is_invertible",
    "is_stationary",
    # Utilities
    "Granularity",
    "as_series",
    "build_datetimes",
    "identify_granularity",
    "differentiate",
    "integrate",
    "acov",
    "durbin_levinson",
]
