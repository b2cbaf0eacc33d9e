"""Forecasting and simulation for fitted SARIMA models.

Forecasts are produced recursively on the differenced scale from the
structural equation, feeding each forecast back into the history, and
integrated back to the original scale with the last d + D·s observations.
Forecast-error variances come from the ψ-weights of the moving-average
representation (Brockwell & Davis, 2009, p. 92).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from ..exceptions import MissingExogenousDataError, ModelNotFittedError
from .calendar import build_datetimes
from .estimation import FitResult, conditional_mean
from .utils import differentiate, differentiate_frame, integrate

if TYPE_CHECKING:
    from .models import SARIMA


def _fit_result(model: "SARIMA") -> FitResult:
    if model.fit_result is None:
        raise ModelNotFittedError()
    return model.fit_result


def complete_coefficients(fit: FitResult, s: int) -> Tuple[np.ndarray, np.ndarray]:
    """AR and MA lag vectors with the seasonal coefficients placed at lags k·s.

    Returns:
        Tuple of (ar, ma) with lengths max(p, P·s) and max(q, Q·s). Entry
        ``i`` holds the coefficient of lag ``i + 1``.
    """
    p, P = len(fit.ar), len(fit.seasonal_ar)
    q, Q = len(fit.ma), len(fit.seasonal_ma)

    ar = np.zeros(max(p, P * s))
    ar[:p] = fit.ar
    for k, phi in enumerate(fit.seasonal_ar, start=1):
        ar[k * s - 1] += phi

    ma = np.zeros(max(q, Q * s))
    ma[:q] = fit.ma
    for w, theta in enumerate(fit.seasonal_ma, start=1):
        ma[w * s - 1] += theta
    return ar, ma


def to_ma(model: "SARIMA", max_lags: int = 12) -> np.ndarray:
    """ψ-weights ψ_1, ..., ψ_max_lags of the moving-average representation.

    Uses ψ_i = ma_i + Σ_{j=1}^{min(i,p)} ar_j ψ_{i-j} with ψ_0 = 1.

    Raises:
        ModelNotFittedError: If the model has not been fitted.
    """
    fit = _fit_result(model)
    if max_lags < 1:
        raise ValueError(f"max_lags must be >= 1, got {max_lags}")
    ar, ma = complete_coefficients(fit, model.seasonality)

    psi = np.zeros(max_lags + 1)
    psi[0] = 1.0
    for i in range(1, max_lags + 1):
        value = ma[i - 1] if i <= len(ma) else 0.0
        for j in range(1, min(i, len(ar)) + 1):
            value += ar[j - 1] * psi[i - j]
        psi[i] = value
    return psi[1:]


def forecast_errors(model: "SARIMA", max_lags: int = 12) -> np.ndarray:
    """Forecast-error variances σ²(1 + Σ_{i=1}^{h-1} ψ_i²) for h = 1..max_lags."""
    psi = to_ma(model, max_lags)
    cumulative = np.concatenate([[0.0], np.cumsum(psi**2)[:-1]])
    return model.fit_result.sigma2 * (1.0 + cumulative)


def _exog_rows(model: "SARIMA", steps_ahead: int, T: int) -> np.ndarray:
    if model.exog is None:
        return np.zeros((T + steps_ahead, 0))
    n = len(model.y)
    if len(model.exog) - n < steps_ahead:
        raise MissingExogenousDataError()
    frame = model.exog.iloc[: n + steps_ahead]
    return differentiate_frame(frame, d=model.d, D=model.D, s=model.seasonality).to_numpy(dtype=float)


def predict(
    model: "SARIMA",
    steps_ahead: int = 1,
    is_simulation: bool = False,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Forecast ``steps_ahead`` values on the original scale.

    Args:
        model: Fitted SARIMA model.
        steps_ahead: Forecast horizon.
        is_simulation: Draw each innovation from N(0, σ²) instead of using 0.
        rng: Random generator used when simulating.

    Returns:
        Forecast values, shape (steps_ahead,).

    Raises:
        ModelNotFittedError: If the model has not been fitted.
        MissingExogenousDataError: If the exogenous data stop before the end
            of the horizon.
    """
    fit = _fit_result(model)
    if steps_ahead < 1:
        raise ValueError(f"steps_ahead must be >= 1, got {steps_ahead}")
    if is_simulation and rng is None:
        rng = np.random.default_rng()

    s = model.seasonality
    y = model.y.to_numpy(dtype=float)
    y_diff = differentiate(y, d=model.d, D=model.D, s=s)
    T = len(y_diff)
    X = _exog_rows(model, steps_ahead, T)
    coef = fit.coefficients
    scale = np.sqrt(fit.sigma2)

    m = T - len(fit.residuals)
    history = np.concatenate([y_diff, np.zeros(steps_ahead)])
    errors = np.concatenate([np.zeros(m), fit.residuals, np.zeros(steps_ahead)])
    for i in range(T, T + steps_ahead):
        shock = rng.normal(0.0, scale) if is_simulation else 0.0
        history[i] = conditional_mean(coef, history, errors, i, X[i], s) + shock
        errors[i] = shock

    n_seed = model.d + model.D * s
    return integrate(y[len(y) - n_seed :], history[T:], d=model.d, D=model.D, s=s)


def forecast(
    model: "SARIMA",
    steps_ahead: int = 1,
    seed: int = 1234,
    is_simulation: bool = False,
    confidence_intervals: bool = False,
    confidence_level: float = 0.95,
) -> pd.DataFrame:
    """Forecast frame indexed by the periods following the last observation.

    The frame has a ``forecast`` column and, with ``confidence_intervals``,
    symmetric ``lower`` / ``upper`` bounds at ``confidence_level``. It is also
    stored on ``model.forecast``.
    """
    if not 0.0 < confidence_level < 1.0:
        raise ValueError(f"confidence_level must be in (0, 1), got {confidence_level}")
    rng = np.random.default_rng(seed)
    values = predict(model, steps_ahead=steps_ahead, is_simulation=is_simulation, rng=rng)
    index = build_datetimes(model.y.index[-1], model.metadata["granularity"], steps_ahead)
    frame = pd.DataFrame({"forecast": values}, index=index)

    if confidence_intervals:
        alpha = 1.0 - confidence_level
        z = stats.norm.ppf(1.0 - alpha / 2)
        half_width = z * np.sqrt(forecast_errors(model, steps_ahead))
        frame["lower"] = values - half_width
        frame["upper"] = values + half_width

    model.forecast = frame
    return frame


def simulate(
    model: "SARIMA",
    steps_ahead: int = 1,
    num_scenarios: int = 200,
    seed: int = 1234,
) -> List[np.ndarray]:
    """Monte-Carlo scenarios drawn from one generator seeded with ``seed``."""
    _fit_result(model)
    if num_scenarios < 1:
        raise ValueError(f"num_scenarios must be >= 1, got {num_scenarios}")
    rng = np.random.default_rng(seed)
    return [
        predict(model, steps_ahead=steps_ahead, is_simulation=True, rng=rng)
        for _ in range(num_scenarios)
    ]
