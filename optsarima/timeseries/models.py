"""SARIMA model entity.

A :class:`SARIMA` holds the observed series, its orders and flags, and the
:class:`~optsarima.timeseries.estimation.FitResult` of the last fit. Fitting
replaces the result as a whole, so a model is either unfitted or carries one
consistent set of coefficients.

References:
    - Box & Jenkins (1976): Time Series Analysis: Forecasting and Control
    - Hyndman & Khandakar (2008): "Automatic time series forecasting: the
      forecast package for R"
"""

from __future__ import annotations

from typing import Any, Dict, List, NamedTuple, Optional, Sequence

import numpy as np
import pandas as pd

from ..exceptions import InvalidParametersCombinationError
from ..logging import get_logger
from . import forecasting
from .calendar import FrameLike, SeriesLike, as_frame, as_series, build_datetimes, identify_granularity
from .estimation import FitResult, fit_sarima

logger = get_logger(__name__)


class ModelKey(NamedTuple):
    """Identity of a candidate model: its orders and constant flags."""

    p: int
    d: int
    q: int
    P: int
    D: int
    Q: int
    s: int
    allow_mean: bool
    allow_drift: bool

    def __str__(self) -> str:
        return (
            f"SARIMA({self.p},{self.d},{self.q})({self.P},{self.D},{self.Q} "
            f"s={self.s}, c={self.allow_mean}, drift={self.allow_drift})"
        )


class SARIMA:
    """Seasonal ARIMA model with optional exogenous regressors.

    On the differenced series the model reads:
        y_t = c + trend·t + Σβ x_t + Σϕ_i y_{t-i} + ΣΦ_k y_{t-ks}
              + Σθ_j ϵ_{t-j} + ΣΘ_w ϵ_{t-ws} + ϵ_t

    Args:
        y: Observed series. A ``pd.Series`` with a uniformly spaced
            DatetimeIndex, or any 1-D array-like (integer-indexed).
        p: AR order.
        d: Number of first differences.
        q: MA order.
        seasonality: Seasonal period s. Use 1 for non-seasonal models.
        P: Seasonal AR order.
        D: Number of seasonal differences.
        Q: Seasonal MA order.
        exog: Optional exogenous regressors starting with ``y``, sharing its
            granularity and ending no earlier than ``y``. Rows past the end
            of ``y`` feed forecasts.
        allow_mean: Estimate the intercept c (fixed at 0 otherwise).
        allow_drift: Estimate the drift coefficient (fixed at 0 otherwise).
        silent: Suppress INFO messages about the fit.

    Raises:
        ValueError: If an order is negative, seasonality < 1, or exog does
            not line up with ``y``.

    Example:
        >>> idx = pd.date_range("2000-01-01", periods=120, freq="MS")
        >>> rng = np.random.default_rng(0)
        >>> y = pd.Series(np.cumsum(rng.normal(size=120)), index=idx)
        >>> model = SARIMA(y, p=1, d=1, q=0, allow_mean=False)
        >>> res = model.fit()
        >>> frame = forecasting.forecast(model, steps_ahead=6)
    """

    def __init__(
        self,
        y: SeriesLike,
        p: int,
        d: int,
        q: int,
        seasonality: int = 1,
        P: int = 0,
        D: int = 0,
        Q: int = 0,
        exog: Optional[FrameLike] = None,
        allow_mean: bool = True,
        allow_drift: bool = False,
        silent: bool = True,
    ) -> None:
        for name, value in (("p", p), ("d", d), ("q", q), ("P", P), ("D", D), ("Q", Q)):
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if seasonality < 1:
            raise ValueError(f"seasonality must be >= 1, got {seasonality}")

        self.y = as_series(y)
        self.p = p
        self.d = d
        self.q = q
        self.P = P
        self.D = D
        self.Q = Q
        self.seasonality = seasonality
        self.allow_mean = allow_mean
        self.allow_drift = allow_drift
        self.silent = silent
        self.keep_provided_coefficients = False
        self.provided_coefficients: Dict[str, Any] = {}

        granularity = identify_granularity(self.y.index)
        self.metadata: Dict[str, Any] = {
            "granularity": granularity,
            "start": self.y.index[0],
            "end": self.y.index[-1],
        }
        self.exog = None if exog is None else self._align_exog(exog)

        self.fit_result: Optional[FitResult] = None
        self.forecast: Optional[pd.DataFrame] = None

    def _align_exog(self, exog: FrameLike) -> pd.DataFrame:
        granularity = self.metadata["granularity"]
        if isinstance(exog, (pd.Series, pd.DataFrame)):
            frame = as_frame(exog)
        else:
            values = np.asarray(exog, dtype=float)
            if len(values) < len(self.y):
                raise ValueError("The exogenous variables must end after the endogenous variables")
            index = self.y.index
            extra = len(values) - len(index)
            if extra > 0:
                index = index.append(build_datetimes(index[-1], granularity, extra))
            frame = as_frame(values, index=index)

        if len(frame) < len(self.y):
            raise ValueError("The exogenous variables must end after the endogenous variables")
        if frame.index[0] != self.y.index[0]:
            raise ValueError("The endogenous and exogenous variables must start at the same timestamp")
        if frame.index[-1] < self.y.index[-1]:
            raise ValueError("The exogenous variables must end after the endogenous variables")
        if identify_granularity(frame.index) != granularity:
            raise ValueError("The endogenous and exogenous variables must have the same granularity")
        return frame

    @classmethod
    def from_coefficients(
        cls,
        y: SeriesLike,
        ar: Optional[Sequence[float]] = None,
        ma: Optional[Sequence[float]] = None,
        seasonal_ar: Optional[Sequence[float]] = None,
        seasonal_ma: Optional[Sequence[float]] = None,
        mean: Optional[float] = None,
        trend: Optional[float] = None,
        exog: Optional[FrameLike] = None,
        exog_coefficients: Optional[Sequence[float]] = None,
        d: int = 0,
        D: int = 0,
        seasonality: int = 1,
        allow_mean: bool = True,
        allow_drift: bool = False,
        silent: bool = True,
    ) -> "SARIMA":
        """Build a model whose supplied coefficient groups stay fixed when fitting.

        Orders are taken from the lengths of the supplied vectors. Groups that
        are not supplied are estimated by :meth:`fit`; the residuals and σ²
        are always computed from the data.

        Raises:
            InvalidParametersCombinationError: If no AR/MA coefficients are
                given, seasonal coefficients are given with seasonality 1, or
                exogenous coefficients do not match the exogenous data.
        """
        if ar is None and ma is None and seasonal_ar is None and seasonal_ma is None:
            raise InvalidParametersCombinationError(
                "At least one of the AR, MA, seasonal AR or seasonal MA coefficients must be provided"
            )
        if (seasonal_ar is not None or seasonal_ma is not None) and seasonality == 1:
            raise InvalidParametersCombinationError(
                "The seasonality must be provided if seasonal AR and/or MA coefficients are provided"
            )
        if exog is None and exog_coefficients is not None:
            raise InvalidParametersCombinationError(
                "Exogenous coefficients were provided but no exogenous variable was passed"
            )

        model = cls(
            y,
            p=0 if ar is None else len(ar),
            d=d,
            q=0 if ma is None else len(ma),
            seasonality=seasonality,
            P=0 if seasonal_ar is None else len(seasonal_ar),
            D=D,
            Q=0 if seasonal_ma is None else len(seasonal_ma),
            exog=exog,
            allow_mean=mean is not None or allow_mean,
            allow_drift=trend is not None or allow_drift,
            silent=silent,
        )
        if exog_coefficients is not None and len(exog_coefficients) != model.exog.shape[1]:
            raise InvalidParametersCombinationError(
                "The number of exogenous coefficients must match the number of exogenous variables"
            )

        provided = {
            "c": mean,
            "trend": trend,
            "exog": exog_coefficients,
            "ar": ar,
            "seasonal_ar": seasonal_ar,
            "ma": ma,
            "seasonal_ma": seasonal_ma,
        }
        model.provided_coefficients = {
            key: np.asarray(value, dtype=float) for key, value in provided.items() if value is not None
        }
        model.keep_provided_coefficients = True
        return model

    @property
    def key(self) -> ModelKey:
        return ModelKey(
            self.p,
            self.d,
            self.q,
            self.P,
            self.D,
            self.Q,
            self.seasonality,
            self.allow_mean,
            self.allow_drift,
        )

    @property
    def n_exog(self) -> int:
        return 0 if self.exog is None else self.exog.shape[1]

    @property
    def n_params(self) -> int:
        """Parameter count used by the information criteria."""
        return (
            self.p + self.q + self.P + self.Q + int(self.allow_mean) + int(self.allow_drift) + self.n_exog
        )

    @property
    def is_fitted(self) -> bool:
        return self.fit_result is not None

    def fit(
        self,
        objective_function: str = "mse",
        max_iter: int = 300,
        inner_time_limit: float = 1.0,
    ) -> FitResult:
        """Estimate the coefficients and store the result on the model.

        Args:
            objective_function: "mse", "ml" or "bilevel".
            max_iter: Iteration cap of each solver call.
            inner_time_limit: Inner solve budget in seconds under "bilevel".

        Returns:
            The new FitResult, also available as ``fit_result``.
        """
        if self.is_fitted:
            logger.info("Refitting %s", self.key)
        self.fit_result = fit_sarima(
            self,
            objective_function=objective_function,
            max_iter=max_iter,
            inner_time_limit=inner_time_limit,
        )
        return self.fit_result

    def predict(
        self,
        steps_ahead: int = 1,
        is_simulation: bool = False,
        seed: Optional[int] = None,
    ) -> np.ndarray:
        """Point forecasts (or one simulated path) on the original scale."""
        rng = np.random.default_rng(seed)
        return forecasting.predict(self, steps_ahead=steps_ahead, is_simulation=is_simulation, rng=rng)

    def simulate(
        self,
        steps_ahead: int = 1,
        num_scenarios: int = 200,
        seed: int = 1234,
    ) -> List[np.ndarray]:
        return forecasting.simulate(self, steps_ahead=steps_ahead, num_scenarios=num_scenarios, seed=seed)

    def to_ma(self, max_lags: int = 12) -> np.ndarray:
        return forecasting.to_ma(self, max_lags=max_lags)

    def forecast_errors(self, max_lags: int = 12) -> np.ndarray:
        return forecasting.forecast_errors(self, max_lags=max_lags)

    def __repr__(self) -> str:
        state = "fitted" if self.is_fitted else "unfitted"
        return f"<{self.key} {state}>"
