"""Options of the automatic SARIMA order search."""

from __future__ import annotations

from dataclasses import dataclass

from .exceptions import UnsupportedOptionError

INFORMATION_CRITERIA = ("aic", "aicc", "bic")
OBJECTIVE_FUNCTIONS = ("mse", "ml", "bilevel")
INTEGRATION_TESTS = ("kpss",)
SEASONAL_INTEGRATION_TESTS = ("seas", "ch")


@dataclass(frozen=True)
class SearchConfig:
    """Configuration of :class:`~optsarima.timeseries.search.StepwiseSearch`.

    Attributes:
        seasonality: Seasonal period s (1 for non-seasonal series).
        d: First differences, or -1 to select them with ``integration_test``.
        D: Seasonal differences, or -1 to select them with
            ``seasonal_integration_test``.
        max_p: Ceiling on the AR order.
        max_d: Ceiling on the first differences.
        max_q: Ceiling on the MA order.
        max_P: Ceiling on the seasonal AR order.
        max_D: Ceiling on the seasonal differences.
        max_Q: Ceiling on the seasonal MA order.
        information_criteria: "aic", "aicc" or "bic".
        allow_mean: Consider an intercept (only used when d + D == 0).
        allow_drift: Consider a drift (only used when d + D == 1).
        integration_test: Test used to select d.
        seasonal_integration_test: Test used to select D, "seas" (STL
            seasonal strength) or "ch" (Canova-Hansen).
        objective_function: Estimation objective, "mse", "ml" or "bilevel".
        assert_stationarity: Never select a model with a non-stationary AR
            polynomial.
        assert_invertibility: Never select a model with a non-invertible MA
            polynomial.
        silent: Suppress INFO messages for every fitted candidate.
        max_iterations: Cap on neighbourhood passes.
    """

    seasonality: int = 1
    d: int = -1
    D: int = -1
    max_p: int = 5
    max_d: int = 2
    max_q: int = 5
    max_P: int = 2
    max_D: int = 1
    max_Q: int = 2
    information_criteria: str = "aicc"
    allow_mean: bool = True
    allow_drift: bool = True
    integration_test: str = "kpss"
    seasonal_integration_test: str = "seas"
    objective_function: str = "mse"
    assert_stationarity: bool = False
    assert_invertibility: bool = False
    silent: bool = True
    max_iterations: int = 100

    def __post_init__(self) -> None:
        if self.seasonality < 1:
            raise ValueError(f"seasonality must be >= 1, got {self.seasonality}")
        for name in ("max_p", "max_d", "max_q", "max_P", "max_D", "max_Q"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if not -1 <= self.d <= self.max_d:
            raise ValueError(f"d must be -1 or within [0, max_d={self.max_d}], got {self.d}")
        if not -1 <= self.D <= self.max_D:
            raise ValueError(f"D must be -1 or within [0, max_D={self.max_D}], got {self.D}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")

        if self.information_criteria.lower() not in INFORMATION_CRITERIA:
            raise UnsupportedOptionError(
                "information criteria", self.information_criteria, INFORMATION_CRITERIA
            )
        if self.integration_test not in INTEGRATION_TESTS:
            raise UnsupportedOptionError("integration test", self.integration_test, INTEGRATION_TESTS)
        if self.seasonal_integration_test not in SEASONAL_INTEGRATION_TESTS:
            raise UnsupportedOptionError(
                "seasonal integration test", self.seasonal_integration_test, SEASONAL_INTEGRATION_TESTS
            )
        if self.objective_function.lower() not in OBJECTIVE_FUNCTIONS:
            raise UnsupportedOptionError("objective function", self.objective_function, OBJECTIVE_FUNCTIONS)
