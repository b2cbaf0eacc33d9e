"""Integration-order selection for the automatic search.

Non-seasonal differencing is chosen by repeated KPSS tests (Kwiatkowski et
al., 1992) and seasonal differencing by the seasonal-strength measure of
Wang, Smith & Hyndman (2006) computed from an STL decomposition, or by the
Canova-Hansen (1995) test.
"""

from __future__ import annotations

import warnings

import numpy as np
from statsmodels.tsa.seasonal import STL
from statsmodels.tsa.stattools import kpss

from ..config import INTEGRATION_TESTS, SEASONAL_INTEGRATION_TESTS
from ..exceptions import UnsupportedOptionError
from ..logging import get_logger
from .utils import differentiate

logger = get_logger(__name__)

KPSS_ALPHA = 0.05
SEASONAL_STRENGTH_THRESHOLD = 0.64
_MIN_TEST_LENGTH = 10


def _kpss_rejects(x: np.ndarray, alpha: float = KPSS_ALPHA) -> bool:
    if len(x) < _MIN_TEST_LENGTH or np.ptp(x) == 0:
        return False
    # p-values outside the tabulated range trigger InterpolationWarning
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore")
        _, pvalue, _, _ = kpss(x, regression="c", nlags="auto")
    return pvalue < alpha


def select_integration_order(
    y: np.ndarray,
    max_d: int = 2,
    D: int = 0,
    s: int = 1,
    test: str = "kpss",
) -> int:
    """Number of first differences needed for a level-stationary series.

    The seasonal differences ``D`` are applied first. The series is then
    differenced while the KPSS test rejects level stationarity at the 5%
    level, at most ``max_d`` times.

    Args:
        y: Observed values, shape (n,).
        max_d: Maximum number of first differences.
        D: Seasonal differences already chosen.
        s: Seasonal period.
        test: Unit-root test name. Only "kpss" is supported.

    Returns:
        Selected d in [0, max_d].

    Raises:
        UnsupportedOptionError: If the test name is unknown.
    """
    if test not in INTEGRATION_TESTS:
        raise UnsupportedOptionError("integration test", test, INTEGRATION_TESTS)
    if max_d < 0:
        raise ValueError(f"max_d must be >= 0, got {max_d}")

    x = differentiate(np.asarray(y, dtype=float), d=0, D=D, s=s)
    d = 0
    while d < max_d and _kpss_rejects(x):
        x = differentiate(x, d=1)
        d += 1
    logger.debug("Selected d=%d by %s", d, test)
    return d


def seasonal_strength(y: np.ndarray, s: int) -> float:
    """Seasonal strength max(0, 1 - Var(R) / Var(S + R)) from an STL fit."""
    result = STL(np.asarray(y, dtype=float), period=s).fit()
    detrended = result.seasonal + result.resid
    denominator = np.var(detrended)
    if denominator <= 0:
        return 0.0
    return max(0.0, 1.0 - np.var(result.resid) / denominator)


def select_seasonal_integration_order(y: np.ndarray, s: int, test: str = "seas") -> int:
    """Number of seasonal differences (0 or 1).

    Under "seas" the series is differenced when the seasonal strength
    exceeds 0.64. Under "ch" the Canova-Hansen test for seasonal stability
    is run through :func:`pmdarima.arima.nsdiffs`. Non-seasonal series and
    series not longer than two full periods get 0.

    Raises:
        UnsupportedOptionError: If the test name is unknown.
    """
    if test not in SEASONAL_INTEGRATION_TESTS:
        raise UnsupportedOptionError("seasonal integration test", test, SEASONAL_INTEGRATION_TESTS)
    y = np.asarray(y, dtype=float)
    if s <= 1 or len(y) <= 2 * s or np.ptp(y) == 0:
        return 0
    if test == "ch":
        return _canova_hansen_order(y, s)
    strength = seasonal_strength(y, s)
    logger.debug("Seasonal strength %.3f for s=%d", strength, s)
    return int(strength > SEASONAL_STRENGTH_THRESHOLD)


def _canova_hansen_order(y: np.ndarray, s: int) -> int:
    from pmdarima.arima import nsdiffs

    D = int(nsdiffs(y, m=s, max_D=1, test="ch"))
    logger.debug("Canova-Hansen test selects D=%d for s=%d", D, s)
    return D
