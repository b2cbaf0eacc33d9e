"""Model-selection criteria and structural checks for SARIMA models.

Information criteria are pure functions of the residual variance σ², the
number of residuals T used in the fit and the parameter count k. Lower is
better for all three.

References:
    - Akaike (1974): "A new look at the statistical model identification"
    - Hurvich & Tsai (1989): "Regression and time series model selection in
      small samples"
    - Schwarz (1978): "Estimating the dimension of a model"
"""

from __future__ import annotations

from typing import Callable, Dict

import numpy as np

from ..exceptions import UnsupportedOptionError

Criterion = Callable[[float, int, int], float]


def _check(sigma2: float, nobs: int, k: int) -> None:
    if sigma2 <= 0:
        raise ValueError(f"sigma2 must be > 0, got {sigma2}")
    if nobs < 1:
        raise ValueError(f"nobs must be >= 1, got {nobs}")
    if k < 0:
        raise ValueError(f"k must be >= 0, got {k}")


def aic(sigma2: float, nobs: int, k: int) -> float:
    """Akaike Information Criterion, AIC = 2k + T·ln(σ²).

    Args:
        sigma2: Residual variance.
        nobs: Number of residuals T.
        k: Number of estimated parameters.

    Returns:
        AIC value.
    """
    _check(sigma2, nobs, k)
    return 2 * k + nobs * np.log(sigma2)


def aicc(sigma2: float, nobs: int, k: int) -> float:
    """Small-sample corrected AIC.

    AICc = AIC + (2k² + 2k) / (T - k - 1)

    Raises:
        ValueError: If T <= k + 1, where the correction is undefined.
    """
    if nobs <= k + 1:
        raise ValueError(f"AICc is undefined for nobs={nobs} <= k+1={k + 1}")
    return aic(sigma2, nobs, k) + (2 * k**2 + 2 * k) / (nobs - k - 1)


def bic(sigma2: float, nobs: int, k: int) -> float:
    """Bayesian Information Criterion, BIC = k·ln(T) + T·ln(σ²)."""
    _check(sigma2, nobs, k)
    return k * np.log(nobs) + nobs * np.log(sigma2)


_CRITERIA: Dict[str, Criterion] = {"aic": aic, "aicc": aicc, "bic": bic}


def get_information_criteria(name: str) -> Criterion:
    """Look up an information criterion by name ("aic", "aicc" or "bic").

    Raises:
        UnsupportedOptionError: If the name is unknown.
    """
    try:
        return _CRITERIA[name.lower()]
    except KeyError:
        raise UnsupportedOptionError("information criteria", name, sorted(_CRITERIA)) from None


def _roots_outside_unit_circle(poly_tail: np.ndarray) -> bool:
    # poly_tail holds the coefficients of z^1..z^n; the constant term is 1
    poly_tail = np.trim_zeros(np.asarray(poly_tail, dtype=float), "b")
    if len(poly_tail) == 0:
        return True
    # np.roots expects the highest degree first
    roots = np.roots(np.concatenate([poly_tail[::-1], [1.0]]))
    return bool(np.all(np.abs(roots) > 1.0))


def is_stationary(ar: np.ndarray) -> bool:
    """True when every root of 1 - Σ a_i z^i lies strictly outside the unit circle.

    Example:
        >>> is_stationary(np.array([0.5]))
        True
        >>> is_stationary(np.array([1.2]))
        False
    """
    return _roots_outside_unit_circle(-np.asarray(ar, dtype=float))


def is_invertible(ma: np.ndarray) -> bool:
    """True when every root of 1 + Σ b_i z^i lies strictly outside the unit circle."""
    return _roots_outside_unit_circle(np.asarray(ma, dtype=float))
