"""Utility functions for time-series analysis.

This module provides the stationarity-inducing transform used throughout the
package (regular and seasonal differencing and its inverse), together with the
autocovariance and Durbin-Levinson helpers used to build starting values for
the estimator.

References:
    - Box & Jenkins (1976): Time Series Analysis: Forecasting and Control
    - Hamilton (1994): Time Series Analysis
"""

from __future__ import annotations

import numpy as np
import pandas as pd


def _check_orders(d: int, D: int, s: int) -> None:
    if d < 0:
        raise ValueError(f"d must be >= 0, got {d}")
    if D < 0:
        raise ValueError(f"D must be >= 0, got {D}")
    if s < 1:
        raise ValueError(f"s (seasonality) must be >= 1, got {s}")


def differentiate(x: np.ndarray, d: int = 1, D: int = 0, s: int = 1) -> np.ndarray:
    """Apply regular and seasonal differencing to a time series.

    Applies d rounds of first differencing, Δx_t = x_t - x_{t-1}, followed by
    D rounds of seasonal differencing, x_t - x_{t-s}. The result is
    shorter than the input by d + D*s observations.

    Args:
        x: 1D array of time series values, shape (n,).
        d: Number of first differences. Must be >= 0.
        D: Number of seasonal differences. Must be >= 0.
        s: Seasonal lag. Must be >= 1.

    Returns:
        Differenced series of shape (n - d - D*s,). An empty array is
        returned when the series is too short.

    Raises:
        ValueError: If an order is negative, s < 1, or x is not 1D.

    Example:
        >>> x = np.array([1.0, 2.0, 4.0, 7.0, 11.0])
        >>> differentiate(x, d=1)
        array([1., 2., 3., 4.])
        >>> differentiate(x, d=2)
        array([1., 1., 1.])
    """
    x = np.asarray(x, dtype=float)
    if x.ndim != 1:
        raise ValueError(f"x must be 1D array, got shape {x.shape}")
    _check_orders(d, D, s)

    if len(x) <= d + D * s:
        return np.array([])

    result = x.copy()
    for _ in range(d):
        result = result[1:] - result[:-1]
    for _ in range(D):
        result = result[s:] - result[:-s]
    return result


def integrate(
    initial_values: np.ndarray,
    diffed: np.ndarray,
    d: int = 1,
    D: int = 0,
    s: int = 1,
) -> np.ndarray:
    """Undo :func:`differentiate` on a segment of a series.

    Given the d + D*s original observations immediately preceding the
    differenced segment, rebuilds the segment on the original scale by
    cumulative summation. Seasonal levels are undone first, then regular
    levels, mirroring the order in which differencing was applied.

    Args:
        initial_values: The d + D*s original values preceding the segment.
        diffed: Differenced values, shape (m,).
        d: Number of first differences that were applied.
        D: Number of seasonal differences that were applied.
        s: Seasonal lag that was used.

    Returns:
        Reconstructed segment on the original scale, shape (m,).

    Raises:
        ValueError: If orders are invalid or initial_values has the wrong length.

    Example:
        >>> x = np.array([1.0, 2.0, 4.0, 7.0, 11.0])
        >>> integrate(x[:1], differentiate(x, d=1), d=1)
        array([ 2.,  4.,  7., 11.])
    """
    initial_values = np.asarray(initial_values, dtype=float)
    diffed = np.asarray(diffed, dtype=float)
    if initial_values.ndim != 1:
        raise ValueError(f"initial_values must be 1D array, got shape {initial_values.shape}")
    if diffed.ndim != 1:
        raise ValueError(f"diffed must be 1D array, got shape {diffed.shape}")
    _check_orders(d, D, s)

    n_seed = d + D * s
    if len(initial_values) != n_seed:
        raise ValueError(
            f"initial_values must contain d + D*s = {n_seed} values, got {len(initial_values)}"
        )

    if n_seed == 0:
        return diffed.copy()

    # Seed values at every differencing level: regular levels 0..d, then
    # seasonal levels on top of the d-th regular level.
    regular_seeds = [initial_values]
    for _ in range(d):
        prev = regular_seeds[-1]
        regular_seeds.append(prev[1:] - prev[:-1])
    seasonal_seeds = [regular_seeds[-1]]
    for _ in range(D):
        prev = seasonal_seeds[-1]
        seasonal_seeds.append(prev[s:] - prev[:-s])

    result = diffed.copy()
    for level in range(D - 1, -1, -1):
        history = seasonal_seeds[level][-s:]
        extended = np.concatenate([history, np.zeros(len(result))])
        for i in range(len(result)):
            extended[s + i] = extended[i] + result[i]
        result = extended[s:]

    for level in range(d - 1, -1, -1):
        result = regular_seeds[level][-1] + np.cumsum(result)

    return result


def differentiate_frame(frame: pd.DataFrame, d: int = 1, D: int = 0, s: int = 1) -> pd.DataFrame:
    """Column-wise :func:`differentiate` keeping the trailing index labels."""
    n_drop = d + D * s
    columns = {col: differentiate(frame[col].to_numpy(dtype=float), d=d, D=D, s=s) for col in frame.columns}
    return pd.DataFrame(columns, index=frame.index[n_drop:])


def acov(x: np.ndarray, nlags: int) -> np.ndarray:
    """Compute sample autocovariances γ(0), ..., γ(nlags).

    Args:
        x: 1D time series array, shape (n,).
        nlags: Maximum lag to compute. Must be >= 0.

    Returns:
        Array of autocovariances, shape (nlags+1,).

    Raises:
        ValueError: If nlags < 0, n < 2, or x is not 1D.
    """
    x = np.asarray(x, dtype=float)
    if x.ndim != 1:
        raise ValueError(f"x must be 1D array, got shape {x.shape}")
    if nlags < 0:
        raise ValueError(f"nlags must be >= 0, got {nlags}")
    n = len(x)
    if n < 2:
        raise ValueError(f"Need at least 2 observations, got {n}")

    x_centered = x - np.mean(x)
    acov_vals = np.zeros(nlags + 1)
    for k in range(min(nlags, n - 1) + 1):
        acov_vals[k] = np.mean(x_centered[k:] * x_centered[: n - k])
    return acov_vals


def durbin_levinson(r: np.ndarray) -> np.ndarray:
    """Solve the Toeplitz Yule-Walker system via Durbin-Levinson recursion.

    Args:
        r: Autocovariance vector [γ(0), γ(1), ..., γ(p)], shape (p+1,).
            Must have r[0] > 0.

    Returns:
        AR coefficients [φ_1, ..., φ_p], shape (p,).

    Raises:
        ValueError: If r has fewer than 2 entries, r[0] <= 0, or r is not 1D.

    References:
        Durbin (1960): "The fitting of time-series models"
        Levinson (1947): "The Wiener RMS error criterion"
    """
    r = np.asarray(r, dtype=float)
    if r.ndim != 1:
        raise ValueError(f"r must be 1D array, got shape {r.shape}")
    if len(r) < 2:
        raise ValueError(f"Need at least 2 autocovariances, got {len(r)}")
    if r[0] <= 0:
        raise ValueError(f"r[0] (variance) must be > 0, got {r[0]}")

    p = len(r) - 1
    phi = np.zeros(p)
    v = r[0]

    for k in range(1, p + 1):
        num = r[k] - np.dot(phi[: k - 1], r[k - 1 : 0 : -1])
        ak = num / max(v, 1e-12)

        phi_old = phi[: k - 1].copy()
        phi[k - 1] = ak
        phi[: k - 1] = phi_old - ak * phi_old[::-1]

        v = v * (1 - ak**2)

    return phi
