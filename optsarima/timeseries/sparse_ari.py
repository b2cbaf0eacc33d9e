"""K-sparse autoregressive model on first differences.

The model is the augmented Dickey-Fuller regression

    Δy_t = α + δ·t + γ·y_{t-1} + Σ_{i=1}^{max_p-1} ϕ_i Δy_{t-i} + ϵ_t

where at most K of the candidate coefficients [δ, γ, ϕ_1, ..., ϕ_{max_p-1}]
are nonzero. The intercept α is always estimated and is not counted in K.
For each K = 1, 2, ... the best support of size K is found by exhaustive
least squares over all supports, and K grows until the AICc stops
improving.

Example:
    >>> rng = np.random.default_rng(0)
    >>> y = np.cumsum(rng.normal(size=150))
    >>> model = SparseARI(y, max_p=6, max_k=3)
    >>> res = model.fit()
    >>> values = model.predict(steps_ahead=12)

References:
    - Bertsimas, King & Mazumder (2016): "Best subset selection via a modern
      optimization lens"
    - Said & Dickey (1984): "Testing for unit roots in autoregressive-moving
      average models of unknown order"
"""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from ..exceptions import ModelNotFittedError, SeriesTooShortError
from ..logging import get_logger
from .calendar import SeriesLike, as_series, build_datetimes, identify_granularity
from .diagnostics import aicc

logger = get_logger(__name__)

_MAX_SUPPORTS = 100_000


@dataclass(frozen=True)
class SparseARIResult:
    """Immutable result of fitting a :class:`SparseARI` model.

    Attributes:
        alpha: Intercept α.
        delta: Coefficient δ of the 0-based time index.
        gamma: Coefficient γ of the lagged level y_{t-1}.
        phi: Coefficients of the lagged differences, shape (max_p - 1,).
        support: Which of [δ, γ, ϕ_1, ...] are selected, shape (max_p + 1,).
        k: Number of selected coefficients.
        residuals: Residuals of the regression rows, shape (nobs,).
        sigma2: Residual variance Σϵ²/(nobs - 1).
        fitted: In-sample fit on the level scale, y_{t-1} + Δŷ_t.
        nobs: Number of regression rows.
        aicc_path: AICc of the best support for K = 1, 2, ... as evaluated.
    """

    alpha: float
    delta: float
    gamma: float
    phi: np.ndarray
    support: np.ndarray
    k: int
    residuals: np.ndarray
    sigma2: float
    fitted: pd.Series
    nobs: int
    aicc_path: Tuple[float, ...]

    @property
    def aicc(self) -> float:
        return aicc(self.sigma2, self.nobs, self.k)

    @property
    def params(self) -> np.ndarray:
        """Candidate coefficients as [δ, γ, ϕ_1, ..., ϕ_{max_p-1}]."""
        return np.concatenate([[self.delta, self.gamma], self.phi])


def coefficient_names(max_p: int) -> List[str]:
    return ["delta", "gamma"] + [f"phi_{i}" for i in range(1, max_p)]


def _design(y: np.ndarray, max_p: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Regression rows t = max_p, ..., n-1 as (rows, Δy_t, candidate columns)."""
    dy = np.concatenate([[np.nan], np.diff(y)])
    rows = np.arange(max_p, len(y))
    columns = [rows.astype(float), y[rows - 1]]
    columns.extend(dy[rows - i] for i in range(1, max_p))
    return rows, dy[rows], np.column_stack(columns)


def _best_support(
    target: np.ndarray,
    candidates: np.ndarray,
    k: int,
) -> Tuple[Tuple[int, ...], np.ndarray, np.ndarray]:
    """Exhaustive least squares over all supports of size ``k``.

    Returns:
        Tuple of (support, coefficients [α, selected...], residuals).
    """
    intercept = np.ones((len(target), 1))
    best: Optional[Tuple[Tuple[int, ...], np.ndarray, np.ndarray]] = None
    best_sse = np.inf
    for support in itertools.combinations(range(candidates.shape[1]), k):
        X = np.hstack([intercept, candidates[:, support]])
        beta, *_ = np.linalg.lstsq(X, target, rcond=None)
        residuals = target - X @ beta
        sse = float(np.dot(residuals, residuals))
        if sse < best_sse:
            best_sse = sse
            best = (support, beta, residuals)
    return best


class SparseARI:
    """Best-subset ARI model with the sparsity level chosen by AICc.

    Args:
        y: Observed series (levels). A ``pd.Series`` with a uniformly spaced
            DatetimeIndex, or any 1-D array-like.
        max_p: Number of lags of the level equation. The regression has
            max_p - 1 lagged differences.
        max_k: Largest sparsity level tried.
        silent: Suppress INFO messages about each sparsity level.

    Raises:
        ValueError: If max_p or max_k is below 1, or a sparsity level would
            need more than 100000 least-squares fits.
    """

    def __init__(
        self,
        y: SeriesLike,
        max_p: int = 13,
        max_k: int = 10,
        silent: bool = True,
    ) -> None:
        if max_p < 1:
            raise ValueError(f"max_p must be >= 1, got {max_p}")
        if max_k < 1:
            raise ValueError(f"max_k must be >= 1, got {max_k}")
        n_candidates = max_p + 1
        largest = max(math.comb(n_candidates, k) for k in range(1, min(max_k, n_candidates) + 1))
        if largest > _MAX_SUPPORTS:
            raise ValueError(
                f"Exhaustive search over {largest} supports exceeds {_MAX_SUPPORTS}; "
                "reduce max_p or max_k"
            )

        self.y = as_series(y)
        self.max_p = max_p
        self.max_k = max_k
        self.silent = silent
        self.granularity = identify_granularity(self.y.index)
        self.fit_result: Optional[SparseARIResult] = None
        self.forecast: Optional[pd.DataFrame] = None

    @property
    def is_fitted(self) -> bool:
        return self.fit_result is not None

    @property
    def selected(self) -> List[str]:
        """Names of the selected coefficients."""
        if self.fit_result is None:
            raise ModelNotFittedError()
        names = coefficient_names(self.max_p)
        return [name for name, chosen in zip(names, self.fit_result.support) if chosen]

    def fit(self, k: Optional[int] = None) -> SparseARIResult:
        """Select the sparsity level and store the best fit on the model.

        Args:
            k: Fit this sparsity level only instead of selecting it by AICc.

        Raises:
            SeriesTooShortError: If fewer than three regression rows remain.
            ValueError: If ``k`` is outside [1, max_p + 1], or the AICc is
                undefined already for the first level tried.
        """
        n_candidates = self.max_p + 1
        if k is not None and not 1 <= k <= n_candidates:
            raise ValueError(f"k must be in [1, {n_candidates}], got {k}")
        if k is not None and math.comb(n_candidates, k) > _MAX_SUPPORTS:
            raise ValueError(
                f"Exhaustive search over {math.comb(n_candidates, k)} supports exceeds {_MAX_SUPPORTS}"
            )
        levels = [k] if k is not None else range(1, min(self.max_k, n_candidates) + 1)

        y = self.y.to_numpy(dtype=float)
        rows, target, candidates = _design(y, self.max_p)
        nobs = len(rows)
        if nobs < 3:
            raise SeriesTooShortError(
                f"Series too short for max_p={self.max_p}: {len(y)} observations, "
                f"at least {self.max_p + 3} needed"
            )

        path: List[float] = []
        best: Optional[Tuple[int, Tuple[int, ...], np.ndarray, np.ndarray]] = None
        for level in levels:
            support, beta, residuals = _best_support(target, candidates, level)
            sigma2 = float(np.dot(residuals, residuals) / (nobs - 1))
            try:
                criterion = aicc(sigma2, nobs, level)
            except ValueError as exc:
                logger.warning("Stopping at K=%d: %s", level, exc)
                break
            if not self.silent:
                logger.info("Best support for K=%d is %s with AICc %.4f", level, support, criterion)
            path.append(criterion)
            if len(path) > 1 and criterion >= path[-2]:
                break
            best = (level, support, beta, residuals)

        if best is None:
            raise ValueError(f"No sparsity level has a defined AICc with {nobs} regression rows")
        level, support, beta, residuals = best

        params = np.zeros(candidates.shape[1])
        params[list(support)] = beta[1:]
        mask = np.zeros(candidates.shape[1], dtype=bool)
        mask[list(support)] = True
        fitted = pd.Series(y[rows - 1] + target - residuals, index=self.y.index[rows], name="fitted")
        self.fit_result = SparseARIResult(
            alpha=float(beta[0]),
            delta=float(params[0]),
            gamma=float(params[1]),
            phi=params[2:].copy(),
            support=mask,
            k=level,
            residuals=residuals,
            sigma2=float(np.dot(residuals, residuals) / (nobs - 1)),
            fitted=fitted,
            nobs=nobs,
            aicc_path=tuple(path),
        )
        if not self.silent:
            logger.info("Selected K=%d: %s", level, ", ".join(self.selected))
        return self.fit_result

    def predict(self, steps_ahead: int = 1) -> np.ndarray:
        """Point forecasts on the level scale, also stored as ``forecast``.

        Raises:
            ModelNotFittedError: If the model has not been fitted.
            ValueError: If steps_ahead < 1.
        """
        fit = self.fit_result
        if fit is None:
            raise ModelNotFittedError()
        if steps_ahead < 1:
            raise ValueError(f"steps_ahead must be >= 1, got {steps_ahead}")

        n = len(self.y)
        values = np.concatenate([self.y.to_numpy(dtype=float), np.zeros(steps_ahead)])
        for t in range(n, n + steps_ahead):
            step = fit.alpha + fit.delta * t + fit.gamma * values[t - 1]
            for i, phi in enumerate(fit.phi, start=1):
                step += phi * (values[t - i] - values[t - i - 1])
            values[t] = values[t - 1] + step
        forecasts = values[n:]

        index = build_datetimes(self.y.index[-1], self.granularity, steps_ahead)
        self.forecast = pd.DataFrame({"forecast": forecasts}, index=index)
        return forecasts

    def __repr__(self) -> str:
        state = f"K={self.fit_result.k}" if self.is_fitted else "unfitted"
        return f"<SparseARI(max_p={self.max_p}, max_k={self.max_k}) {state}>"
