"""Parameter estimation for SARIMA models.

The estimation problem is written as a constrained nonlinear program over a
single decision vector

    x = [c, trend, β (n_exog), ϕ (p), Φ (P), θ (q), Θ (Q), ϵ (T)] (+ σ for "ml")

where T is the length of the differenced series. For every row i >= m, with
m = max(p, q, P·s, Q·s), the structural equation

    y_i = c + trend·(i+1) + Σβ x_i + Σϕ_k y_{i-k} + ΣΦ_k y_{i-ks}
          + Σθ_j ϵ_{i-j} + ΣΘ_w ϵ_{i-ws} + ϵ_i

is imposed as an equality constraint and ϵ_i for i < m is fixed at zero.
Three objectives are available:

- "mse": mean squared residual over the constrained rows.
- "ml": Gaussian log-likelihood, maximised with a free scale σ.
- "bilevel": MSE inner problem with θ/Θ searched by a derivative-free outer
  loop.

References:
    - Box & Jenkins (1976): Time Series Analysis: Forecasting and Control
    - Hamilton (1994): Time Series Analysis
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, NamedTuple, Optional, Tuple

import numpy as np
import pandas as pd

from ..config import OBJECTIVE_FUNCTIONS
from ..exceptions import SeriesTooShortError, UnsupportedOptionError
from ..logging import get_logger
from ..solver import NLPProblem, Sense, SolverResult, minimize_derivative_free, solve_nlp
from .diagnostics import aic, aicc, bic
from .utils import acov, differentiate, differentiate_frame, durbin_levinson, integrate

if TYPE_CHECKING:
    from .models import SARIMA

logger = get_logger(__name__)

_COEFFICIENT_BOUND = 1.0
_SIGMA_LOWER_BOUND = 1e-8
_START_AR_CLIP = 0.95


class Coefficients(NamedTuple):
    """Coefficient groups of a SARIMA model on the differenced scale."""

    c: float
    trend: float
    exog: np.ndarray
    ar: np.ndarray
    seasonal_ar: np.ndarray
    ma: np.ndarray
    seasonal_ma: np.ndarray


@dataclass(frozen=True)
class FitResult:
    """Immutable result of fitting a SARIMA model.

    Attributes:
        c: Intercept.
        trend: Drift coefficient, multiplying the 1-based time index of the
            differenced series.
        ar: Non-seasonal AR coefficients ϕ, shape (p,).
        ma: Non-seasonal MA coefficients θ, shape (q,).
        seasonal_ar: Seasonal AR coefficients Φ, shape (P,).
        seasonal_ma: Seasonal MA coefficients Θ, shape (Q,).
        exog_coefficients: Exogenous coefficients β, or None without exog.
        residuals: Residuals ϵ of the constrained rows, shape (nobs,).
        sigma2: Residual variance.
        fitted: In-sample fit on the original scale.
        nobs: Number of residuals used by the information criteria.
        n_params: Number of parameters counted by the information criteria.
        objective_function: Name of the objective that was optimized.
        objective_value: Objective value at the solution: the mean squared
            residual, or the log-likelihood under "ml".
        success: Whether the solver reported convergence.
        message: Solver message.
    """

    c: float
    trend: float
    ar: np.ndarray
    ma: np.ndarray
    seasonal_ar: np.ndarray
    seasonal_ma: np.ndarray
    exog_coefficients: Optional[np.ndarray]
    residuals: np.ndarray
    sigma2: float
    fitted: pd.Series
    nobs: int
    n_params: int
    objective_function: str
    objective_value: float
    success: bool
    message: str

    @property
    def aic(self) -> float:
        return aic(self.sigma2, self.nobs, self.n_params)

    @property
    def aicc(self) -> float:
        return aicc(self.sigma2, self.nobs, self.n_params)

    @property
    def bic(self) -> float:
        return bic(self.sigma2, self.nobs, self.n_params)

    @property
    def coefficients(self) -> Coefficients:
        exog = np.zeros(0) if self.exog_coefficients is None else self.exog_coefficients
        return Coefficients(
            self.c, self.trend, exog, self.ar, self.seasonal_ar, self.ma, self.seasonal_ma
        )

    @property
    def params(self) -> np.ndarray:
        """All coefficients as [c, trend, β, ϕ, Φ, θ, Θ]."""
        coef = self.coefficients
        return np.concatenate(
            [[coef.c, coef.trend], coef.exog, coef.ar, coef.seasonal_ar, coef.ma, coef.seasonal_ma]
        )


def yule_walker(x: np.ndarray, p: int) -> Tuple[np.ndarray, float]:
    """Estimate AR(p) parameters via the Yule-Walker equations.

    Args:
        x: 1D time series array, shape (n,).
        p: AR order. Must be >= 1.

    Returns:
        Tuple of (phi, sigma2) with the AR coefficients, shape (p,), and the
        innovation variance.

    Raises:
        ValueError: If p < 1, n < p+1, or the series has near-zero variance.

    Example:
        >>> rng = np.random.default_rng(0)
        >>> eps = rng.normal(size=500)
        >>> x = np.zeros(500)
        >>> for t in range(1, 500):
        ...     x[t] = 0.7 * x[t-1] + eps[t]
        >>> phi, sigma2 = yule_walker(x, p=1)
        >>> abs(phi[0] - 0.7) < 0.1
        True
    """
    x = np.asarray(x, dtype=float)
    if x.ndim != 1:
        raise ValueError(f"x must be 1D array, got shape {x.shape}")
    if p < 1:
        raise ValueError(f"p must be >= 1, got {p}")
    if len(x) < p + 1:
        raise ValueError(f"Need at least p+1={p + 1} observations, got {len(x)}")

    gamma = acov(x, nlags=p)
    if gamma[0] < 1e-12:
        raise ValueError("Series has near-zero variance")

    phi = durbin_levinson(gamma)
    sigma2 = max(gamma[0] - np.dot(phi, gamma[1 : p + 1]), 1e-12)
    return phi, sigma2


def conditional_mean(
    coef: Coefficients,
    y: np.ndarray,
    eps: np.ndarray,
    i: int,
    x_row: np.ndarray,
    s: int,
) -> float:
    """Structural prediction of y[i] from the history before position i.

    ``i`` is the 0-based position in the differenced series, so the drift
    term uses the time index i + 1.
    """
    value = coef.c + coef.trend * (i + 1) + float(np.dot(x_row, coef.exog))
    for k, phi in enumerate(coef.ar, start=1):
        value += phi * y[i - k]
    for k, phi in enumerate(coef.seasonal_ar, start=1):
        value += phi * y[i - k * s]
    for j, theta in enumerate(coef.ma, start=1):
        value += theta * eps[i - j]
    for w, theta in enumerate(coef.seasonal_ma, start=1):
        value += theta * eps[i - w * s]
    return value


def recursive_residuals(
    coef: Coefficients,
    y: np.ndarray,
    X: np.ndarray,
    m: int,
    s: int,
) -> np.ndarray:
    """Residuals implied by ``coef``, with ϵ fixed at zero before row m."""
    eps = np.zeros(len(y))
    for i in range(m, len(y)):
        eps[i] = y[i] - conditional_mean(coef, y, eps, i, X[i], s)
    return eps


@dataclass(frozen=True)
class _Layout:
    """Positions of each coefficient group inside the decision vector."""

    n_exog: int
    p: int
    P: int
    q: int
    Q: int
    T: int
    with_sigma: bool = False

    c = 0
    trend = 1

    @property
    def exog(self) -> slice:
        return slice(2, 2 + self.n_exog)

    @property
    def ar(self) -> slice:
        return slice(self.exog.stop, self.exog.stop + self.p)

    @property
    def seasonal_ar(self) -> slice:
        return slice(self.ar.stop, self.ar.stop + self.P)

    @property
    def ma(self) -> slice:
        return slice(self.seasonal_ar.stop, self.seasonal_ar.stop + self.q)

    @property
    def seasonal_ma(self) -> slice:
        return slice(self.ma.stop, self.ma.stop + self.Q)

    @property
    def eps(self) -> slice:
        return slice(self.seasonal_ma.stop, self.seasonal_ma.stop + self.T)

    @property
    def sigma(self) -> int:
        return self.eps.stop

    @property
    def size(self) -> int:
        return self.eps.stop + int(self.with_sigma)

    def unpack(self, x: np.ndarray) -> Coefficients:
        return Coefficients(
            float(x[self.c]),
            float(x[self.trend]),
            x[self.exog],
            x[self.ar],
            x[self.seasonal_ar],
            x[self.ma],
            x[self.seasonal_ma],
        )

    def pack(self, coef: Coefficients, x: np.ndarray) -> None:
        x[self.c] = coef.c
        x[self.trend] = coef.trend
        x[self.exog] = coef.exog
        x[self.ar] = coef.ar
        x[self.seasonal_ar] = coef.seasonal_ar
        x[self.ma] = coef.ma
        x[self.seasonal_ma] = coef.seasonal_ma


class _SarimaProgram:
    """Objective, constraints and derivatives for one differenced series."""

    def __init__(
        self,
        y: np.ndarray,
        X: np.ndarray,
        m: int,
        s: int,
        layout: _Layout,
        objective: str,
    ) -> None:
        self.y = y
        self.X = X
        self.m = m
        self.s = s
        self.layout = layout
        self.objective_name = objective
        self.rows = np.arange(m, layout.T)
        self.nobs = len(self.rows)

    def _residuals(self, x: np.ndarray) -> np.ndarray:
        return x[self.layout.eps][self.m :]

    def objective(self, x: np.ndarray) -> float:
        """Mean squared residual, or the Gaussian log-likelihood under "ml"."""
        e = self._residuals(x)
        if self.objective_name == "ml":
            sigma = x[self.layout.sigma]
            return -0.5 * self.nobs * np.log(2 * np.pi * sigma**2) - np.dot(e, e) / (2 * sigma**2)
        return float(np.dot(e, e)) / self.nobs

    def gradient(self, x: np.ndarray) -> np.ndarray:
        grad = np.zeros(self.layout.size)
        e = self._residuals(x)
        eps_rows = self.layout.eps.start + self.rows
        if self.objective_name == "ml":
            sigma = x[self.layout.sigma]
            grad[eps_rows] = -e / sigma**2
            grad[self.layout.sigma] = np.dot(e, e) / sigma**3 - self.nobs / sigma
        else:
            grad[eps_rows] = 2.0 * e / self.nobs
        return grad

    def constraints(self, x: np.ndarray) -> np.ndarray:
        layout, r, s = self.layout, self.rows, self.s
        coef = layout.unpack(x)
        eps = x[layout.eps]
        y_hat = coef.c + coef.trend * (r + 1) + self.X[r] @ coef.exog
        for k, phi in enumerate(coef.ar, start=1):
            y_hat = y_hat + phi * self.y[r - k]
        for k, phi in enumerate(coef.seasonal_ar, start=1):
            y_hat = y_hat + phi * self.y[r - k * s]
        for j, theta in enumerate(coef.ma, start=1):
            y_hat = y_hat + theta * eps[r - j]
        for w, theta in enumerate(coef.seasonal_ma, start=1):
            y_hat = y_hat + theta * eps[r - w * s]
        return self.y[r] - y_hat - eps[r]

    def jacobian(self, x: np.ndarray) -> np.ndarray:
        layout, r, s = self.layout, self.rows, self.s
        coef = layout.unpack(x)
        eps = x[layout.eps]
        jac = np.zeros((self.nobs, layout.size))
        row_idx = np.arange(self.nobs)
        eps0 = layout.eps.start

        jac[:, layout.c] = -1.0
        jac[:, layout.trend] = -(r + 1.0)
        jac[:, layout.exog] = -self.X[r]
        for k in range(1, layout.p + 1):
            jac[:, layout.ar.start + k - 1] = -self.y[r - k]
        for k in range(1, layout.P + 1):
            jac[:, layout.seasonal_ar.start + k - 1] = -self.y[r - k * s]
        for j in range(1, layout.q + 1):
            jac[:, layout.ma.start + j - 1] = -eps[r - j]
        for w in range(1, layout.Q + 1):
            jac[:, layout.seasonal_ma.start + w - 1] = -eps[r - w * s]

        jac[row_idx, eps0 + r] = -1.0
        # Regular and seasonal MA lags can hit the same residual
        for j, theta in enumerate(coef.ma, start=1):
            np.add.at(jac, (row_idx, eps0 + r - j), -theta)
        for w, theta in enumerate(coef.seasonal_ma, start=1):
            np.add.at(jac, (row_idx, eps0 + r - w * s), -theta)
        return jac

    def problem(self, fixed: Dict[int, float]) -> NLPProblem:
        layout = self.layout
        lb = np.full(layout.size, -np.inf)
        ub = np.full(layout.size, np.inf)
        bounded = slice(layout.exog.start, layout.seasonal_ma.stop)
        lb[bounded] = -_COEFFICIENT_BOUND
        ub[bounded] = _COEFFICIENT_BOUND
        if layout.with_sigma:
            lb[layout.sigma] = _SIGMA_LOWER_BOUND

        problem = NLPProblem(
            objective=self.objective,
            gradient=self.gradient,
            eq_constraints=self.constraints,
            eq_jacobian=self.jacobian,
            n=layout.size,
            lb=lb,
            ub=ub,
            sense=Sense.MAXIMIZE if self.objective_name == "ml" else Sense.MINIMIZE,
        )
        for i in range(self.m):
            problem.fix(layout.eps.start + i, 0.0)
        for index, value in fixed.items():
            problem.fix(index, value)
        return problem

    def start(self, fixed: Dict[int, float], mean_free: bool) -> np.ndarray:
        """Feasible starting point honouring the fixed entries."""
        layout = self.layout
        ar0 = np.zeros(layout.p)
        if layout.p > 0 and layout.T > layout.p + 1 and np.var(self.y) > 1e-12:
            ar0 = np.clip(yule_walker(self.y, layout.p)[0], -_START_AR_CLIP, _START_AR_CLIP)

        x0 = np.zeros(layout.size)
        x0[layout.ar] = ar0
        if mean_free:
            x0[layout.c] = np.mean(self.y) * (1.0 - np.sum(ar0))
        for index, value in fixed.items():
            x0[index] = value

        coef = layout.unpack(x0)
        eps = recursive_residuals(coef, self.y, self.X, self.m, self.s)
        x0[layout.eps] = eps
        if layout.with_sigma:
            x0[layout.sigma] = max(np.sqrt(np.mean(eps[self.m :] ** 2)), 1e-4)
        return x0


def _differenced_exog(model: "SARIMA", T: int) -> np.ndarray:
    if model.exog is None:
        return np.zeros((T, 0))
    in_sample = model.exog.iloc[: len(model.y)]
    return differentiate_frame(in_sample, d=model.d, D=model.D, s=model.seasonality).to_numpy(dtype=float)


def _fixed_entries(model: "SARIMA", layout: _Layout) -> Dict[int, float]:
    fixed: Dict[int, float] = {}
    if not model.allow_mean:
        fixed[layout.c] = 0.0
    if not model.allow_drift:
        fixed[layout.trend] = 0.0
    if model.keep_provided_coefficients:
        for group, values in model.provided_coefficients.items():
            position = getattr(layout, group)
            indices = [position] if isinstance(position, int) else range(position.start, position.stop)
            for index, value in zip(indices, np.atleast_1d(values)):
                fixed[index] = float(value)
    return fixed


def fit_sarima(
    model: "SARIMA",
    objective_function: str = "mse",
    max_iter: int = 300,
    inner_time_limit: float = 1.0,
) -> FitResult:
    """Estimate the coefficients of ``model`` for its fixed orders.

    Args:
        model: SARIMA model to estimate. It is not modified.
        objective_function: "mse", "ml" or "bilevel".
        max_iter: Iteration cap of each solver call.
        inner_time_limit: Wall-clock budget in seconds of each inner solve
            under "bilevel".

    Returns:
        FitResult. Solver non-convergence is logged as a warning and the
        best-effort point is returned.

    Raises:
        UnsupportedOptionError: If the objective function is unknown.
        SeriesTooShortError: If the differenced series is too short for the
            orders.
    """
    name = objective_function.lower()
    if name not in OBJECTIVE_FUNCTIONS:
        raise UnsupportedOptionError("objective function", objective_function, OBJECTIVE_FUNCTIONS)

    s = model.seasonality
    y = model.y.to_numpy(dtype=float)
    y_diff = differentiate(y, d=model.d, D=model.D, s=s)
    T = len(y_diff)
    m = max(model.p, model.q, model.P * s, model.Q * s)
    if T - m < 2:
        raise SeriesTooShortError(
            f"Series too short for {model.key}: {T} differenced observations, "
            f"{m} needed before the first residual"
        )

    X = _differenced_exog(model, T)
    layout = _Layout(
        n_exog=X.shape[1], p=model.p, P=model.P, q=model.q, Q=model.Q, T=T, with_sigma=name == "ml"
    )
    program = _SarimaProgram(y_diff, X, m, s, layout, "ml" if name == "ml" else "mse")
    fixed = _fixed_entries(model, layout)
    mean_free = layout.c not in fixed

    if name == "bilevel":
        result = _solve_bilevel(program, fixed, mean_free, max_iter, inner_time_limit)
    else:
        result = solve_nlp(program.problem(fixed), program.start(fixed, mean_free), max_iter=max_iter)

    if not result.success:
        logger.warning(
            "Solver did not converge for %s (%s): %s", model.key, result.status.value, result.message
        )

    return _to_fit_result(model, program, result, name)


def _solve_bilevel(
    program: _SarimaProgram,
    fixed: Dict[int, float],
    mean_free: bool,
    max_iter: int,
    inner_time_limit: float,
) -> SolverResult:
    layout = program.layout
    outer = [i for i in range(layout.ma.start, layout.seasonal_ma.stop) if i not in fixed]
    if not outer:
        return solve_nlp(program.problem(fixed), program.start(fixed, mean_free), max_iter=max_iter)

    def with_outer(values: np.ndarray) -> Dict[int, float]:
        pinned = dict(fixed)
        pinned.update(zip(outer, (float(v) for v in values)))
        return pinned

    def inner(values: np.ndarray) -> float:
        pinned = with_outer(values)
        res = solve_nlp(
            program.problem(pinned),
            program.start(pinned, mean_free),
            max_iter=max_iter,
            time_limit=inner_time_limit,
        )
        return res.fun

    n_outer = len(outer)
    best = minimize_derivative_free(inner, np.zeros(n_outer), -np.ones(n_outer), np.ones(n_outer))
    pinned = with_outer(best.x)
    return solve_nlp(program.problem(pinned), program.start(pinned, mean_free), max_iter=max_iter)


def _to_fit_result(
    model: "SARIMA",
    program: _SarimaProgram,
    result: SolverResult,
    name: str,
) -> FitResult:
    layout, m = program.layout, program.m
    x = result.x
    coef = layout.unpack(x)
    eps = x[layout.eps]
    residuals = eps[m:].copy()

    if name == "ml":
        sigma2 = float(x[layout.sigma] ** 2)
    else:
        # The error model has mean zero, so the residual mean is not removed
        sigma2 = float(np.dot(residuals, residuals) / (len(residuals) - 1))

    y = model.y
    n_fitted = layout.T - m
    start = len(y) - n_fitted
    n_seed = model.d + model.D * model.seasonality
    fitted_values = integrate(
        y.to_numpy(dtype=float)[start - n_seed : start],
        program.y[m:] - residuals,
        d=model.d,
        D=model.D,
        s=model.seasonality,
    )
    fitted = pd.Series(fitted_values, index=y.index[start:], name="fitted")

    if not model.silent:
        logger.info("Fitted %s: sigma2=%.6g, objective=%.6g", model.key, sigma2, result.fun)

    return FitResult(
        c=coef.c,
        trend=coef.trend,
        ar=coef.ar.copy(),
        ma=coef.ma.copy(),
        seasonal_ar=coef.seasonal_ar.copy(),
        seasonal_ma=coef.seasonal_ma.copy(),
        exog_coefficients=coef.exog.copy() if model.exog is not None else None,
        residuals=residuals,
        sigma2=sigma2,
        fitted=fitted,
        nobs=len(residuals),
        n_params=model.n_params,
        objective_function=name,
        objective_value=float(result.fun),
        success=result.success,
        message=result.message,
    )
