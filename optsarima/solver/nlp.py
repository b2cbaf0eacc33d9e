"""scipy-backed entry points for the solver seam.

``solve_nlp`` hands an :class:`NLPProblem` to SLSQP after eliminating fixed
variables. An optional wall-clock budget stops the backend and returns the
last accepted iterate. ``minimize_derivative_free`` runs a bounded Powell
search and falls back to unconstrained Nelder-Mead when the first method
reports non-convergence.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

import numpy as np
from scipy import optimize

from ..logging import get_logger
from .core import Array, NLPProblem, Sense, SolverResult, Status

logger = get_logger(__name__)

_SLSQP_ITERATION_LIMIT = 9


class _TimeLimitReached(Exception):
    """Internal signal used to abort the backend once the budget is spent."""


def _status_from_scipy(result: optimize.OptimizeResult) -> Status:
    if result.success:
        return Status.OPTIMAL
    if getattr(result, "status", None) == _SLSQP_ITERATION_LIMIT:
        return Status.MAX_ITER
    return Status.NUMERICAL_ERROR


def solve_nlp(
    problem: NLPProblem,
    x0: Array,
    max_iter: int = 500,
    tol: float = 1e-9,
    time_limit: Optional[float] = None,
) -> SolverResult:
    """Solve a smooth equality-constrained, box-bounded nonlinear program.

    Args:
        problem: Problem description.
        x0: Starting point for the full decision vector, shape (n,). Fixed
            entries are overwritten with their fixed values and free entries
            are clipped into the bounds.
        max_iter: Maximum SLSQP iterations.
        tol: SLSQP convergence tolerance.
        time_limit: Optional wall-clock budget in seconds.

    Returns:
        SolverResult with the full decision vector. Non-convergence is
        reported through ``status``; it is never raised.
    """
    x0 = np.asarray(x0, dtype=float)
    if x0.shape != (problem.n,):
        raise ValueError(f"x0 must have shape ({problem.n},), got {x0.shape}")

    free = problem.free_indices
    fixed_idx = np.array(sorted(problem.fixed), dtype=int)
    fixed_vals = np.array([problem.fixed[i] for i in fixed_idx], dtype=float)
    sign = 1.0 if problem.sense is Sense.MINIMIZE else -1.0

    def expand(z: Array) -> Array:
        x = np.empty(problem.n)
        x[free] = z
        x[fixed_idx] = fixed_vals
        return x

    z0 = np.clip(x0[free], problem.lb[free], problem.ub[free])

    if len(free) == 0:
        x = expand(z0)
        return SolverResult(
            x=x,
            fun=float(problem.objective(x)),
            status=Status.OPTIMAL,
            message="All variables fixed",
        )

    deadline = None if time_limit is None else time.perf_counter() + time_limit
    last_iterate = {"z": z0.copy(), "nit": 0}

    def fun(z: Array) -> float:
        if deadline is not None and time.perf_counter() > deadline:
            raise _TimeLimitReached
        return sign * float(problem.objective(expand(z)))

    jac: Optional[Callable[[Array], Array]] = None
    if problem.gradient is not None:

        def jac(z: Array) -> Array:
            return sign * np.asarray(problem.gradient(expand(z)))[free]

    constraints = []
    if problem.eq_constraints is not None:
        constraint = {"type": "eq", "fun": lambda z: np.asarray(problem.eq_constraints(expand(z)))}
        if problem.eq_jacobian is not None:
            constraint["jac"] = lambda z: np.asarray(problem.eq_jacobian(expand(z)))[:, free]
        constraints.append(constraint)

    def callback(zk: Array) -> None:
        last_iterate["z"] = np.array(zk, copy=True)
        last_iterate["nit"] += 1

    try:
        result = optimize.minimize(
            fun,
            z0,
            jac=jac,
            method="SLSQP",
            bounds=optimize.Bounds(problem.lb[free], problem.ub[free]),
            constraints=constraints,
            callback=callback,
            options={"maxiter": max_iter, "ftol": tol},
        )
    except _TimeLimitReached:
        x = expand(last_iterate["z"])
        return SolverResult(
            x=x,
            fun=float(problem.objective(x)),
            status=Status.TIME_LIMIT,
            nit=last_iterate["nit"],
            message=f"Time limit of {time_limit}s reached",
        )

    x = expand(result.x)
    return SolverResult(
        x=x,
        fun=float(problem.objective(x)),
        status=_status_from_scipy(result),
        nit=int(getattr(result, "nit", 0)),
        message=str(result.message),
    )


def minimize_derivative_free(
    fun: Callable[[Array], float],
    x0: Array,
    lb: Array,
    ub: Array,
    max_iter: int = 100,
    xtol: float = 1e-4,
    ftol: float = 1e-6,
) -> SolverResult:
    """Minimize a black-box scalar function inside a box.

    Powell's method is tried first within ``[lb, ub]``. If it does not
    converge a warning is logged and Nelder-Mead is run without bounds from
    the same start; a second failure is also logged. The better of the two
    points is returned.

    Args:
        fun: Scalar objective, evaluated on arrays of shape (n,).
        x0: Starting point, shape (n,).
        lb: Lower bounds, shape (n,).
        ub: Upper bounds, shape (n,).
        max_iter: Iteration cap per method.
        xtol: Absolute tolerance on the argument.
        ftol: Tolerance on the objective.

    Returns:
        SolverResult for the best point found.
    """
    x0 = np.asarray(x0, dtype=float)
    lb = np.asarray(lb, dtype=float)
    ub = np.asarray(ub, dtype=float)

    primary = optimize.minimize(
        fun,
        np.clip(x0, lb, ub),
        method="Powell",
        bounds=optimize.Bounds(lb, ub),
        options={"maxiter": max_iter, "xtol": xtol, "ftol": ftol},
    )
    if primary.success:
        return SolverResult(
            x=np.asarray(primary.x, dtype=float),
            fun=float(primary.fun),
            status=Status.OPTIMAL,
            nit=int(primary.nit),
            message=str(primary.message),
        )

    logger.warning("The bounded search did not converge (%s); trying Nelder-Mead", primary.message)
    fallback = optimize.minimize(
        fun,
        x0,
        method="Nelder-Mead",
        options={"maxiter": max_iter, "xatol": xtol, "fatol": ftol},
    )
    if not fallback.success:
        logger.warning("The Nelder-Mead fallback did not converge (%s)", fallback.message)

    best = fallback if fallback.fun <= primary.fun else primary
    return SolverResult(
        x=np.asarray(best.x, dtype=float),
        fun=float(best.fun),
        status=Status.OPTIMAL if fallback.success else Status.MAX_ITER,
        nit=int(primary.nit) + int(fallback.nit),
        message=str(best.message),
    )
