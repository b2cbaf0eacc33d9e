"""
Problem and result containers for the nonlinear solver seam.

Estimators describe their problem as an :class:`NLPProblem` over a single
decision vector ``x``. Equality constraints are a vector function
``h(x) = 0`` with an optional dense Jacobian. Bounds ``lb`` and ``ub`` are
element-wise vectors where ``-np.inf`` / ``np.inf`` denote free directions.
Fixed variables are removed from the vector handed to the backend and
re-inserted in the result, so callers always see the full ``x``.

References:
    - Nocedal & Wright, *Numerical Optimization* (2006)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional

import numpy as np

Array = np.ndarray
Objective = Callable[[Array], float]
Gradient = Callable[[Array], Array]
Constraint = Callable[[Array], Array]
Jacobian = Callable[[Array], Array]


class Status(Enum):
    """Solution status reported by the solver seam."""

    OPTIMAL = "optimal"
    MAX_ITER = "max_iter"
    TIME_LIMIT = "time_limit"
    NUMERICAL_ERROR = "numerical_error"


class Sense(Enum):
    """Optimization direction."""

    MINIMIZE = "min"
    MAXIMIZE = "max"


@dataclass
class NLPProblem:
    """
    Smooth nonlinear program.

    ``objective`` is minimized when ``sense`` is :attr:`Sense.MINIMIZE` and
    maximized otherwise; ``gradient`` must follow the same orientation as the
    objective.
    """

    objective: Objective
    n: int
    gradient: Optional[Gradient] = None
    eq_constraints: Optional[Constraint] = None
    eq_jacobian: Optional[Jacobian] = None
    lb: Optional[Array] = None
    ub: Optional[Array] = None
    fixed: Dict[int, float] = field(default_factory=dict)
    sense: Sense = Sense.MINIMIZE

    def __post_init__(self) -> None:
        if self.n < 1:
            raise ValueError(f"n must be >= 1, got {self.n}")
        self.lb = np.full(self.n, -np.inf) if self.lb is None else np.asarray(self.lb, dtype=float)
        self.ub = np.full(self.n, np.inf) if self.ub is None else np.asarray(self.ub, dtype=float)
        if self.lb.shape != (self.n,) or self.ub.shape != (self.n,):
            raise ValueError(f"lb and ub must have shape ({self.n},)")
        if np.any(self.lb > self.ub):
            raise ValueError("lb must be <= ub element-wise")
        for index in self.fixed:
            if not 0 <= index < self.n:
                raise ValueError(f"fixed index {index} out of range for n={self.n}")

    def fix(self, index: int, value: float) -> None:
        """Pin ``x[index]`` to ``value``."""
        if not 0 <= index < self.n:
            raise ValueError(f"fixed index {index} out of range for n={self.n}")
        self.fixed[index] = float(value)

    @property
    def free_indices(self) -> Array:
        mask = np.ones(self.n, dtype=bool)
        mask[np.array(sorted(self.fixed), dtype=int)] = False
        return np.flatnonzero(mask)


@dataclass
class SolverResult:
    """
    Solution container shared by the solver entry points.

    Attributes:
        x: Full decision vector, fixed entries included.
        fun: Objective value at ``x`` in the problem's own orientation.
        status: Termination status.
        nit: Iterations performed by the backend (0 when unknown).
        message: Backend message.
    """

    x: Array
    fun: float
    status: Status
    nit: int = 0
    message: str = ""

    @property
    def success(self) -> bool:
        return self.status is Status.OPTIMAL


__all__ = [
    "Array",
    "Constraint",
    "Gradient",
    "Jacobian",
    "NLPProblem",
    "Objective",
    "Sense",
    "SolverResult",
    "Status",
]
