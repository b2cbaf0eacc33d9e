"""Nonlinear solver seam used by the SARIMA estimator.

Example
-------
>>> import numpy as np
>>> from optsarima.solver import NLPProblem, solve_nlp
>>> problem = NLPProblem(
...     objective=lambda x: float(np.sum(x**2)),
...     gradient=lambda x: 2 * x,
...     eq_constraints=lambda x: np.array([x[0] + x[1] - 1.0]),
...     eq_jacobian=lambda x: np.array([[1.0, 1.0]]),
...     n=2,
... )
>>> res = solve_nlp(problem, np.zeros(2))
>>> np.round(res.x, 4)
array([0.5, 0.5])
"""

from .core import NLPProblem, Sense, SolverResult, Status
from .nlp import minimize_derivative_free, solve_nlp

__all__ = [
    "NLPProblem",
    "Sense",
    "SolverResult",
    "Status",
    "minimize_derivative_free",
    "solve_nlp",
]
