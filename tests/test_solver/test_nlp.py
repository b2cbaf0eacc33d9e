"""Tests for the scipy-backed solver seam."""

from __future__ import annotations

import numpy as np
import pytest

from optsarima.solver import NLPProblem, Sense, Status, minimize_derivative_free, solve_nlp


def _projection_problem(**kwargs) -> NLPProblem:
    """min ||x||² subject to x0 + x1 = 1."""
    return NLPProblem(
        objective=lambda x: float(np.dot(x, x)),
        gradient=lambda x: 2.0 * x,
        eq_constraints=lambda x: np.array([x[0] + x[1] - 1.0]),
        eq_jacobian=lambda x: np.array([[1.0, 1.0]]),
        n=2,
        **kwargs,
    )


class TestNLPProblem:
    """Tests for problem validation."""

    def test_default_bounds(self):
        """Unbounded directions default to ±inf."""
        problem = _projection_problem()
        assert np.all(np.isneginf(problem.lb))
        assert np.all(np.isposinf(problem.ub))

    def test_invalid_problem(self):
        """Test validation errors."""
        with pytest.raises(ValueError, match="n must be >= 1"):
            NLPProblem(objective=lambda x: 0.0, n=0)
        with pytest.raises(ValueError, match="lb must be <= ub"):
            NLPProblem(objective=lambda x: 0.0, n=1, lb=np.array([1.0]), ub=np.array([0.0]))
        with pytest.raises(ValueError, match="out of range"):
            NLPProblem(objective=lambda x: 0.0, n=1, fixed={3: 0.0})

    def test_free_indices(self):
        """Fixed entries are excluded from the free set."""
        problem = _projection_problem()
        problem.fix(0, 0.25)
        np.testing.assert_array_equal(problem.free_indices, [1])


class TestSolveNLP:
    """Tests for solve_nlp()."""

    def test_equality_constrained_minimum(self):
        """The projection of the origin on x0 + x1 = 1 is (0.5, 0.5)."""
        result = solve_nlp(_projection_problem(), np.zeros(2))
        assert result.status is Status.OPTIMAL
        assert result.success
        np.testing.assert_allclose(result.x, [0.5, 0.5], atol=1e-6)
        np.testing.assert_allclose(result.fun, 0.5, atol=1e-6)

    def test_fixed_variable_is_respected(self):
        """A fixed variable keeps its value and the rest adapts."""
        result = solve_nlp(_projection_problem(fixed={0: 0.8}), np.zeros(2))
        np.testing.assert_allclose(result.x, [0.8, 0.2], atol=1e-6)

    def test_bounds_are_respected(self):
        """Box bounds are handed to the backend."""
        problem = NLPProblem(
            objective=lambda x: float((x[0] - 3.0) ** 2),
            gradient=lambda x: np.array([2.0 * (x[0] - 3.0)]),
            n=1,
            lb=np.array([-1.0]),
            ub=np.array([1.0]),
        )
        result = solve_nlp(problem, np.zeros(1))
        np.testing.assert_allclose(result.x, [1.0], atol=1e-6)

    def test_maximization(self):
        """Sense.MAXIMIZE flips the objective."""
        problem = NLPProblem(
            objective=lambda x: float(-((x[0] - 2.0) ** 2)),
            gradient=lambda x: np.array([-2.0 * (x[0] - 2.0)]),
            n=1,
            sense=Sense.MAXIMIZE,
        )
        result = solve_nlp(problem, np.zeros(1))
        np.testing.assert_allclose(result.x, [2.0], atol=1e-5)

    def test_all_fixed(self):
        """With nothing free the objective is evaluated at the fixed point."""
        result = solve_nlp(_projection_problem(fixed={0: 1.0, 1: 2.0}), np.zeros(2))
        assert result.status is Status.OPTIMAL
        np.testing.assert_allclose(result.fun, 5.0)

    def test_time_limit(self):
        """An exhausted budget returns the last iterate with TIME_LIMIT."""
        result = solve_nlp(_projection_problem(), np.array([3.0, -1.0]), time_limit=0.0)
        assert result.status is Status.TIME_LIMIT
        assert not result.success
        assert result.x.shape == (2,)

    def test_iteration_limit(self):
        """Running out of iterations is reported, not raised."""
        rosenbrock = NLPProblem(
            objective=lambda x: float(100 * (x[1] - x[0] ** 2) ** 2 + (1 - x[0]) ** 2),
            n=2,
        )
        result = solve_nlp(rosenbrock, np.array([-1.2, 1.0]), max_iter=2)
        assert result.status is Status.MAX_ITER

    def test_bad_start_shape(self):
        """Test with a mis-shaped starting point."""
        with pytest.raises(ValueError, match="x0 must have shape"):
            solve_nlp(_projection_problem(), np.zeros(3))


class TestDerivativeFree:
    """Tests for minimize_derivative_free()."""

    def test_bounded_quadratic(self):
        """Powell finds an interior minimum inside the box."""
        result = minimize_derivative_free(
            lambda z: float(np.sum((z - 0.3) ** 2)), np.zeros(2), -np.ones(2), np.ones(2)
        )
        assert result.success
        np.testing.assert_allclose(result.x, [0.3, 0.3], atol=1e-3)

    def test_fallback_on_non_convergence(self):
        """When Powell stops early, Nelder-Mead runs and the better point wins."""

        def objective(z):
            return float(np.sum((z - 0.5) ** 2) + 0.1 * np.sum(np.abs(z)))

        result = minimize_derivative_free(objective, np.zeros(3), -np.ones(3), np.ones(3), max_iter=1)
        assert objective(result.x) <= objective(np.zeros(3))
