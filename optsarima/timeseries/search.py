"""Stepwise search over SARIMA orders.

The search follows Hyndman & Khandakar (2008): fit a handful of seed
models, then repeatedly fit the neighbours of the incumbent (orders moved by
at most one, constant toggled) until a pass brings no strict improvement of
the information criterion. Every fitted order is remembered by its
:class:`~optsarima.timeseries.models.ModelKey` and never fitted twice.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from ..config import SearchConfig
from ..exceptions import SeriesTooShortError
from ..logging import get_logger
from .calendar import FrameLike, SeriesLike, as_series
from .diagnostics import get_information_criteria, is_invertible, is_stationary
from .forecasting import complete_coefficients
from .integration import select_integration_order, select_seasonal_integration_order
from .models import SARIMA, ModelKey

logger = get_logger(__name__)

Criterion = Callable[[float, int, int], float]


def score(model: SARIMA, criterion_fn: Criterion) -> float:
    """Information criterion of a fitted model, +inf where it is undefined."""
    fit = model.fit_result
    try:
        return float(criterion_fn(fit.sigma2, fit.nobs, fit.n_params))
    except ValueError as exc:
        logger.warning("Criterion undefined for %s, scoring it as inf: %s", model.key, exc)
        return np.inf


def local_search(
    candidates: List[SARIMA],
    visited: Dict[ModelKey, float],
    criterion_fn: Criterion,
    objective_function: str = "mse",
    assert_stationarity: bool = False,
    assert_invertibility: bool = False,
    silent: bool = True,
) -> Tuple[float, Optional[SARIMA]]:
    """Fit and score one pass of candidates.

    Candidates that are already fitted, or whose key is in ``visited``, are
    skipped. Every fitted candidate is recorded in ``visited``; a candidate
    whose orders need more observations than the series has is recorded
    with an infinite criterion and not fitted. A candidate becomes the pass
    best only if its criterion is strictly lower than the current pass best
    and it passes the requested structural checks. The candidate list is
    cleared.

    Returns:
        Tuple of (best criterion, best model), or (inf, None) when nothing
        was fitted or nothing was admissible.
    """
    best_criterion = np.inf
    best_model: Optional[SARIMA] = None

    for model in candidates:
        key = model.key
        if model.is_fitted or key in visited:
            continue
        try:
            model.fit(objective_function=objective_function)
        except SeriesTooShortError as exc:
            logger.warning("Skipping %s: %s", key, exc)
            visited[key] = np.inf
            continue
        criterion = score(model, criterion_fn)
        visited[key] = criterion
        if not silent:
            logger.info("Fitted %s with criterion %.4f", key, criterion)

        if criterion < best_criterion:
            ar, ma = complete_coefficients(model.fit_result, model.seasonality)
            invertible = not assert_invertibility or is_invertible(ma)
            stationary = not assert_stationarity or is_stationary(ar)
            if not (invertible and stationary):
                if not silent:
                    logger.info(
                        "%s is not considered (invertible=%s, stationary=%s)", key, invertible, stationary
                    )
                continue
            best_criterion = criterion
            best_model = model

    candidates.clear()
    return best_criterion, best_model


def non_seasonal_neighbours(p: int, q: int, max_p: int, max_q: int) -> List[Tuple[int, int]]:
    """(p, q) pairs within one step of the incumbent, 1 <= p + q <= 3."""
    orders = []
    for dp in (-1, 0, 1):
        for dq in (-1, 0, 1):
            new_p, new_q = p + dp, q + dq
            if new_p < 0 or new_q < 0 or new_p > max_p or new_q > max_q:
                continue
            if new_p + new_q == 0 or new_p + new_q > 3:
                continue
            orders.append((new_p, new_q))
    return orders


def seasonal_neighbours(P: int, Q: int, max_P: int, max_Q: int) -> List[Tuple[int, int]]:
    """(P, Q) pairs within one step of the incumbent, 1 <= P + Q <= 2."""
    orders = []
    for dP in (-1, 0, 1):
        for dQ in (-1, 0, 1):
            new_P, new_Q = P + dP, Q + dQ
            if new_P < 0 or new_Q < 0 or new_P > max_P or new_Q > max_Q:
                continue
            if new_P + new_Q == 0 or new_P + new_Q > 2:
                continue
            orders.append((new_P, new_Q))
    return orders


def toggled_constant(model: SARIMA, drift: bool) -> Tuple[bool, bool]:
    """(allow_mean, allow_drift) with the mean, or the drift, flipped."""
    if drift:
        return False, not model.allow_drift
    return not model.allow_mean, False


class StepwiseSearch:
    """Stepwise search for the SARIMA orders minimizing an information criterion.

    Differencing orders left at -1 in ``config`` are chosen at construction:
    first D by the seasonal-strength test, then d by KPSS tests on the
    seasonally differenced series.

    Args:
        y: Observed series.
        exog: Optional exogenous regressors, passed to every candidate.
        config: Search options.

    Attributes:
        d, D: Differencing orders shared by every candidate.
        allow_mean: Whether candidates may carry an intercept.
        allow_drift: Whether candidates may carry a drift.
        visited: Criterion of every fitted order.
        best_criterion: Criterion of the incumbent.
        best_model: Incumbent model.
        iterations: Neighbourhood passes performed.
        converged: True when the search stopped at a local optimum rather
            than at ``config.max_iterations``.

    Example:
        >>> rng = np.random.default_rng(0)
        >>> search = StepwiseSearch(rng.normal(size=150), config=SearchConfig(d=0))
        >>> best = search.run()
        >>> search.converged  # doctest: +SKIP
    """

    def __init__(
        self,
        y: SeriesLike,
        exog: Optional[FrameLike] = None,
        config: Optional[SearchConfig] = None,
    ) -> None:
        self.config = config or SearchConfig()
        self.y = as_series(y)
        self.exog = exog
        self.criterion_fn = get_information_criteria(self.config.information_criteria)

        cfg = self.config
        s = cfg.seasonality
        values = self.y.to_numpy(dtype=float)
        D = 0 if s == 1 else cfg.D
        if D < 0:
            D = min(select_seasonal_integration_order(values, s, cfg.seasonal_integration_test), cfg.max_D)
        d = cfg.d
        if d < 0:
            d = select_integration_order(values, cfg.max_d, D, s, cfg.integration_test)
        self.d = d
        self.D = D
        self.allow_mean = cfg.allow_mean and d + D == 0
        self.allow_drift = cfg.allow_drift and d + D == 1

        self.candidates: List[SARIMA] = []
        self.visited: Dict[ModelKey, float] = {}
        self.best_criterion = np.inf
        self.best_model: Optional[SARIMA] = None
        self.iterations = 0
        self.converged = False
        self._done = False

        self._add_initial_models()

    def _key(self, p: int, q: int, P: int, Q: int, allow_mean: bool, allow_drift: bool) -> ModelKey:
        return ModelKey(p, self.d, q, P, self.D, Q, self.config.seasonality, allow_mean, allow_drift)

    def _push(
        self,
        p: int,
        q: int,
        P: int = 0,
        Q: int = 0,
        allow_mean: Optional[bool] = None,
        allow_drift: Optional[bool] = None,
    ) -> None:
        allow_mean = self.allow_mean if allow_mean is None else allow_mean
        allow_drift = self.allow_drift if allow_drift is None else allow_drift
        key = self._key(p, q, P, Q, allow_mean, allow_drift)
        if key in self.visited or any(model.key == key for model in self.candidates):
            return
        self.candidates.append(
            SARIMA(
                self.y,
                p,
                self.d,
                q,
                seasonality=self.config.seasonality,
                P=P,
                D=self.D,
                Q=Q,
                exog=self.exog,
                allow_mean=allow_mean,
                allow_drift=allow_drift,
                silent=self.config.silent,
            )
        )

    def _add_initial_models(self) -> None:
        cfg = self.config
        if cfg.seasonality == 1:
            self._push(0, 0)
            if cfg.max_p >= 1:
                self._push(1, 0)
            if cfg.max_q >= 1:
                self._push(0, 1)
            if cfg.max_p >= 2 and cfg.max_q >= 2:
                self._push(2, 2)
            return

        self._push(0, 0, 0, 0)
        if cfg.max_p >= 1 and cfg.max_P >= 1:
            self._push(1, 0, 1, 0)
        if cfg.max_q >= 1 and cfg.max_Q >= 1:
            self._push(0, 1, 0, 1)
        if cfg.max_p >= 2 and cfg.max_q >= 2 and cfg.max_P >= 1 and cfg.max_Q >= 1:
            self._push(2, 2, 1, 1)

    def add_neighbours(self, best: SARIMA) -> None:
        """Queue the unvisited neighbours of ``best``."""
        cfg = self.config
        for p, q in non_seasonal_neighbours(best.p, best.q, cfg.max_p, cfg.max_q):
            self._push(p, q, best.P, best.Q)
        if cfg.seasonality > 1:
            for P, Q in seasonal_neighbours(best.P, best.Q, cfg.max_P, cfg.max_Q):
                self._push(best.p, best.q, P, Q)

        integration = self.d + self.D
        if integration > 1:
            return
        allow_mean, allow_drift = toggled_constant(best, drift=integration == 1)
        # Never switch on a constant the configuration rules out
        if (allow_mean and not self.allow_mean) or (allow_drift and not self.allow_drift):
            return
        self._push(best.p, best.q, best.P, best.Q, allow_mean, allow_drift)

    def local_search(self) -> Tuple[float, Optional[SARIMA]]:
        """Fit and score the queued candidates (one pass)."""
        cfg = self.config
        return local_search(
            self.candidates,
            self.visited,
            self.criterion_fn,
            objective_function=cfg.objective_function,
            assert_stationarity=cfg.assert_stationarity,
            assert_invertibility=cfg.assert_invertibility,
            silent=cfg.silent,
        )

    def run(self) -> SARIMA:
        """Run the search and return the best fitted model.

        Raises:
            RuntimeError: If no initial candidate is admissible.
        """
        if self._done:
            return self.best_model

        criterion, model = self.local_search()
        if model is None:
            raise RuntimeError("No admissible model among the initial candidates")
        self.best_criterion, self.best_model = criterion, model

        while self.iterations < self.config.max_iterations:
            self.iterations += 1
            self.add_neighbours(self.best_model)
            criterion, model = self.local_search()
            if not criterion < self.best_criterion:
                self.converged = True
                break
            self.best_criterion, self.best_model = criterion, model

        if not self.converged:
            logger.warning(
                "Stepwise search stopped after %d iterations without converging", self.iterations
            )
        if not self.config.silent:
            logger.info(
                "The best model found is %s with %d iterations (criterion %.4f)",
                self.best_model.key,
                self.iterations,
                self.best_criterion,
            )
        self._done = True
        return self.best_model


def auto(y: SeriesLike, exog: Optional[FrameLike] = None, **options) -> SARIMA:
    """Select and fit a SARIMA model by stepwise search.

    Args:
        y: Observed series.
        exog: Optional exogenous regressors.
        **options: Fields of :class:`~optsarima.config.SearchConfig`.

    Returns:
        Best fitted SARIMA model.

    Example:
        >>> rng = np.random.default_rng(1)
        >>> model = auto(rng.normal(size=150), d=0, information_criteria="bic")
        >>> model.fit_result.aicc  # doctest: +SKIP
    """
    return StepwiseSearch(y, exog=exog, config=SearchConfig(**options)).run()
