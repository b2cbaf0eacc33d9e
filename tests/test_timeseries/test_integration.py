"""End-to-end tests: fit, forecast and automatic order search."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

import optsarima
from optsarima import SARIMA, SearchConfig, StepwiseSearch, auto
from optsarima.timeseries import forecast


@pytest.mark.slow
class TestAirlineModel:
    """SARIMA(0,1,1)(0,1,1)_12 on a trending seasonal monthly series."""

    def test_fit_and_forecast(self, monthly_series):
        """The airline model fits and forecasts one year ahead."""
        model = SARIMA(monthly_series, p=0, d=1, q=1, seasonality=12, P=0, D=1, Q=1, allow_mean=False)
        result = model.fit()

        assert result.nobs == 144 - 13 - 12
        assert -1.0 <= result.ma[0] <= 1.0
        assert -1.0 <= result.seasonal_ma[0] <= 1.0
        assert result.sigma2 > 0

        frame = forecast(model, steps_ahead=12, confidence_intervals=True)
        pd.testing.assert_index_equal(
            frame.index, pd.date_range("1961-01-01", periods=12, freq="MS"), check_names=False
        )
        assert np.all(np.isfinite(frame.to_numpy()))
        assert np.all(frame["lower"] < frame["forecast"])
        assert np.all(frame["forecast"] < frame["upper"])
        # The trend carries on into the forecast year
        assert frame["forecast"].mean() > monthly_series.iloc[-12:].mean()

    def test_scenarios_are_reproducible(self, monthly_series):
        """Simulated scenarios are identical for identical seeds."""
        model = SARIMA(monthly_series, p=0, d=1, q=1, seasonality=12, P=0, D=1, Q=1, allow_mean=False)
        model.fit()
        a = optsarima.simulate(model, steps_ahead=5, num_scenarios=100, seed=42)
        b = optsarima.simulate(model, steps_ahead=5, num_scenarios=100, seed=42)
        np.testing.assert_array_equal(np.stack(a), np.stack(b))


@pytest.mark.slow
class TestAutomaticSearch:
    """Tests for auto() and StepwiseSearch.run()."""

    def test_white_noise(self, rng):
        """With the default configuration white noise selects (0, 0, 0) with a mean."""
        y = rng.normal(loc=2.0, size=200)
        search = StepwiseSearch(y)
        best = search.run()

        assert search.converged
        assert search.iterations < 100
        assert best.is_fitted
        assert best.d == 0
        assert (best.p, best.q, best.P, best.Q) == (0, 0, 0, 0)
        assert best.allow_mean
        assert search.best_criterion == pytest.approx(min(search.visited.values()))
        assert search.visited[best.key] == search.best_criterion
        assert best.fit_result.c == pytest.approx(2.0, abs=0.3)
        assert auto(y).key == best.key

    def test_bic_white_noise(self, rng):
        """BIC also keeps the mean and no ARMA lags."""
        y = rng.normal(loc=2.0, size=200)
        best = auto(y, d=0, information_criteria="bic")
        assert (best.p, best.q) == (0, 0)
        assert best.allow_mean

    def test_short_seasonal_series(self, monthly_series):
        """Candidates with more seasonal lags than observations are skipped."""
        y = monthly_series.iloc[:30]
        model = auto(y, seasonality=12, d=1, D=1)
        assert model.is_fitted
        assert model.D == 1
        assert max(model.p, model.q, model.P * 12, model.Q * 12) <= 15

    def test_run_is_idempotent(self, rng):
        """A second run returns the same model without refitting."""
        search = StepwiseSearch(rng.normal(size=120), config=SearchConfig(d=0, max_p=1, max_q=1))
        best = search.run()
        n_visited = len(search.visited)
        assert search.run() is best
        assert len(search.visited) == n_visited

    def test_ar1_is_found(self, ar1_series):
        """An AR(1) series selects at least one AR lag."""
        model = auto(ar1_series, d=0, max_q=2, max_p=2)
        assert model.p >= 1
        assert model.fit_result.ar[0] > 0.3

    def test_iteration_cap(self, ar1_series):
        """Hitting max_iterations stops the search without converging."""
        search = StepwiseSearch(ar1_series, config=SearchConfig(d=0, max_iterations=1))
        search.run()
        assert search.iterations == 1

    def test_seasonal_search(self, monthly_series):
        """The seasonal difference is selected and the best model forecasts."""
        search = StepwiseSearch(
            monthly_series, config=SearchConfig(seasonality=12, max_p=2, max_q=2, max_P=1, max_Q=1)
        )
        assert search.D == 1
        best = search.run()
        assert best.D == 1
        assert best.seasonality == 12
        frame = forecast(best, steps_ahead=12)
        assert len(frame) == 12
        assert np.all(np.isfinite(frame["forecast"]))
