"""Tests for forecasting and simulation."""

from __future__ import annotations

from types import SimpleNamespace

import numpy as np
import pandas as pd
import pytest

from optsarima.exceptions import MissingExogenousDataError, ModelNotFittedError
from optsarima.timeseries import SARIMA
from optsarima.timeseries.forecasting import (
    complete_coefficients,
    forecast,
    forecast_errors,
    predict,
    simulate,
    to_ma,
)


@pytest.fixture
def fixed_ar1(ar1_series):
    """AR(1) with φ = 0.6 and c = 0 held fixed, fitted for the residuals."""
    model = SARIMA.from_coefficients(ar1_series, ar=[0.6], mean=0.0)
    model.fit()
    return model


class TestCompleteCoefficients:
    """Tests for complete_coefficients()."""

    def test_seasonal_lags(self):
        """Seasonal coefficients land on lags k·s."""
        fit = SimpleNamespace(
            ar=np.array([0.5]),
            seasonal_ar=np.array([0.3]),
            ma=np.zeros(0),
            seasonal_ma=np.array([-0.4, 0.1]),
        )
        ar, ma = complete_coefficients(fit, s=4)
        np.testing.assert_allclose(ar, [0.5, 0.0, 0.0, 0.3])
        np.testing.assert_allclose(ma, [0.0, 0.0, 0.0, -0.4, 0.0, 0.0, 0.0, 0.1])

    def test_coinciding_lags_add(self):
        """A regular and a seasonal coefficient on the same lag are summed."""
        fit = SimpleNamespace(
            ar=np.array([0.2]),
            seasonal_ar=np.array([0.3]),
            ma=np.zeros(0),
            seasonal_ma=np.zeros(0),
        )
        ar, ma = complete_coefficients(fit, s=1)
        np.testing.assert_allclose(ar, [0.5])
        assert len(ma) == 0


class TestMovingAverageRepresentation:
    """Tests for to_ma() and forecast_errors()."""

    def test_ar1_weights(self, fixed_ar1):
        """ψ_i = φ^i for an AR(1)."""
        np.testing.assert_allclose(to_ma(fixed_ar1, max_lags=5), 0.6 ** np.arange(1, 6))
        np.testing.assert_allclose(fixed_ar1.to_ma(3), [0.6, 0.36, 0.216])

    def test_ma_weights(self, arma):
        """ψ_i = θ_i for a pure MA model."""
        model = SARIMA.from_coefficients(arma(100, ma=(0.4, 0.2), seed=2), ma=[0.4, 0.2], mean=0.0)
        model.fit()
        np.testing.assert_allclose(to_ma(model, max_lags=4), [0.4, 0.2, 0.0, 0.0])

    def test_error_variances(self, fixed_ar1):
        """The one-step variance is σ² and variances accumulate ψ²."""
        sigma2 = fixed_ar1.fit_result.sigma2
        errors = forecast_errors(fixed_ar1, max_lags=3)
        np.testing.assert_allclose(errors, sigma2 * np.array([1.0, 1.36, 1.36 + 0.1296]))
        np.testing.assert_allclose(fixed_ar1.forecast_errors(3), errors)

    def test_not_fitted(self, ar1_series):
        """Test ψ-weights on an unfitted model."""
        with pytest.raises(ModelNotFittedError):
            to_ma(SARIMA(ar1_series, p=1, d=0, q=0))

    def test_invalid_lags(self, fixed_ar1):
        """Test with max_lags < 1."""
        with pytest.raises(ValueError, match="max_lags must be >= 1"):
            to_ma(fixed_ar1, max_lags=0)


class TestPredict:
    """Tests for predict() and forecast()."""

    def test_ar1_point_forecast(self, fixed_ar1, ar1_series):
        """Point forecasts decay geometrically from the last value."""
        values = predict(fixed_ar1, steps_ahead=3)
        np.testing.assert_allclose(values, ar1_series[-1] * np.array([0.6, 0.36, 0.216]))

    def test_seasonal_random_walk(self, monthly_series):
        """A seasonal random walk repeats the last season."""
        model = SARIMA(monthly_series, p=0, d=0, q=0, seasonality=12, D=1, allow_mean=False)
        model.fit()
        values = model.predict(steps_ahead=24)
        np.testing.assert_allclose(values, np.tile(monthly_series.to_numpy()[-12:], 2), atol=1e-8)

    def test_forecast_frame(self, fixed_ar1):
        """forecast() returns and stores a frame indexed after the sample."""
        frame = forecast(fixed_ar1, steps_ahead=3)
        assert list(frame.columns) == ["forecast"]
        assert list(frame.index) == [300, 301, 302]
        assert fixed_ar1.forecast is frame

    def test_datetime_index(self, monthly_series):
        """Monthly series get monthly forecast timestamps."""
        model = SARIMA(monthly_series, p=1, d=1, q=0, allow_mean=False)
        model.fit()
        frame = forecast(model, steps_ahead=4)
        pd.testing.assert_index_equal(
            frame.index, pd.date_range("1961-01-01", periods=4, freq="MS"), check_names=False
        )

    def test_confidence_intervals(self, fixed_ar1):
        """Intervals are symmetric and widen with the horizon."""
        frame = forecast(fixed_ar1, steps_ahead=5, confidence_intervals=True)
        width = (frame["upper"] - frame["lower"]).to_numpy()
        np.testing.assert_allclose(frame["upper"] - frame["forecast"], frame["forecast"] - frame["lower"])
        assert width[0] == pytest.approx(2 * 1.959964 * np.sqrt(fixed_ar1.fit_result.sigma2), rel=1e-5)
        assert np.all(np.diff(width) > 0)

    def test_narrower_level_is_narrower(self, fixed_ar1):
        """An 80% interval sits inside the 95% interval."""
        wide = forecast(fixed_ar1, steps_ahead=2, confidence_intervals=True).copy()
        narrow = forecast(fixed_ar1, steps_ahead=2, confidence_intervals=True, confidence_level=0.8)
        assert np.all(narrow["upper"] < wide["upper"])
        assert np.all(narrow["lower"] > wide["lower"])

    def test_simulated_forecast_is_seeded(self, fixed_ar1):
        """A simulated forecast depends only on its seed."""
        a = forecast(fixed_ar1, steps_ahead=4, seed=3, is_simulation=True)
        b = forecast(fixed_ar1, steps_ahead=4, seed=3, is_simulation=True)
        pd.testing.assert_frame_equal(a, b)

    def test_invalid_arguments(self, fixed_ar1):
        """Test with invalid horizons and levels."""
        with pytest.raises(ValueError, match="steps_ahead must be >= 1"):
            predict(fixed_ar1, steps_ahead=0)
        with pytest.raises(ValueError, match="confidence_level"):
            forecast(fixed_ar1, confidence_level=1.5)

    def test_not_fitted(self, ar1_series):
        """Test forecasting an unfitted model."""
        with pytest.raises(ModelNotFittedError):
            forecast(SARIMA(ar1_series, p=1, d=0, q=0))


class TestExogenousForecast:
    """Tests for forecasts that need future exogenous rows."""

    def _model(self, rng, extra):
        x = rng.normal(size=100 + extra)
        y = 0.8 * x[:100] + rng.normal(scale=0.1, size=100)
        model = SARIMA.from_coefficients(y, ar=[0.0], mean=0.0, exog=x, exog_coefficients=[0.8])
        model.fit()
        return model, x

    def test_uses_future_rows(self, rng):
        """Forecasts apply β to the matching future exogenous row."""
        model, x = self._model(rng, extra=3)
        np.testing.assert_allclose(predict(model, steps_ahead=3), 0.8 * x[100:])

    def test_missing_rows(self, rng):
        """Test a horizon longer than the exogenous data."""
        model, _ = self._model(rng, extra=3)
        with pytest.raises(MissingExogenousDataError):
            predict(model, steps_ahead=4)

    def test_no_future_rows(self, rng):
        """Test exogenous data that end with the target."""
        model, _ = self._model(rng, extra=0)
        with pytest.raises(MissingExogenousDataError):
            forecast(model, steps_ahead=1)


class TestSimulate:
    """Tests for simulate()."""

    def test_reproducible(self, fixed_ar1):
        """Equal seeds give equal scenarios, different seeds do not."""
        a = simulate(fixed_ar1, steps_ahead=5, num_scenarios=100, seed=42)
        b = simulate(fixed_ar1, steps_ahead=5, num_scenarios=100, seed=42)
        c = simulate(fixed_ar1, steps_ahead=5, num_scenarios=100, seed=43)
        assert len(a) == 100
        assert all(path.shape == (5,) for path in a)
        np.testing.assert_array_equal(np.stack(a), np.stack(b))
        assert not np.array_equal(np.stack(a), np.stack(c))

    def test_scenarios_differ(self, fixed_ar1):
        """Scenarios drawn from one generator are distinct."""
        paths = fixed_ar1.simulate(steps_ahead=3, num_scenarios=2, seed=0)
        assert not np.array_equal(paths[0], paths[1])

    def test_spread_matches_error_variance(self, fixed_ar1):
        """The one-step scenario variance matches σ²."""
        paths = np.stack(simulate(fixed_ar1, steps_ahead=1, num_scenarios=2000, seed=1))
        assert np.var(paths[:, 0]) == pytest.approx(fixed_ar1.fit_result.sigma2, rel=0.15)

    def test_invalid(self, fixed_ar1, ar1_series):
        """Test with invalid scenario counts and unfitted models."""
        with pytest.raises(ValueError, match="num_scenarios"):
            simulate(fixed_ar1, num_scenarios=0)
        with pytest.raises(ModelNotFittedError):
            simulate(SARIMA(ar1_series, p=1, d=0, q=0))
