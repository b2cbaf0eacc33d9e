"""Tests for information criteria and structural checks."""

from __future__ import annotations

import numpy as np
import pytest

from optsarima.exceptions import UnsupportedOptionError
from optsarima.timeseries.diagnostics import (
    aic,
    aicc,
    bic,
    get_information_criteria,
    is_invertible,
    is_stationary,
)


class TestInformationCriteria:
    """Tests for aic(), aicc() and bic()."""

    def test_aic_formula(self):
        """AIC = 2k + T ln σ²."""
        assert aic(2.0, 100, 3) == pytest.approx(6 + 100 * np.log(2.0))

    def test_bic_formula(self):
        """BIC = k ln T + T ln σ²."""
        assert bic(2.0, 100, 3) == pytest.approx(3 * np.log(100) + 100 * np.log(2.0))

    def test_aicc_correction(self):
        """AICc adds (2k² + 2k) / (T - k - 1) to AIC."""
        assert aicc(2.0, 100, 3) == pytest.approx(aic(2.0, 100, 3) + 24 / 96)

    def test_aicc_not_below_aic(self):
        """The small-sample correction is non-negative."""
        for k in range(5):
            assert aicc(1.3, 50, k) >= aic(1.3, 50, k)

    def test_aicc_undefined_for_short_samples(self):
        """Test AICc with T <= k + 1."""
        with pytest.raises(ValueError, match="undefined"):
            aicc(1.0, 4, 3)

    def test_penalty_grows_with_parameters(self):
        """At equal fit, more parameters score worse."""
        assert aic(1.0, 100, 4) > aic(1.0, 100, 2)
        assert bic(1.0, 100, 4) > bic(1.0, 100, 2)

    def test_invalid_inputs(self):
        """Test criteria with invalid inputs."""
        with pytest.raises(ValueError, match="sigma2"):
            aic(0.0, 10, 1)
        with pytest.raises(ValueError, match="nobs"):
            bic(1.0, 0, 1)
        with pytest.raises(ValueError, match="k must be >= 0"):
            aic(1.0, 10, -1)


class TestCriterionLookup:
    """Tests for get_information_criteria()."""

    @pytest.mark.parametrize("name,expected", [("aic", aic), ("aicc", aicc), ("BIC", bic)])
    def test_known_names(self, name, expected):
        """Names are matched case-insensitively."""
        assert get_information_criteria(name) is expected

    def test_unknown_name(self):
        """Test with an unsupported criterion."""
        with pytest.raises(UnsupportedOptionError, match="hqic"):
            get_information_criteria("hqic")


class TestRootChecks:
    """Tests for is_stationary() and is_invertible()."""

    def test_stationary_ar(self):
        """Test stationarity of simple AR polynomials."""
        assert is_stationary(np.array([0.5]))
        assert is_stationary(np.array([0.5, 0.3]))
        assert not is_stationary(np.array([1.2]))
        assert not is_stationary(np.array([1.0]))

    def test_seasonal_layout(self):
        """Zero-padded seasonal vectors are handled like their short form."""
        ar = np.zeros(12)
        ar[11] = 0.4
        assert is_stationary(ar)
        ar[11] = 1.1
        assert not is_stationary(ar)

    def test_empty_and_zero_vectors(self):
        """No coefficients means no roots."""
        assert is_stationary(np.array([]))
        assert is_invertible(np.zeros(3))

    def test_invertible_ma(self):
        """Test invertibility of simple MA polynomials."""
        assert is_invertible(np.array([-0.5]))
        assert is_invertible(np.array([0.9]))
        assert not is_invertible(np.array([-1.5]))
