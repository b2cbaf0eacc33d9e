"""Pytest configuration and shared fixtures for optsarima tests.

This module provides:
- A deterministic numpy RNG fixture
- Autouse seeding of numpy's global state
- Small synthetic series used across the time-series suites
"""

import os

import numpy as np
import pandas as pd
import pytest


def _seed() -> int:
    return int(os.environ.get("TEST_RNG_SEED", "0"))


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).

    Returns:
        A seeded numpy.random.Generator instance.
    """
    return np.random.default_rng(_seed())


@pytest.fixture(scope="function", autouse=True)
def set_random_seeds() -> None:
    """Seed numpy's global state before every test."""
    np.random.seed(_seed())


def simulate_arma(
    n: int,
    ar: tuple = (),
    ma: tuple = (),
    c: float = 0.0,
    seed: int = 0,
    burn: int = 100,
) -> np.ndarray:
    """Simulate an ARMA(p, q) path with unit-variance Gaussian innovations."""
    generator = np.random.default_rng(seed)
    eps = generator.normal(size=n + burn)
    x = np.zeros(n + burn)
    for t in range(n + burn):
        value = c + eps[t]
        for i, phi in enumerate(ar, start=1):
            if t - i >= 0:
                value += phi * x[t - i]
        for j, theta in enumerate(ma, start=1):
            if t - j >= 0:
                value += theta * eps[t - j]
        x[t] = value
    return x[burn:]


@pytest.fixture(scope="function")
def monthly_series() -> pd.Series:
    """144 monthly observations with trend, yearly seasonality and noise."""
    generator = np.random.default_rng(7)
    t = np.arange(144)
    values = 100.0 + 1.5 * t + 12.0 * np.sin(2 * np.pi * t / 12) + generator.normal(scale=2.0, size=144)
    index = pd.date_range("1949-01-01", periods=144, freq="MS")
    return pd.Series(values, index=index, name="passengers")


@pytest.fixture(scope="function")
def ar1_series() -> np.ndarray:
    """300 observations of an AR(1) process with phi = 0.6."""
    return simulate_arma(300, ar=(0.6,), seed=11)


@pytest.fixture(scope="function")
def arma():
    """The :func:`simulate_arma` helper, for tests that need custom processes."""
    return simulate_arma
