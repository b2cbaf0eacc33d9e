"""
Example: SARIMA estimation and automatic order search with optsarima

This example fits a fixed airline model to a synthetic monthly series,
forecasts one year ahead with 95% intervals, draws Monte-Carlo scenarios,
and finally lets the stepwise search choose the orders on its own.
"""

import numpy as np
import pandas as pd

from optsarima import SARIMA, SearchConfig, StepwiseSearch
from optsarima.timeseries import forecast, simulate


def make_series() -> pd.Series:
    """Monthly series with a linear trend and a yearly cycle."""
    rng = np.random.default_rng(2024)
    t = np.arange(144)
    values = 100.0 + 1.5 * t + 12.0 * np.sin(2 * np.pi * t / 12) + rng.normal(scale=2.0, size=144)
    index = pd.date_range("1949-01-01", periods=144, freq="MS")
    return pd.Series(values, index=index, name="demand")


def example_fixed_orders(y: pd.Series) -> SARIMA:
    """Example: Fit SARIMA(0,1,1)(0,1,1)_12 and forecast."""
    print("=" * 60)
    print("Example 1: Fixed orders - SARIMA(0,1,1)(0,1,1)_12")
    print("=" * 60)

    model = SARIMA(y, p=0, d=1, q=1, seasonality=12, P=0, D=1, Q=1, allow_mean=False)
    result = model.fit()
    print(f"Converged: {result.success}")
    print(f"theta = {result.ma[0]:.4f}, Theta = {result.seasonal_ma[0]:.4f}")
    print(f"sigma2 = {result.sigma2:.4f}, AICc = {result.aicc:.2f}")

    frame = forecast(model, steps_ahead=12, confidence_intervals=True)
    print("Forecast (first 3 months):")
    print(frame.head(3).round(2).to_string())
    print()
    return model


def example_scenarios(model: SARIMA) -> None:
    """Example: Monte-Carlo scenarios from the fitted model."""
    print("=" * 60)
    print("Example 2: Simulated scenarios")
    print("=" * 60)

    paths = np.stack(simulate(model, steps_ahead=6, num_scenarios=500, seed=7))
    print(f"Scenario mean (6 months): {np.round(paths.mean(axis=0), 2)}")
    print(f"Scenario std  (6 months): {np.round(paths.std(axis=0), 2)}")
    print()


def example_stepwise_search(y: pd.Series) -> None:
    """Example: Let the stepwise search pick the orders."""
    print("=" * 60)
    print("Example 3: Stepwise order search")
    print("=" * 60)

    config = SearchConfig(seasonality=12, max_p=2, max_q=2, max_P=1, max_Q=1)
    search = StepwiseSearch(y, config=config)
    print(f"Selected differencing: d={search.d}, D={search.D}")

    best = search.run()
    print(f"Best model: {best.key}")
    print(f"AICc: {search.best_criterion:.2f}")
    print(f"Models fitted: {len(search.visited)}, passes: {search.iterations}")
    print()


if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("optsarima - SARIMA Examples")
    print("=" * 60 + "\n")

    series = make_series()
    fitted = example_fixed_orders(series)
    example_scenarios(fitted)
    example_stepwise_search(series)

    print("=" * 60)
    print("All examples completed successfully!")
    print("=" * 60)
