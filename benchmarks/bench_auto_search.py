"""Benchmark SARIMA fits and the stepwise search."""

import time
from typing import Dict

import numpy as np

from optsarima import SARIMA, SearchConfig, StepwiseSearch


def _arma_series(n: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    eps = rng.normal(size=n + 1)
    y = np.zeros(n + 1)
    for t in range(1, n + 1):
        y[t] = 0.6 * y[t - 1] + eps[t] + 0.3 * eps[t - 1]
    return y[1:]


def benchmark_fit(n: int, objective_function: str = "mse") -> Dict[str, float]:
    """Benchmark one ARMA(1,1) fit.

    Args:
        n: Series length.
        objective_function: "mse", "ml" or "bilevel".

    Returns:
        Dictionary with timing results.
    """
    y = _arma_series(n)
    model = SARIMA(y, p=1, d=0, q=1)

    start = time.perf_counter()
    result = model.fit(objective_function=objective_function)
    end = time.perf_counter()

    return {
        "n": n,
        "total_time_sec": end - start,
        "ar": float(result.ar[0]),
        "ma": float(result.ma[0]),
    }


def benchmark_search(n: int, max_order: int = 3) -> Dict[str, float]:
    """Benchmark a complete non-seasonal stepwise search.

    Args:
        n: Series length.
        max_order: Ceiling on p and q.

    Returns:
        Dictionary with timing results.
    """
    y = _arma_series(n, seed=1)
    config = SearchConfig(d=0, max_p=max_order, max_q=max_order)

    start = time.perf_counter()
    search = StepwiseSearch(y, config=config)
    search.run()
    end = time.perf_counter()

    total_time = end - start
    n_models = len(search.visited)
    return {
        "n": n,
        "models_fitted": n_models,
        "total_time_sec": total_time,
        "time_per_model_sec": total_time / n_models,
    }


if __name__ == "__main__":
    print("Benchmarking fits...")
    for objective in ("mse", "ml"):
        for n in (100, 200, 400):
            results = benchmark_fit(n, objective)
            print(f"ARMA(1,1) {objective:>4}, n={n}: {results['total_time_sec'] * 1e3:.1f} ms")

    print("\nBenchmarking stepwise search...")
    results = benchmark_search(n=200)
    print(f"Search (n=200): {results['models_fitted']} models")
    print(f"  Total time: {results['total_time_sec']:.2f} s")
    print(f"  Time per model: {results['time_per_model_sec'] * 1e3:.1f} ms")
