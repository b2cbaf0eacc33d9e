"""Series coercion and granularity helpers.

Models accept either a ``pandas.Series`` indexed by uniformly spaced
timestamps or any 1-D array-like, which is treated as integer-indexed steps.
The granularity is inferred once and reused to stamp forecasts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
import pandas as pd

SeriesLike = Union[pd.Series, np.ndarray, list]
FrameLike = Union[pd.DataFrame, pd.Series, np.ndarray]

_WEEKDAY_FREQUENCIES = ("B", "C")


@dataclass(frozen=True)
class Granularity:
    """Sampling pattern of a series.

    Attributes:
        freq: pandas offset alias (e.g. "MS", "D", "B"), or None for
            integer-indexed series.
        weekdays_only: True when observations skip weekends.
    """

    freq: Optional[str]
    weekdays_only: bool = False


def as_series(y: SeriesLike, name: str = "y") -> pd.Series:
    """Return ``y`` as a float ``pd.Series``.

    Raises:
        ValueError: If ``y`` is not 1-D, is empty, or contains NaNs.
    """
    if isinstance(y, pd.DataFrame):
        if y.shape[1] != 1:
            raise ValueError(f"{name} must have a single column, got {y.shape[1]}")
        y = y.iloc[:, 0]
    if isinstance(y, pd.Series):
        series = y.astype(float)
    else:
        values = np.asarray(y, dtype=float)
        if values.ndim != 1:
            raise ValueError(f"{name} must be 1D, got shape {values.shape}")
        series = pd.Series(values, name=name)
    if len(series) == 0:
        raise ValueError(f"{name} must not be empty")
    if series.isna().any():
        raise ValueError(f"{name} must not contain missing values")
    if not series.index.is_monotonic_increasing or not series.index.is_unique:
        raise ValueError(f"{name} index must be strictly increasing")
    return series


def as_frame(exog: FrameLike, index: Optional[pd.Index] = None) -> pd.DataFrame:
    """Return exogenous data as a float ``pd.DataFrame``.

    Array inputs take ``index`` (when given and long enough) or a RangeIndex.
    """
    if isinstance(exog, pd.Series):
        frame = exog.to_frame()
    elif isinstance(exog, pd.DataFrame):
        frame = exog
    else:
        values = np.asarray(exog, dtype=float)
        if values.ndim == 1:
            values = values[:, None]
        frame = pd.DataFrame(values, columns=[f"x{i + 1}" for i in range(values.shape[1])])
        if index is not None and len(index) == len(frame):
            frame.index = index
    frame = frame.astype(float)
    if frame.isna().any().any():
        raise ValueError("exog must not contain missing values")
    return frame


def identify_granularity(index: pd.Index) -> Granularity:
    """Infer the sampling pattern of ``index``.

    Raises:
        ValueError: If a datetime index has no uniform frequency, or an
            integer index is not evenly spaced by one.
    """
    if isinstance(index, pd.DatetimeIndex):
        freq = index.freqstr
        if freq is None:
            if len(index) < 3:
                raise ValueError("At least 3 timestamps are needed to infer the granularity")
            freq = pd.infer_freq(index)
        if freq is None:
            raise ValueError("Could not infer a uniform granularity from the series timestamps")
        return Granularity(freq=freq, weekdays_only=freq in _WEEKDAY_FREQUENCIES)

    steps = np.diff(np.asarray(index))
    if len(steps) and not np.all(steps == 1):
        raise ValueError("Non-datetime indices must be consecutive integers")
    return Granularity(freq=None)


def build_datetimes(last: object, granularity: Granularity, steps: int) -> pd.Index:
    """Timestamps for the ``steps`` periods following ``last``."""
    if steps < 1:
        raise ValueError(f"steps must be >= 1, got {steps}")
    if granularity.freq is None:
        start = int(last) + 1
        return pd.RangeIndex(start, start + steps)
    return pd.date_range(start=last, periods=steps + 1, freq=granularity.freq)[1:]
