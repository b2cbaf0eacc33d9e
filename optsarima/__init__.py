"""optsarima - SARIMA estimation as a constrained nonlinear program, with stepwise order search."""

__version__ = "0.1.0"

from .config import SearchConfig
from .exceptions import (
    InvalidParametersCombinationError,
    MissingExogenousDataError,
    ModelNotFittedError,
    SeriesTooShortError,
    UnsupportedOptionError,
)
from .logging import configure_logging, get_logger, set_log_level
from .timeseries import (
    SARIMA,
    FitResult,
    ModelKey,
    SparseARI,
    StepwiseSearch,
    auto,
    differentiate,
    forecast,
    integrate,
    predict,
    simulate,
)

__all__ = [
    "__version__",
    "SearchConfig",
    # Errors
    "InvalidParametersCombinationError",
    "MissingExogenousDataError",
    "ModelNotFittedError",
    "SeriesTooShortError",
    "UnsupportedOptionError",
    # Logging
    "configure_logging",
    "get_logger",
    "set_log_level",
    # Models and search
    "SARIMA",
    "FitResult",
    "ModelKey",
    "SparseARI",
    "StepwiseSearch",
    "auto",
    "differentiate",
    "forecast",
    "integrate",
    "predict",
    "simulate",
]
