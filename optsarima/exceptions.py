"""Exception types raised by optsarima."""

from __future__ import annotations


class ModelNotFittedError(RuntimeError):
    """Raised when forecasting or simulating a model that has not been fitted."""

    def __init__(self, message: str = "The model has not been fitted yet. Please call model.fit()") -> None:
        super().__init__(message)


class MissingExogenousDataError(ValueError):
    """Raised when exogenous data does not cover the requested forecast horizon."""

    def __init__(
        self,
        message: str = "The exogenous variables do not extend far enough to cover the forecast horizon",
    ) -> None:
        super().__init__(message)


class InvalidParametersCombinationError(ValueError):
    """Raised when model construction arguments contradict each other."""


class UnsupportedOptionError(ValueError):
    """Raised for an unknown objective function, criterion or test name."""

    def __init__(self, option: str, value: str, supported: tuple[str, ...]) -> None:
        self.option = option
        self.value = value
        self.supported = supported
        super().__init__(
            f"The {option} '{value}' is not supported. Supported values: {list(supported)}"
        )


class SeriesTooShortError(ValueError):
    """Raised when a series has too few observations for the requested orders."""
