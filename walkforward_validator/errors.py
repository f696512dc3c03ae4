"""Error kinds raised by the validation tool.

Split and insufficient-data errors abort a validation run and carry the
offending window sizes. Strategy errors carry the bar timestamp and the
parameters in effect when the strategy failed.
"""

from typing import Any, Mapping, Optional


class ValidationToolError(Exception):
    """Base class for all errors raised by walkforward_validator."""
    pass


class InvalidConfigError(ValidationToolError):
    """Raised when a configuration value is out of range or malformed."""
    pass


class BarValidationError(ValidationToolError):
    """Raised when bars are out of order or carry a missing or non-positive price."""
    pass


class InvalidSplitError(ValidationToolError):
    """Raised when a split would leave the training or testing window empty."""

    def __init__(self, message: str, train_size: int = 0, test_size: int = 0):
        super().__init__(f"{message} (train_size={train_size}, test_size={test_size})")
        self.train_size = train_size
        self.test_size = test_size


class InsufficientDataError(ValidationToolError):
    """Raised when a window has fewer bars than the configured minimum.

    The orchestrator reports both window sizes; a single run reports the
    size of the window it was given as window_size.
    """

    def __init__(
        self,
        train_size: Optional[int] = None,
        test_size: Optional[int] = None,
        min_bars: int = 2,
        window_size: Optional[int] = None
    ):
        if window_size is not None:
            message = f"Insufficient bars: window has {window_size}, a run needs at least {min_bars}"
        else:
            message = (
                f"Insufficient bars: train_size={train_size}, test_size={test_size}, "
                f"each window needs at least {min_bars}"
            )
        super().__init__(message)
        self.train_size = train_size
        self.test_size = test_size
        self.min_bars = min_bars
        self.window_size = window_size


class StrategyError(ValidationToolError):
    """Raised when a strategy raises, returns a non-finite target, or ruins the account."""

    def __init__(
        self,
        message: str,
        timestamp: Any = None,
        parameters: Optional[Mapping[str, float]] = None
    ):
        context = []
        if timestamp is not None:
            context.append(f"at {timestamp}")
        if parameters is not None:
            context.append(f"params={dict(parameters)}")
        full = f"{message} ({', '.join(context)})" if context else message
        super().__init__(full)
        self.timestamp = timestamp
        self.parameters = dict(parameters) if parameters is not None else None


class RunTimeoutError(StrategyError):
    """Raised when a single run exceeds its wall-clock budget."""
    pass
