"""Strategy capability interface, parameter sets and built-in strategies.

A strategy is anything with a single method::

    target_position(history, parameters, position) -> float

where ``history`` is the tuple of bars observed so far (never including
future bars), ``parameters`` is a ParameterSet and ``position`` is the
current signed share count. Strategies must be deterministic and free of
side effects so runs are reproducible.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterator, Mapping, Sequence, Tuple, Union
import math
import numbers

from .data_source import Bar
from .errors import InvalidConfigError


class ParameterSet(Mapping):
    """Immutable mapping from parameter name to numeric value."""

    __slots__ = ("_values",)

    def __init__(self, values: Union[Mapping[str, float], None] = None, **kwargs: float):
        merged = dict(values or {})
        merged.update(kwargs)
        for name, value in merged.items():
            if not isinstance(name, str):
                raise InvalidConfigError(f"Parameter names must be strings, got: {name!r}")
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise InvalidConfigError(f"Parameter '{name}' must be numeric, got: {value!r}")
        object.__setattr__(self, "_values", merged)

    def __setattr__(self, name, value):
        raise AttributeError("ParameterSet is immutable")

    def __getitem__(self, name: str) -> float:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._values.items())))

    def __repr__(self) -> str:
        return f"ParameterSet({self._values!r})"

    def __reduce__(self):
        return (ParameterSet, (dict(self._values),))

    def with_value(self, name: str, value: float) -> "ParameterSet":
        """Return a copy with one field replaced (or added)."""
        values = dict(self._values)
        values[name] = value
        return ParameterSet(values)

    def to_dict(self) -> Dict[str, float]:
        return dict(self._values)


class Strategy(ABC):
    """Decides the target position for the next bar."""

    name = "strategy"

    @abstractmethod
    def target_position(
        self,
        history: Tuple[Bar, ...],
        parameters: ParameterSet,
        position: float
    ) -> float:
        """Return the desired signed position given bars seen so far."""
        raise NotImplementedError


class FunctionStrategy(Strategy):
    """Adapts a plain ``(history, parameters, position) -> target`` callable.

    The wrapped function must be defined at module level to be usable with
    a process pool.
    """

    def __init__(self, func: Callable[[Tuple[Bar, ...], ParameterSet, float], float]):
        self.func = func
        self.name = getattr(func, "__name__", "function")

    def target_position(self, history, parameters, position):
        return self.func(history, parameters, position)


def as_strategy(obj) -> Strategy:
    """Accept a Strategy instance or a plain callable."""
    if isinstance(obj, Strategy):
        return obj
    if callable(obj):
        return FunctionStrategy(obj)
    raise TypeError(f"Expected a Strategy or callable, got: {type(obj).__name__}")


def _lookback(parameters: ParameterSet) -> int:
    lookback = int(parameters.get("lookback", 20))
    if lookback < 1:
        raise ValueError(f"lookback must be >= 1, got: {lookback}")
    return lookback


def _simple_moving_average(prices: Sequence[float]) -> float:
    return math.fsum(prices) / len(prices)


class SmaTrendStrategy(Strategy):
    """Long ``position_size`` shares while price is above its SMA, flat otherwise."""

    name = "sma_trend"

    def target_position(self, history, parameters, position):
        lookback = _lookback(parameters)
        size = parameters.get("position_size", 100.0)
        if len(history) < lookback:
            return 0.0

        prices = [bar.price for bar in history[-lookback:]]
        sma = _simple_moving_average(prices)
        return size if history[-1].price > sma else 0.0


class MomentumStrategy(Strategy):
    """Long on positive ``lookback`` return, short on negative, flat when unknown."""

    name = "momentum"

    def target_position(self, history, parameters, position):
        lookback = _lookback(parameters)
        size = parameters.get("position_size", 100.0)
        if len(history) <= lookback:
            return 0.0

        past = history[-lookback - 1].price
        if past == 0:
            return 0.0
        change = history[-1].price / past - 1.0
        if change > 0:
            return size
        if change < 0:
            return -size
        return 0.0


STRATEGIES: Dict[str, Callable[[], Strategy]] = {
    SmaTrendStrategy.name: SmaTrendStrategy,
    MomentumStrategy.name: MomentumStrategy,
}


def get_strategy(name: str) -> Strategy:
    """Instantiate a built-in strategy by name."""
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise InvalidConfigError(
            f"Unknown strategy '{name}'. Must be one of: {', '.join(STRATEGIES)}"
        ) from None
