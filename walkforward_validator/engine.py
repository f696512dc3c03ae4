"""Strategy runner replaying a bar window through a strategy.

This module coordinates:
1. Feeding the strategy only the bars seen so far
2. Executing position changes via the broker simulator
3. Producing the period return series, trade log and equity curve
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
import logging
import math
import numbers
import time

import pandas as pd

from .broker_sim import BrokerSimulator, Trade
from .config import CostModel
from .data_source import Bar, validate_bars
from .errors import InsufficientDataError, RunTimeoutError, StrategyError
from .strategy import ParameterSet, Strategy, as_strategy


@dataclass
class RunResult:
    """Output of a single strategy run."""

    returns: pd.Series
    trades: List[Trade]
    equity_curve: List[dict] = field(default_factory=list)
    final_equity: float = 0.0


class StrategyRunner:
    """Replays bars through a strategy and accounts for trading costs.

    Implements the run loop:
    - For each bar transition i-1 -> i
    - Ask the strategy for a target position using bars[:i] only
    - Rebalance at bar i-1's price, paying the cost model
    - Mark the position to bar i and record the period return
    """

    def __init__(
        self,
        cost_model: CostModel,
        initial_equity: float = 10000.0,
        max_run_seconds: Optional[float] = None,
        logger: Optional[logging.Logger] = None
    ):
        """Initialize strategy runner.

        Args:
            cost_model: Cost model applied to every trade
            initial_equity: Starting cash for every run
            max_run_seconds: Wall-clock budget per run (None = unlimited)
            logger: Optional logger
        """
        self.cost_model = cost_model
        self.initial_equity = initial_equity
        self.max_run_seconds = max_run_seconds
        self.logger = logger or logging.getLogger(__name__)

    def run(self, bars: Sequence[Bar], parameters: ParameterSet, strategy) -> RunResult:
        """Run the strategy over a bar window.

        Args:
            bars: Strictly increasing bars (at least 2)
            parameters: Parameters passed unchanged to every strategy call
            strategy: Strategy instance or plain callable

        Returns:
            RunResult with one return per bar transition

        Raises:
            InsufficientDataError: If fewer than 2 bars are given
            BarValidationError: If bars are unordered or carry a bad price
            StrategyError: If the strategy raises, returns a non-finite target,
                exhausts the account, or the run exceeds max_run_seconds
        """
        strategy = as_strategy(strategy)
        if not isinstance(parameters, ParameterSet):
            parameters = ParameterSet(parameters)

        bars = tuple(validate_bars(bars))
        if len(bars) < 2:
            raise InsufficientDataError(min_bars=2, window_size=len(bars))

        # Fresh accumulators for every run
        broker = BrokerSimulator(self.cost_model, self.initial_equity)
        started = time.monotonic()

        times = []
        returns = []
        equity_curve = [self._equity_point(broker, bars[0])]

        for i in range(1, len(bars)):
            prev_bar = bars[i - 1]
            current_bar = bars[i]

            self._check_deadline(started, prev_bar.time, parameters)

            prior_equity = broker.equity(prev_bar.price)
            if prior_equity <= 0:
                raise StrategyError("Account equity exhausted", prev_bar.time, parameters)

            target = self._get_target(strategy, bars[:i], parameters, broker.position, prev_bar.time)
            # Covers time spent inside the call, including the last one
            self._check_deadline(started, prev_bar.time, parameters)

            trade = broker.rebalance(prev_bar.time, target, prev_bar.price)
            cost = trade.cost if trade else 0.0

            pnl = broker.position * (current_bar.price - prev_bar.price) - cost
            times.append(current_bar.time)
            returns.append(pnl / prior_equity)

            equity_curve.append(self._equity_point(broker, current_bar))

        self.logger.debug(
            f"Run complete: {len(returns)} returns, {len(broker.trades)} trades, "
            f"final equity {broker.equity(bars[-1].price):,.2f} ({strategy.name}, {parameters.to_dict()})"
        )

        return RunResult(
            returns=pd.Series(returns, index=pd.Index(times, name="time"), name="return", dtype=float),
            trades=list(broker.trades),
            equity_curve=equity_curve,
            final_equity=broker.equity(bars[-1].price)
        )

    def _get_target(
        self,
        strategy: Strategy,
        history: Tuple[Bar, ...],
        parameters: ParameterSet,
        position: float,
        timestamp
    ) -> float:
        """Call the strategy and validate its answer."""
        try:
            target = strategy.target_position(history, parameters, position)
        except StrategyError:
            raise
        except Exception as e:
            raise StrategyError(
                f"Strategy '{strategy.name}' raised {type(e).__name__}: {e}",
                timestamp,
                parameters
            ) from e

        if isinstance(target, bool) or not isinstance(target, numbers.Real):
            raise StrategyError(
                f"Strategy '{strategy.name}' returned non-numeric target {target!r}",
                timestamp,
                parameters
            )
        target = float(target)
        if not math.isfinite(target):
            raise StrategyError(
                f"Strategy '{strategy.name}' returned non-finite target {target}",
                timestamp,
                parameters
            )
        return target

    def _check_deadline(self, started: float, timestamp, parameters: ParameterSet):
        if self.max_run_seconds is None:
            return
        elapsed = time.monotonic() - started
        if elapsed > self.max_run_seconds:
            raise RunTimeoutError(
                f"Run exceeded {self.max_run_seconds:.2f}s wall-clock budget ({elapsed:.2f}s elapsed)",
                timestamp,
                parameters
            )

    @staticmethod
    def _equity_point(broker: BrokerSimulator, bar: Bar) -> dict:
        return {
            "time": bar.time,
            "cash": broker.cash,
            "position": broker.position,
            "equity": broker.equity(bar.price)
        }
