"""Performance statistics over a return series."""

from dataclasses import dataclass, asdict
from typing import Optional, Sequence
import math

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class Metrics:
    """Scalar performance statistics for one run."""

    total_return: float = 0.0
    max_drawdown: float = 0.0  # Positive fraction of peak equity
    sharpe_ratio: float = 0.0
    volatility: float = 0.0
    trade_count: int = 0
    total_cost: float = 0.0
    failed: bool = False
    error: Optional[str] = None

    @classmethod
    def failed_run(cls, reason: str) -> "Metrics":
        """Sentinel recorded for a run that raised StrategyError."""
        nan = float("nan")
        return cls(
            total_return=nan,
            max_drawdown=nan,
            sharpe_ratio=nan,
            volatility=nan,
            trade_count=0,
            total_cost=nan,
            failed=True,
            error=reason
        )

    def objective_value(self, objective: str) -> float:
        """Value used to rank runs; higher is better, failed runs rank lowest."""
        if self.failed:
            return float("-inf")
        value = getattr(self, objective)
        if objective in ("max_drawdown", "trade_count"):
            # Smaller drawdown and fewer trades are better
            value = -value
        if isinstance(value, float) and math.isnan(value):
            return float("-inf")
        return float(value)

    def to_dict(self) -> dict:
        return asdict(self)


def compute_metrics(
    returns: pd.Series,
    trades: Sequence = (),
    periods_per_year: int = 252
) -> Metrics:
    """Compute metrics for a return series.

    The series is ordered by timestamp before compounding, so any reordering
    that keeps each (timestamp, return) pair intact gives the same result.
    An empty series gives zeroed metrics.

    Args:
        returns: Period returns indexed by timestamp
        trades: Trade log of the run (used for count and total cost)
        periods_per_year: Annualization factor for Sharpe and volatility

    Returns:
        Metrics instance
    """
    trade_count = len(trades)
    total_cost = float(math.fsum(getattr(t, "cost", 0.0) for t in trades))

    if returns is None or len(returns) == 0:
        return Metrics(trade_count=trade_count, total_cost=total_cost)

    values = returns.sort_index(kind="mergesort").to_numpy(dtype=float)

    equity = np.cumprod(1.0 + values)
    total_return = float(equity[-1] - 1.0)

    # Drawdown measured against running peak, starting from 1.0
    peaks = np.maximum.accumulate(np.concatenate(([1.0], equity)))[1:]
    drawdowns = np.where(peaks > 0, (peaks - equity) / peaks, 0.0)
    max_drawdown = float(max(drawdowns.max(), 0.0))

    sharpe = 0.0
    volatility = 0.0
    if len(values) >= 2:
        std = float(np.std(values, ddof=1))
        volatility = std * math.sqrt(periods_per_year)
        if std > 0:
            sharpe = float(np.mean(values)) / std * math.sqrt(periods_per_year)

    return Metrics(
        total_return=total_return,
        max_drawdown=max_drawdown,
        sharpe_ratio=sharpe,
        volatility=volatility,
        trade_count=trade_count,
        total_cost=total_cost
    )
