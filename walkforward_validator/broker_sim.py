"""Broker simulator for cost-aware position changes.

Each run owns one BrokerSimulator. It holds the run's cash and position
accumulators and turns target-position changes into Trades with costs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from .config import CostModel


class Side(Enum):
    """Direction of a trade."""
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class Trade:
    """A single executed position change."""

    time: Any
    side: Side
    quantity: float  # Always positive
    price: float
    cost: float = 0.0

    def __post_init__(self):
        if not self.quantity > 0:
            raise ValueError(f"Trade quantity must be positive, got: {self.quantity}")

    def to_dict(self) -> dict:
        """Convert to dictionary for CSV export."""
        return {
            "time": self.time,
            "side": self.side.value,
            "quantity": self.quantity,
            "price": self.price,
            "cost": self.cost
        }


class BrokerSimulator:
    """Fills position changes at the given price and charges the cost model."""

    def __init__(self, cost_model: CostModel, initial_cash: float):
        """Initialize broker simulator.

        Args:
            cost_model: Commission and slippage model
            initial_cash: Starting cash (equity with no position)
        """
        self.cost_model = cost_model
        self.cash = float(initial_cash)
        self.position = 0.0
        self.trades: List[Trade] = []

    def equity(self, price: float) -> float:
        """Mark-to-market equity at the given price."""
        return self.cash + self.position * price

    def rebalance(self, time: Any, target_position: float, price: float) -> Optional[Trade]:
        """Move the position to target, returning the Trade or None if unchanged.

        Args:
            time: Timestamp of the fill
            target_position: Desired signed position
            price: Fill price

        Returns:
            The executed Trade (cost included), or None if no change was needed
        """
        delta = target_position - self.position
        if delta == 0:
            return None

        side = Side.BUY if delta > 0 else Side.SELL
        quantity = abs(delta)
        cost = self.cost_model.cost(quantity, price)

        trade = Trade(time=time, side=side, quantity=quantity, price=price, cost=cost)

        self.cash -= delta * price + cost
        self.position = float(target_position)
        self.trades.append(trade)

        return trade
