"""Shared fixtures for walkforward_validator tests."""

from datetime import datetime, timedelta

import pytest

from walkforward_validator import Bar, CostModel, StrategyRunner


def build_bars(prices, start=datetime(2020, 1, 1), step=timedelta(days=1)):
    """Daily bars with the given prices."""
    return [
        Bar(time=start + i * step, price=float(price), volume=1000.0)
        for i, price in enumerate(prices)
    ]


@pytest.fixture
def make_bars():
    return build_bars


@pytest.fixture
def wavy_bars():
    """120 bars trending up with a repeating pullback, so SMA strategies trade."""
    prices = []
    price = 100.0
    for i in range(120):
        price *= 1.01 if i % 10 < 6 else 0.985
        prices.append(round(price, 4))
    return build_bars(prices)


@pytest.fixture
def free_runner():
    """Runner with no trading costs."""
    return StrategyRunner(CostModel(), initial_equity=10000.0)
