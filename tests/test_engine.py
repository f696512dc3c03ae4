"""Tests for the strategy runner."""

import time

import pytest

from walkforward_validator import (
    BarValidationError,
    CostModel,
    FunctionStrategy,
    InsufficientDataError,
    ParameterSet,
    RunTimeoutError,
    Side,
    StrategyError,
    StrategyRunner
)
from walkforward_validator.strategy import MomentumStrategy, SmaTrendStrategy


def always_long(history, parameters, position):
    return parameters.get("size", 10)


def test_one_return_per_bar_transition(make_bars, free_runner):
    bars = make_bars([100, 101, 102, 101, 103])

    result = free_runner.run(bars, ParameterSet(size=10), always_long)

    assert len(result.returns) == len(bars) - 1
    assert list(result.returns.index) == [bar.time for bar in bars[1:]]
    assert len(result.equity_curve) == len(bars)


def test_returns_without_costs(make_bars, free_runner):
    bars = make_bars([100, 110, 121])

    result = free_runner.run(bars, ParameterSet(size=10), always_long)

    assert result.returns.iloc[0] == pytest.approx(100 / 10000)
    assert result.returns.iloc[1] == pytest.approx(110 / 10100)
    assert result.final_equity == pytest.approx(10210)
    assert len(result.trades) == 1
    assert result.trades[0].side is Side.BUY
    assert result.trades[0].quantity == 10
    assert result.trades[0].price == 100
    assert result.trades[0].time == bars[0].time


def test_costs_are_subtracted_from_returns(make_bars):
    runner = StrategyRunner(
        CostModel(per_share_fee=0.005, minimum_fee=1.0, slippage_fraction=0.001),
        initial_equity=10000.0
    )
    bars = make_bars([100, 110, 121])

    result = runner.run(bars, ParameterSet(size=10), always_long)

    # Commission max(1, 0.05) = 1, slippage 0.001 * 10 * 100 = 1
    assert result.trades[0].cost == pytest.approx(2.0)
    assert result.returns.iloc[0] == pytest.approx((100 - 2) / 10000)
    assert result.final_equity == pytest.approx(10210 - 2)


def test_position_changes_emit_buy_and_sell(make_bars, free_runner):
    def flip(history, parameters, position):
        return 5 if len(history) % 2 else -5

    result = free_runner.run(make_bars([10, 11, 12, 13]), ParameterSet(), flip)

    assert [t.side for t in result.trades] == [Side.BUY, Side.SELL, Side.BUY]
    assert [t.quantity for t in result.trades] == [5, 10, 10]


def test_unchanged_target_emits_no_trade(make_bars, free_runner):
    result = free_runner.run(make_bars([10, 11, 12]), ParameterSet(), lambda h, p, pos: 0)

    assert result.trades == []
    assert list(result.returns) == [0.0, 0.0]


def test_strategy_never_sees_future_bars(make_bars, free_runner):
    bars = make_bars(range(100, 120))
    seen = []

    def spy(history, parameters, position):
        seen.append(history)
        return 0

    free_runner.run(bars, ParameterSet(), spy)

    assert len(seen) == len(bars) - 1
    for i, history in enumerate(seen, 1):
        assert tuple(bars[:i]) == history


def test_parameters_are_passed_unchanged(make_bars, free_runner):
    params = ParameterSet(lookback=3, size=1)
    received = []

    def record(history, parameters, position):
        received.append(parameters)
        return 0

    free_runner.run(make_bars([1, 2, 3, 4]), params, record)

    assert all(p is params for p in received)
    assert params.to_dict() == {"lookback": 3, "size": 1}


def test_strategy_exception_becomes_strategy_error(make_bars, free_runner):
    bars = make_bars([10, 11, 12, 13])

    def broken(history, parameters, position):
        if len(history) == 2:
            raise ZeroDivisionError("bad math")
        return 0

    with pytest.raises(StrategyError) as exc_info:
        free_runner.run(bars, ParameterSet(size=1), broken)

    assert exc_info.value.timestamp == bars[1].time
    assert exc_info.value.parameters == {"size": 1}
    assert "ZeroDivisionError" in str(exc_info.value)


@pytest.mark.parametrize("bad_target", [float("nan"), float("inf"), "10", None])
def test_non_finite_target_raises(make_bars, free_runner, bad_target):
    with pytest.raises(StrategyError):
        free_runner.run(make_bars([10, 11]), ParameterSet(), lambda h, p, pos: bad_target)


def test_exhausted_account_raises(make_bars):
    runner = StrategyRunner(CostModel(), initial_equity=100.0)
    bars = make_bars([10, 1, 0.5, 0.1])

    with pytest.raises(StrategyError):
        # Levered long 100 shares on 100 cash, price collapses
        runner.run(bars, ParameterSet(), lambda h, p, pos: 100)


def test_wall_clock_guard_aborts_run(make_bars):
    runner = StrategyRunner(CostModel(), initial_equity=10000.0, max_run_seconds=0.01)

    def slow(history, parameters, position):
        time.sleep(0.02)
        return 0

    with pytest.raises(RunTimeoutError):
        runner.run(make_bars([1, 2, 3, 4, 5]), ParameterSet(), slow)


def test_plain_dict_parameters_accepted(make_bars, free_runner):
    result = free_runner.run(make_bars([1, 2, 3]), {"size": 2}, always_long)
    assert result.trades[0].quantity == 2


def test_requires_two_bars(make_bars, free_runner):
    with pytest.raises(InsufficientDataError) as exc_info:
        free_runner.run(make_bars([1]), ParameterSet(), always_long)

    assert exc_info.value.window_size == 1


def test_wall_clock_guard_covers_final_strategy_call(make_bars):
    runner = StrategyRunner(CostModel(), initial_equity=10000.0, max_run_seconds=0.05)

    def sleeps_once(history, parameters, position):
        time.sleep(0.3)
        return 0

    # Two bars means a single strategy call, so only the post-call check can fire
    with pytest.raises(RunTimeoutError):
        runner.run(make_bars([100, 101]), ParameterSet(), sleeps_once)


def test_nan_price_rejected_before_running(make_bars, free_runner):
    with pytest.raises(BarValidationError):
        free_runner.run(make_bars([100, float("nan"), 102, 103]), ParameterSet(), always_long)


def test_builtin_strategies_trade(wavy_bars, free_runner):
    params = ParameterSet(lookback=5, position_size=10)

    sma = free_runner.run(wavy_bars, params, SmaTrendStrategy())
    momentum = free_runner.run(wavy_bars, params, MomentumStrategy())

    assert len(sma.trades) > 0
    assert len(momentum.trades) > 0
    assert all(t.quantity > 0 for t in sma.trades + momentum.trades)


def test_function_strategy_name():
    assert FunctionStrategy(always_long).name == "always_long"


def test_parameter_set_is_immutable():
    params = ParameterSet(lookback=20)
    updated = params.with_value("lookback", 25)

    assert params["lookback"] == 20
    assert updated["lookback"] == 25
    assert params.get("missing", 7) == 7
    with pytest.raises(AttributeError):
        params.extra = 1
