"""Tests for train/test window splitting."""

from datetime import datetime

import pytest

from walkforward_validator import (
    BarValidationError,
    InvalidSplitError,
    split_bars,
    split_by_year
)


def test_split_100_bars_at_70_percent(make_bars):
    bars = make_bars(range(1, 101))

    train, test = split_bars(bars, 0.7)

    assert len(train) == 70
    assert len(test) == 30
    assert train[-1].time < test[0].time


@pytest.mark.parametrize("ratio", [0.01, 0.1, 0.33, 0.5, 0.7, 0.9, 0.99])
def test_split_is_ordered_and_reconstructs_input(make_bars, ratio):
    bars = make_bars(range(1, 101))

    train, test = split_bars(bars, ratio)

    assert train + test == bars
    assert train and test
    assert train[-1].time < test[0].time


def test_split_of_two_bars(make_bars):
    train, test = split_bars(make_bars([1, 2]), 0.5)
    assert len(train) == 1
    assert len(test) == 1


def test_split_empty_training_window_raises(make_bars):
    with pytest.raises(InvalidSplitError) as exc_info:
        split_bars(make_bars([1, 2, 3]), 0.2)

    assert exc_info.value.train_size == 0
    assert exc_info.value.test_size == 3


@pytest.mark.parametrize("ratio", [0.0, 1.0, -0.5, 1.5])
def test_split_ratio_out_of_range_raises(make_bars, ratio):
    with pytest.raises(InvalidSplitError):
        split_bars(make_bars(range(10)), ratio)


def test_split_single_bar_raises(make_bars):
    with pytest.raises(InvalidSplitError):
        split_bars(make_bars([1]), 0.5)


def test_split_rejects_unordered_bars(make_bars):
    bars = make_bars([1, 2, 3, 4])
    bars[1], bars[2] = bars[2], bars[1]

    with pytest.raises(BarValidationError):
        split_bars(bars, 0.5)


def test_split_by_year(make_bars):
    bars = make_bars([100 + i * 0.1 for i in range(3 * 366)], start=datetime(2020, 1, 1))

    train, test = split_by_year(bars, test_year=2022, train_years_lookback=2)

    assert {bar.time.year for bar in train} == {2020, 2021}
    assert {bar.time.year for bar in test} == {2022}
    assert train[-1].time < test[0].time


def test_split_by_year_without_test_data_raises(make_bars):
    bars = make_bars(range(1, 100), start=datetime(2020, 1, 1))

    with pytest.raises(InvalidSplitError):
        split_by_year(bars, test_year=2025, train_years_lookback=1)


def test_split_rejects_nan_price(make_bars):
    with pytest.raises(BarValidationError):
        split_bars(make_bars([100, float("nan"), 102, 103]), 0.5)
