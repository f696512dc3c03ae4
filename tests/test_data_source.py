"""Tests for bar loading and validation."""

from datetime import datetime

import pandas as pd
import pytest

from walkforward_validator import Bar, BarDataSource, BarValidationError, InMemoryDataSource
from walkforward_validator.data_source import validate_bars


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "bars.csv"
    pd.DataFrame({
        "time": ["2021-01-04", "2021-01-01", "2021-01-03", "2021-01-02", "2021-01-05"],
        "close": [104.0, 101.0, 103.0, 102.0, 105.0],
        "volume": [10, 11, 12, 13, 14],
    }).to_csv(path, index=False)
    return path


def test_csv_is_sorted_and_close_renamed(csv_file):
    bars = BarDataSource("csv", file_path=str(csv_file)).load()

    assert [bar.price for bar in bars] == [101.0, 102.0, 103.0, 104.0, 105.0]
    assert bars[0].time == datetime(2021, 1, 1)
    assert bars[0].volume == 11.0


def test_date_range_is_half_open(csv_file):
    source = BarDataSource(
        "csv",
        start_date=datetime(2021, 1, 2),
        end_date=datetime(2021, 1, 4),
        file_path=str(csv_file)
    )

    bars = source.load()

    assert [bar.time.day for bar in bars] == [2, 3]
    assert len(source.get_dataframe()) == 2


def test_duplicate_timestamps_rejected(tmp_path):
    path = tmp_path / "dupes.csv"
    pd.DataFrame({
        "time": ["2021-01-01", "2021-01-01"],
        "price": [1.0, 2.0],
    }).to_csv(path, index=False)

    with pytest.raises(BarValidationError):
        BarDataSource("csv", file_path=str(path)).load()


def test_missing_columns_rejected(tmp_path):
    path = tmp_path / "bad.csv"
    pd.DataFrame({"time": ["2021-01-01"], "open": [1.0]}).to_csv(path, index=False)

    with pytest.raises(ValueError):
        BarDataSource("csv", file_path=str(path)).load()


def test_invalid_source_rejected():
    with pytest.raises(ValueError):
        BarDataSource("mt5").load()


def test_dataframe_requires_load():
    with pytest.raises(ValueError):
        BarDataSource("csv", file_path="unused.csv").get_dataframe()


def test_in_memory_source_filters_range(make_bars):
    bars = make_bars([1, 2, 3, 4, 5], start=datetime(2021, 1, 1))
    source = InMemoryDataSource(bars)

    loaded = source.load(datetime(2021, 1, 2), datetime(2021, 1, 4))

    assert [bar.price for bar in loaded] == [2.0, 3.0]
    assert source.load() == bars


def test_in_memory_source_rejects_unordered_bars():
    with pytest.raises(BarValidationError):
        InMemoryDataSource([Bar(time=2, price=1.0), Bar(time=1, price=1.0)])


def test_bar_to_dict_serializes_datetime():
    bar = Bar(time=datetime(2021, 1, 1, 9, 30), price=10.5, volume=3)
    assert bar.to_dict() == {"time": "2021-01-01T09:30:00", "price": 10.5, "volume": 3}


def test_blank_price_cell_rejected(tmp_path):
    path = tmp_path / "gaps.csv"
    path.write_text("time,close,volume\n2021-01-01,100,1\n2021-01-02,,1\n2021-01-03,102,1\n")

    with pytest.raises(BarValidationError, match="missing time or price"):
        BarDataSource("csv", file_path=str(path)).load()


@pytest.mark.parametrize("price", [float("nan"), float("inf"), 0.0, -5.0])
def test_unusable_prices_rejected(price, make_bars):
    bars = make_bars([100, 101, 102])
    bars[1] = Bar(time=bars[1].time, price=price)

    with pytest.raises(BarValidationError, match="Invalid price at index 1"):
        validate_bars(bars)


def test_missing_volume_filled_with_zero(tmp_path):
    path = tmp_path / "volume_gaps.csv"
    path.write_text("time,price,volume\n2021-01-01,100,\n2021-01-02,101,5\n")

    bars = BarDataSource("csv", file_path=str(path)).load()

    assert [bar.volume for bar in bars] == [0.0, 5.0]
