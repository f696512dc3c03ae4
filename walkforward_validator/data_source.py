"""Data source for loading historical price bars.

Loads bars from local CSV or Parquet files. The validation core only needs
"ordered bars for [start, end)"; everything file-specific lives here.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Sequence
import math
import numbers

import pandas as pd

from .errors import BarValidationError


@dataclass(frozen=True)
class Bar:
    """A single price bar."""

    time: Any  # datetime or any totally ordered timestamp
    price: float
    volume: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for API payloads and CSV export."""
        time_value = self.time
        if isinstance(time_value, datetime):
            time_value = time_value.isoformat()
        return {
            "time": time_value,
            "price": self.price,
            "volume": self.volume
        }


def validate_bars(bars: Sequence[Bar]) -> Sequence[Bar]:
    """Ensure bars are ordered oldest -> newest with usable prices.

    Args:
        bars: Bar sequence to check

    Returns:
        The same sequence, unchanged

    Raises:
        BarValidationError: If timestamps are not strictly increasing or a
            price is missing, non-finite or not positive
    """
    for i, bar in enumerate(bars):
        price = bar.price
        if isinstance(price, bool) or not isinstance(price, numbers.Real) or not math.isfinite(price) or price <= 0:
            raise BarValidationError(
                f"Invalid price at index {i}: bar[{i}].time={bar.time}, price={price!r}. "
                f"Prices must be finite and positive."
            )

    for i in range(1, len(bars)):
        prev_time = bars[i - 1].time
        curr_time = bars[i].time
        if not curr_time > prev_time:
            raise BarValidationError(
                f"Bars not strictly increasing at index {i}: "
                f"bar[{i-1}].time={prev_time}, bar[{i}].time={curr_time}. "
                f"Bars must be ordered oldest -> newest with no duplicates."
            )
    return bars


class BarDataSource:
    """Loads historical bars from files.

    Supports:
    - CSV files (time, price or close, volume)
    - Parquet files (same columns)
    """

    def __init__(
        self,
        source: str,
        symbol: str = "",
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        file_path: Optional[str] = None
    ):
        """Initialize data source.

        Args:
            source: "csv" or "parquet"
            symbol: Symbol label (informational only)
            start_date: Inclusive start of the range (optional)
            end_date: Exclusive end of the range (optional)
            file_path: Path to CSV/Parquet file
        """
        self.source = source
        self.symbol = symbol
        self.start_date = start_date
        self.end_date = end_date
        self.file_path = file_path
        self._data: Optional[pd.DataFrame] = None

    def load(self, file_path: Optional[str] = None) -> List[Bar]:
        """Load bars from the configured source.

        Args:
            file_path: Path to CSV/Parquet file (overrides self.file_path if provided)

        Returns:
            List of Bar objects sorted by time (ascending)

        Raises:
            ValueError: If source is invalid or file_path is missing
            BarValidationError: If the file contains duplicate timestamps
        """
        path = file_path or self.file_path

        if self.source == "csv":
            if not path:
                raise ValueError("file_path required for CSV source")
            df = self._normalize(pd.read_csv(path), "CSV")
        elif self.source == "parquet":
            if not path:
                raise ValueError("file_path required for Parquet source")
            df = self._normalize(pd.read_parquet(path), "Parquet")
        else:
            raise ValueError(f"Invalid source: {self.source}. Must be 'csv' or 'parquet'")

        df = self._filter_by_dates(df)

        self._data = df
        return validate_bars(self._df_to_bars(df))

    def _normalize(self, df: pd.DataFrame, kind: str) -> pd.DataFrame:
        """Rename columns to time/price/volume and sort by time."""
        if "price" not in df.columns and "close" in df.columns:
            df = df.rename(columns={"close": "price"})
        if "volume" not in df.columns:
            df = df.assign(volume=0.0)

        required = ["time", "price", "volume"]
        missing = [col for col in required if col not in df.columns]
        if missing:
            raise ValueError(f"{kind} missing required columns: {missing}")

        blank = df[df['time'].isna() | df['price'].isna()]
        if not blank.empty:
            raise BarValidationError(
                f"{kind} has {len(blank)} row(s) with a missing time or price, "
                f"first at row {blank.index[0]}"
            )
        df = df.assign(volume=df['volume'].fillna(0.0))

        if not pd.api.types.is_datetime64_any_dtype(df['time']):
            df['time'] = pd.to_datetime(df['time'])

        df = df.sort_values('time').reset_index(drop=True)
        return df[required]

    def _filter_by_dates(self, df: pd.DataFrame) -> pd.DataFrame:
        """Filter DataFrame to [start_date, end_date)."""
        if self.start_date:
            df = df[df['time'] >= self.start_date]

        if self.end_date:
            df = df[df['time'] < self.end_date]

        return df.reset_index(drop=True)

    def _df_to_bars(self, df: pd.DataFrame) -> List[Bar]:
        """Convert DataFrame to list of Bar objects."""
        return [
            Bar(
                time=row.time.to_pydatetime(),
                price=float(row.price),
                volume=float(row.volume)
            )
            for row in df.itertuples(index=False)
        ]

    def get_dataframe(self) -> pd.DataFrame:
        """Get the loaded data as a pandas DataFrame.

        Raises:
            ValueError: If data hasn't been loaded yet
        """
        if self._data is None:
            raise ValueError("Data not loaded. Call load() first.")
        return self._data.copy()


class InMemoryDataSource:
    """Serves an already-built bar list, filtered to [start, end)."""

    def __init__(self, bars: Sequence[Bar]):
        self._bars = list(validate_bars(bars))

    def load(self, start=None, end=None) -> List[Bar]:
        return [
            bar for bar in self._bars
            if (start is None or bar.time >= start) and (end is None or bar.time < end)
        ]
