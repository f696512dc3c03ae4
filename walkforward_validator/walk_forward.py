"""Window splitting for walk-forward validation.

Two ways to cut a bar series into a training window followed by a held-out
testing window:

- split_bars: ratio split, train = bars[:floor(N*r)], test = the rest
- split_by_year: calendar split, e.g. test_year=2024, train_years_lookback=2
  trains on 2022-2023 and tests on 2024
"""

from typing import List, Sequence, Tuple
import math

from .data_source import Bar, validate_bars
from .errors import InvalidSplitError


def split_bars(bars: Sequence[Bar], ratio: float) -> Tuple[List[Bar], List[Bar]]:
    """Split bars into non-overlapping training and testing windows.

    Args:
        bars: Strictly increasing bars (at least 2)
        ratio: Fraction of bars in the training window, in (0, 1)

    Returns:
        Tuple of (train_bars, test_bars); train_bars + test_bars == bars

    Raises:
        InvalidSplitError: If the ratio is out of range or either window is empty
        BarValidationError: If bars are not strictly increasing
    """
    validate_bars(bars)
    n = len(bars)

    if not 0.0 < ratio < 1.0:
        raise InvalidSplitError(f"Split ratio must be in (0, 1), got {ratio}", 0, 0)

    cut = math.floor(n * ratio)
    train_bars = list(bars[:cut])
    test_bars = list(bars[cut:])

    if n < 2 or not train_bars or not test_bars:
        raise InvalidSplitError(
            f"Split of {n} bars at ratio {ratio} leaves an empty window",
            len(train_bars),
            len(test_bars)
        )

    return train_bars, test_bars


def _year_of(timestamp) -> int:
    try:
        return timestamp.year
    except AttributeError:
        raise InvalidSplitError(
            f"Year-based split needs datetime timestamps, got {type(timestamp).__name__}"
        ) from None


def split_by_year(
    bars: Sequence[Bar],
    test_year: int,
    train_years_lookback: int
) -> Tuple[List[Bar], List[Bar]]:
    """Split bars into train and test periods by calendar year.

    Args:
        bars: Strictly increasing bars with datetime timestamps
        test_year: Year for testing
        train_years_lookback: Number of years before test_year to train on

    Returns:
        Tuple of (train_bars, test_bars)

    Raises:
        InvalidSplitError: If either period has no bars
    """
    validate_bars(bars)
    train_start_year = test_year - train_years_lookback
    train_end_year = test_year - 1

    train_bars = [bar for bar in bars if train_start_year <= _year_of(bar.time) <= train_end_year]
    test_bars = [bar for bar in bars if _year_of(bar.time) == test_year]

    if not train_bars or not test_bars:
        raise InvalidSplitError(
            f"No data for train {train_start_year}-{train_end_year} or test {test_year}",
            len(train_bars),
            len(test_bars)
        )

    return train_bars, test_bars
