"""Validation configuration settings using dataclasses."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict
import json
import math
import os

from dotenv import load_dotenv

from .errors import InvalidConfigError

# Load environment variables from .env file
load_dotenv()

DEFAULT_OUTPUT_DIR = os.getenv("WFV_OUTPUT_DIR", "./validation_results")
DEFAULT_LOG_DIR = os.getenv("WFV_LOG_DIR", "logs")
DEFAULT_LOG_LEVEL = os.getenv("WFV_LOG_LEVEL", "INFO")
DEFAULT_N_JOBS = int(os.getenv("WFV_N_JOBS", "1"))

OBJECTIVES = ("total_return", "sharpe_ratio", "max_drawdown", "trade_count")


@dataclass
class ValidationConfig:
    """Configuration for a validation run.

    The strategy itself is supplied by the caller; this config only controls
    data range, split, costs, sweep and output.
    """

    # Data source
    source: str = "csv"
    file_path: Optional[str] = None
    symbol: str = "SPY"
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    # Strategy (name of a built-in, see strategy.STRATEGIES)
    strategy: str = "sma_trend"
    base_parameters: Dict[str, float] = field(default_factory=lambda: {"lookback": 20.0, "position_size": 100.0})
    perturbations: Dict[str, List[float]] = field(default_factory=dict)

    # Window split
    split_ratio: float = 0.7
    min_window_bars: int = 2

    # Year-based walk-forward (optional alternative to split_ratio)
    test_years: Optional[List[int]] = None
    train_years_lookback: int = 2

    # Cost model parameters
    per_share_fee: float = 0.005
    minimum_fee: float = 1.0
    slippage_fraction: float = 0.001

    # Simulation
    initial_equity: float = 10000.0
    periods_per_year: int = 252
    max_run_seconds: Optional[float] = None  # Wall-clock guard per run

    # Sensitivity sweep
    objective: str = "sharpe_ratio"
    n_jobs: int = DEFAULT_N_JOBS  # 1 = sequential, -1 = all CPUs
    select_on_training: bool = False
    top_n: int = 5

    # Output settings
    output_dir: str = DEFAULT_OUTPUT_DIR
    save_csv: bool = True
    verbose: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not 0.0 < self.split_ratio < 1.0:
            raise InvalidConfigError(f"split_ratio must be in (0, 1), got: {self.split_ratio}")

        if self.min_window_bars < 2:
            raise InvalidConfigError(f"min_window_bars must be >= 2, got: {self.min_window_bars}")

        if self.initial_equity <= 0:
            raise InvalidConfigError(f"initial_equity must be > 0, got: {self.initial_equity}")

        if self.periods_per_year <= 0:
            raise InvalidConfigError(f"periods_per_year must be > 0, got: {self.periods_per_year}")

        if self.max_run_seconds is not None and self.max_run_seconds <= 0:
            raise InvalidConfigError(f"max_run_seconds must be > 0, got: {self.max_run_seconds}")

        if self.objective not in OBJECTIVES:
            raise InvalidConfigError(f"objective must be one of {OBJECTIVES}, got: {self.objective}")

        if self.n_jobs == 0 or self.n_jobs < -1:
            raise InvalidConfigError(f"n_jobs must be >= 1 or -1, got: {self.n_jobs}")

        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise InvalidConfigError("start_date must be before end_date")

        if self.test_years is not None and self.train_years_lookback < 1:
            raise InvalidConfigError(f"train_years_lookback must be >= 1, got: {self.train_years_lookback}")

        # Raises InvalidConfigError on negative costs
        self.cost_model()

    @classmethod
    def from_json(cls, filepath: str) -> "ValidationConfig":
        """Load configuration from JSON file.

        Args:
            filepath: Path to JSON config file

        Returns:
            ValidationConfig instance

        Example JSON:
            {
                "file_path": "data/spy_daily.csv",
                "strategy": "sma_trend",
                "base_parameters": {"lookback": 20, "position_size": 100},
                "perturbations": {"lookback": [15, 18, 20, 22, 25]},
                "split_ratio": 0.7,
                "per_share_fee": 0.005,
                "minimum_fee": 1.0,
                "slippage_fraction": 0.001
            }
        """
        with open(filepath, 'r') as f:
            data = json.load(f)

        # Convert date strings to datetime if present
        if data.get('start_date'):
            data['start_date'] = datetime.strptime(data['start_date'], "%Y-%m-%d")
        if data.get('end_date'):
            data['end_date'] = datetime.strptime(data['end_date'], "%Y-%m-%d")

        try:
            return cls(**data)
        except TypeError as e:
            raise InvalidConfigError(f"Invalid config file {filepath}: {e}") from e

    def to_json(self, filepath: str):
        """Save configuration to JSON file.

        Args:
            filepath: Path to save JSON config file
        """
        data = self.__dict__.copy()

        # Convert datetime to string
        if data.get('start_date'):
            data['start_date'] = data['start_date'].strftime("%Y-%m-%d")
        if data.get('end_date'):
            data['end_date'] = data['end_date'].strftime("%Y-%m-%d")

        with open(filepath, 'w') as f:
            json.dump(data, f, indent=2)

    def is_year_based(self) -> bool:
        """Check if this is year-based walk-forward testing."""
        return self.test_years is not None and len(self.test_years) > 0

    def cost_model(self) -> "CostModel":
        return CostModel.from_config(self)


@dataclass(frozen=True)
class CostModel:
    """Commission plus proportional slippage charged on every trade.

    cost = max(minimum_fee, per_share_fee * quantity) + slippage_fraction * quantity * price
    """

    per_share_fee: float = 0.0
    minimum_fee: float = 0.0
    slippage_fraction: float = 0.0

    def __post_init__(self):
        for name in ("per_share_fee", "minimum_fee", "slippage_fraction"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or not math.isfinite(value):
                raise InvalidConfigError(f"{name} must be a finite number, got: {value!r}")
            if value < 0:
                raise InvalidConfigError(f"{name} must be >= 0, got: {value}")

    def calculate_commission(self, quantity: float) -> float:
        """Commission in currency units, subject to the minimum fee."""
        if quantity <= 0:
            return 0.0
        return max(self.minimum_fee, self.per_share_fee * quantity)

    def calculate_slippage(self, quantity: float, price: float) -> float:
        """Slippage in currency units, proportional to traded notional."""
        if quantity <= 0:
            return 0.0
        return self.slippage_fraction * quantity * abs(price)

    def cost(self, trade_or_quantity, price: Optional[float] = None) -> float:
        """Total cost of a trade.

        Accepts either a Trade-like object (with quantity and price) or an
        explicit quantity and price.
        """
        if price is None:
            quantity = trade_or_quantity.quantity
            price = trade_or_quantity.price
        else:
            quantity = trade_or_quantity
        quantity = abs(quantity)
        return self.calculate_commission(quantity) + self.calculate_slippage(quantity, price)

    @classmethod
    def from_config(cls, config: ValidationConfig) -> "CostModel":
        """Create CostModel from ValidationConfig."""
        return cls(
            per_share_fee=config.per_share_fee,
            minimum_fee=config.minimum_fee,
            slippage_fraction=config.slippage_fraction
        )
