"""walkforward-validator - out-of-sample validation for trading strategies.

This package replays a user-supplied strategy over historical bars and:
- Splits the series into a training window and a held-out testing window
- Charges commission and slippage on every position change
- Freezes parameters after training and re-runs on the testing window
- Sweeps single-parameter perturbations to measure sensitivity

Usage:
    python -m walkforward_validator --file data/spy.csv --sweep lookback=15,18,20,22,25

Package structure:
- config: ValidationConfig and CostModel dataclasses
- data_source: Bar, BarDataSource for loading historical data
- strategy: Strategy interface, ParameterSet, built-in strategies
- api_client: HttpStrategy delegating decisions to an HTTP endpoint
- broker_sim: BrokerSimulator and Trade for cost-aware fills
- engine: StrategyRunner producing return series and trade logs
- metrics: compute_metrics over a return series
- walk_forward: train/test window splitting
- sensitivity: SensitivitySweeper for parameter perturbations
- orchestrator: ValidationOrchestrator tying it together
- reporting: ValidationReport and ValidationReporter
- cli: Command-line interface
"""

__version__ = "1.0.0"

from .config import ValidationConfig, CostModel
from .errors import (
    ValidationToolError,
    InvalidSplitError,
    InvalidConfigError,
    StrategyError,
    RunTimeoutError,
    InsufficientDataError,
    BarValidationError
)
from .data_source import Bar, BarDataSource, InMemoryDataSource
from .strategy import ParameterSet, Strategy, FunctionStrategy, get_strategy
from .api_client import HttpStrategy
from .broker_sim import BrokerSimulator, Trade, Side
from .engine import StrategyRunner, RunResult
from .metrics import Metrics, compute_metrics
from .walk_forward import split_bars, split_by_year
from .sensitivity import SensitivitySweeper, SweepResult, rank
from .orchestrator import ValidationOrchestrator
from .reporting import ValidationReport, ValidationReporter

__all__ = [
    "ValidationConfig",
    "CostModel",
    "ValidationToolError",
    "InvalidSplitError",
    "InvalidConfigError",
    "StrategyError",
    "RunTimeoutError",
    "InsufficientDataError",
    "BarValidationError",
    "Bar",
    "BarDataSource",
    "InMemoryDataSource",
    "ParameterSet",
    "Strategy",
    "FunctionStrategy",
    "get_strategy",
    "HttpStrategy",
    "BrokerSimulator",
    "Trade",
    "Side",
    "StrategyRunner",
    "RunResult",
    "Metrics",
    "compute_metrics",
    "split_bars",
    "split_by_year",
    "SensitivitySweeper",
    "SweepResult",
    "rank",
    "ValidationOrchestrator",
    "ValidationReport",
    "ValidationReporter"
]
