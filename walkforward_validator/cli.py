"""Command-line interface for running walk-forward validations."""

import argparse
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from .api_client import HttpStrategy
from .config import ValidationConfig, DEFAULT_LOG_DIR, DEFAULT_OUTPUT_DIR
from .data_source import BarDataSource
from .errors import ValidationToolError
from .logger import setup_logger
from .orchestrator import ValidationOrchestrator
from .reporting import ValidationReporter
from .strategy import STRATEGIES, get_strategy


def parse_args(argv: Optional[Sequence[str]] = None):
    """Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Walk-forward validation with cost modeling and parameter sensitivity sweeps",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument("--config", type=str, help="Path to JSON config file (overrides all other args)")

    # Data source
    parser.add_argument("--source", type=str, default="csv", choices=["csv", "parquet"], help="Data source type")
    parser.add_argument("--file", type=str, help="Path to CSV/Parquet file with time, price/close, volume")
    parser.add_argument("--symbol", type=str, default="SPY", help="Symbol label")
    parser.add_argument("--start", type=str, help="Start date, inclusive (YYYY-MM-DD)")
    parser.add_argument("--end", type=str, help="End date, exclusive (YYYY-MM-DD)")

    # Strategy
    parser.add_argument("--strategy", type=str, default="sma_trend", choices=sorted(STRATEGIES),
                        help="Built-in strategy (ignored when --api-url is given)")
    parser.add_argument("--api-url", type=str, help="Delegate decisions to an HTTP strategy endpoint")
    parser.add_argument("--param", action="append", default=[], metavar="NAME=VALUE",
                        help="Base parameter (repeatable)")
    parser.add_argument("--sweep", action="append", default=[], metavar="NAME=V1,V2,...",
                        help="Sensitivity candidates for one parameter (repeatable)")

    # Split
    parser.add_argument("--split-ratio", type=float, default=0.7, help="Fraction of bars used for training")
    parser.add_argument("--min-window-bars", type=int, default=2, help="Minimum bars per window")
    parser.add_argument("--test-years", type=int, nargs="+", help="Year-based walk-forward test years")
    parser.add_argument("--train-years-lookback", type=int, default=2, help="Training years before each test year")

    # Cost model
    parser.add_argument("--per-share-fee", type=float, default=0.005, help="Commission per share")
    parser.add_argument("--minimum-fee", type=float, default=1.0, help="Minimum commission per trade")
    parser.add_argument("--slippage", type=float, default=0.001, help="Slippage as a fraction of notional")

    # Simulation / sweep
    parser.add_argument("--initial-equity", type=float, default=10000.0, help="Starting equity")
    parser.add_argument("--periods-per-year", type=int, default=252, help="Annualization factor")
    parser.add_argument("--max-run-seconds", type=float, help="Wall-clock budget per run")
    parser.add_argument("--objective", type=str, default="sharpe_ratio",
                        choices=["total_return", "sharpe_ratio", "max_drawdown", "trade_count"],
                        help="Metric used to rank sweep results")
    parser.add_argument("--n-jobs", type=int, default=1, help="Parallel sweep workers (-1 = all CPUs)")
    parser.add_argument("--top-n", type=int, default=5, help="Sweep rows shown in the console summary")
    parser.add_argument("--select-on-training", action="store_true",
                        help="Freeze the best training-window candidate instead of the base parameters")

    # Output settings
    parser.add_argument("--output-dir", type=str, default=DEFAULT_OUTPUT_DIR, help="Output directory for results")
    parser.add_argument("--log-dir", type=str, default=DEFAULT_LOG_DIR, help="Directory for log files")
    parser.add_argument("--no-save-csv", action="store_true", help="Don't save CSV outputs")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    return parser.parse_args(argv)


def parse_params(items: List[str]) -> Dict[str, float]:
    """Parse NAME=VALUE pairs."""
    params = {}
    for item in items:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise ValueError(f"Expected NAME=VALUE, got: {item}")
        params[name.strip()] = float(value)
    return params


def parse_sweeps(items: List[str]) -> Dict[str, List[float]]:
    """Parse NAME=V1,V2,... entries, keeping input order."""
    sweeps = {}
    for item in items:
        name, sep, values = item.partition("=")
        if not sep or not name or not values:
            raise ValueError(f"Expected NAME=V1,V2,..., got: {item}")
        sweeps[name.strip()] = [float(v) for v in values.split(",") if v.strip()]
    return sweeps


def build_config(args) -> ValidationConfig:
    """Create a ValidationConfig from a JSON file or the CLI arguments."""
    if args.config:
        return ValidationConfig.from_json(args.config)

    base_parameters = parse_params(args.param) or {"lookback": 20.0, "position_size": 100.0}
    return ValidationConfig(
        source=args.source,
        file_path=args.file,
        symbol=args.symbol,
        start_date=datetime.strptime(args.start, "%Y-%m-%d") if args.start else None,
        end_date=datetime.strptime(args.end, "%Y-%m-%d") if args.end else None,
        strategy=args.strategy,
        base_parameters=base_parameters,
        perturbations=parse_sweeps(args.sweep),
        split_ratio=args.split_ratio,
        min_window_bars=args.min_window_bars,
        test_years=args.test_years,
        train_years_lookback=args.train_years_lookback,
        per_share_fee=args.per_share_fee,
        minimum_fee=args.minimum_fee,
        slippage_fraction=args.slippage,
        initial_equity=args.initial_equity,
        periods_per_year=args.periods_per_year,
        max_run_seconds=args.max_run_seconds,
        objective=args.objective,
        n_jobs=args.n_jobs,
        select_on_training=args.select_on_training,
        top_n=args.top_n,
        output_dir=args.output_dir,
        save_csv=not args.no_save_csv,
        verbose=args.verbose
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    args = parse_args(argv)
    logger = setup_logger(log_dir=args.log_dir, level="DEBUG" if args.verbose else "INFO")

    try:
        config = build_config(args)
    except (ValueError, ValidationToolError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if not config.file_path:
        logger.error(f"--file is required when using --source={config.source}")
        return 1

    data_source = BarDataSource(
        source=config.source,
        symbol=config.symbol,
        start_date=config.start_date,
        end_date=config.end_date,
        file_path=config.file_path
    )

    logger.info("Loading data...")
    try:
        bars = data_source.load()
    except (OSError, ValueError, ValidationToolError) as e:
        logger.error(f"Failed to load data: {e}")
        return 1
    logger.info(f"Loaded {len(bars)} bars")

    if args.api_url:
        strategy = HttpStrategy(base_url=args.api_url, symbol=config.symbol, logger=logger)
    else:
        try:
            strategy = get_strategy(config.strategy)
        except ValidationToolError as e:
            logger.error(str(e))
            return 1

    orchestrator = ValidationOrchestrator(config, logger=logger)
    reporter = ValidationReporter(output_dir=config.output_dir, logger=logger)

    try:
        if config.is_year_based():
            reports = orchestrator.run_year_based(bars, config.base_parameters, strategy)
            if not reports:
                logger.error("No test year had both training and testing data")
                return 1
            for year, report in reports.items():
                reporter.save_results(report, f"{config.symbol}_{year}", config.objective, config.save_csv)
                reporter.print_summary(report, f"{config.symbol} ({year})", config.objective, config.top_n)
        else:
            report = orchestrator.run(bars, config.base_parameters, strategy)
            reporter.save_results(report, config.symbol, config.objective, config.save_csv)
            reporter.print_summary(report, config.symbol, config.objective, config.top_n)
    except ValidationToolError as e:
        logger.error(f"Validation failed: {e}")
        return 1
    finally:
        if isinstance(strategy, HttpStrategy):
            stats = strategy.get_stats()
            logger.info(
                f"API requests: {stats['total_requests']}, failed: {stats['failed_requests']}, "
                f"retries: {stats['total_retry_count']}"
            )
            strategy.close()

    logger.info("Validation complete!")
    return 0


if __name__ == "__main__":
    exit(main())
