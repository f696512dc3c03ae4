"""Walk-forward validation orchestrator.

Sequence for one validation:
  split -> run on training window -> freeze parameters -> run on testing
  window -> sensitivity sweep around the frozen parameters on the testing
  window -> ValidationReport

Year-based mode repeats this for each test year, training on the
preceding train_years_lookback years.
"""

from typing import Dict, List, Mapping, Optional, Sequence
import logging

from .config import ValidationConfig
from .data_source import Bar
from .engine import StrategyRunner
from .errors import InsufficientDataError, InvalidSplitError
from .metrics import compute_metrics
from .reporting import ValidationReport
from .sensitivity import SensitivitySweeper, rank
from .strategy import ParameterSet, as_strategy
from .walk_forward import split_bars, split_by_year


class ValidationOrchestrator:
    """Runs out-of-sample validation of a strategy."""

    def __init__(self, config: ValidationConfig, logger: Optional[logging.Logger] = None):
        """Initialize orchestrator.

        Args:
            config: Validation configuration (split, costs, sweep settings)
            logger: Optional logger
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.runner = StrategyRunner(
            cost_model=config.cost_model(),
            initial_equity=config.initial_equity,
            max_run_seconds=config.max_run_seconds,
            logger=self.logger
        )
        self.sweeper = SensitivitySweeper(
            self.runner,
            periods_per_year=config.periods_per_year,
            n_jobs=config.n_jobs,
            logger=self.logger
        )

    def run(
        self,
        bars: Sequence[Bar],
        base_params: Mapping[str, float],
        strategy,
        perturbations: Optional[Mapping[str, Sequence[float]]] = None
    ) -> ValidationReport:
        """Validate a strategy on a ratio split of bars.

        Args:
            bars: Full strictly increasing bar series
            base_params: Starting parameters
            strategy: Strategy instance or plain callable
            perturbations: Sweep candidates (defaults to config.perturbations)

        Returns:
            ValidationReport

        Raises:
            InvalidSplitError: If a window would be empty
            InsufficientDataError: If a window is shorter than min_window_bars
            StrategyError: If the training or testing run fails
        """
        train_bars, test_bars = split_bars(bars, self.config.split_ratio)
        return self._validate(train_bars, test_bars, base_params, strategy, perturbations)

    def run_year_based(
        self,
        bars: Sequence[Bar],
        base_params: Mapping[str, float],
        strategy,
        test_years: Optional[Sequence[int]] = None,
        train_years_lookback: Optional[int] = None,
        perturbations: Optional[Mapping[str, Sequence[float]]] = None
    ) -> Dict[int, ValidationReport]:
        """Validate once per test year, training on the preceding years.

        Years with no training or testing data are skipped.

        Returns:
            Reports keyed by test year
        """
        test_years = test_years if test_years is not None else (self.config.test_years or [])
        lookback = train_years_lookback or self.config.train_years_lookback

        self.logger.info("=" * 70)
        self.logger.info("YEAR-BASED WALK-FORWARD VALIDATION")
        self.logger.info("=" * 70)
        self.logger.info(f"Test Years: {list(test_years)}")
        self.logger.info(f"Train Years Lookback: {lookback}")

        reports = {}
        for test_year in test_years:
            try:
                train_bars, test_bars = split_by_year(bars, test_year, lookback)
            except InvalidSplitError as e:
                self.logger.warning(f"Skipping {test_year}: {e}")
                continue

            self.logger.info(f"TEST YEAR: {test_year} (train {test_year - lookback}-{test_year - 1})")
            reports[test_year] = self._validate(train_bars, test_bars, base_params, strategy, perturbations)

        return reports

    def _validate(
        self,
        train_bars: List[Bar],
        test_bars: List[Bar],
        base_params: Mapping[str, float],
        strategy,
        perturbations: Optional[Mapping[str, Sequence[float]]]
    ) -> ValidationReport:
        strategy = as_strategy(strategy)
        params = base_params if isinstance(base_params, ParameterSet) else ParameterSet(base_params)
        if perturbations is None:
            perturbations = self.config.perturbations or {}

        min_bars = self.config.min_window_bars
        if len(train_bars) < min_bars or len(test_bars) < min_bars:
            raise InsufficientDataError(len(train_bars), len(test_bars), min_bars)

        self.logger.info("=" * 70)
        self.logger.info("Starting Validation")
        self.logger.info("=" * 70)
        self.logger.info(f"Strategy: {strategy.name}")
        self.logger.info(f"Train bars: {len(train_bars)} ({train_bars[0].time} to {train_bars[-1].time})")
        self.logger.info(f"Test bars: {len(test_bars)} ({test_bars[0].time} to {test_bars[-1].time})")

        if self.config.select_on_training and perturbations:
            params = self._select_on_training(params, perturbations, train_bars, strategy)

        ppy = self.config.periods_per_year
        train_run = self.runner.run(train_bars, params, strategy)
        train_metrics = compute_metrics(train_run.returns, train_run.trades, ppy)
        self.logger.info(
            f"Training: return {train_metrics.total_return:.4f}, "
            f"sharpe {train_metrics.sharpe_ratio:.3f}, trades {train_metrics.trade_count}"
        )

        # Parameters are frozen from here on
        test_run = self.runner.run(test_bars, params, strategy)
        test_metrics = compute_metrics(test_run.returns, test_run.trades, ppy)
        self.logger.info(
            f"Testing: return {test_metrics.total_return:.4f}, "
            f"sharpe {test_metrics.sharpe_ratio:.3f}, trades {test_metrics.trade_count}"
        )

        sweep = self.sweeper.sweep(params, perturbations, test_bars, strategy) if perturbations else []

        self.logger.info("=" * 70)
        self.logger.info("Validation Complete")
        self.logger.info("=" * 70)

        return ValidationReport(
            strategy=strategy.name,
            train_window=(train_bars[0].time, train_bars[-1].time),
            test_window=(test_bars[0].time, test_bars[-1].time),
            train_size=len(train_bars),
            test_size=len(test_bars),
            parameters=params,
            train_metrics=train_metrics,
            test_metrics=test_metrics,
            sweep=tuple(sweep),
            train_run=train_run,
            test_run=test_run
        )

    def _select_on_training(self, base_params, perturbations, train_bars, strategy) -> ParameterSet:
        """Pick the best single-field variant on the training window.

        The base parameters are kept unless a candidate strictly beats them.
        """
        objective = self.config.objective
        results = self.sweeper.sweep(base_params, perturbations, train_bars, strategy)
        ranked = [r for r in rank(results, objective) if not r.failed]
        if not ranked:
            self.logger.warning("No successful training candidates; keeping base parameters")
            return base_params

        base_result = self.runner.run(train_bars, base_params, strategy)
        base_score = compute_metrics(
            base_result.returns, base_result.trades, self.config.periods_per_year
        ).objective_value(objective)

        best = ranked[0]
        if best.metrics.objective_value(objective) > base_score:
            self.logger.info(f"Selected on training: {best.parameter}={best.value} ({objective})")
            return best.params
        return base_params
