"""Parameter sensitivity sweep.

Varies one parameter at a time around a base parameter set, evaluating each
variant with the strategy runner, and reports metrics per variant. Runs are
independent and may execute on a process pool.
"""

from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor, TimeoutError as FutureTimeoutError
from concurrent.futures.process import BrokenProcessPool
from typing import List, Mapping, Optional, Sequence, Tuple
import logging
import os
import time

import pandas as pd

from .config import CostModel, ValidationConfig
from .data_source import Bar
from .engine import StrategyRunner
from .errors import InsufficientDataError, StrategyError
from .metrics import Metrics, compute_metrics
from .strategy import ParameterSet, as_strategy

# Allowance for worker start-up and pickling on top of the per-run budget
PARALLEL_GRACE_SECONDS = 5.0


@dataclass(frozen=True)
class SweepResult:
    """Outcome of one perturbed run."""

    parameter: str
    value: float
    params: ParameterSet
    metrics: Metrics

    @property
    def failed(self) -> bool:
        return self.metrics.failed


class SensitivitySweeper:
    """Runs the strategy once per single-field perturbation of the base parameters."""

    def __init__(
        self,
        runner: StrategyRunner,
        periods_per_year: int = 252,
        n_jobs: int = 1,
        logger: Optional[logging.Logger] = None
    ):
        """Initialize sensitivity sweeper.

        Args:
            runner: Strategy runner used for every perturbed run
            periods_per_year: Annualization factor for metrics
            n_jobs: 1 = sequential, N = N worker processes, -1 = all CPUs
            logger: Optional logger
        """
        self.runner = runner
        self.periods_per_year = periods_per_year
        self.n_jobs = n_jobs
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: ValidationConfig, logger: Optional[logging.Logger] = None) -> "SensitivitySweeper":
        runner = StrategyRunner(
            cost_model=config.cost_model(),
            initial_equity=config.initial_equity,
            max_run_seconds=config.max_run_seconds,
            logger=logger
        )
        return cls(runner, config.periods_per_year, config.n_jobs, logger)

    def sweep(
        self,
        base_params: Mapping[str, float],
        perturbations: Mapping[str, Sequence[float]],
        bars: Sequence[Bar],
        strategy
    ) -> List[SweepResult]:
        """Evaluate every single-field perturbation of base_params.

        Args:
            base_params: Parameters the perturbations are applied to
            perturbations: Parameter name -> candidate values, in sweep order
            bars: Bar window to run on (shared read-only)
            strategy: Strategy instance or plain callable

        Returns:
            One SweepResult per (parameter, value), in input order. Runs that
            raise StrategyError (timeouts included) or get too few bars are
            recorded with failed metrics.
        """
        if not isinstance(base_params, ParameterSet):
            base_params = ParameterSet(base_params)
        strategy = as_strategy(strategy)
        bars = tuple(bars)

        candidates = self._generate_candidates(base_params, perturbations)
        total = len(candidates)

        self.logger.info("=" * 70)
        self.logger.info("SENSITIVITY SWEEP")
        self.logger.info("=" * 70)
        self.logger.info(f"Base parameters: {base_params.to_dict()}")
        for name, values in perturbations.items():
            self.logger.info(f"  {name}: {list(values)}")
        self.logger.info(f"Total runs: {total} on {len(bars)} bars")
        self.logger.info("=" * 70)

        if not candidates:
            return []

        n_jobs = self._resolve_jobs()
        if n_jobs == 1 or total == 1:
            results = self._run_sequential(candidates, bars, strategy)
        else:
            results = self._run_parallel(candidates, bars, strategy, n_jobs)

        failed = sum(1 for r in results if r.failed)
        self.logger.info(f"Sweep complete: {total - failed}/{total} runs succeeded")
        return results

    def _generate_candidates(
        self,
        base_params: ParameterSet,
        perturbations: Mapping[str, Sequence[float]]
    ) -> List[Tuple[str, float, ParameterSet]]:
        """Copy base_params once per candidate value, overriding a single field."""
        candidates = []
        for name, values in perturbations.items():
            for value in values:
                candidates.append((name, value, base_params.with_value(name, value)))
        return candidates

    def _resolve_jobs(self) -> int:
        if self.n_jobs == -1:
            return os.cpu_count() or 1
        return max(1, self.n_jobs)

    def _run_sequential(self, candidates, bars, strategy) -> List[SweepResult]:
        results = []
        total = len(candidates)

        for i, (name, value, params) in enumerate(candidates, 1):
            metrics = _evaluate(
                self.runner.cost_model,
                self.runner.initial_equity,
                self.runner.max_run_seconds,
                self.periods_per_year,
                params,
                bars,
                strategy
            )
            self._log_outcome(i, total, name, value, metrics)
            results.append(SweepResult(name, value, params, metrics))

        return results

    def _run_parallel(self, candidates, bars, strategy, n_jobs: int) -> List[SweepResult]:
        """Run candidates on a process pool; results come back in input order.

        With max_run_seconds set, each result is awaited for at most one run
        budget (plus the queueing ahead of it) and a late result is recorded
        as a timed-out run. Errors other than a broken pool or a timeout,
        such as an unpicklable strategy, propagate.
        """
        total = len(candidates)
        results: List[SweepResult] = []
        timed_out = False

        self.logger.info(f"Running with {n_jobs} parallel workers")

        executor = ProcessPoolExecutor(max_workers=n_jobs)
        try:
            futures = [
                executor.submit(
                    _evaluate,
                    self.runner.cost_model,
                    self.runner.initial_equity,
                    self.runner.max_run_seconds,
                    self.periods_per_year,
                    params,
                    bars,
                    strategy
                )
                for _, _, params in candidates
            ]
            started = time.monotonic()

            for i, (future, (name, value, params)) in enumerate(zip(futures, candidates)):
                try:
                    metrics = future.result(timeout=self._result_timeout(i, n_jobs, started))
                except FutureTimeoutError:
                    timed_out = True
                    future.cancel()
                    self.logger.error(f"[{i + 1}/{total}] Timeout {name}={value}")
                    metrics = Metrics.failed_run(
                        f"RunTimeoutError: run exceeded {self.runner.max_run_seconds:.2f}s wall-clock budget"
                    )
                except BrokenProcessPool as e:
                    self.logger.error(f"[{i + 1}/{total}] Error {name}={value}: {e}")
                    metrics = Metrics.failed_run(f"{type(e).__name__}: {e}")

                self._log_outcome(i + 1, total, name, value, metrics)
                results.append(SweepResult(name, value, params, metrics))
        finally:
            # A hung worker is abandoned rather than waited on
            executor.shutdown(wait=not timed_out, cancel_futures=True)

        return results

    def _result_timeout(self, index: int, n_jobs: int, started: float) -> Optional[float]:
        """Seconds left to wait for the candidate at index, or None when unbounded."""
        budget = self.runner.max_run_seconds
        if budget is None:
            return None
        # Candidate index starts no later than (index // n_jobs) budgets in
        deadline = started + budget * (index // n_jobs + 1) + PARALLEL_GRACE_SECONDS
        return max(0.0, deadline - time.monotonic())

    def _log_outcome(self, index: int, total: int, name: str, value: float, metrics: Metrics):
        if metrics.failed:
            self.logger.warning(f"[{index}/{total}] {name}={value} failed: {metrics.error}")
        else:
            self.logger.info(
                f"[{index}/{total}] {name}={value} -> return {metrics.total_return:.4f}, "
                f"sharpe {metrics.sharpe_ratio:.3f}, max DD {metrics.max_drawdown:.4f}"
            )


def _evaluate(
    cost_model: CostModel,
    initial_equity: float,
    max_run_seconds: Optional[float],
    periods_per_year: int,
    params: ParameterSet,
    bars: Sequence[Bar],
    strategy
) -> Metrics:
    """Run one candidate with its own runner; may execute in a worker process."""
    runner = StrategyRunner(cost_model, initial_equity, max_run_seconds)
    try:
        result = runner.run(bars, params, strategy)
    except (StrategyError, InsufficientDataError) as e:
        return Metrics.failed_run(str(e))
    return compute_metrics(result.returns, result.trades, periods_per_year)


def rank(results: Sequence[SweepResult], objective: str = "sharpe_ratio") -> List[SweepResult]:
    """Order sweep results best-first.

    Successful runs are sorted by objective descending (smallest drawdown
    or fewest trades first); ties keep input order; failed runs go last.
    """
    return sorted(results, key=lambda r: -r.metrics.objective_value(objective))


def to_dataframe(results: Sequence[SweepResult]) -> pd.DataFrame:
    """Flatten sweep results into one row per run."""
    rows = []
    for result in results:
        row = {"parameter": result.parameter, "value": result.value}
        for key, value in result.params.items():
            row[f"param_{key}"] = value
        for key, value in result.metrics.to_dict().items():
            row[f"metric_{key}"] = value
        rows.append(row)
    return pd.DataFrame(rows)
