"""Validation report and export.

Provides the ValidationReport assembled by the orchestrator and a reporter
that writes it to CSV/JSON/text files and prints a console summary.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import json
import logging
import math

import pandas as pd

from .engine import RunResult
from .metrics import Metrics
from .sensitivity import SweepResult, rank, to_dataframe
from .strategy import ParameterSet


@dataclass(frozen=True)
class ValidationReport:
    """Result of one train/test validation. Read-only once built."""

    strategy: str
    train_window: Tuple[Any, Any]  # (first, last) bar time
    test_window: Tuple[Any, Any]
    train_size: int
    test_size: int
    parameters: ParameterSet  # Frozen after training
    train_metrics: Metrics
    test_metrics: Metrics
    sweep: Tuple[SweepResult, ...] = ()
    train_run: Optional[RunResult] = field(default=None, compare=False, repr=False)
    test_run: Optional[RunResult] = field(default=None, compare=False, repr=False)

    def ranked_sweep(self, objective: str = "sharpe_ratio") -> List[SweepResult]:
        return rank(self.sweep, objective)

    def summary(self) -> Dict[str, Any]:
        """Flat dictionary of the headline numbers."""
        return {
            "strategy": self.strategy,
            "train_start": self.train_window[0],
            "train_end": self.train_window[1],
            "test_start": self.test_window[0],
            "test_end": self.test_window[1],
            "train_size": self.train_size,
            "test_size": self.test_size,
            "parameters": self.parameters.to_dict(),
            "train": self.train_metrics.to_dict(),
            "test": self.test_metrics.to_dict(),
            "sweep_runs": len(self.sweep),
            "sweep_failed": sum(1 for r in self.sweep if r.failed),
        }


def _fmt(value: float, fmt: str = ".4f") -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return "n/a"
    return format(value, fmt)


class ValidationReporter:
    """Generates reports and exports validation results."""

    def __init__(self, output_dir: str = "./validation_results", logger: Optional[logging.Logger] = None):
        """Initialize reporter.

        Args:
            output_dir: Directory to save reports
            logger: Optional logger
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.logger = logger or logging.getLogger(__name__)

    def save_results(
        self,
        report: ValidationReport,
        symbol: str,
        objective: str = "sharpe_ratio",
        save_csv: bool = True
    ) -> Dict[str, Path]:
        """Save a validation report to files.

        Args:
            report: Report from ValidationOrchestrator
            symbol: Symbol label used in filenames
            objective: Metric used to rank sweep rows
            save_csv: Whether to write sweep/returns/trades CSVs

        Returns:
            Dictionary mapping file type to file path
        """
        saved_files = {}

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        prefix = f"{symbol}_{report.strategy}_{timestamp}"

        if save_csv:
            if report.sweep:
                sweep_path = self.output_dir / f"{prefix}_sweep.csv"
                to_dataframe(report.ranked_sweep(objective)).to_csv(sweep_path, index=False)
                saved_files["sweep"] = sweep_path
                self.logger.info(f"Saved sweep results to: {sweep_path}")

            for label, run in (("train", report.train_run), ("test", report.test_run)):
                if run is None:
                    continue
                returns_path = self.output_dir / f"{prefix}_{label}_returns.csv"
                run.returns.to_frame().to_csv(returns_path)
                saved_files[f"{label}_returns"] = returns_path

                if run.trades:
                    trades_path = self.output_dir / f"{prefix}_{label}_trades.csv"
                    pd.DataFrame([t.to_dict() for t in run.trades]).to_csv(trades_path, index=False)
                    saved_files[f"{label}_trades"] = trades_path

        params_path = self.output_dir / f"{prefix}_params.json"
        with open(params_path, "w") as f:
            json.dump(report.parameters.to_dict(), f, indent=2)
        saved_files["params"] = params_path

        summary_path = self.output_dir / f"{prefix}_summary.txt"
        with open(summary_path, "w") as f:
            f.write("\n".join(self.format_summary(report, symbol, objective)) + "\n")
        saved_files["summary"] = summary_path
        self.logger.info(f"Saved summary to: {summary_path}")

        return saved_files

    def format_summary(
        self,
        report: ValidationReport,
        symbol: str,
        objective: str = "sharpe_ratio",
        top_n: Optional[int] = None
    ) -> List[str]:
        """Render the report as text lines, listing at most top_n sweep rows."""
        lines = [
            "=" * 70,
            "WALK-FORWARD VALIDATION SUMMARY",
            "=" * 70,
            f"Symbol: {symbol}",
            f"Strategy: {report.strategy}",
            f"Parameters: {report.parameters.to_dict()}",
            "",
            f"Training: {report.train_window[0]} -> {report.train_window[1]} ({report.train_size} bars)",
            f"Testing:  {report.test_window[0]} -> {report.test_window[1]} ({report.test_size} bars)",
            "",
            f"{'':<16}{'Train':>14}{'Test':>14}",
            "-" * 70,
        ]
        rows = [
            ("Total Return", "total_return", ".4f"),
            ("Max Drawdown", "max_drawdown", ".4f"),
            ("Sharpe Ratio", "sharpe_ratio", ".3f"),
            ("Volatility", "volatility", ".4f"),
            ("Trades", "trade_count", "d"),
            ("Total Cost", "total_cost", ",.2f"),
        ]
        for label, attr, fmt in rows:
            lines.append(
                f"{label:<16}{_fmt(getattr(report.train_metrics, attr), fmt):>14}"
                f"{_fmt(getattr(report.test_metrics, attr), fmt):>14}"
            )

        if report.sweep:
            lines += [
                "",
                f"SENSITIVITY SWEEP (test window, ranked by {objective})",
                "-" * 70,
            ]
            ranked = report.ranked_sweep(objective)
            for result in ranked[:top_n] if top_n else ranked:
                if result.failed:
                    lines.append(f"  {result.parameter}={result.value}: FAILED ({result.metrics.error})")
                else:
                    m = result.metrics
                    lines.append(
                        f"  {result.parameter}={result.value}: return {_fmt(m.total_return)}, "
                        f"sharpe {_fmt(m.sharpe_ratio, '.3f')}, max DD {_fmt(m.max_drawdown)}, "
                        f"trades {m.trade_count}"
                    )
        lines.append("=" * 70)
        return lines

    def print_summary(
        self,
        report: ValidationReport,
        symbol: str,
        objective: str = "sharpe_ratio",
        top_n: Optional[int] = None
    ):
        """Print summary to console."""
        print("\n" + "\n".join(self.format_summary(report, symbol, objective, top_n)) + "\n")
