"""Tests for report export."""

from walkforward_validator import ValidationConfig, ValidationOrchestrator, ValidationReporter
from walkforward_validator.strategy import SmaTrendStrategy


def test_save_results_writes_all_files(tmp_path, wavy_bars):
    report = ValidationOrchestrator(ValidationConfig()).run(
        wavy_bars, {"lookback": 10, "position_size": 10}, SmaTrendStrategy(),
        perturbations={"lookback": [5, 15]}
    )
    reporter = ValidationReporter(output_dir=str(tmp_path))

    saved = reporter.save_results(report, "SPY")

    for key in ("sweep", "train_returns", "test_returns", "params", "summary"):
        assert saved[key].exists()
    summary = saved["summary"].read_text()
    assert "WALK-FORWARD VALIDATION SUMMARY" in summary
    assert "lookback=5" in summary


def test_save_without_csv(tmp_path, wavy_bars):
    report = ValidationOrchestrator(ValidationConfig()).run(
        wavy_bars, {"lookback": 10, "position_size": 10}, SmaTrendStrategy()
    )

    saved = ValidationReporter(output_dir=str(tmp_path)).save_results(report, "SPY", save_csv=False)

    assert set(saved) == {"params", "summary"}


def test_print_summary(capsys, wavy_bars, tmp_path):
    report = ValidationOrchestrator(ValidationConfig()).run(
        wavy_bars, {"lookback": 10, "position_size": 10}, SmaTrendStrategy()
    )

    ValidationReporter(output_dir=str(tmp_path)).print_summary(report, "SPY")

    out = capsys.readouterr().out
    assert "Sharpe Ratio" in out
    assert "sma_trend" in out


def test_format_summary_limits_sweep_rows(wavy_bars, tmp_path):
    report = ValidationOrchestrator(ValidationConfig()).run(
        wavy_bars, {"lookback": 10, "position_size": 10}, SmaTrendStrategy(),
        perturbations={"lookback": [5, 8, 12, 15]}
    )
    reporter = ValidationReporter(output_dir=str(tmp_path))

    full = reporter.format_summary(report, "SPY")
    top = reporter.format_summary(report, "SPY", top_n=2)

    assert sum("lookback=" in line for line in full) == 4
    assert sum("lookback=" in line for line in top) == 2
