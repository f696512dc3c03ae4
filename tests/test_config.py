"""Tests for ValidationConfig."""

from datetime import datetime
import json

import pytest

from walkforward_validator import CostModel, InvalidConfigError, ValidationConfig


def test_defaults_are_valid():
    config = ValidationConfig()

    assert config.split_ratio == 0.7
    assert config.min_window_bars == 2
    assert not config.is_year_based()
    assert config.cost_model() == CostModel(per_share_fee=0.005, minimum_fee=1.0, slippage_fraction=0.001)


@pytest.mark.parametrize("overrides", [
    {"split_ratio": 0.0},
    {"split_ratio": 1.0},
    {"min_window_bars": 1},
    {"initial_equity": 0.0},
    {"periods_per_year": 0},
    {"max_run_seconds": 0.0},
    {"objective": "profit"},
    {"n_jobs": 0},
    {"minimum_fee": -1.0},
    {"slippage_fraction": -0.1},
    {"start_date": datetime(2021, 1, 1), "end_date": datetime(2020, 1, 1)},
    {"test_years": [2022], "train_years_lookback": 0},
])
def test_invalid_values_rejected(overrides):
    with pytest.raises(InvalidConfigError):
        ValidationConfig(**overrides)


def test_json_round_trip(tmp_path):
    config = ValidationConfig(
        file_path="bars.csv",
        start_date=datetime(2020, 1, 1),
        end_date=datetime(2023, 1, 1),
        base_parameters={"lookback": 20, "position_size": 50},
        perturbations={"lookback": [15, 18, 20, 22, 25]},
        test_years=[2022],
        max_run_seconds=5.0
    )
    path = tmp_path / "config.json"

    config.to_json(str(path))
    loaded = ValidationConfig.from_json(str(path))

    assert loaded == config
    assert json.loads(path.read_text())["start_date"] == "2020-01-01"


def test_unknown_json_key_rejected(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"split_ratio": 0.6, "not_a_field": 1}))

    with pytest.raises(InvalidConfigError):
        ValidationConfig.from_json(str(path))
