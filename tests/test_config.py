from __future__ import annotations

import json

import pytest

from fleet_analytics.config import (
    CONFIG_ENV_VAR,
    AnalyticsConfig,
    load_config,
    load_default_config,
)
from fleet_analytics.exceptions import ConfigurationError
from fleet_analytics.utils.calendar import Granularity


def test_defaults_match_documented_thresholds() -> None:
    config = AnalyticsConfig()

    assert config.fuel.refuel_min_increase_pct == 15.0
    assert config.fuel.refuel_min_interval_s == 1800.0
    assert config.fuel.refuel_large_jump_pct == 30.0
    assert config.fuel.jitter_threshold_pct == 5.0
    assert config.confidence.min_readings * config.confidence.dense_multiplier == 24
    assert config.granularity is Granularity.DAILY


def test_load_config_from_yaml(tmp_path) -> None:
    path = tmp_path / "fleet.yaml"
    path.write_text(
        "granularity: weekly\n"
        "driving:\n"
        "  speed_limit_kph: 100\n"
        "fuel:\n"
        "  tank_capacity_l: 80\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.granularity is Granularity.WEEKLY
    assert config.driving.speed_limit_kph == 100
    assert config.driving.rapid_accel_kph == 10.0
    assert config.fuel.tank_capacity_l == 80


def test_load_config_from_json(tmp_path) -> None:
    path = tmp_path / "fleet.json"
    path.write_text(json.dumps({"battery": {"low_voltage_v": 11.5}}), encoding="utf-8")

    config = load_config(str(path))

    assert config.battery.low_voltage_v == 11.5
    assert config.to_dict()["battery"]["low_voltage_v"] == 11.5


@pytest.mark.parametrize(
    "mapping",
    [
        {"fuel": {"tank_capacity_l": 0}},
        {"driving": {"speed_limit_kph": -5}},
        {"fuel": {"unknown_key": 1}},
        {"weather": {}},
        {"granularity": "hourly"},
        {"confidence": {"max_skipped_fraction": 2}},
    ],
)
def test_invalid_configuration_rejected(mapping) -> None:
    with pytest.raises(ConfigurationError):
        AnalyticsConfig.from_mapping(mapping)


def test_missing_file_rejected(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "missing.yaml")


def test_overrides_ignore_none_and_validate() -> None:
    config = AnalyticsConfig()

    assert config.with_overrides({"driving": {"speed_limit_kph": None}}) is config

    updated = config.with_overrides({"driving": {"speed_limit_kph": 120.0}})
    assert updated.driving.speed_limit_kph == 120.0
    assert config.driving.speed_limit_kph == 80.0

    with pytest.raises(ConfigurationError):
        config.with_overrides({"fuel": {"tank_capacity_l": 0}})


def test_default_config_reads_environment(tmp_path, monkeypatch) -> None:
    path = tmp_path / "env.yaml"
    path.write_text("engine:\n  overheat_temperature_c: 98\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    load_default_config.cache_clear()
    try:
        assert load_default_config().engine.overheat_temperature_c == 98
    finally:
        load_default_config.cache_clear()
