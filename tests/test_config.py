"""Tests for configuration and health weights."""

from pathlib import Path

import pytest
import yaml

from project_health.config import (
    Config, ConfigModel, HealthWeights, clean_weights, get_config, load_config, save_config,
)


class TestHealthWeights:

    def test_defaults(self):
        weights = HealthWeights()

        assert weights.to_dict() == {
            "overdue_penalty_per_task": 2,
            "overdue_penalty_cap": 20,
            "milestone_overdue_penalty_per_milestone": 3,
            "milestone_overdue_penalty_cap": 15,
        }

    def test_merged_returns_new_object(self):
        weights = HealthWeights()
        merged = weights.merged({"overdue_penalty_cap": "25"})

        assert merged.overdue_penalty_cap == 25.0
        assert weights.overdue_penalty_cap == 20

    def test_weights_are_frozen(self):
        with pytest.raises(AttributeError):
            HealthWeights().overdue_penalty_cap = 1

    def test_clean_weights_drops_invalid_values(self, caplog):
        cleaned = clean_weights({
            "overdue_penalty_per_task": 1.5,
            "overdue_penalty_cap": -3,
            "milestone_overdue_penalty_cap": "many",
            "unknown": 4,
        })

        assert cleaned == {"overdue_penalty_per_task": 1.5}
        assert "unknown" in caplog.text
        assert clean_weights(None) == {}


class TestConfigModel:

    def test_yaml_round_trip(self, tmp_path):
        config = ConfigModel(
            data_dir=str(tmp_path),
            storage_backend="memory",
            health_weights=HealthWeights(overdue_penalty_per_task=5),
            velocity_weeks=6,
            log_level="DEBUG",
        )

        loaded = ConfigModel.from_yaml(config.to_yaml())

        assert loaded == config

    def test_weights_from_mapping(self):
        config = ConfigModel(health_weights={"milestone_overdue_penalty_cap": 9})

        assert isinstance(config.health_weights, HealthWeights)
        assert config.health_weights.milestone_overdue_penalty_cap == 9
        assert config.health_weights.overdue_penalty_per_task == 2

    def test_unknown_keys_are_ignored(self):
        config = ConfigModel.from_yaml("velocity_weeks: 4\ntheme: dark\n")
        assert config.velocity_weeks == 4

    def test_non_mapping_yaml_is_rejected(self):
        with pytest.raises(ValueError):
            ConfigModel.from_yaml("- just\n- a list\n")

    def test_data_dir_is_expanded(self):
        config = ConfigModel(data_dir="~/health-data")
        assert not config.data_dir.startswith("~")
        assert config.get_projects_dir() == Path(config.data_dir) / "projects"
        assert config.get_weights_path() == Path(config.data_dir) / "weights.yaml"


class TestConfigManager:

    def test_missing_file_is_created_with_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"

        config = load_config(path)

        assert path.exists()
        assert config.velocity_weeks == 8
        assert yaml.safe_load(path.read_text())["completion_days"] == 30

    def test_load_is_cached_until_reload(self, tmp_path):
        path = tmp_path / "config.yaml"
        save_config(ConfigModel(velocity_weeks=3), path)

        first = load_config(path)
        path.write_text("velocity_weeks: 5\n")

        assert load_config(path) is first
        assert get_config() is first
        assert Config.reload(path).velocity_weeks == 5

    def test_unreadable_file_falls_back_to_defaults(self, tmp_path, caplog):
        path = tmp_path / "config.yaml"
        path.write_text("velocity_weeks: [unclosed\n")

        config = load_config(path)

        assert config.velocity_weeks == 8
        assert "Failed to load config" in caplog.text

    def test_save_failure_returns_false(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        assert save_config(ConfigModel(), blocker / "config.yaml") is False
