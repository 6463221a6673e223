"""Configuration management for Project Health."""

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .utils.validation import coerce_float

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HealthWeights:
    """Tunable penalties applied by the health scorer.

    Passed explicitly into the scorer; the composition root layers store
    overrides on top of the configured defaults.
    """

    overdue_penalty_per_task: float = 2
    overdue_penalty_cap: float = 20
    milestone_overdue_penalty_per_milestone: float = 3
    milestone_overdue_penalty_cap: float = 15

    def merged(self, partial: Optional[Dict[str, Any]]) -> "HealthWeights":
        """Return a copy with valid values from ``partial`` applied."""
        return replace(self, **clean_weights(partial))

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


WEIGHT_FIELDS = tuple(f.name for f in fields(HealthWeights))


def clean_weights(partial: Optional[Dict[str, Any]]) -> Dict[str, float]:
    """Keep only known, numeric, non-negative weight overrides."""
    cleaned: Dict[str, float] = {}
    for key, value in (partial or {}).items():
        if key not in WEIGHT_FIELDS:
            logger.warning(f"Ignoring unknown health weight '{key}'")
            continue
        number = coerce_float(value)
        if number is None or number < 0:
            logger.warning(f"Ignoring invalid value for health weight '{key}': {value!r}")
            continue
        cleaned[key] = number
    return cleaned


@dataclass
class ConfigModel:
    """Global configuration model for Project Health."""

    # Storage
    data_dir: str = "~/.project_health"
    storage_backend: str = "file"  # file, memory

    # Scoring defaults
    health_weights: HealthWeights = field(default_factory=HealthWeights)

    # Analytics windows
    velocity_weeks: int = 8
    completion_days: int = 30
    health_history_days: int = 14
    stalled_after_days: int = 7

    # Diagnostics
    log_level: str = "WARNING"

    def __post_init__(self):
        """Post-initialization setup."""
        self.data_dir = os.path.expanduser(self.data_dir)
        if isinstance(self.health_weights, dict):
            self.health_weights = HealthWeights().merged(self.health_weights)

    def to_yaml(self) -> str:
        """Serialize config to YAML."""
        data = {
            "data_dir": self.data_dir,
            "storage_backend": self.storage_backend,
            "health_weights": self.health_weights.to_dict(),
            "velocity_weeks": self.velocity_weeks,
            "completion_days": self.completion_days,
            "health_history_days": self.health_history_days,
            "stalled_after_days": self.stalled_after_days,
            "log_level": self.log_level,
        }
        return yaml.dump(data, default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ConfigModel":
        """Deserialize config from YAML, ignoring unknown keys."""
        data = yaml.safe_load(yaml_str) or {}
        if not isinstance(data, dict):
            raise ValueError("Configuration must be a mapping")
        known = {f.name for f in fields(cls)}
        for key in set(data) - known:
            logger.warning(f"Ignoring unknown configuration key '{key}'")
        return cls(**{k: v for k, v in data.items() if k in known})

    def get_config_path(self) -> Path:
        """Get the config file path."""
        return Path(self.data_dir) / "config.yaml"

    def get_projects_dir(self) -> Path:
        return Path(self.data_dir) / "projects"

    def get_weights_path(self) -> Path:
        return Path(self.data_dir) / "weights.yaml"


class Config:
    """Configuration manager for Project Health."""

    _instance: Optional[ConfigModel] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Load configuration from file or create default."""
        if cls._instance is not None:
            return cls._instance

        config = ConfigModel()

        if config_path is None:
            config_path = config.get_config_path()

        if config_path.exists():
            try:
                config = ConfigModel.from_yaml(config_path.read_text(encoding="utf-8"))
                logger.debug(f"Loaded configuration from {config_path}")
            except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load config from {config_path}: {e}. Using defaults.")
        else:
            cls.save(config, config_path)

        cls._instance = config
        return config

    @classmethod
    def save(cls, config: ConfigModel, config_path: Optional[Path] = None) -> bool:
        """Save configuration to file."""
        if config_path is None:
            config_path = config.get_config_path()

        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            config_path.write_text(config.to_yaml(), encoding="utf-8")
            logger.info(f"Configuration saved to {config_path}")
            return True
        except OSError as e:
            logger.error(f"Failed to save config to {config_path}: {e}")
            return False

    @classmethod
    def get(cls) -> ConfigModel:
        """Get the current configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reload(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Reload configuration from file."""
        cls._instance = None
        return cls.load(config_path)


def get_config() -> ConfigModel:
    """Get the current configuration."""
    return Config.get()


def load_config(config_path: Optional[Path] = None) -> ConfigModel:
    """Load configuration from file."""
    return Config.load(config_path)


def save_config(config: ConfigModel, config_path: Optional[Path] = None) -> bool:
    """Save configuration to file."""
    return Config.save(config, config_path)
