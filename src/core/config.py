"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

import math
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict

from src.generator.distribution import parse_distribution
from src.generator.exceptions import DistributionError

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

DEFAULT_SEVERITY_DIST = "HIGH:30,MEDIUM:30,LOW:25,CRITICAL:15"
DEFAULT_SOURCE_DIST = "api:25,db:20,cache:15,monitor:15,queue:10,worker:5,frontend:5,backend:5"
DEFAULT_NAME_DIST = (
    "timeout:15,error:15,crash:10,slow:10,memory:10,"
    "cpu:10,disk:10,network:10,auth:5,validation:5"
)

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


class ConfigError(ValueError):
    """Generator configuration is not runnable."""


def parse_duration(text: str) -> float:
    """Parse ``"60s"``, ``"5m"``, ``"1h30m"``, ``"250ms"`` or bare seconds.

    Returns the duration in seconds.
    """
    value = text.strip()
    if not value:
        raise ConfigError("duration cannot be empty")
    try:
        seconds = float(value)
    except ValueError:
        seconds = _parse_duration_units(value, text)
    if not math.isfinite(seconds):
        raise ConfigError(f"duration must be finite: {text!r}")
    return seconds


def _parse_duration_units(value: str, text: str) -> float:
    total = 0.0
    pos = 0
    for match in _DURATION_PART_RE.finditer(value):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(value) or pos == 0:
        raise ConfigError(f"invalid duration: {text!r}")
    return total


class KafkaConfig(BaseModel):
    """Broker connection and topic configuration."""

    brokers: str = ""
    topic: str = ""
    mock: bool = False

    @property
    def broker_list(self) -> list[str]:
        return [b.strip() for b in self.brokers.split(",") if b.strip()]


class GeneratorConfig(BaseModel):
    """Alert generation parameters — rate, duration, burst and distributions."""

    model_config = ConfigDict(allow_inf_nan=False)

    rps: float = 10.0
    duration_secs: float = 60.0
    burst_size: int = 0
    seed: int = 0
    severity_dist: str = DEFAULT_SEVERITY_DIST
    source_dist: str = DEFAULT_SOURCE_DIST
    name_dist: str = DEFAULT_NAME_DIST

    def validate_for_run(self, single_alert: bool = False) -> None:
        """Raise ConfigError unless this config can drive a generation run.

        Single-alert runs publish one fixed alert, so rate, duration and
        distributions are not consulted.
        """
        if not math.isfinite(self.rps):
            raise ConfigError(f"rps must be a finite number, got {self.rps}")
        if not math.isfinite(self.duration_secs):
            raise ConfigError(f"duration must be finite, got {self.duration_secs}")
        if self.burst_size < 0:
            raise ConfigError(f"burst must be >= 0, got {self.burst_size}")
        if single_alert:
            return
        if self.rps <= 0 and self.burst_size <= 0:
            raise ConfigError("rps must be > 0 or burst must be > 0")
        if self.burst_size == 0 and self.duration_secs <= 0:
            raise ConfigError("duration must be > 0 when not in burst mode")

        for field_name in ("severity_dist", "source_dist", "name_dist"):
            try:
                parse_distribution(getattr(self, field_name))
            except DistributionError as exc:
                label = field_name.replace("_", "-")
                raise ConfigError(f"invalid {label}: {exc}") from exc


class ProgressConfig(BaseModel):
    """How often the scheduler logs throughput while running."""

    burst_log_every: int = 100
    continuous_log_interval_secs: float = 5.0


class ApiConfig(BaseModel):
    """Job API server configuration."""

    host: str = "0.0.0.0"
    port: int = 8082
    stop_grace_secs: float = 0.1


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    kafka: KafkaConfig = KafkaConfig()
    generator: GeneratorConfig = GeneratorConfig()
    progress: ProgressConfig = ProgressConfig()
    api: ApiConfig = ApiConfig()
    logging: LoggingConfig = LoggingConfig()


def _apply_env_defaults(settings: Settings) -> Settings:
    """Fill broker/topic from the environment when the YAML leaves them unset."""
    kafka = settings.kafka
    settings.kafka = kafka.model_copy(update={
        "brokers": kafka.brokers or os.environ.get("KAFKA_BROKERS", "localhost:9092"),
        "topic": kafka.topic or os.environ.get("ALERTS_NEW_TOPIC", "alerts.new"),
    })
    return settings


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = _apply_env_defaults(Settings(**data))
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
