"""Core module — config, types, logging."""

from src.core.config import (
    ConfigError,
    GeneratorConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)
from src.core.logging import job_log_context, setup_logging
from src.core.types import (
    Alert,
    BurstMode,
    ContinuousMode,
    JobStatus,
    Mode,
    RunResult,
    SchedulerState,
    TestMode,
)

__all__ = [
    "Alert",
    "BurstMode",
    "ConfigError",
    "ContinuousMode",
    "GeneratorConfig",
    "JobStatus",
    "Mode",
    "RunResult",
    "SchedulerState",
    "Settings",
    "TestMode",
    "get_settings",
    "job_log_context",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
