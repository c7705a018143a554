"""Request and job models for background alert generation."""

from __future__ import annotations

import datetime
import uuid

from pydantic import BaseModel, ConfigDict, Field

from src.core.config import (
    ConfigError,
    GeneratorConfig,
    KafkaConfig,
    Settings,
    parse_duration,
)
from src.core.types import JobStatus

VALID_SEVERITIES = ("LOW", "MEDIUM", "HIGH", "CRITICAL")


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class GenerateRequest(BaseModel):
    """Body of ``POST /api/v1/alerts/generate``; unset fields use the server defaults."""

    model_config = ConfigDict(allow_inf_nan=False)

    rps: float | None = None
    duration: str = ""
    burst: int | None = None
    seed: int | None = None
    severity_dist: str = ""
    source_dist: str = ""
    name_dist: str = ""
    kafka_brokers: str = ""
    topic: str = ""
    mock: bool = False
    test: bool = False
    single_test: bool = False
    # Single alert fields (single_test only)
    severity: str = ""
    source: str = ""
    name: str = ""

    def to_config(self, defaults: Settings) -> tuple[KafkaConfig, GeneratorConfig]:
        """Overlay this request on ``defaults``.

        Raises:
            ConfigError: the duration string cannot be parsed.
        """
        kafka = defaults.kafka.model_copy(update={"mock": self.mock or defaults.kafka.mock})
        if self.kafka_brokers:
            kafka.brokers = self.kafka_brokers
        if self.topic:
            kafka.topic = self.topic

        gen = defaults.generator.model_copy()
        if self.rps is not None:
            gen.rps = self.rps
        if self.duration:
            gen.duration_secs = parse_duration(self.duration)
        if self.burst is not None:
            gen.burst_size = self.burst
        if self.seed is not None:
            gen.seed = self.seed
        if self.severity_dist:
            gen.severity_dist = self.severity_dist
        if self.source_dist:
            gen.source_dist = self.source_dist
        if self.name_dist:
            gen.name_dist = self.name_dist
        return kafka, gen

    def validate_request(self, defaults: Settings) -> tuple[KafkaConfig, GeneratorConfig]:
        """Build and validate the effective config, raising ConfigError on problems."""
        kafka, gen = self.to_config(defaults)
        if not kafka.brokers:
            raise ConfigError("kafka-brokers cannot be empty")
        if not kafka.topic:
            raise ConfigError("topic cannot be empty")
        gen.validate_for_run(single_alert=self.single_test)
        if self.single_test and self.severity and self.severity not in VALID_SEVERITIES:
            raise ConfigError(
                f"Invalid severity: {self.severity} "
                f"(must be {', '.join(VALID_SEVERITIES[:-1])}, or {VALID_SEVERITIES[-1]})"
            )
        return kafka, gen


class Job(BaseModel):
    """A single background generation job and its live progress."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    status: JobStatus = JobStatus.PENDING
    config: GenerateRequest
    created_at: datetime.datetime = Field(default_factory=_utcnow)
    started_at: datetime.datetime | None = None
    completed_at: datetime.datetime | None = None
    alerts_sent: int = 0
    error: str = ""

    def update_status(self, status: JobStatus) -> None:
        self.status = status
        if status == JobStatus.RUNNING and self.started_at is None:
            self.started_at = _utcnow()
        if status.terminal:
            self.completed_at = _utcnow()

    def fail(self, exc: BaseException) -> None:
        self.error = str(exc)
        self.update_status(JobStatus.FAILED)

    def set_alerts_sent(self, count: int) -> None:
        self.alerts_sent = count

    def to_response(self) -> dict[str, object]:
        return self.model_dump(mode="json", exclude_none=True)
