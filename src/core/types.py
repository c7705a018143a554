"""Domain types for alert generation — alerts, modes, job and run state."""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, Field

SCHEMA_VERSION = 1


def _new_alert_id() -> str:
    return str(uuid.uuid4())


def _now_ts() -> int:
    return int(time.time())


class Alert(BaseModel):
    """A single synthetic alert record handed to a publisher."""

    alert_id: str = Field(default_factory=_new_alert_id)
    schema_version: int = SCHEMA_VERSION
    event_ts: int = Field(default_factory=_now_ts)
    severity: str
    source: str
    name: str
    context: dict[str, str] = Field(default_factory=dict)

    def same_fields(self, other: Alert) -> bool:
        """True if severity/source/name/context match (ids and timestamps ignored)."""
        return (
            self.severity == other.severity
            and self.source == other.source
            and self.name == other.name
            and self.context == other.context
        )

    def to_payload(self) -> dict[str, object]:
        payload = self.model_dump()
        if not payload["context"]:
            del payload["context"]
        return payload

    def to_json(self) -> bytes:
        return json.dumps(self.to_payload(), separators=(",", ":")).encode("utf-8")


class SchedulerState(StrEnum):
    """Lifecycle of a single scheduler pass."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class JobStatus(StrEnum):
    """Status of a background generation job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


# ── Execution modes ────────────────────────────────────────────


@dataclass(frozen=True)
class BurstMode:
    """Send exactly ``size`` alerts, unpaced."""

    size: int

    @property
    def label(self) -> str:
        return "burst"


@dataclass(frozen=True)
class ContinuousMode:
    """Send ``rate`` alerts per second until ``duration_secs`` elapses."""

    rate: float
    duration_secs: float

    @property
    def interval_secs(self) -> float:
        return 1.0 / self.rate

    @property
    def label(self) -> str:
        return "continuous"


@dataclass(frozen=True)
class TestMode:
    """Like the wrapped mode, but the first alert is the canonical test alert."""

    __test__ = False

    inner: BurstMode | ContinuousMode

    @property
    def label(self) -> str:
        return f"test_{self.inner.label}"


Mode = BurstMode | ContinuousMode | TestMode


class RunResult(BaseModel):
    """Outcome of a scheduler pass that did not fail."""

    mode: str
    state: SchedulerState
    sent: int
    elapsed_secs: float
    rate_per_sec: float
    test_alert_sent: bool = False

    @property
    def cancelled(self) -> bool:
        return self.state == SchedulerState.CANCELLED
