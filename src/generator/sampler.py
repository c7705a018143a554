"""AlertSampler — draws alert fields from weighted distributions.

Each sampler owns its own ``random.Random``.  Seeded samplers reproduce the
same alert field sequence across runs; a seed of 0 falls back to wall-clock
seeding.
"""

from __future__ import annotations

import random
import time
from typing import TYPE_CHECKING

from src.core.types import Alert
from src.generator.distribution import DistributionTable
from src.generator.exceptions import DistributionError

if TYPE_CHECKING:
    from src.core.config import GeneratorConfig

# Context enrichment probabilities and candidate values.
ENVIRONMENT_PROBABILITY = 0.3
REGION_PROBABILITY = 0.2
ENVIRONMENTS = ("prod", "staging", "dev")
REGIONS = ("us-east-1", "us-west-2", "eu-west-1")

BOILERPLATE_SEVERITY = "HIGH"
BOILERPLATE_SOURCE = "api"
BOILERPLATE_NAME = "timeout"

TEST_SEVERITY = "LOW"
TEST_SOURCE = "test-source"
TEST_NAME = "test-name"


class AlertSampler:
    """Generates alerts whose severity/source/name follow configured weights.

    Usage::

        sampler = AlertSampler(
            severity_dist="HIGH:30,LOW:70",
            source_dist="api:100",
            name_dist="timeout:50,error:50",
            seed=42,
        )
        alert = sampler.generate()
    """

    def __init__(
        self,
        severity_dist: str,
        source_dist: str,
        name_dist: str,
        seed: int | None = None,
    ) -> None:
        self._seed = seed if seed else time.time_ns()
        self._rng = random.Random(self._seed)
        self._severity = _parse_field("severity", severity_dist)
        self._source = _parse_field("source", source_dist)
        self._name = _parse_field("name", name_dist)

    @classmethod
    def from_config(cls, cfg: GeneratorConfig) -> AlertSampler:
        return cls(
            severity_dist=cfg.severity_dist,
            source_dist=cfg.source_dist,
            name_dist=cfg.name_dist,
            seed=cfg.seed,
        )

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def severity_table(self) -> DistributionTable:
        return self._severity

    @property
    def source_table(self) -> DistributionTable:
        return self._source

    @property
    def name_table(self) -> DistributionTable:
        return self._name

    def generate(self) -> Alert:
        """Draw a new alert with a fresh id and timestamp."""
        alert = Alert(
            severity=self._severity.select(self._rng),
            source=self._source.select(self._rng),
            name=self._name.select(self._rng),
        )
        if self._rng.random() < ENVIRONMENT_PROBABILITY:
            alert.context["environment"] = self._rng.choice(ENVIRONMENTS)
        if self._rng.random() < REGION_PROBABILITY:
            alert.context["region"] = self._rng.choice(REGIONS)
        return alert


def _parse_field(field: str, dist: str) -> DistributionTable:
    try:
        return DistributionTable.parse(dist)
    except DistributionError as exc:
        raise DistributionError(f"invalid {field} distribution: {exc}") from exc


# ── Fixed-value alerts ─────────────────────────────────────────


def boilerplate_alert() -> Alert:
    """Canary alert (HIGH/api/timeout) sent before a full run."""
    return Alert(
        severity=BOILERPLATE_SEVERITY,
        source=BOILERPLATE_SOURCE,
        name=BOILERPLATE_NAME,
    )


def canonical_test_alert() -> Alert:
    """Canonical test alert (LOW/test-source/test-name)."""
    return Alert(severity=TEST_SEVERITY, source=TEST_SOURCE, name=TEST_NAME)


def custom_alert(severity: str = "", source: str = "", name: str = "") -> Alert:
    """Alert with caller-chosen fields; blanks fall back to the test alert's."""
    return Alert(
        severity=severity or TEST_SEVERITY,
        source=source or TEST_SOURCE,
        name=name or TEST_NAME,
    )


def is_test_alert(alert: Alert) -> bool:
    return (
        alert.severity == TEST_SEVERITY
        and alert.source == TEST_SOURCE
        and alert.name == TEST_NAME
    )
