"""Metrics sinks for the scheduler.

The scheduler always calls through ``MetricsRecorder``; pass ``NoOpMetrics``
(the default) when nothing should be recorded.
"""

from __future__ import annotations

import abc
import time


class MetricsRecorder(abc.ABC):
    """Counts published / processed / failed alerts."""

    @abc.abstractmethod
    def record_error(self) -> None:
        """A publish attempt failed."""

    @abc.abstractmethod
    def record_processed(self, latency_secs: float) -> None:
        """An alert went from generation to acknowledged publish."""

    @abc.abstractmethod
    def record_published(self) -> None:
        """An alert was accepted by the publisher."""


class NoOpMetrics(MetricsRecorder):
    """Discards everything."""

    def record_error(self) -> None:
        pass

    def record_processed(self, latency_secs: float) -> None:
        pass

    def record_published(self) -> None:
        pass


class ProducerMetrics(MetricsRecorder):
    """In-memory counters plus a bounded window of publish latencies.

    Usage::

        metrics = ProducerMetrics()
        scheduler = PacingScheduler(sampler, publisher, metrics=metrics)
        ...
        summary = metrics.summary()
    """

    def __init__(self, max_latency_samples: int = 10_000) -> None:
        self._started_at = time.monotonic()
        self._published = 0
        self._processed = 0
        self._errors = 0
        self._latency_samples: list[float] = []
        self._max_latency_samples = max_latency_samples

    # ── MetricsRecorder ─────────────────────────────────────────

    def record_error(self) -> None:
        self._errors += 1

    def record_processed(self, latency_secs: float) -> None:
        self._processed += 1
        self._latency_samples.append(latency_secs)
        if len(self._latency_samples) > self._max_latency_samples:
            self._latency_samples = self._latency_samples[-self._max_latency_samples:]

    def record_published(self) -> None:
        self._published += 1

    # ── Query methods ───────────────────────────────────────────

    @property
    def published(self) -> int:
        return self._published

    @property
    def processed(self) -> int:
        return self._processed

    @property
    def errors(self) -> int:
        return self._errors

    def latency_samples(self) -> list[float]:
        return list(self._latency_samples)

    def latency_percentiles(self) -> dict[str, float]:
        """Return latency percentiles (p50, p90, p99) in seconds."""
        if not self._latency_samples:
            return {"p50": 0.0, "p90": 0.0, "p99": 0.0, "min": 0.0, "max": 0.0}

        values = sorted(self._latency_samples)
        n = len(values)
        return {
            "p50": values[int(n * 0.50)],
            "p90": values[min(int(n * 0.90), n - 1)],
            "p99": values[min(int(n * 0.99), n - 1)],
            "min": values[0],
            "max": values[-1],
        }

    def summary(self) -> dict[str, object]:
        uptime = time.monotonic() - self._started_at
        attempts = self._published + self._errors
        return {
            "published": self._published,
            "processed": self._processed,
            "errors": self._errors,
            "error_rate": round(self._errors / attempts, 4) if attempts else 0.0,
            "uptime_secs": round(uptime, 2),
            "publish_rate_per_sec": round(self._published / uptime, 2) if uptime > 0 else 0.0,
            "latency": self.latency_percentiles(),
        }

    def reset(self) -> None:
        self._started_at = time.monotonic()
        self._published = 0
        self._processed = 0
        self._errors = 0
        self._latency_samples.clear()
