"""PacingScheduler — drives a sampler and a publisher in burst or paced mode.

One scheduler runs exactly one job:

- **burst** publishes N alerts back to back,
- **continuous** publishes one alert per tick at a target rate until the
  duration elapses,
- **test** wraps either of the above and makes the first alert the
  canonical test alert,
- **process** publishes the boilerplate canary first, then runs a mode.

Cancellation is cooperative via ``CancelToken`` and is reported as a
``RunResult`` in the ``cancelled`` state, never as an exception.  Publish
failures stop the job and raise ``AlertPublishError``.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

import structlog

from src.core.config import GeneratorConfig, ProgressConfig
from src.core.types import (
    Alert,
    BurstMode,
    ContinuousMode,
    Mode,
    RunResult,
    SchedulerState,
    TestMode,
)
from src.generator.sampler import AlertSampler, boilerplate_alert, canonical_test_alert
from src.processor.cancel import CancelToken
from src.processor.errors import classify_publish_error
from src.processor.exceptions import (
    AlertPublishError,
    BoilerplatePublishError,
    SchedulerStateError,
)
from src.processor.metrics import MetricsRecorder, NoOpMetrics
from src.producer.base import AlertPublisher

logger = structlog.get_logger(__name__)

# Called with the cumulative sent count after every successful publish.
ProgressCallback = Callable[[int], Awaitable[None] | None]


def select_mode(cfg: GeneratorConfig, test: bool = False) -> Mode:
    """Pick the execution mode once: a positive burst size means burst."""
    base: BurstMode | ContinuousMode
    if cfg.burst_size > 0:
        base = BurstMode(size=cfg.burst_size)
    else:
        base = ContinuousMode(rate=cfg.rps, duration_secs=cfg.duration_secs)
    return TestMode(inner=base) if test else base


def calculate_rate(count: int, elapsed_secs: float) -> float:
    if elapsed_secs <= 0:
        return 0.0
    return count / elapsed_secs


class PacingScheduler:
    """Publishes sampled alerts according to an execution mode.

    Usage::

        scheduler = PacingScheduler(sampler, publisher, metrics=ProducerMetrics())
        token = CancelToken()
        result = await scheduler.process(BurstMode(size=500), cancel=token)
        if result.cancelled:
            ...
    """

    def __init__(
        self,
        sampler: AlertSampler,
        publisher: AlertPublisher,
        metrics: MetricsRecorder | None = None,
        progress: ProgressConfig | None = None,
    ) -> None:
        self._sampler = sampler
        self._publisher = publisher
        self._metrics = metrics or NoOpMetrics()
        self._progress = progress or ProgressConfig()
        self._state = SchedulerState.IDLE

    @property
    def state(self) -> SchedulerState:
        return self._state

    # ── Public entry points ─────────────────────────────────────

    async def run(
        self,
        mode: Mode,
        cancel: CancelToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> RunResult:
        """Run ``mode`` to completion, cancellation or failure."""
        self._begin()
        token = cancel or CancelToken()
        try:
            result = await self._dispatch(mode, token, on_progress)
        except BaseException:
            self._state = SchedulerState.FAILED
            raise
        self._state = result.state
        return result

    async def process(
        self,
        mode: Mode,
        cancel: CancelToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> RunResult:
        """Publish the boilerplate canary, then run ``mode``.

        A boilerplate failure aborts the job before any load is generated.
        """
        self._begin()
        token = cancel or CancelToken()
        try:
            result = await self._process(mode, token, on_progress)
        except BaseException:
            self._state = SchedulerState.FAILED
            raise
        self._state = result.state
        return result

    async def run_burst(
        self,
        size: int,
        test: bool = False,
        cancel: CancelToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> RunResult:
        mode: Mode = BurstMode(size=size)
        if test:
            mode = TestMode(inner=mode)
        return await self.run(mode, cancel=cancel, on_progress=on_progress)

    async def run_continuous(
        self,
        rate: float,
        duration_secs: float,
        test: bool = False,
        cancel: CancelToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> RunResult:
        mode: Mode = ContinuousMode(rate=rate, duration_secs=duration_secs)
        if test:
            mode = TestMode(inner=mode)
        return await self.run(mode, cancel=cancel, on_progress=on_progress)

    # ── Mode dispatch ───────────────────────────────────────────

    def _begin(self) -> None:
        if self._state != SchedulerState.IDLE:
            raise SchedulerStateError(
                f"scheduler already used (state={self._state}); create one per job"
            )
        self._state = SchedulerState.RUNNING

    async def _process(
        self,
        mode: Mode,
        cancel: CancelToken,
        on_progress: ProgressCallback | None,
    ) -> RunResult:
        started = time.monotonic()
        alert = boilerplate_alert()
        published = await self._send(
            alert, 0, cancel, started, error_cls=BoilerplatePublishError
        )
        if not published:
            logger.warning("boilerplate_publish_cancelled", alert_id=alert.alert_id)
            return self._result(mode.label, SchedulerState.CANCELLED, 0, started)
        logger.info(
            "boilerplate_alert_published",
            alert_id=alert.alert_id,
            severity=alert.severity,
            source=alert.source,
            name=alert.name,
        )
        return await self._dispatch(mode, cancel, on_progress)

    async def _dispatch(
        self,
        mode: Mode,
        cancel: CancelToken,
        on_progress: ProgressCallback | None,
    ) -> RunResult:
        test = isinstance(mode, TestMode)
        inner = mode.inner if isinstance(mode, TestMode) else mode
        if isinstance(inner, BurstMode):
            return await self._run_burst(inner, cancel, on_progress, test, mode.label)
        return await self._run_continuous(inner, cancel, on_progress, test, mode.label)

    # ── Burst ───────────────────────────────────────────────────

    async def _run_burst(
        self,
        mode: BurstMode,
        cancel: CancelToken,
        on_progress: ProgressCallback | None,
        test: bool,
        label: str,
    ) -> RunResult:
        logger.info("burst_started", mode=label, total_alerts=mode.size)
        started = time.monotonic()
        sent = 0
        test_alert_sent = False
        log_every = max(self._progress.burst_log_every, 1)

        for i in range(mode.size):
            if cancel.cancelled:
                logger.warning("burst_cancelled", mode=label, sent=sent, requested=mode.size)
                return self._result(label, SchedulerState.CANCELLED, sent, started, test_alert_sent)

            is_test = test and i == 0
            generated_at = time.monotonic()
            alert = canonical_test_alert() if is_test else self._sampler.generate()
            if is_test:
                _log_alert("test_alert_generated", alert, "test")

            if not await self._send(alert, i + 1, cancel, generated_at):
                logger.warning(
                    "burst_publish_cancelled", mode=label, sent=sent, requested=mode.size
                )
                return self._result(label, SchedulerState.CANCELLED, sent, started, test_alert_sent)

            sent += 1
            test_alert_sent = test_alert_sent or is_test
            await self._notify(on_progress, sent)

            if sent == 1:
                _log_alert("first_alert_published", alert, "test" if is_test else "sampled")

            if sent % log_every == 0:
                logger.info(
                    "burst_progress",
                    mode=label,
                    sent=sent,
                    total=mode.size,
                    rate_per_sec=round(calculate_rate(sent, time.monotonic() - started), 2),
                )

        result = self._result(label, SchedulerState.COMPLETED, sent, started, test_alert_sent)
        logger.info(
            "burst_completed",
            mode=label,
            total_sent=sent,
            duration_sec=round(result.elapsed_secs, 2),
            rate_per_sec=round(result.rate_per_sec, 2),
        )
        return result

    # ── Continuous ──────────────────────────────────────────────

    async def _run_continuous(
        self,
        mode: ContinuousMode,
        cancel: CancelToken,
        on_progress: ProgressCallback | None,
        test: bool,
        label: str,
    ) -> RunResult:
        logger.info(
            "continuous_started",
            mode=label,
            target_rps=mode.rate,
            duration_secs=mode.duration_secs,
        )
        interval = mode.interval_secs
        started = time.monotonic()
        deadline = started + mode.duration_secs
        next_tick = started + interval
        last_log = started
        sent = 0
        test_alert_sent = False

        while True:
            if await cancel.sleep(next_tick - time.monotonic()):
                logger.warning(
                    "continuous_cancelled",
                    mode=label,
                    sent=sent,
                    duration_requested=mode.duration_secs,
                )
                return self._result(label, SchedulerState.CANCELLED, sent, started, test_alert_sent)

            now = time.monotonic()
            next_tick = _advance_tick(next_tick, interval, now)

            if now > deadline:
                result = self._result(
                    label, SchedulerState.COMPLETED, sent, started, test_alert_sent
                )
                logger.info(
                    "continuous_duration_reached",
                    mode=label,
                    total_sent=sent,
                    duration_sec=round(result.elapsed_secs, 2),
                    target_rps=mode.rate,
                    actual_rps=round(result.rate_per_sec, 2),
                    test_alert_sent=test_alert_sent,
                )
                return result

            is_test = test and not test_alert_sent
            generated_at = time.monotonic()
            alert = canonical_test_alert() if is_test else self._sampler.generate()

            if not await self._send(alert, sent + 1, cancel, generated_at):
                logger.warning("continuous_publish_cancelled", mode=label, sent=sent)
                return self._result(label, SchedulerState.CANCELLED, sent, started, test_alert_sent)

            sent += 1
            test_alert_sent = test_alert_sent or is_test
            await self._notify(on_progress, sent)

            if sent == 1:
                _log_alert("first_alert_published", alert, "test" if is_test else "sampled")

            now = time.monotonic()
            if now - last_log >= self._progress.continuous_log_interval_secs:
                logger.info(
                    "continuous_progress",
                    mode=label,
                    sent=sent,
                    target_rps=mode.rate,
                    actual_rps=round(calculate_rate(sent, now - started), 2),
                    elapsed_sec=round(now - started, 2),
                    test_alert_sent=test_alert_sent,
                )
                last_log = now

    # ── Publish / observe ───────────────────────────────────────

    async def _send(
        self,
        alert: Alert,
        attempt: int,
        cancel: CancelToken,
        generated_at: float,
        error_cls: type[AlertPublishError] = AlertPublishError,
    ) -> bool:
        return await publish_alert(
            self._publisher,
            alert,
            cancel,
            metrics=self._metrics,
            attempt=attempt,
            generated_at=generated_at,
            error_cls=error_cls,
        )

    async def _notify(self, callback: ProgressCallback | None, sent: int) -> None:
        if callback is None:
            return
        try:
            result = callback(sent)
            if asyncio.iscoroutine(result):
                await result
        except Exception:
            logger.exception("progress_callback_error", sent=sent)

    @staticmethod
    def _result(
        label: str,
        state: SchedulerState,
        sent: int,
        started: float,
        test_alert_sent: bool = False,
    ) -> RunResult:
        elapsed = time.monotonic() - started
        return RunResult(
            mode=label,
            state=state,
            sent=sent,
            elapsed_secs=elapsed,
            rate_per_sec=calculate_rate(sent, elapsed),
            test_alert_sent=test_alert_sent,
        )


async def publish_alert(
    publisher: AlertPublisher,
    alert: Alert,
    cancel: CancelToken,
    metrics: MetricsRecorder | None = None,
    attempt: int = 1,
    generated_at: float | None = None,
    error_cls: type[AlertPublishError] = AlertPublishError,
) -> bool:
    """Publish ``alert`` racing the cancel token.

    Latency is recorded from ``generated_at`` (a ``time.monotonic()``
    reading taken before the alert was built) to the acknowledged publish.

    Returns True once published, False if cancellation won; raises
    ``error_cls`` for any other failure.
    """
    if cancel.cancelled:
        return False
    metrics = metrics or NoOpMetrics()
    if generated_at is None:
        generated_at = time.monotonic()
    publish_task = asyncio.ensure_future(publisher.publish(alert))
    cancel_task = asyncio.ensure_future(cancel.wait())
    try:
        done, _ = await asyncio.wait(
            {publish_task, cancel_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
    except asyncio.CancelledError:
        publish_task.cancel()
        raise
    finally:
        cancel_task.cancel()

    if publish_task not in done:
        publish_task.cancel()
        await asyncio.gather(publish_task, return_exceptions=True)
        return False

    exc: BaseException | None
    if publish_task.cancelled():
        exc = asyncio.CancelledError()
    else:
        exc = publish_task.exception()

    if exc is None:
        _record(metrics.record_processed, time.monotonic() - generated_at)
        _record(metrics.record_published)
        return True

    _record(metrics.record_error)
    error = classify_publish_error(cancel, alert, exc, attempt, error_cls=error_cls)
    if error is None:
        return False
    raise error from exc


def _record(fn: Callable[..., None], *args: float) -> None:
    try:
        fn(*args)
    except Exception:
        logger.exception("metrics_record_error", metric=getattr(fn, "__name__", "?"))


def _advance_tick(next_tick: float, interval: float, now: float) -> float:
    """Move to the next tick boundary after ``now``, dropping missed ticks."""
    next_tick += interval
    if next_tick <= now:
        missed = int((now - next_tick) // interval) + 1
        next_tick += missed * interval
    return next_tick


def _log_alert(event: str, alert: Alert, alert_type: str) -> None:
    logger.info(
        event,
        type=alert_type,
        alert_id=alert.alert_id,
        severity=alert.severity,
        source=alert.source,
        name=alert.name,
        event_ts=alert.event_ts,
        context=alert.context,
    )
