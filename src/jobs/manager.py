"""JobManager — runs generation jobs as background tasks with live progress."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

import structlog

from src.core.config import ConfigError, KafkaConfig, Settings, get_settings
from src.core.logging import job_log_context
from src.core.types import JobStatus
from src.generator.sampler import AlertSampler, custom_alert
from src.jobs.types import GenerateRequest, Job
from src.processor.cancel import CancelToken
from src.processor.metrics import MetricsRecorder, NoOpMetrics
from src.processor.scheduler import PacingScheduler, publish_alert, select_mode
from src.producer.base import AlertPublisher
from src.producer.kafka import KafkaPublisher
from src.producer.mock import MockPublisher

logger = structlog.get_logger(__name__)

PublisherFactory = Callable[[KafkaConfig], AlertPublisher]


def default_publisher_factory(cfg: KafkaConfig) -> AlertPublisher:
    """Mock publisher when ``cfg.mock`` is set, Kafka otherwise."""
    if cfg.mock:
        return MockPublisher(cfg.topic)
    return KafkaPublisher(cfg.broker_list, cfg.topic)


class JobManager:
    """Creates, runs, tracks and cancels generation jobs.

    Each job gets its own publisher, sampler, scheduler and cancel token;
    only the metrics recorder is shared.

    Usage::

        manager = JobManager(metrics=ProducerMetrics())
        job = manager.create_job(GenerateRequest(burst=100, mock=True))
        manager.run_job(job)
        ...
        manager.cancel_job(job.id)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        metrics: MetricsRecorder | None = None,
        publisher_factory: PublisherFactory | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._metrics = metrics or NoOpMetrics()
        self._publisher_factory = publisher_factory or default_publisher_factory
        self._jobs: dict[str, Job] = {}
        self._tokens: dict[str, CancelToken] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def metrics(self) -> MetricsRecorder:
        return self._metrics

    # ── Registry ────────────────────────────────────────────────

    def create_job(self, request: GenerateRequest) -> Job:
        job = Job(config=request)
        self._jobs[job.id] = job
        return job

    def get_job(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def list_jobs(self, status: JobStatus | None = None) -> list[Job]:
        jobs = [j for j in self._jobs.values() if status is None or j.status == status]
        return sorted(jobs, key=lambda j: j.created_at)

    # ── Execution ───────────────────────────────────────────────

    def run_job(self, job: Job) -> asyncio.Task[None]:
        """Start ``job`` in the background and return its task."""
        token = CancelToken()
        self._tokens[job.id] = token
        task = asyncio.create_task(self._execute(job, token))
        self._tasks[job.id] = task
        return task

    def cancel_job(self, job_id: str) -> bool:
        """Signal cancellation. The running task sets the final status."""
        token = self._tokens.get(job_id)
        if token is None:
            return False
        token.cancel("cancelled by user")
        return True

    async def wait(self, job_id: str, timeout: float | None = None) -> Job | None:
        """Wait for a job's task to finish (or ``timeout``) and return the job."""
        task = self._tasks.get(job_id)
        if task is not None and not task.done():
            await asyncio.wait({task}, timeout=timeout)
        return self._jobs.get(job_id)

    async def close(self) -> None:
        """Cancel every running job and wait for them to stop."""
        for token in self._tokens.values():
            token.cancel("shutdown")
        pending = [t for t in self._tasks.values() if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _execute(self, job: Job, token: CancelToken) -> None:
        with job_log_context(job.id):
            await self._execute_job(job, token)

    async def _execute_job(self, job: Job, token: CancelToken) -> None:
        request = job.config
        try:
            kafka_cfg, gen_cfg = request.validate_request(self._settings)
            publisher = self._publisher_factory(kafka_cfg)
        except (ConfigError, ValueError) as exc:
            job.fail(exc)
            logger.warning("job_rejected", error=str(exc))
            return

        try:
            job.update_status(JobStatus.RUNNING)
            logger.info("job_started", topic=kafka_cfg.topic, mock=kafka_cfg.mock)

            if request.single_test:
                cancelled = await self._publish_single(job, publisher, token)
            else:
                sampler = AlertSampler.from_config(gen_cfg)
                scheduler = PacingScheduler(
                    sampler,
                    publisher,
                    metrics=self._metrics,
                    progress=self._settings.progress,
                )
                result = await scheduler.run(
                    select_mode(gen_cfg, test=request.test),
                    cancel=token,
                    on_progress=job.set_alerts_sent,
                )
                cancelled = result.cancelled

            if cancelled or token.cancelled:
                job.update_status(JobStatus.CANCELLED)
                logger.info("job_cancelled", alerts_sent=job.alerts_sent)
            else:
                job.update_status(JobStatus.COMPLETED)
                logger.info("job_completed", alerts_sent=job.alerts_sent)
        except Exception as exc:
            job.fail(exc)
            logger.error("job_failed", error=str(exc), alerts_sent=job.alerts_sent)
        finally:
            try:
                await publisher.close()
            except Exception:
                logger.exception("publisher_close_error")

    async def _publish_single(
        self,
        job: Job,
        publisher: AlertPublisher,
        token: CancelToken,
    ) -> bool:
        """Publish one caller-specified alert. Returns True if cancelled first."""
        if token.cancelled:
            return True
        request = job.config
        generated_at = time.monotonic()
        alert = custom_alert(request.severity, request.source, request.name)
        if not await publish_alert(
            publisher, alert, token, metrics=self._metrics, generated_at=generated_at
        ):
            return True
        job.set_alerts_sent(1)
        logger.info(
            "single_alert_published",
            alert_id=alert.alert_id,
            severity=alert.severity,
            source=alert.source,
            name=alert.name,
        )
        return False
