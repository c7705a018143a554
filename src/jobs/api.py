"""HTTP job API — start, list, inspect and stop generation jobs.

Runs as an ``aiohttp`` web server. Exposes:

- ``POST /api/v1/alerts/generate``             → start a job (202)
- ``GET  /api/v1/alerts/generate/list``        → all jobs, optional ``?status=``
- ``GET  /api/v1/alerts/generate/status``      → one job by ``?job_id=``
- ``POST /api/v1/alerts/generate/stop``        → cancel a job by ``?job_id=``
- ``GET  /api/v1/metrics``                     → shared producer metrics
- ``GET  /health``                             → liveness probe
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import structlog
from aiohttp import web
from pydantic import ValidationError

from src.core.config import ConfigError
from src.core.types import JobStatus
from src.jobs.manager import JobManager
from src.jobs.types import GenerateRequest
from src.processor.metrics import MetricsRecorder, ProducerMetrics

logger = structlog.get_logger(__name__)

MANAGER_KEY = web.AppKey("manager", JobManager)
METRICS_KEY = web.AppKey("metrics", MetricsRecorder)

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


@web.middleware
async def _cors_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Allow browser clients from any origin; answer preflights directly."""
    if request.method == "OPTIONS":
        return web.Response(status=200, headers=_CORS_HEADERS)
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        exc.headers.update(_CORS_HEADERS)
        raise
    response.headers.update(_CORS_HEADERS)
    return response


async def _handle_generate(request: web.Request) -> web.Response:
    manager = request.app[MANAGER_KEY]
    try:
        body = await request.json()
        gen_request = GenerateRequest.model_validate(body)
    except (json.JSONDecodeError, ValidationError) as exc:
        return _error(400, f"Invalid request body: {exc}")

    try:
        gen_request.validate_request(manager.settings)
    except ConfigError as exc:
        return _error(400, f"Configuration validation failed: {exc}")

    job = manager.create_job(gen_request)
    manager.run_job(job)
    logger.info("job_accepted", job_id=job.id)
    return web.json_response({"job_id": job.id, "status": str(job.status)}, status=202)


async def _handle_list(request: web.Request) -> web.Response:
    manager = request.app[MANAGER_KEY]
    status: JobStatus | None = None
    raw = request.query.get("status", "")
    if raw:
        try:
            status = JobStatus(raw)
        except ValueError:
            return _error(400, f"Invalid status: {raw}")
    jobs = [job.to_response() for job in manager.list_jobs(status)]
    return web.json_response({"jobs": jobs, "total": len(jobs)})


async def _handle_status(request: web.Request) -> web.Response:
    manager = request.app[MANAGER_KEY]
    job_id = request.query.get("job_id", "")
    if not job_id:
        return _error(400, "job_id parameter is required")
    job = manager.get_job(job_id)
    if job is None:
        return _error(404, "Job not found")
    return web.json_response(job.to_response())


async def _handle_stop(request: web.Request) -> web.Response:
    manager = request.app[MANAGER_KEY]
    job_id = request.query.get("job_id", "")
    if not job_id:
        return _error(400, "job_id parameter is required")
    job = manager.get_job(job_id)
    if job is None:
        return _error(404, "Job not found")
    if job.status.terminal:
        return _error(400, f"Job is not running (status: {job.status})")

    manager.cancel_job(job_id)
    # Give the job a moment to observe the token and record its final status.
    await asyncio.sleep(manager.settings.api.stop_grace_secs)
    logger.info("job_stop_requested", job_id=job_id, status=str(job.status))
    return web.json_response(job.to_response())


async def _handle_metrics(request: web.Request) -> web.Response:
    metrics = request.app[METRICS_KEY]
    if isinstance(metrics, ProducerMetrics):
        return web.json_response(metrics.summary())
    return web.json_response({})


async def _handle_health(request: web.Request) -> web.Response:
    return web.Response(text="OK")


def create_web_app(
    manager: JobManager,
    metrics: MetricsRecorder | None = None,
) -> web.Application:
    """Create the aiohttp web application."""
    app = web.Application(middlewares=[_cors_middleware])
    app[MANAGER_KEY] = manager
    app[METRICS_KEY] = metrics or manager.metrics
    app.router.add_post("/api/v1/alerts/generate", _handle_generate)
    app.router.add_get("/api/v1/alerts/generate/list", _handle_list)
    app.router.add_get("/api/v1/alerts/generate/status", _handle_status)
    app.router.add_post("/api/v1/alerts/generate/stop", _handle_stop)
    app.router.add_get("/api/v1/metrics", _handle_metrics)
    app.router.add_get("/health", _handle_health)
    return app


async def start_api_server(
    manager: JobManager,
    metrics: MetricsRecorder | None = None,
    host: str = "0.0.0.0",
    port: int = 8082,
) -> web.AppRunner:
    """Start the job API server. Returns the runner for cleanup."""
    app = create_web_app(manager, metrics)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("api_server_started", host=host, port=port)
    return runner
