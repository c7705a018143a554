#!/usr/bin/env python3
"""Alert producer API server — start and stop generation jobs over HTTP.

Usage::

    python -m scripts.api
    python -m scripts.api --port 8082 --config config/settings.yaml

    curl -X POST localhost:8082/api/v1/alerts/generate \\
        -d '{"burst": 100, "mock": true}'
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from src.core.config import load_settings
from src.core.logging import setup_logging
from src.jobs.api import start_api_server
from src.jobs.manager import JobManager
from src.processor.metrics import ProducerMetrics

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Serve the job API until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    host = args.host or settings.api.host
    port = args.port or settings.api.port

    metrics = ProducerMetrics()
    manager = JobManager(settings=settings, metrics=metrics)
    runner = await start_api_server(manager, metrics, host=host, port=port)
    logger.info(
        "alert_producer_api_running",
        host=host,
        port=port,
        default_brokers=settings.kafka.brokers,
        default_topic=settings.kafka.topic,
    )

    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    logger.info("alert_producer_api_shutting_down")
    await manager.close()
    await runner.cleanup()
    logger.info("alert_producer_api_stopped", **metrics.summary())
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the alert producer job API.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument("--host", default=None, help="Bind address (default from config)")
    parser.add_argument("--port", type=int, default=None, help="Listen port (default 8082)")
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
