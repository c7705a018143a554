#!/usr/bin/env python3
"""Alert producer CLI — generate synthetic alerts and publish them to Kafka.

Usage::

    # 10 alerts/sec for 60s to the default broker and topic
    python -m scripts.run

    # Send 500 alerts as fast as possible, reproducibly
    python -m scripts.run --burst 500 --seed 42

    # No broker: log every alert instead
    python -m scripts.run --mock --rps 5 --duration 10s

    # One canonical test alert, then exit
    python -m scripts.run --single-test
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from src.core.config import (
    ConfigError,
    GeneratorConfig,
    KafkaConfig,
    Settings,
    load_settings,
    parse_duration,
)
from src.core.logging import setup_logging
from src.core.types import RunResult
from src.generator.sampler import AlertSampler, canonical_test_alert
from src.processor.cancel import CancelToken
from src.processor.exceptions import ProcessorError
from src.processor.metrics import ProducerMetrics
from src.processor.scheduler import PacingScheduler, select_mode
from src.producer.base import AlertPublisher
from src.producer.exceptions import PublisherError
from src.producer.kafka import KafkaPublisher
from src.producer.mock import MockPublisher

logger = structlog.get_logger(__name__)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> tuple[KafkaConfig, GeneratorConfig]:
    """Overlay command-line flags on the loaded settings."""
    kafka = settings.kafka.model_copy()
    if args.kafka_brokers is not None:
        kafka.brokers = args.kafka_brokers
    if args.topic is not None:
        kafka.topic = args.topic
    if args.mock:
        kafka.mock = True

    gen = settings.generator.model_copy()
    if args.rps is not None:
        gen.rps = args.rps
    if args.duration is not None:
        gen.duration_secs = parse_duration(args.duration)
    if args.burst is not None:
        gen.burst_size = args.burst
    if args.seed is not None:
        gen.seed = args.seed
    if args.severity_dist is not None:
        gen.severity_dist = args.severity_dist
    if args.source_dist is not None:
        gen.source_dist = args.source_dist
    if args.name_dist is not None:
        gen.name_dist = args.name_dist
    return kafka, gen


async def create_publisher(kafka: KafkaConfig) -> AlertPublisher:
    if kafka.mock:
        logger.info("mock_mode_enabled", topic=kafka.topic)
        return MockPublisher(kafka.topic)

    logger.info("kafka_connecting", brokers=kafka.brokers, topic=kafka.topic)
    publisher = KafkaPublisher(kafka.broker_list, kafka.topic)
    await publisher.connect()
    return publisher


async def run(args: argparse.Namespace) -> int:
    """Wire sampler, publisher and scheduler, then run one job."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    try:
        kafka, gen = apply_overrides(settings, args)
        if not kafka.brokers:
            raise ConfigError("kafka-brokers cannot be empty")
        if not kafka.topic:
            raise ConfigError("topic cannot be empty")
        gen.validate_for_run(single_alert=args.single_test)
    except ConfigError as exc:
        logger.error("invalid_configuration", error=str(exc))
        return 1

    logger.info(
        "alert_producer_starting",
        kafka_brokers=kafka.brokers,
        topic=kafka.topic,
        rps=gen.rps,
        duration_secs=gen.duration_secs,
        burst_size=gen.burst_size,
        seed=gen.seed,
    )

    # ── Shutdown signal → cancel token ──────────────────────────
    token = CancelToken()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        token.cancel("signal")

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        publisher = await create_publisher(kafka)
    except PublisherError as exc:
        logger.error("kafka_connect_failed", error=str(exc))
        print(
            "Could not reach Kafka. Start a broker or rerun with --mock.",
            file=sys.stderr,
        )
        return 1

    metrics = ProducerMetrics()
    try:
        if args.single_test:
            return await _run_single(publisher, token)

        sampler = AlertSampler.from_config(gen)
        logger.info(
            "alert_generator_initialized",
            seed=sampler.seed,
            severity_dist=gen.severity_dist,
            source_dist=gen.source_dist,
            name_dist=gen.name_dist,
        )
        scheduler = PacingScheduler(sampler, publisher, metrics=metrics, progress=settings.progress)

        result: RunResult
        if args.test:
            result = await scheduler.run(select_mode(gen, test=True), cancel=token)
        else:
            result = await scheduler.process(select_mode(gen), cancel=token)
    except ProcessorError as exc:
        logger.error("processing_failed", error=str(exc), **metrics.summary())
        return 1
    finally:
        try:
            await publisher.close()
        except Exception:
            logger.exception("publisher_close_error")

    logger.info(
        "alert_producer_finished",
        mode=result.mode,
        state=str(result.state),
        sent=result.sent,
        elapsed_secs=round(result.elapsed_secs, 2),
        rate_per_sec=round(result.rate_per_sec, 2),
        test_alert_sent=result.test_alert_sent,
    )
    return 0


async def _run_single(publisher: AlertPublisher, token: CancelToken) -> int:
    if token.cancelled:
        return 0
    alert = canonical_test_alert()
    try:
        await publisher.publish(alert)
    except PublisherError as exc:
        logger.error(
            "single_test_publish_failed",
            alert_id=alert.alert_id,
            severity=alert.severity,
            source=alert.source,
            name=alert.name,
            error=str(exc),
        )
        return 1
    logger.info(
        "single_test_alert_published",
        alert_id=alert.alert_id,
        severity=alert.severity,
        source=alert.source,
        name=alert.name,
        event_ts=alert.event_ts,
        alert_json=alert.to_json().decode("utf-8"),
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate synthetic alerts and publish them to Kafka.",
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
    parser.add_argument(
        "--kafka-brokers",
        default=None,
        help="Kafka broker addresses, comma-separated (env KAFKA_BROKERS)",
    )
    parser.add_argument("--topic", default=None, help="Kafka topic (env ALERTS_NEW_TOPIC)")
    parser.add_argument("--rps", type=float, default=None, help="Alerts per second")
    parser.add_argument(
        "--duration",
        default=None,
        help="How long to run in continuous mode (e.g. 60s, 5m)",
    )
    parser.add_argument(
        "--burst",
        type=int,
        default=None,
        help="Send N alerts immediately, then stop (0 = continuous)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for deterministic generation (0 = random)",
    )
    parser.add_argument("--severity-dist", default=None, help="SEVERITY:percent,...")
    parser.add_argument("--source-dist", default=None, help="source:percent,...")
    parser.add_argument("--name-dist", default=None, help="name:percent,...")
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Log alerts instead of sending them to Kafka",
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="Make the first alert the canonical test alert (LOW/test-source/test-name)",
    )
    parser.add_argument(
        "--single-test",
        action="store_true",
        help="Send one canonical test alert and exit",
    )
    return parser


def main() -> None:
    args = build_parser().parse_args()
    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
