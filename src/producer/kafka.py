"""Async wrapper around the synchronous kafka-python producer."""

from __future__ import annotations

import asyncio
import hashlib
from typing import Any

import structlog
from kafka import KafkaProducer
from kafka.errors import KafkaError, UnknownTopicOrPartitionError

from src.core.types import Alert
from src.producer.base import AlertPublisher
from src.producer.exceptions import PublisherConnectionError

logger = structlog.stdlib.get_logger()

WRITE_TIMEOUT_SECS = 10.0
MAX_ATTEMPTS = 2
TOPIC_RETRY_DELAY_SECS = 2.0


def partition_key(alert_id: str) -> bytes:
    """First 16 bytes of SHA-256(alert_id) — spreads alerts evenly over partitions."""
    return hashlib.sha256(alert_id.encode("utf-8")).digest()[:16]


def alert_headers(alert: Alert) -> list[tuple[str, bytes]]:
    return [
        ("schema_version", str(alert.schema_version).encode("utf-8")),
        ("severity", alert.severity.encode("utf-8")),
    ]


class KafkaPublisher(AlertPublisher):
    """Publishes alerts as JSON to a Kafka topic with leader acks.

    Usage::

        async with KafkaPublisher("localhost:9092", "alerts.new") as pub:
            await pub.connect()
            await pub.publish(alert)
    """

    def __init__(
        self,
        brokers: str | list[str],
        topic: str,
        write_timeout_secs: float = WRITE_TIMEOUT_SECS,
        producer_factory: Any = KafkaProducer,
    ) -> None:
        if isinstance(brokers, str):
            brokers = [b.strip() for b in brokers.split(",") if b.strip()]
        if not brokers:
            raise ValueError("brokers cannot be empty")
        if not topic:
            raise ValueError("topic cannot be empty")
        self._brokers = brokers
        self._topic = topic
        self._write_timeout_secs = write_timeout_secs
        self._producer_factory = producer_factory
        self._producer: Any = None

    @property
    def topic(self) -> str:
        return self._topic

    async def connect(self) -> None:
        """Create the underlying producer (blocks until brokers answer)."""
        if self._producer is not None:
            return
        try:
            self._producer = await asyncio.to_thread(
                self._producer_factory,
                bootstrap_servers=self._brokers,
                acks=1,
            )
        except KafkaError as exc:
            raise PublisherConnectionError(
                f"Failed to connect to Kafka at {','.join(self._brokers)}: {exc}"
            ) from exc
        logger.info(
            "kafka_publisher_connected",
            brokers=self._brokers,
            topic=self._topic,
            acks=1,
        )

    async def publish(self, alert: Alert) -> None:
        if self._producer is None:
            await self.connect()

        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                await asyncio.to_thread(self._send_sync, alert)
                return
            except UnknownTopicOrPartitionError as exc:
                if attempt < MAX_ATTEMPTS:
                    logger.info(
                        "kafka_topic_not_ready",
                        alert_id=alert.alert_id,
                        topic=self._topic,
                        attempt=attempt,
                        max_attempts=MAX_ATTEMPTS,
                    )
                    await asyncio.sleep(TOPIC_RETRY_DELAY_SECS)
                    continue
                raise PublisherConnectionError(
                    f"topic {self._topic} unavailable after {MAX_ATTEMPTS} attempts: {exc}"
                ) from exc
            except KafkaError as exc:
                logger.error(
                    "kafka_write_failed",
                    alert_id=alert.alert_id,
                    topic=self._topic,
                    attempt=attempt,
                    error=str(exc),
                )
                raise PublisherConnectionError(
                    f"failed to write message to Kafka: {exc}"
                ) from exc

    def _send_sync(self, alert: Alert) -> None:
        future = self._producer.send(
            self._topic,
            value=alert.to_json(),
            key=partition_key(alert.alert_id),
            headers=alert_headers(alert),
            timestamp_ms=alert.event_ts * 1000,
        )
        future.get(timeout=self._write_timeout_secs)

    async def close(self) -> None:
        if self._producer is None:
            return
        producer, self._producer = self._producer, None
        await asyncio.to_thread(producer.close)
        logger.info("kafka_publisher_closed", topic=self._topic)
