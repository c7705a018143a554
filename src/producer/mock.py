"""Log-only publisher for running without a broker."""

from __future__ import annotations

import structlog

from src.core.types import Alert
from src.producer.base import AlertPublisher

logger = structlog.get_logger(__name__)


class MockPublisher(AlertPublisher):
    """Logs each alert as JSON instead of sending it anywhere."""

    def __init__(self, topic: str = "alerts.new") -> None:
        self._topic = topic
        self._published = 0
        logger.info("mock_publisher_created", topic=topic)

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def published(self) -> int:
        return self._published

    async def publish(self, alert: Alert) -> None:
        self._published += 1
        logger.info(
            "mock_publish",
            topic=self._topic,
            alert_id=alert.alert_id,
            severity=alert.severity,
            source=alert.source,
            name=alert.name,
            alert_json=alert.to_json().decode("utf-8"),
        )

    async def close(self) -> None:
        logger.info("mock_publisher_closed", topic=self._topic, published=self._published)
