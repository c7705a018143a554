"""Alert publishers — broker hand-off for generated alerts."""

from src.producer.base import AlertPublisher
from src.producer.exceptions import (
    PublishCancelledError,
    PublisherConnectionError,
    PublisherError,
)
from src.producer.kafka import KafkaPublisher
from src.producer.mock import MockPublisher

__all__ = [
    "AlertPublisher",
    "KafkaPublisher",
    "MockPublisher",
    "PublishCancelledError",
    "PublisherConnectionError",
    "PublisherError",
]
