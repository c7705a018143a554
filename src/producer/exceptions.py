"""Exception hierarchy for alert publishers."""

from __future__ import annotations


class PublisherError(Exception):
    """Base exception for all publisher errors."""


class PublishCancelledError(PublisherError):
    """The publish was abandoned because the caller cancelled."""


class PublisherConnectionError(PublisherError):
    """Failed to reach the broker or write a message to it."""
