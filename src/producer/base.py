"""Abstract alert publisher — the hand-off point to a broker."""

from __future__ import annotations

import abc
from types import TracebackType

from src.core.types import Alert


class AlertPublisher(abc.ABC):
    """Base class for anything that can durably accept an alert.

    ``publish()`` raises on failure; cancellation-style failures should be
    raised as ``PublishCancelledError`` so callers can tell them apart.
    ``close()`` is called by whoever created the publisher.
    """

    @abc.abstractmethod
    async def publish(self, alert: Alert) -> None:
        """Publish a single alert."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release broker connections."""

    async def __aenter__(self) -> AlertPublisher:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
