"""Cooperative cancellation token shared between a job and its caller."""

from __future__ import annotations

import asyncio


class CancelToken:
    """One-shot cancellation flag that can also be awaited.

    The scheduler checks ``cancelled`` at the top of every iteration and
    races ``wait()`` against tick waits and publish calls.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason = ""

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "") -> None:
        """Signal cancellation. Later calls keep the first reason."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, delay: float) -> bool:
        """Sleep for ``delay`` seconds unless cancelled first.

        Returns True if the token was cancelled before the delay elapsed.
        """
        if self._event.is_set():
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(delay, 0.0))
        except TimeoutError:
            return False
        return True
