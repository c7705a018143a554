"""Publish failure classification — cancelled vs. failed."""

from __future__ import annotations

import asyncio

import structlog

from src.core.types import Alert
from src.processor.cancel import CancelToken
from src.processor.exceptions import AlertPublishError
from src.producer.exceptions import PublishCancelledError

logger = structlog.get_logger(__name__)

_CANCELLATION_TYPES: tuple[type[BaseException], ...] = (
    PublishCancelledError,
    asyncio.CancelledError,
)


def is_cancellation(cancel: CancelToken, exc: BaseException) -> bool:
    """True if ``exc`` should be treated as a clean, caller-initiated stop.

    Either the token was already set, or the error (or anything in its
    cause/context chain) is a cancellation error.
    """
    if cancel.cancelled:
        return True
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, _CANCELLATION_TYPES):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


def classify_publish_error(
    cancel: CancelToken,
    alert: Alert,
    exc: BaseException,
    attempt: int,
    error_cls: type[AlertPublishError] = AlertPublishError,
) -> AlertPublishError | None:
    """Return None for cancellations, else a logged, wrapped publish error.

    ``attempt`` is the 1-based position of the alert within the job; 0 is
    used for the canary alert that precedes a run.
    """
    if is_cancellation(cancel, exc):
        return None

    fields: dict[str, object] = {
        "alert_id": alert.alert_id,
        "severity": alert.severity,
        "source": alert.source,
        "name": alert.name,
        "error": str(exc),
        "error_type": type(exc).__name__,
    }
    if attempt > 0:
        fields["alert_number"] = attempt
    logger.error("alert_publish_failed", **fields)

    if attempt > 0:
        message = f"failed to publish alert {attempt} ({alert.alert_id}): {exc}"
    else:
        message = f"failed to publish alert {alert.alert_id}: {exc}"
    return error_cls(message, alert_id=alert.alert_id, attempt=attempt)
