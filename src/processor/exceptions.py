"""Exceptions raised by the pacing scheduler."""

from __future__ import annotations


class ProcessorError(Exception):
    """Base exception for alert processing errors."""


class SchedulerStateError(ProcessorError):
    """A scheduler was asked to run more than once."""


class AlertPublishError(ProcessorError):
    """The publisher rejected an alert for a reason other than cancellation."""

    def __init__(self, message: str, alert_id: str, attempt: int) -> None:
        super().__init__(message)
        self.alert_id = alert_id
        self.attempt = attempt


class BoilerplatePublishError(AlertPublishError):
    """The canary alert could not be published, so no load was generated."""
