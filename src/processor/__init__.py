"""Alert processing — pacing scheduler, cancellation, error classification, metrics."""

from src.processor.cancel import CancelToken
from src.processor.errors import classify_publish_error, is_cancellation
from src.processor.exceptions import (
    AlertPublishError,
    BoilerplatePublishError,
    ProcessorError,
    SchedulerStateError,
)
from src.processor.metrics import MetricsRecorder, NoOpMetrics, ProducerMetrics
from src.processor.scheduler import (
    PacingScheduler,
    ProgressCallback,
    calculate_rate,
    publish_alert,
    select_mode,
)

__all__ = [
    "AlertPublishError",
    "BoilerplatePublishError",
    "CancelToken",
    "MetricsRecorder",
    "NoOpMetrics",
    "PacingScheduler",
    "ProcessorError",
    "ProducerMetrics",
    "ProgressCallback",
    "SchedulerStateError",
    "calculate_rate",
    "classify_publish_error",
    "is_cancellation",
    "publish_alert",
    "select_mode",
]
