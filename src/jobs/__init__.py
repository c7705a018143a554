"""Background generation jobs and the HTTP API that controls them."""

from src.jobs.api import create_web_app, start_api_server
from src.jobs.manager import JobManager, default_publisher_factory
from src.jobs.types import VALID_SEVERITIES, GenerateRequest, Job

__all__ = [
    "GenerateRequest",
    "Job",
    "JobManager",
    "VALID_SEVERITIES",
    "create_web_app",
    "default_publisher_factory",
    "start_api_server",
]
