"""Service orchestrators."""

from .capture_service import CaptureService
from .import_service import ImportService
from .job_service import JobService
from .queue_service import build_queue_processor
from .thinking_time_service import ThinkingTimeService

__all__ = [
    "CaptureService",
    "ImportService",
    "JobService",
    "ThinkingTimeService",
    "build_queue_processor",
]
