"""Job queue processing."""

from convoflow.core.queue.handlers import JobLease, StepHandler, StepOutcome
from convoflow.core.queue.processor import QueueProcessor, error_message

__all__ = ["JobLease", "QueueProcessor", "StepHandler", "StepOutcome", "error_message"]
