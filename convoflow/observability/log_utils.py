"""
Structured logging helpers.

Log extras must stay small and printable. Job payloads, transcripts and
embedding vectors are summarised rather than dumped, and job rows are
reduced to the handful of fields needed to follow a job through the
processor logs.

Dependencies: logging (stdlib)
System role: Logging helper functions
"""

import enum
import logging
from typing import Any
from uuid import UUID

MAX_VALUE_LENGTH = 500


def _is_vector(value: Any) -> bool:
    return bool(value) and all(isinstance(item, float) for item in value)


def safe_log_value(value: Any, max_length: int = MAX_VALUE_LENGTH) -> str:
    """
    Render a value for a log record extra.

    Args:
        value: Value to render
        max_length: Length after which strings are cut

    Returns:
        str: Printable summary
    """
    if value is None:
        return "None"
    if isinstance(value, enum.Enum):
        return str(value.value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (list, tuple)):
        if _is_vector(value):
            return f"vector(dim={len(value)})"
        return f"{type(value).__name__}({len(value)} items)"
    if isinstance(value, dict):
        return f"dict({len(value)} keys)"

    try:
        text = value if isinstance(value, str) else str(value)
    except Exception as e:
        return f"<unable to log: {type(e).__name__}>"

    if len(text) > max_length:
        return text[:max_length] + f"... (truncated, {len(text)} total)"
    return text


def job_context(job: Any) -> dict[str, str]:
    """
    Standard extras for a job row.

    Accepts any object exposing the job columns (ORM row or test double).
    """
    return {
        "job_id": safe_log_value(job.id),
        "job_type": safe_log_value(job.type),
        "step": safe_log_value(job.step),
        "attempt_count": safe_log_value(job.attempt_count),
        "user_id": safe_log_value(job.user_id),
    }


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **context,
) -> None:
    """Log a message with every context value passed through safe_log_value."""
    logger.log(level, message, extra={key: safe_log_value(val) for key, val in context.items()})


def log_exception_with_context(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    **context,
) -> None:
    """
    Log a failure with its traceback.

    Adds error_type and error_msg to the context so failed steps can be
    filtered without parsing the traceback.

    Args:
        logger: Logger instance
        message: Log message
        exc: The exception being reported
        **context: Additional context
    """
    extra = {key: safe_log_value(val) for key, val in context.items()}
    extra["error_type"] = type(exc).__name__
    extra["error_msg"] = safe_log_value(str(exc))
    logger.error(message, exc_info=exc, extra=extra)
