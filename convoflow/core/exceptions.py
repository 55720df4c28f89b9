"""
Exception hierarchy for convoflow.

Layered exception structure for queue, ingestion and recompute errors.
All exceptions carry a details dict for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class ConvoflowException(Exception):
    """Base exception for all convoflow errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(ConvoflowException):
    """Raised when caller input is rejected before any job is queued."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class ClaimConflict(ConvoflowException):
    """Raised when a job is already claimed or no longer pending."""

    def __init__(self, job_id: Any, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["job_id"] = str(job_id)
        super().__init__(f"Job {job_id} could not be claimed", details)


class JobNotFoundError(ConvoflowException):
    """Raised when a job does not exist or is not visible to the caller."""

    def __init__(self, job_id: Any, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["job_id"] = str(job_id)
        super().__init__(f"Job not found: {job_id}", details)


class JobStateError(ConvoflowException):
    """Raised when a job transition is not allowed from its current status."""

    def __init__(
        self,
        message: str,
        job_id: Any = None,
        status: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if job_id is not None:
            details["job_id"] = str(job_id)
        if status:
            details["status"] = status
        super().__init__(message, details)


class ConversationNotFoundError(ConvoflowException):
    """Raised when a conversation does not exist or belongs to another user."""

    def __init__(self, conversation_id: Any) -> None:
        super().__init__(
            f"Conversation not found: {conversation_id}",
            {"conversation_id": str(conversation_id)},
        )


class StepProcessingError(ConvoflowException):
    """
    Raised when a pipeline step cannot complete.

    The job is marked error with this message and can be retried from the
    step that failed.
    """

    def __init__(
        self,
        message: str,
        step: str | None = None,
        job_id: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize step processing error.

        Args:
            message: Error message
            step: Pipeline step that failed
            job_id: Job being processed
            details: Additional context
        """
        details = details or {}
        if step:
            details["step"] = step
        if job_id is not None:
            details["job_id"] = str(job_id)
        super().__init__(message, details)


class LeaseLostError(JobStateError):
    """Raised when a processor writes to a job whose claim it no longer holds."""

    def __init__(self, job_id: Any) -> None:
        super().__init__(
            f"Job {job_id} is no longer held by this processor",
            job_id=job_id,
        )


class StaleLockError(ConvoflowException):
    """Recorded on jobs whose claim outlived the lock TTL."""

    def __init__(self, job_id: Any, ttl_seconds: int) -> None:
        super().__init__(
            f"Lock expired after {ttl_seconds}s without completion",
            {"job_id": str(job_id), "ttl_seconds": ttl_seconds},
        )


class ExternalServiceError(ConvoflowException):
    """Raised when an external provider (embeddings, LLM) fails."""

    def __init__(
        self,
        message: str,
        service: str | None = None,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize external service error.

        Args:
            message: Error message
            service: Provider name
            retryable: True for rate-limit style failures worth retrying
            details: Additional context
        """
        details = details or {}
        if service:
            details["service"] = service
        self.retryable = retryable
        super().__init__(message, details)


class EmbeddingError(ExternalServiceError):
    """Raised when embedding generation fails."""

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, service="embeddings", retryable=retryable, details=details)


class TaggingError(ExternalServiceError):
    """Raised when tag extraction fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, service="tagging", details=details)


class MissingThinkingTimeError(ConvoflowException):
    """Raised when a structural signal has no conversation to derive thinking time from."""

    def __init__(
        self,
        record_kind: str,
        record_id: Any,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details.update({"record_kind": record_kind, "record_id": str(record_id)})
        super().__init__(
            f"Missing thinking time for {record_kind} {record_id}",
            details,
        )


class DispatchError(ConvoflowException):
    """Raised when a structure recompute job cannot be enqueued."""

    pass


class RoleAmbiguityWarning(UserWarning):
    """
    Diagnostic marker for transcripts whose speaker roles look unreliable.

    Never raised into control flow; its code is recorded in parse warnings.
    """

    code = "role_ambiguous"
