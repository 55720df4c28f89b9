"""
Core business logic module.

Transcript parsing, chunking, the queue processor and the import and
structure recompute pipelines. Subpackages are imported explicitly by
callers; only the exception hierarchy is re-exported here.
"""

from convoflow.core.exceptions import (
    ClaimConflict,
    ConversationNotFoundError,
    ConvoflowException,
    DispatchError,
    EmbeddingError,
    ExternalServiceError,
    JobNotFoundError,
    JobStateError,
    LeaseLostError,
    MissingThinkingTimeError,
    RoleAmbiguityWarning,
    StaleLockError,
    StepProcessingError,
    TaggingError,
    ValidationError,
)

__all__ = [
    "ClaimConflict",
    "ConversationNotFoundError",
    "ConvoflowException",
    "DispatchError",
    "EmbeddingError",
    "ExternalServiceError",
    "JobNotFoundError",
    "JobStateError",
    "LeaseLostError",
    "MissingThinkingTimeError",
    "RoleAmbiguityWarning",
    "StaleLockError",
    "StepProcessingError",
    "TaggingError",
    "ValidationError",
]
