"""
Job ORM model.

Persisted queue row for import processing and structure recompute jobs.
Each job advances through a fixed sequence of steps; the current step
and its progress live on the row, so any processor invocation can resume
it after a crash or timeout.

Dependencies: sqlalchemy, convoflow.boundary.db.base
System role: Durable job queue storage
"""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from convoflow.boundary.db.base import Base, TimestampMixin, UUIDMixin


class JobType(str, enum.Enum):
    """
    Background job types.

    IMPORT_PROCESSING: Parse, persist, chunk, embed and tag imported conversations
    STRUCTURE_RECOMPUTE: Rebuild derived structural state for a user scope
    """

    IMPORT_PROCESSING = "import_processing"
    STRUCTURE_RECOMPUTE = "structure_recompute"


class JobStatus(str, enum.Enum):
    """
    Stored job states.

    PENDING: Waiting for (or currently held by) a processor; a pending job
             with locked_at set is reported as running
    ERROR: Last step failed; see last_error. Leaves this state only via retry
    DONE: All steps completed
    """

    PENDING = "pending"
    ERROR = "error"
    DONE = "done"


class ImportStep(str, enum.Enum):
    """Ordered steps of an import_processing job."""

    QUEUED = "queued"
    PARSE = "parse"
    INSERT_CONVERSATIONS = "insert_conversations"
    INSERT_MESSAGES = "insert_messages"
    CHUNK_MESSAGES = "chunk_messages"
    EMBED_CHUNKS = "embed_chunks"
    FINALIZE = "finalize"


class RecomputeStep(str, enum.Enum):
    """Steps of a structure_recompute job."""

    QUEUED = "queued"
    RECOMPUTE = "recompute"


class JobModel(Base, UUIDMixin, TimestampMixin):
    """
    Job ORM model.

    Attributes:
        id: UUID primary key (auto-generated)
        user_id: Owning user (opaque id resolved by the auth layer)
        type: Job type enum
        step: Current step name (ImportStep or RecomputeStep value)
        status: Stored status enum (PENDING/ERROR/DONE)
        progress_json: Encoded ImportProgress or RecomputeProgress
        payload: Type-specific input and intermediate state
        scope: Recompute scope (recompute jobs only)
        debounce_key: Coalescing key for pending recompute jobs
        coalesce_key: Unique copy of debounce_key held only until the first claim
        last_error: Last failure message, cleared on retry
        locked_at: Claim timestamp; non-null means one processor owns the job
        attempt_count: Claims since creation or last retry
        created_at: Enqueue timestamp (UTC)
        updated_at: Last modification timestamp (UTC)

    Workflow:
        1. Created pending at step queued
        2. Processor claims (locked_at set), runs a step, records progress
           and releases, or completes (done) / fails (error)
        3. Callers poll; error jobs can be reset to pending via retry
    """

    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_claimable", "status", "locked_at", "created_at"),
        Index("ix_jobs_user_type", "user_id", "type"),
    )

    user_id: Mapped[str] = mapped_column(String(255), nullable=False)

    type: Mapped[JobType] = mapped_column(
        Enum(JobType, native_enum=False),
        nullable=False,
    )

    step: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default=ImportStep.QUEUED.value,
    )

    status: Mapped[JobStatus] = mapped_column(
        Enum(JobStatus, native_enum=False),
        nullable=False,
        default=JobStatus.PENDING,
    )

    progress_json: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        doc="Encoded progress union (see convoflow.models.job)",
    )

    payload: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        doc="Job input plus intermediate state carried between steps",
    )

    scope: Mapped[str | None] = mapped_column(String(64), nullable=True)
    debounce_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    coalesce_key: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)

    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    locked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def is_running(self) -> bool:
        """Pending and currently claimed."""
        return self.status == JobStatus.PENDING and self.locked_at is not None

    @property
    def display_status(self) -> str:
        """Status as surfaced to pollers (running is derived)."""
        if self.is_running:
            return "running"
        return self.status.value
