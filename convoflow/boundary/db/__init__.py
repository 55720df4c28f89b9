"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), get_async_db(): Connection management
  - JobModel and the conversation, chunk, tag, snapshot and diagnostics models
  - CRUD singletons (job_crud, conversation_crud, message_crud, ...)

Dependencies: sqlalchemy, convoflow.configs
System role: Database adapter for the job queue and ingested conversations
"""

from convoflow.boundary.db.base import Base, TimestampMixin, UUIDMixin, ensure_utc, utcnow
from convoflow.boundary.db.connection import (
    get_async_db,
    get_async_engine,
    get_async_session_factory,
)
from convoflow.boundary.db.models import (
    ChunkEmbeddingModel,
    ConversationModel,
    ConversationTagModel,
    DecisionModel,
    ImportStep,
    JobModel,
    JobStatus,
    JobType,
    MessageChunkModel,
    MessageModel,
    RecomputeStep,
    ReductionDiagnosticsModel,
    StructureSnapshotModel,
    TagModel,
    TaskModel,
)
from convoflow.boundary.db.CRUD import job_crud

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "ensure_utc",
    "utcnow",
    "get_async_db",
    "get_async_engine",
    "get_async_session_factory",
    "ChunkEmbeddingModel",
    "ConversationModel",
    "ConversationTagModel",
    "DecisionModel",
    "ImportStep",
    "JobModel",
    "JobStatus",
    "JobType",
    "MessageChunkModel",
    "MessageModel",
    "RecomputeStep",
    "ReductionDiagnosticsModel",
    "StructureSnapshotModel",
    "TagModel",
    "TaskModel",
    "job_crud",
]
