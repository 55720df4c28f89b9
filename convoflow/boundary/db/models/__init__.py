"""
Database models package.

Exports:
  - JobModel with JobType, JobStatus, ImportStep, RecomputeStep
  - ConversationModel, MessageModel
  - MessageChunkModel, ChunkEmbeddingModel
  - TagModel, ConversationTagModel
  - DecisionModel, TaskModel (read-only inputs to structure recompute)
  - StructureSnapshotModel, ReductionDiagnosticsModel

Dependencies: sqlalchemy, convoflow.boundary.db.base
System role: Database model definitions for domain entities
"""

from convoflow.boundary.db.models.chunk_model import ChunkEmbeddingModel, MessageChunkModel
from convoflow.boundary.db.models.conversation_model import ConversationModel, MessageModel
from convoflow.boundary.db.models.job_model import (
    ImportStep,
    JobModel,
    JobStatus,
    JobType,
    RecomputeStep,
)
from convoflow.boundary.db.models.record_model import DecisionModel, TaskModel
from convoflow.boundary.db.models.structure_model import (
    ReductionDiagnosticsModel,
    StructureSnapshotModel,
)
from convoflow.boundary.db.models.tag_model import ConversationTagModel, TagModel

__all__ = [
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
]
