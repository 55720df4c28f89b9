"""
CRUD operations for database models.

Exports the base CRUD class and model-specific implementations with
pre-instantiated singletons for direct use.

Usage:
    from convoflow.boundary.db.CRUD import job_crud

    lease = await job_crud.claim(db, job_id)
"""

from convoflow.boundary.db.CRUD.base_crud import BaseCRUD
from convoflow.boundary.db.CRUD.chunk_crud import (
    ChunkEmbeddingCRUD,
    MessageChunkCRUD,
    chunk_crud,
    embedding_crud,
)
from convoflow.boundary.db.CRUD.conversation_crud import (
    ConversationCRUD,
    MessageCRUD,
    conversation_crud,
    message_crud,
)
from convoflow.boundary.db.CRUD.job_crud import JobCRUD, job_crud
from convoflow.boundary.db.CRUD.record_crud import DecisionCRUD, TaskCRUD, decision_crud, task_crud
from convoflow.boundary.db.CRUD.structure_crud import (
    ReductionDiagnosticsCRUD,
    StructureSnapshotCRUD,
    diagnostics_crud,
    snapshot_crud,
)
from convoflow.boundary.db.CRUD.tag_crud import TagCRUD, tag_crud

__all__ = [
    "BaseCRUD",
    "ChunkEmbeddingCRUD",
    "ConversationCRUD",
    "DecisionCRUD",
    "JobCRUD",
    "MessageCRUD",
    "MessageChunkCRUD",
    "ReductionDiagnosticsCRUD",
    "StructureSnapshotCRUD",
    "TagCRUD",
    "TaskCRUD",
    "chunk_crud",
    "conversation_crud",
    "decision_crud",
    "diagnostics_crud",
    "embedding_crud",
    "job_crud",
    "message_crud",
    "snapshot_crud",
    "tag_crud",
    "task_crud",
]
