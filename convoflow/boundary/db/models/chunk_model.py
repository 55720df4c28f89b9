"""
Message chunk and embedding ORM models.

Dependencies: sqlalchemy, convoflow.boundary.db.base
System role: Chunk storage for semantic search
"""

import uuid

from sqlalchemy import ForeignKey, Integer, JSON, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from convoflow.boundary.db.base import Base, TimestampMixin, UUIDMixin


class MessageChunkModel(Base, UUIDMixin, TimestampMixin):
    """
    Chunk of a message's text.

    Constraints:
        (message_id, chunk_index) unique
    """

    __tablename__ = "message_chunks"
    __table_args__ = (
        UniqueConstraint("message_id", "chunk_index", name="uq_message_chunks_index"),
    )

    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    message_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("messages.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)


class ChunkEmbeddingModel(Base, UUIDMixin, TimestampMixin):
    """
    Embedding vector for one chunk.

    Stored as a JSON float array; a chunk has at most one embedding.
    """

    __tablename__ = "message_chunk_embeddings"

    chunk_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("message_chunks.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    embedding: Mapped[list] = mapped_column(JSON, nullable=False)
    model: Mapped[str] = mapped_column(String(128), nullable=False)
