"""
Conversation and message ORM models.

Dependencies: sqlalchemy, convoflow.boundary.db.base
System role: Persisted conversations produced by imports and captures
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from convoflow.boundary.db.base import Base, TimestampMixin, UUIDMixin


class ConversationModel(Base, UUIDMixin, TimestampMixin):
    """
    Conversation ORM model.

    started_at/ended_at double as the thinking window used to place
    structural signals in time.

    Attributes:
        user_id: Owning user
        job_id: Import job that created the row (None for captures)
        source: Origin (chatgpt_export, transcript, capture)
        source_conversation_id: Id in the source system; idempotency key per job
        title: Display title
        project_id: Optional project association (external)
        started_at: Start of the thinking window (UTC)
        ended_at: End of the thinking window (UTC)
        is_inactive: Hidden until the import finalizes, or archived by the user

    Constraints:
        (user_id, job_id, source_conversation_id) unique
    """

    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "job_id",
            "source_conversation_id",
            name="uq_conversations_job_source",
        ),
        Index("ix_conversations_user", "user_id"),
    )

    user_id: Mapped[str] = mapped_column(String(255), nullable=False)

    job_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("jobs.id", ondelete="SET NULL"),
        nullable=True,
    )

    source: Mapped[str] = mapped_column(String(32), nullable=False, default="transcript")
    source_conversation_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    title: Mapped[str] = mapped_column(String(500), nullable=False, default="Untitled Conversation")
    project_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    is_inactive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class MessageModel(Base, UUIDMixin, TimestampMixin):
    """
    Message ORM model.

    Attributes:
        conversation_id: Parent conversation (cascade delete)
        user_id: Owning user (denormalized for scoped queries)
        role: user, assistant, system or tool
        content: Message text
        index_in_conversation: 0-based order within the conversation
        source_message_id: Node id in the source export, if any
    """

    __tablename__ = "messages"
    __table_args__ = (
        UniqueConstraint(
            "conversation_id",
            "index_in_conversation",
            name="uq_messages_conversation_index",
        ),
    )

    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    index_in_conversation: Mapped[int] = mapped_column(Integer, nullable=False)
    source_message_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
