"""
Decision and task ORM models.

Rows are written by the per-resource handlers outside this service;
convoflow only reads them to build structural state.

Dependencies: sqlalchemy, convoflow.boundary.db.base
System role: Read model for structure recompute inputs
"""

import uuid

from sqlalchemy import Boolean, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from convoflow.boundary.db.base import Base, TimestampMixin, UUIDMixin


class DecisionModel(Base, UUIDMixin, TimestampMixin):
    """Decision recorded against a conversation."""

    __tablename__ = "decisions"

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    conversation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("conversations.id", ondelete="SET NULL"),
        nullable=True,
    )
    project_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_inactive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class TaskModel(Base, UUIDMixin, TimestampMixin):
    """Task recorded against a conversation; status open counts toward friction."""

    __tablename__ = "tasks"

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    conversation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("conversations.id", ondelete="SET NULL"),
        nullable=True,
    )
    project_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="open")
    is_inactive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
