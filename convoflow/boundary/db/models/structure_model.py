"""
Structure snapshot and reduction diagnostics ORM models.

Dependencies: sqlalchemy, convoflow.boundary.db.base
System role: Derived state and audit storage
"""

import uuid

from sqlalchemy import ForeignKey, Index, JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from convoflow.boundary.db.base import Base, TimestampMixin, UUIDMixin


class StructureSnapshotModel(Base, UUIDMixin, TimestampMixin):
    """
    Structural state written by a recompute whose hash differed from the
    previous snapshot. The newest row per (user_id, scope) is current.
    """

    __tablename__ = "structure_snapshots"
    __table_args__ = (
        Index("ix_structure_snapshots_user_scope", "user_id", "scope", "created_at"),
    )

    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    scope: Mapped[str] = mapped_column(String(64), nullable=False, default="user")
    state_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    state_payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    job_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("jobs.id", ondelete="SET NULL"),
        nullable=True,
    )


class ReductionDiagnosticsModel(Base, UUIDMixin, TimestampMixin):
    """Write-once diagnostics record for a capture."""

    __tablename__ = "reduction_diagnostics"

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    capture_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    mode: Mapped[str] = mapped_column(String(32), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
