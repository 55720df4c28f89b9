"""
Structure snapshot and reduction diagnostics CRUD operations.

Dependencies: sqlalchemy, convoflow.boundary.db.models
System role: Derived state and audit persistence
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.boundary.db.CRUD.base_crud import BaseCRUD
from convoflow.boundary.db.models.structure_model import (
    ReductionDiagnosticsModel,
    StructureSnapshotModel,
)


class StructureSnapshotCRUD(BaseCRUD[StructureSnapshotModel]):
    """CRUD operations for StructureSnapshotModel."""

    def __init__(self) -> None:
        super().__init__(StructureSnapshotModel)

    async def get_latest(
        self,
        session: AsyncSession,
        user_id: str,
        scope: str,
    ) -> StructureSnapshotModel | None:
        """Newest snapshot for (user, scope), or None before the first recompute."""
        stmt = (
            select(StructureSnapshotModel)
            .where(
                StructureSnapshotModel.user_id == user_id,
                StructureSnapshotModel.scope == scope,
            )
            .order_by(StructureSnapshotModel.created_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


class ReductionDiagnosticsCRUD(BaseCRUD[ReductionDiagnosticsModel]):
    """Insert-only access to ReductionDiagnosticsModel."""

    def __init__(self) -> None:
        super().__init__(ReductionDiagnosticsModel)

    async def get_by_capture_id(self, session: AsyncSession, capture_id) -> ReductionDiagnosticsModel | None:
        stmt = select(ReductionDiagnosticsModel).where(
            ReductionDiagnosticsModel.capture_id == capture_id
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


snapshot_crud = StructureSnapshotCRUD()
diagnostics_crud = ReductionDiagnosticsCRUD()
