"""
Read-side queries over decisions and tasks.

Dependencies: sqlalchemy, convoflow.boundary.db.models
System role: Structure recompute input loading
"""

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.boundary.db.CRUD.base_crud import BaseCRUD
from convoflow.boundary.db.models.record_model import DecisionModel, TaskModel

OPEN_TASK_STATUSES = ("open", "in_progress")


class DecisionCRUD(BaseCRUD[DecisionModel]):
    """Queries over DecisionModel."""

    def __init__(self) -> None:
        super().__init__(DecisionModel)

    async def list_active(self, session: AsyncSession, user_id: str) -> Sequence[DecisionModel]:
        stmt = select(DecisionModel).where(
            DecisionModel.user_id == user_id,
            DecisionModel.is_inactive.is_(False),
        )
        result = await session.execute(stmt)
        return result.scalars().all()


class TaskCRUD(BaseCRUD[TaskModel]):
    """Queries over TaskModel."""

    def __init__(self) -> None:
        super().__init__(TaskModel)

    async def list_open(self, session: AsyncSession, user_id: str) -> Sequence[TaskModel]:
        """Active tasks whose status is still open."""
        stmt = select(TaskModel).where(
            TaskModel.user_id == user_id,
            TaskModel.is_inactive.is_(False),
            TaskModel.status.in_(OPEN_TASK_STATUSES),
        )
        result = await session.execute(stmt)
        return result.scalars().all()


decision_crud = DecisionCRUD()
task_crud = TaskCRUD()
