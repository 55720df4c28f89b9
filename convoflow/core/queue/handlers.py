"""
Step handler contract.

A handler runs exactly one step of a claimed job and reports where the
job goes next. Handlers never touch status or the lock; the processor
owns those transitions. Handlers that run long inside one step renew the
lease they are handed so the stale-lock sweep does not take the job away.

Dependencies: sqlalchemy, convoflow.boundary.db, convoflow.models.job
System role: Seam between the queue processor and per-type pipelines
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.boundary.db.CRUD.job_crud import job_crud
from convoflow.boundary.db.models.job_model import JobModel
from convoflow.models.job import ImportProgress, RecomputeProgress


@dataclass(frozen=True)
class StepOutcome:
    """
    Result of one step.

    Attributes:
        next_step: Step to run on the next claim, or None when the job is done
        progress: Progress to record for the job
    """

    next_step: str | None
    progress: ImportProgress | RecomputeProgress

    @property
    def is_final(self) -> bool:
        return self.next_step is None


@dataclass
class JobLease:
    """
    Claim held by one processor invocation.

    Attributes:
        job_id: Claimed job
        locked_at: locked_at value this invocation last wrote
    """

    job_id: UUID
    locked_at: datetime

    async def renew(self, session: AsyncSession) -> None:
        """Push locked_at forward in the session's transaction."""
        self.locked_at = await job_crud.renew_lease(session, self.job_id, self.locked_at)


class StepHandler(Protocol):
    """Runs the current step of a claimed job."""

    async def run_step(
        self,
        session: AsyncSession,
        job: JobModel,
        lease: JobLease | None = None,
    ) -> StepOutcome:
        ...
