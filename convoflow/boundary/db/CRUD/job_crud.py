"""
Job CRUD operations.

Persistence contract for the job queue: listing claimable jobs, the
atomic claim, progress recording, terminal transitions, retry resets and
the stale-lock sweep. Progress values are encoded and decoded here so
that callers only handle typed progress models.

Dependencies: sqlalchemy, convoflow.boundary.db.models, convoflow.models.job
System role: Job persistence operations for the queue processor
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.boundary.db.base import utcnow
from convoflow.boundary.db.CRUD.base_crud import BaseCRUD
from convoflow.boundary.db.models.job_model import (
    ImportStep,
    JobModel,
    JobStatus,
    JobType,
    RecomputeStep,
)
from convoflow.core.exceptions import (
    JobNotFoundError,
    JobStateError,
    LeaseLostError,
    StaleLockError,
)
from convoflow.models.job import (
    ImportProgress,
    RecomputeProgress,
    decode_progress,
    encode_progress,
)

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 2000

_PROGRESS_KIND = {
    JobType.IMPORT_PROCESSING: "import",
    JobType.STRUCTURE_RECOMPUTE: "recompute",
}


def truncate_error(message: str, limit: int = MAX_ERROR_LENGTH) -> str:
    """Clip an error message to the length stored in last_error."""
    if len(message) <= limit:
        return message
    return message[: limit - 3] + "..."


class JobCRUD(BaseCRUD[JobModel]):
    """
    CRUD operations for JobModel.

    claim() is the only concurrency primitive: a single conditional UPDATE
    that succeeds for exactly one caller. The locked_at value it writes is
    the caller's lease; owner-side writes that pass it back only apply while
    the job is still pending under that same lease.
    """

    def __init__(self) -> None:
        """Initialize JobCRUD with JobModel."""
        super().__init__(JobModel)

    async def create_job(
        self,
        session: AsyncSession,
        user_id: str,
        job_type: JobType,
        payload: dict[str, Any],
        scope: str | None = None,
        debounce_key: str | None = None,
        coalesce_key: str | None = None,
    ) -> JobModel:
        """
        Insert a pending job at step queued.

        Args:
            session: Async database session
            user_id: Owning user
            job_type: Job type
            payload: Encoded payload model
            scope: Recompute scope
            debounce_key: Coalescing key for recompute jobs
            coalesce_key: Unique key reserved until the first claim

        Returns:
            Created JobModel
        """
        initial = (
            ImportProgress() if job_type == JobType.IMPORT_PROCESSING else RecomputeProgress()
        )
        return await self.create(
            session,
            user_id=user_id,
            type=job_type,
            step=ImportStep.QUEUED.value,
            status=JobStatus.PENDING,
            progress_json=encode_progress(initial),
            payload=payload,
            scope=scope,
            debounce_key=debounce_key,
            coalesce_key=coalesce_key,
            attempt_count=0,
        )

    def get_progress(self, job: JobModel) -> ImportProgress | RecomputeProgress:
        """Decode a job's stored progress into its typed variant."""
        return decode_progress(job.progress_json, _PROGRESS_KIND[job.type])

    async def list_claimable(
        self,
        session: AsyncSession,
        job_type: JobType | None = None,
        limit: int = 10,
    ) -> Sequence[JobModel]:
        """
        List pending, unclaimed jobs oldest first.

        Args:
            session: Async database session
            job_type: Restrict to one job type
            limit: Maximum number of jobs to return

        Returns:
            Sequence of claimable JobModels
        """
        stmt = (
            select(JobModel)
            .where(JobModel.status == JobStatus.PENDING, JobModel.locked_at.is_(None))
            .order_by(JobModel.created_at.asc())
            .limit(limit)
        )
        if job_type is not None:
            stmt = stmt.where(JobModel.type == job_type)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def claim(
        self,
        session: AsyncSession,
        id: UUID,
        now: datetime | None = None,
    ) -> datetime | None:
        """
        Atomically take exclusive ownership of a pending job.

        The claim also gives up the job's coalesce_key so that later
        recompute dispatches create a fresh job instead of merging into
        one that is already running.

        Args:
            session: Async database session
            id: Job UUID
            now: Claim timestamp (defaults to current UTC time)

        Returns:
            The lease (the locked_at value written) if this caller now owns
            the job, None if another caller holds it or it is no longer pending
        """
        now = now or utcnow()
        stmt = (
            update(JobModel)
            .where(
                JobModel.id == id,
                JobModel.locked_at.is_(None),
                JobModel.status == JobStatus.PENDING,
            )
            .values(
                locked_at=now,
                coalesce_key=None,
                attempt_count=JobModel.attempt_count + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return now if result.rowcount == 1 else None

    async def _update_owned(
        self,
        session: AsyncSession,
        id: UUID,
        lease: datetime | None,
        **fields,
    ) -> JobModel | None:
        """
        Apply an owner-side write.

        With a lease the write only matches while the job is pending and
        locked_at still equals the lease.

        Raises:
            LeaseLostError: If the lease was swept, released or superseded
        """
        if lease is None:
            return await self.update_by_id(session, id, **fields)

        fields.setdefault("updated_at", utcnow())
        stmt = (
            update(JobModel)
            .where(
                JobModel.id == id,
                JobModel.status == JobStatus.PENDING,
                JobModel.locked_at == lease,
            )
            .values(**fields)
            .returning(JobModel)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        job = result.scalar_one_or_none()
        if job is None:
            logger.warning(
                f"{__name__}:_update_owned - Lease lost",
                extra={"job_id": str(id), "fields": sorted(fields)},
            )
            raise LeaseLostError(id)
        return job

    async def renew_lease(
        self,
        session: AsyncSession,
        id: UUID,
        lease: datetime,
        now: datetime | None = None,
    ) -> datetime:
        """
        Move a held lease forward so the stale-lock sweep leaves the job alone.

        Returns:
            The new lease value

        Raises:
            LeaseLostError: If the caller no longer holds the job
        """
        now = now or utcnow()
        await self._update_owned(session, id, lease, locked_at=now, updated_at=now)
        return now

    async def record_progress(
        self,
        session: AsyncSession,
        id: UUID,
        step: str,
        progress: ImportProgress | RecomputeProgress,
        lease: datetime | None = None,
    ) -> JobModel | None:
        """
        Record the step reached and its progress; the lock is untouched.

        Returns:
            Updated JobModel if found, None otherwise

        Raises:
            LeaseLostError: If a lease is given and no longer held
        """
        return await self._update_owned(
            session,
            id,
            lease,
            step=step,
            progress_json=encode_progress(progress),
        )

    async def update_payload(
        self,
        session: AsyncSession,
        id: UUID,
        payload: dict[str, Any],
    ) -> JobModel | None:
        """Replace a job's payload (intermediate state between steps)."""
        return await self.update_by_id(session, id, payload=payload)

    async def release(
        self,
        session: AsyncSession,
        id: UUID,
        lease: datetime | None = None,
    ) -> JobModel | None:
        """Clear the claim so the next processor run can pick the job up."""
        return await self._update_owned(session, id, lease, locked_at=None)

    async def complete(
        self,
        session: AsyncSession,
        id: UUID,
        progress: ImportProgress | RecomputeProgress,
        step: str | None = None,
        lease: datetime | None = None,
    ) -> JobModel | None:
        """
        Mark a job done and clear its claim.

        Args:
            session: Async database session
            id: Job UUID
            progress: Final progress value
            step: Final step name to record, if it changed
            lease: Claim held by the caller; the write is refused once lost

        Returns:
            Updated JobModel if found, None otherwise

        Raises:
            LeaseLostError: If a lease is given and no longer held
        """
        fields: dict[str, Any] = {
            "status": JobStatus.DONE,
            "locked_at": None,
            "progress_json": encode_progress(progress),
        }
        if step is not None:
            fields["step"] = step
        return await self._update_owned(session, id, lease, **fields)

    async def fail(
        self,
        session: AsyncSession,
        id: UUID,
        error: str,
        lease: datetime | None = None,
    ) -> JobModel | None:
        """
        Mark a job errored, store the message and clear its claim.

        The step is left as-is so a retry resumes where the job stopped.

        Returns:
            Updated JobModel if found, None otherwise

        Raises:
            LeaseLostError: If a lease is given and no longer held
        """
        return await self._update_owned(
            session,
            id,
            lease,
            status=JobStatus.ERROR,
            last_error=truncate_error(error),
            locked_at=None,
        )

    async def reset_for_retry(
        self,
        session: AsyncSession,
        id: UUID,
        from_start: bool = False,
        user_id: str | None = None,
    ) -> JobModel:
        """
        Move an errored job back to pending.

        Args:
            session: Async database session
            id: Job UUID
            from_start: Restart at step queued instead of the failed step
            user_id: When given, the job must belong to this user

        Returns:
            Updated JobModel

        Raises:
            JobNotFoundError: If the job does not exist (or is not the user's)
            JobStateError: If the job is not in error
        """
        # claim and sweep are bulk UPDATEs that bypass the identity map.
        result = await session.execute(
            select(JobModel).where(JobModel.id == id).execution_options(populate_existing=True)
        )
        job = result.scalar_one_or_none()
        if job is None or (user_id is not None and job.user_id != user_id):
            raise JobNotFoundError(id)
        if job.status != JobStatus.ERROR:
            raise JobStateError(
                "Only failed jobs can be retried",
                job_id=id,
                status=job.status.value,
            )

        fields: dict[str, Any] = {
            "status": JobStatus.PENDING,
            "last_error": None,
            "locked_at": None,
            "attempt_count": 0,
        }
        if from_start:
            fields["step"] = (
                ImportStep.QUEUED.value
                if job.type == JobType.IMPORT_PROCESSING
                else RecomputeStep.QUEUED.value
            )
        updated = await self.update_by_id(session, id, **fields)
        logger.info(
            f"{__name__}:reset_for_retry - Job reset",
            extra={"job_id": str(id), "step": updated.step, "from_start": from_start},
        )
        return updated

    async def sweep_stale_locks(
        self,
        session: AsyncSession,
        ttl_seconds: int,
        now: datetime | None = None,
    ) -> list[UUID]:
        """
        Fail pending jobs whose claim is older than the lock TTL.

        Args:
            session: Async database session
            ttl_seconds: Lock lifetime in seconds
            now: Reference time (defaults to current UTC time)

        Returns:
            IDs of jobs moved to error
        """
        now = now or utcnow()
        cutoff = now - timedelta(seconds=ttl_seconds)
        stmt = select(JobModel.id).where(
            JobModel.status == JobStatus.PENDING,
            JobModel.locked_at.is_not(None),
            JobModel.locked_at < cutoff,
        )
        result = await session.execute(stmt)
        stale_ids = list(result.scalars().all())

        for job_id in stale_ids:
            error = StaleLockError(job_id, ttl_seconds)
            await session.execute(
                update(JobModel)
                .where(
                    JobModel.id == job_id,
                    JobModel.status == JobStatus.PENDING,
                    JobModel.locked_at < cutoff,
                )
                .values(
                    status=JobStatus.ERROR,
                    last_error=truncate_error(error.message),
                    locked_at=None,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            logger.warning(
                f"{__name__}:sweep_stale_locks - Lock expired",
                extra={"job_id": str(job_id), "ttl_seconds": ttl_seconds},
            )
        return stale_ids

    async def list_recent_for_user(
        self,
        session: AsyncSession,
        user_id: str,
        job_type: JobType,
        limit: int = 5,
    ) -> Sequence[JobModel]:
        """Most recently created jobs of one type for a user, newest first."""
        stmt = (
            select(JobModel)
            .where(JobModel.user_id == user_id, JobModel.type == job_type)
            .order_by(JobModel.created_at.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_for_user(
        self,
        session: AsyncSession,
        id: UUID,
        user_id: str,
    ) -> JobModel | None:
        """Retrieve a job only if it belongs to the user."""
        stmt = select(JobModel).where(JobModel.id == id, JobModel.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_pending_recompute(
        self,
        session: AsyncSession,
        user_id: str,
        scope: str,
    ) -> JobModel | None:
        """
        Find the pending, unclaimed recompute job for (user, scope).

        Returns:
            Oldest matching JobModel, or None if a new job must be created
        """
        stmt = (
            select(JobModel)
            .where(
                JobModel.user_id == user_id,
                JobModel.type == JobType.STRUCTURE_RECOMPUTE,
                JobModel.scope == scope,
                JobModel.status == JobStatus.PENDING,
                JobModel.locked_at.is_(None),
            )
            .order_by(JobModel.created_at.asc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


job_crud = JobCRUD()
