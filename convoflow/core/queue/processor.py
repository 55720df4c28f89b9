"""
Queue processor.

Runs a bounded batch of due jobs: sweeps expired locks, lists claimable
jobs oldest first, claims each one in its own committed transaction,
runs the handler registered for the job type and records the outcome.
Every write after the claim is guarded by the lease the claim returned,
so a job swept for an expired lock cannot be overwritten by its old owner.
There are no background workers; every invocation runs to completion
and resumability comes from the step persisted on each job.

Dependencies: sqlalchemy, convoflow.boundary.db, convoflow.observability
System role: Batch job runner triggered by cron or the admin endpoint
"""

import logging
from typing import Mapping
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from convoflow.boundary.db.CRUD.job_crud import job_crud
from convoflow.boundary.db.models.job_model import JobType
from convoflow.configs.pipeline import PipelineSettings
from convoflow.core.exceptions import (
    ClaimConflict,
    ConvoflowException,
    JobNotFoundError,
    LeaseLostError,
    StepProcessingError,
)
from convoflow.core.queue.handlers import JobLease, StepHandler
from convoflow.models.job import ProcessQueueResult
from convoflow.observability.correlation import get_correlation_id, set_correlation_id
from convoflow.observability.log_utils import (
    job_context,
    log_exception_with_context,
    log_with_context,
)

logger = logging.getLogger(__name__)


def error_message(exc: BaseException) -> str:
    """Message stored in last_error for a failed step."""
    if isinstance(exc, ConvoflowException):
        return exc.message
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


class QueueProcessor:
    """
    Claim-and-run loop over the jobs table.

    Usage:
        processor = QueueProcessor(session_factory, handlers, settings.pipeline)
        summary = await processor.process_queue(limit=10)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        handlers: Mapping[JobType, StepHandler],
        settings: PipelineSettings | None = None,
    ) -> None:
        """
        Initialize processor.

        Args:
            session_factory: Factory for the per-claim and per-step sessions
            handlers: Step handler per job type
            settings: Pipeline settings (defaults from environment)
        """
        self._session_factory = session_factory
        self._handlers = dict(handlers)
        self._settings = settings or PipelineSettings()

    def _clamp_limit(self, limit: int | None) -> int:
        if limit is None or limit <= 0:
            return self._settings.default_batch_limit
        return min(limit, self._settings.max_batch_limit)

    async def process_queue(
        self,
        limit: int | None = None,
        job_type: JobType | None = None,
    ) -> ProcessQueueResult:
        """
        Process up to ``limit`` due jobs.

        Jobs another invocation claims first are skipped and not counted.

        Args:
            limit: Maximum jobs to attempt (clamped to the configured maximum)
            job_type: Restrict the batch to one job type

        Returns:
            ProcessQueueResult with processed, succeeded and failed job ids
        """
        if not get_correlation_id():
            set_correlation_id()
        limit = self._clamp_limit(limit)

        async with self._session_factory() as session:
            stale = await job_crud.sweep_stale_locks(session, self._settings.lock_ttl_seconds)
            await session.commit()
            candidates = await job_crud.list_claimable(session, job_type=job_type, limit=limit)
            candidate_ids = [job.id for job in candidates]

        logger.info(
            f"{__name__}:process_queue - START",
            extra={
                "limit": limit,
                "job_type": job_type.value if job_type else None,
                "candidates": len(candidate_ids),
                "stale_swept": len(stale),
            },
        )

        result = ProcessQueueResult()
        for job_id in candidate_ids:
            try:
                succeeded = await self._claim_and_run(job_id)
            except ClaimConflict:
                logger.debug(f"{__name__}:process_queue - Claim lost", extra={"job_id": str(job_id)})
                continue

            result.processed += 1
            result.job_ids.append(str(job_id))
            if succeeded:
                result.succeeded.append(str(job_id))
            else:
                result.failed.append(str(job_id))

        log_with_context(
            logger,
            logging.INFO,
            f"{__name__}:process_queue - END",
            processed=result.processed,
            succeeded=result.succeeded,
            failed=result.failed,
        )
        return result

    async def process_job(self, job_id: UUID) -> bool:
        """
        Claim and run one specific job.

        Returns:
            True if the step succeeded, False if the job was marked error

        Raises:
            ClaimConflict: If the job is locked or not pending
        """
        return await self._claim_and_run(job_id)

    async def _claim(self, job_id: UUID) -> JobLease:
        async with self._session_factory() as session:
            locked_at = await job_crud.claim(session, job_id)
            await session.commit()
        if locked_at is None:
            raise ClaimConflict(job_id)
        return JobLease(job_id=job_id, locked_at=locked_at)

    async def _claim_and_run(self, job_id: UUID) -> bool:
        lease = await self._claim(job_id)

        async with self._session_factory() as session:
            try:
                await self._run_steps(session, lease)
                return True
            except LeaseLostError:
                await session.rollback()
                logger.warning(
                    f"{__name__}:_claim_and_run - Lease lost, leaving job to its new state",
                    extra={"job_id": str(job_id)},
                )
                return False
            except Exception as e:
                await session.rollback()
                log_exception_with_context(
                    logger,
                    f"{__name__}:_claim_and_run - Step failed",
                    e,
                    job_id=str(job_id),
                )
                await self._fail(lease, e)
                return False

    async def _run_steps(self, session: AsyncSession, lease: JobLease) -> None:
        job_id = lease.job_id
        for _ in range(self._settings.steps_per_pass):
            session.expire_all()
            job = await job_crud.get_by_id(session, job_id)
            if job is None:
                raise JobNotFoundError(job_id)

            handler = self._handlers.get(job.type)
            if handler is None:
                raise StepProcessingError(
                    f"No handler registered for job type {job.type.value}",
                    step=job.step,
                    job_id=job_id,
                )

            context = job_context(job)
            outcome = await handler.run_step(session, job, lease)

            if outcome.is_final:
                await job_crud.complete(session, job_id, outcome.progress, lease=lease.locked_at)
                await session.commit()
                logger.info(f"{__name__}:_run_steps - Job done", extra=context)
                return

            await job_crud.record_progress(
                session, job_id, outcome.next_step, outcome.progress, lease=lease.locked_at
            )
            await lease.renew(session)
            await session.commit()
            logger.info(
                f"{__name__}:_run_steps - Step complete",
                extra={**context, "next_step": outcome.next_step},
            )

        await job_crud.release(session, job_id, lease=lease.locked_at)
        await session.commit()

    async def _fail(self, lease: JobLease, exc: BaseException) -> None:
        async with self._session_factory() as session:
            try:
                await job_crud.fail(session, lease.job_id, error_message(exc), lease=lease.locked_at)
                await session.commit()
            except LeaseLostError:
                await session.rollback()
                logger.warning(
                    f"{__name__}:_fail - Lease lost, failure not recorded",
                    extra={"job_id": str(lease.job_id), "error": error_message(exc)},
                )
