"""
Job service orchestrator.

Import job polling and manual retry for the owning user.

Dependencies: convoflow.boundary.db.CRUD, convoflow.boundary.db.models
System role: Job status reporting and retry use cases
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.boundary.db.base import ensure_utc
from convoflow.boundary.db.CRUD.job_crud import job_crud
from convoflow.boundary.db.models.job_model import JobModel, JobStatus, JobType
from convoflow.core.exceptions import JobNotFoundError
from convoflow.models.job import (
    ImportCounts,
    ImportJobsResponse,
    ImportJobStatus,
    ImportProgress,
    RetryJobResponse,
)

logger = logging.getLogger(__name__)

STEP_LABELS = {
    "queued": "Queued",
    "parse": "Parsing",
    "insert_conversations": "Creating conversations",
    "insert_messages": "Inserting messages",
    "chunk_messages": "Chunking messages",
    "embed_chunks": "Embedding",
    "finalize": "Finalizing",
}

RECENT_JOB_LIMIT = 5


def format_counts(counts: ImportCounts) -> str:
    """Human summary such as "2 conversations · 40 messages"; zero counts omitted."""
    parts = [
        f"{counts.conversations} conversations" if counts.conversations else None,
        f"{counts.messages} messages" if counts.messages else None,
        f"{counts.chunks} chunks" if counts.chunks else None,
        f"{counts.embedded} embedded" if counts.embedded else None,
    ]
    return " · ".join(part for part in parts if part)


def to_import_status(job: JobModel) -> ImportJobStatus:
    """Shape one import job row for the polling response."""
    progress = job_crud.get_progress(job)
    if not isinstance(progress, ImportProgress):
        progress = ImportProgress()
    return ImportJobStatus(
        id=str(job.id),
        step=job.step,
        step_label=STEP_LABELS.get(job.step, job.step),
        status=job.display_status,
        percent=progress.percent,
        counts=progress.counts,
        count_str=format_counts(progress.counts),
        error=job.last_error,
        can_retry=job.status == JobStatus.ERROR,
        created_at=ensure_utc(job.created_at),
        updated_at=ensure_utc(job.updated_at),
    )


class JobService:
    """
    Job service orchestrator.

    Provides the caller-scoped view of import jobs.
    """

    def __init__(self, db: AsyncSession, poll_limit: int = RECENT_JOB_LIMIT) -> None:
        """
        Initialize job service.

        Args:
            db: AsyncSession for database operations
            poll_limit: Jobs returned by list_import_jobs when no limit is given
        """
        self.db = db
        self.poll_limit = poll_limit

    async def list_import_jobs(self, user_id: str, limit: int | None = None) -> ImportJobsResponse:
        """
        Most recent import jobs for polling.

        Args:
            user_id: Caller
            limit: Number of jobs to return (defaults to poll_limit)

        Returns:
            ImportJobsResponse, newest first
        """
        jobs = await job_crud.list_recent_for_user(
            self.db, user_id, JobType.IMPORT_PROCESSING, limit=limit or self.poll_limit
        )
        return ImportJobsResponse(jobs=[to_import_status(job) for job in jobs])

    async def retry_import_job(
        self,
        user_id: str,
        job_id: UUID,
        from_start: bool = False,
    ) -> RetryJobResponse:
        """
        Re-queue a failed import job owned by the caller.

        Args:
            user_id: Caller
            job_id: Job to retry
            from_start: Restart at queued instead of the failed step

        Returns:
            RetryJobResponse with the job's new status and step

        Raises:
            JobNotFoundError: Unknown job, another user's job, or not an import job
            JobStateError: Job is not in error
        """
        job = await job_crud.get_for_user(self.db, job_id, user_id)
        if job is None or job.type != JobType.IMPORT_PROCESSING:
            raise JobNotFoundError(job_id)

        updated = await job_crud.reset_for_retry(
            self.db, job_id, from_start=from_start, user_id=user_id
        )
        await self.db.commit()
        logger.info(
            f"{__name__}:retry_import_job - Job re-queued",
            extra={"job_id": str(job_id), "user_id": user_id, "step": updated.step},
        )
        return RetryJobResponse(
            job_id=str(updated.id),
            status=updated.status.value,
            step=updated.step,
        )
