"""
Job queue API endpoints.

Routes: POST /jobs/process - Run one bounded processor batch (admin/cron)

Dependencies: convoflow.core.queue, convoflow.models.job
System role: Queue trigger HTTP API
"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query

from convoflow.api.deps import get_queue_processor, require_admin
from convoflow.boundary.db.models.job_model import JobType
from convoflow.core.queue import QueueProcessor
from convoflow.models.job import ProcessQueueResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post(
    "/process",
    response_model=ProcessQueueResult,
    dependencies=[Depends(require_admin)],
)
async def process_jobs(
    limit: int | None = Query(default=None, ge=1),
    type: Literal["import_processing", "structure_recompute"] | None = Query(default=None),
    processor: QueueProcessor = Depends(get_queue_processor),
) -> ProcessQueueResult:
    """
    Process due jobs.

    Intended for a cron tick or a manual admin call. Overlapping calls are
    safe; a job claimed by one call is skipped by the others.

    Args:
        limit: Maximum jobs to attempt (clamped server-side)
        type: Restrict the batch to one job type
        processor: Injected QueueProcessor

    Returns:
        ProcessQueueResult: processed count and succeeded/failed job ids

    Raises:
        HTTPException(401): Missing or invalid admin token
    """
    job_type = JobType(type) if type else None
    return await processor.process_queue(limit=limit, job_type=job_type)
