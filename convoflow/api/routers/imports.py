"""
Import API endpoints.

Routes:
- POST /imports - Queue an import job
- GET /imports/jobs - Poll the caller's recent import jobs
- POST /imports/jobs/{id}/retry - Re-queue a failed import job

Dependencies: convoflow.application.services, convoflow.models.job
System role: Import HTTP API
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from convoflow.api.deps import get_current_user_id, get_import_service, get_job_service
from convoflow.application.services import ImportService, JobService
from convoflow.core.exceptions import JobNotFoundError, JobStateError, ValidationError
from convoflow.models.job import (
    CreateImportRequest,
    CreateImportResponse,
    ImportJobsResponse,
    RetryJobResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/imports", tags=["imports"])


@router.post("", response_model=CreateImportResponse, status_code=202)
async def create_import(
    request: CreateImportRequest,
    user_id: str = Depends(get_current_user_id),
    import_service: ImportService = Depends(get_import_service),
) -> CreateImportResponse:
    """
    Queue an import of a pasted transcript or a ChatGPT export.

    Raises:
        HTTPException(422): Request has nothing to import
    """
    try:
        return await import_service.create_import(user_id, request)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)


@router.get("/jobs", response_model=ImportJobsResponse, response_model_by_alias=True)
async def list_import_jobs(
    user_id: str = Depends(get_current_user_id),
    job_service: JobService = Depends(get_job_service),
) -> ImportJobsResponse:
    """
    Poll the caller's five most recent import jobs.

    Clients poll every few seconds while any job is pending or running.
    """
    return await job_service.list_import_jobs(user_id)


@router.post("/jobs/{job_id}/retry", response_model=RetryJobResponse)
async def retry_import_job(
    job_id: UUID,
    from_start: bool = Query(default=False),
    user_id: str = Depends(get_current_user_id),
    job_service: JobService = Depends(get_job_service),
) -> RetryJobResponse:
    """
    Retry a failed import job.

    Resumes at the step that failed unless from_start is set.

    Raises:
        HTTPException(404): Job missing, not the caller's, or not in error
    """
    try:
        return await job_service.retry_import_job(user_id, job_id, from_start=from_start)
    except (JobNotFoundError, JobStateError):
        raise HTTPException(status_code=404, detail="Job not found or cannot be retried")
