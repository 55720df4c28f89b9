"""
Import service orchestrator.

Validates an import request and queues an import_processing job. Invalid
input is rejected here so that a job is never created for it.

Dependencies: convoflow.boundary.db.CRUD, convoflow.models.job
System role: Import creation use case
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.boundary.db.CRUD.job_crud import job_crud
from convoflow.boundary.db.models.job_model import JobType
from convoflow.core.exceptions import ValidationError
from convoflow.models.job import CreateImportRequest, CreateImportResponse, ImportPayload

logger = logging.getLogger(__name__)


def validate_import(request: CreateImportRequest) -> None:
    """
    Reject requests that cannot produce any conversation.

    Raises:
        ValidationError: Missing or empty source data
    """
    if request.source_kind == "transcript":
        if not (request.raw_text or "").strip():
            raise ValidationError("Transcript text is required", field="raw_text")
        return

    data = request.export_data
    if data is None:
        raise ValidationError("Export data is required", field="export_data")
    if not isinstance(data, (list, dict)):
        raise ValidationError("Export data must be a JSON object or array", field="export_data")
    if isinstance(data, list) and not data:
        raise ValidationError("Export contains no conversations", field="export_data")
    if request.selected_conversation_ids is not None and not request.selected_conversation_ids:
        raise ValidationError(
            "At least one conversation must be selected",
            field="selected_conversation_ids",
        )


class ImportService:
    """Import service orchestrator."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_import(self, user_id: str, request: CreateImportRequest) -> CreateImportResponse:
        """
        Queue an import job.

        Args:
            user_id: Caller
            request: Import source and options

        Returns:
            CreateImportResponse with the new job's id

        Raises:
            ValidationError: Request cannot be imported
        """
        validate_import(request)

        payload = ImportPayload(
            source_kind=request.source_kind,
            raw_text=request.raw_text,
            export_data=request.export_data,
            selected_conversation_ids=request.selected_conversation_ids,
            title=request.title,
            project_id=request.project_id,
        )
        job = await job_crud.create_job(
            self.db,
            user_id=user_id,
            job_type=JobType.IMPORT_PROCESSING,
            payload=payload.model_dump(mode="json"),
        )
        await self.db.commit()

        logger.info(
            f"{__name__}:create_import - Import job queued",
            extra={"job_id": str(job.id), "user_id": user_id, "source_kind": request.source_kind},
        )
        return CreateImportResponse(job_id=str(job.id), status=job.status.value, step=job.step)
