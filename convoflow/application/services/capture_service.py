"""
Capture service orchestrator.

Single-paste capture: stores the pasted text as a capture conversation
placed in the chosen thinking window, records reduction diagnostics and
asks for a structure recompute.

Dependencies: convoflow.boundary.db.CRUD, convoflow.core
System role: Capture use case
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.boundary.db.CRUD.conversation_crud import conversation_crud, message_crud
from convoflow.boundary.db.CRUD.structure_crud import diagnostics_crud
from convoflow.core.exceptions import ValidationError
from convoflow.core.reduction.diagnostics import build_diagnostics
from convoflow.core.structure.dispatcher import StructureDispatcher
from convoflow.core.thinking_time import DEFAULT_TIMEZONE, coarse_window_to_thinking_range
from convoflow.core.transcript.markers import UNTITLED
from convoflow.core.transcript.normalizer import normalize_transcript
from convoflow.models.capture import CaptureRequest, CaptureResponse

logger = logging.getLogger(__name__)


class CaptureService:
    """Capture service orchestrator."""

    def __init__(
        self,
        db: AsyncSession,
        dispatcher: StructureDispatcher,
        timezone: str = DEFAULT_TIMEZONE,
    ) -> None:
        """
        Initialize capture service.

        Args:
            db: Async SQLAlchemy session
            dispatcher: Recompute dispatcher
            timezone: Zone used for coarse thinking windows
        """
        self.db = db
        self.dispatcher = dispatcher
        self.timezone = timezone

    async def create_capture(
        self,
        user_id: str,
        request: CaptureRequest,
        now: datetime | None = None,
    ) -> CaptureResponse:
        """
        Create a capture.

        Args:
            user_id: Caller
            request: Pasted content and options
            now: Reference time for the thinking window

        Returns:
            CaptureResponse with the capture id and its diagnostics

        Raises:
            ValidationError: Empty content
        """
        content = request.content
        if not content or not content.strip():
            raise ValidationError("content is required", field="content")

        window = coarse_window_to_thinking_range(request.thinking_choice, now, self.timezone)

        conversation = await conversation_crud.create(
            self.db,
            user_id=user_id,
            job_id=None,
            source="capture",
            title=(request.title or "").strip() or UNTITLED,
            project_id=request.project_id,
            started_at=window.start_at,
            ended_at=window.end_at,
            is_inactive=False,
        )

        keep_source = request.source_mode != "discard_after_reduce"
        if keep_source:
            await message_crud.create(
                self.db,
                conversation_id=conversation.id,
                user_id=user_id,
                role="user",
                content=content,
                index_in_conversation=0,
            )

        diagnostics = build_diagnostics(
            capture_id=str(conversation.id),
            raw=content,
            normalized=normalize_transcript(content),
            mode=request.source_mode,
            meta={
                "source_type": request.source_type,
                "thinking_choice": request.thinking_choice,
                "source_kept": keep_source,
            },
        )
        await diagnostics_crud.create(
            self.db,
            user_id=user_id,
            capture_id=conversation.id,
            mode=diagnostics.mode,
            payload=diagnostics.model_dump(mode="json"),
        )
        await self.db.commit()

        enqueued = await self.dispatcher.dispatch_best_effort(user_id, reason="ingestion")
        logger.info(
            f"{__name__}:create_capture - Capture stored",
            extra={
                "capture_id": str(conversation.id),
                "user_id": user_id,
                "detected_format": diagnostics.input.detected_format,
                "structure_job_enqueued": enqueued,
            },
        )
        return CaptureResponse(
            capture_id=str(conversation.id),
            conversation_id=str(conversation.id),
            diagnostics=diagnostics,
            structure_job_enqueued=enqueued,
        )
