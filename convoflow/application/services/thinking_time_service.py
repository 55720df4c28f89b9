"""
Thinking-time service orchestrator.

Dependencies: convoflow.boundary.db.CRUD, convoflow.core
System role: Thinking-time resolution use case
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.boundary.db.CRUD.conversation_crud import conversation_crud
from convoflow.core.exceptions import ConversationNotFoundError, ValidationError
from convoflow.core.structure.dispatcher import StructureDispatcher
from convoflow.core.thinking_time import DEFAULT_TIMEZONE, coarse_window_to_thinking_range
from convoflow.models.capture import ThinkingTimeResponse

logger = logging.getLogger(__name__)


class ThinkingTimeService:
    """Assigns coarse thinking windows to existing conversations."""

    def __init__(
        self,
        db: AsyncSession,
        dispatcher: StructureDispatcher,
        timezone: str = DEFAULT_TIMEZONE,
    ) -> None:
        self.db = db
        self.dispatcher = dispatcher
        self.timezone = timezone

    async def resolve(
        self,
        user_id: str,
        conversation_id: str,
        choice: str,
        now: datetime | None = None,
    ) -> ThinkingTimeResponse:
        """
        Persist the thinking window for a conversation and request a recompute.

        Args:
            user_id: Caller
            conversation_id: Conversation owned by the caller
            choice: Coarse window (today, yesterday, last_week, last_month)
            now: Reference time for the window

        Returns:
            ThinkingTimeResponse with the stored window

        Raises:
            ValidationError: Malformed conversation id or unknown choice
            ConversationNotFoundError: Conversation missing or not the caller's
        """
        try:
            conversation_uuid = UUID(conversation_id)
        except ValueError as e:
            raise ValidationError("Invalid conversation id", field="conversation_id") from e

        window = coarse_window_to_thinking_range(choice, now, self.timezone)

        conversation = await conversation_crud.get_for_user(self.db, conversation_uuid, user_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)

        await conversation_crud.set_thinking_window(
            self.db, conversation_uuid, window.start_at, window.end_at
        )
        await self.db.commit()

        # Moves existing signals in time.
        enqueued = await self.dispatcher.dispatch_best_effort(user_id, reason="ingestion")
        logger.info(
            f"{__name__}:resolve - Thinking time resolved",
            extra={"conversation_id": conversation_id, "choice": choice, "structure_job_enqueued": enqueued},
        )
        return ThinkingTimeResponse(
            conversation_id=conversation_id,
            thinking_started_at=window.start_at,
            thinking_ended_at=window.end_at,
            structure_job_enqueued=enqueued,
        )
