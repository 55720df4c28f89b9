"""
Capture and thinking-time API endpoints.

Routes:
- POST /captures - Store a single pasted capture
- POST /thinking-time/resolve - Assign a coarse thinking window to a conversation

Dependencies: convoflow.application.services, convoflow.models.capture
System role: Mutation entry points that trigger structure recompute
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from convoflow.api.deps import get_capture_service, get_current_user_id, get_thinking_time_service
from convoflow.application.services import CaptureService, ThinkingTimeService
from convoflow.core.exceptions import ConversationNotFoundError, ValidationError
from convoflow.models.capture import (
    CaptureRequest,
    CaptureResponse,
    ThinkingTimeRequest,
    ThinkingTimeResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["captures"])


@router.post("/captures", response_model=CaptureResponse, status_code=201)
async def create_capture(
    request: CaptureRequest,
    user_id: str = Depends(get_current_user_id),
    capture_service: CaptureService = Depends(get_capture_service),
) -> CaptureResponse:
    """
    Store a capture and its reduction diagnostics.

    Raises:
        HTTPException(422): Empty content
    """
    try:
        return await capture_service.create_capture(user_id, request)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)


@router.post("/thinking-time/resolve", response_model=ThinkingTimeResponse)
async def resolve_thinking_time(
    request: ThinkingTimeRequest,
    user_id: str = Depends(get_current_user_id),
    thinking_time_service: ThinkingTimeService = Depends(get_thinking_time_service),
) -> ThinkingTimeResponse:
    """
    Resolve thinking time for a conversation.

    Raises:
        HTTPException(404): Conversation not found
        HTTPException(422): Malformed conversation id
    """
    try:
        return await thinking_time_service.resolve(user_id, request.conversation_id, request.choice)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)
