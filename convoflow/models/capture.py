"""
Capture and thinking-time request/response schemas.

Dependencies: pydantic
System role: Mutation entry point API contracts
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from convoflow.models.diagnostics import ReductionDiagnostics, ReductionMode

CoarseWindow = Literal["today", "yesterday", "last_week", "last_month"]


class CaptureRequest(BaseModel):
    """Single-paste capture."""

    content: str = Field(description="Raw pasted text")
    thinking_choice: CoarseWindow = "today"
    source_mode: ReductionMode = "durable"
    source_type: str = Field(default="paste", max_length=50)
    title: str | None = Field(default=None, max_length=500)
    project_id: str | None = None


class CaptureResponse(BaseModel):
    capture_id: str
    conversation_id: str
    diagnostics: ReductionDiagnostics
    structure_job_enqueued: bool


class ThinkingTimeRequest(BaseModel):
    """Assign a coarse thinking window to an existing conversation."""

    conversation_id: str
    choice: CoarseWindow


class ThinkingTimeResponse(BaseModel):
    conversation_id: str
    thinking_started_at: datetime
    thinking_ended_at: datetime
    structure_job_enqueued: bool
