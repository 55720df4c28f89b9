"""
Transcript domain models.

Normalized single-paste transcripts and conversations parsed from bulk
ChatGPT exports.

Dependencies: pydantic
System role: Parser output contracts shared by capture and import flows
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant"]
ExportRole = Literal["user", "assistant", "system", "tool"]
DetectedFormat = Literal["chat_roles", "email_thread", "plain", "unknown"]


class TranscriptMessage(BaseModel):
    """One role-tagged message in a normalized transcript."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    index_in_conversation: int = Field(ge=0)


class NormalizedTranscript(BaseModel):
    """Result of normalize_transcript(). Immutable once built."""

    model_config = ConfigDict(frozen=True)

    messages: list[TranscriptMessage] = Field(default_factory=list)
    detected_format: DetectedFormat = "unknown"
    had_explicit_roles: bool = False
    normalized_roles: bool = False
    warnings: list[str] = Field(default_factory=list)


class ExportMessage(BaseModel):
    """Message recovered from a ChatGPT export mapping."""

    role: ExportRole
    content: str
    timestamp: datetime | None = None
    source_message_id: str | None = None


class ParsedConversation(BaseModel):
    """
    Conversation recovered from a bulk export.

    Stored verbatim in the import job payload between the parse and
    insert steps, so it must round-trip through JSON.
    """

    id: str
    title: str
    messages: list[ExportMessage]
    started_at: datetime
    ended_at: datetime | None = None
