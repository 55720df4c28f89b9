"""
Tagging result models.

Structured output schema for the LLM tagging client.

Dependencies: pydantic
System role: Tag extraction contract
"""

from typing import Literal

from pydantic import BaseModel, Field

TagCategory = Literal["entity", "topic", "person", "project", "technology", "concept"]


class ExtractedTag(BaseModel):
    """Single semantic tag extracted from a conversation."""

    name: str = Field(description="Short, specific tag text")
    category: TagCategory = Field(description="Tag category")
    confidence: float = Field(default=0.7, ge=0.0, le=1.0)


class TaggingResult(BaseModel):
    """Tags plus an optional project suggestion for one conversation."""

    tags: list[ExtractedTag] = Field(default_factory=list)
    suggested_project_name: str | None = Field(
        default=None,
        description="Project name if the conversation looks like a distinct project",
    )
    suggested_project_description: str | None = None
