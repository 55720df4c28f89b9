"""
Chunk domain model.

A slice of message text sized for embedding.

Dependencies: pydantic
System role: Chunker output structure
"""

from pydantic import BaseModel, ConfigDict, Field


class Chunk(BaseModel):
    """Message chunk produced by the chunker."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(min_length=1, description="Trimmed chunk text")
    chunk_index: int = Field(ge=0, description="Position within the parent message")
