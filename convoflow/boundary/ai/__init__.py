"""External AI provider clients (embeddings, tagging)."""

from convoflow.boundary.ai.embedding_client import (
    EmbeddingClient,
    GeminiEmbeddingClient,
    is_rate_limit_error,
)
from convoflow.boundary.ai.tagging_client import (
    DisabledTaggingClient,
    GeminiTaggingClient,
    TaggingClient,
)

__all__ = [
    "DisabledTaggingClient",
    "EmbeddingClient",
    "GeminiEmbeddingClient",
    "GeminiTaggingClient",
    "TaggingClient",
    "is_rate_limit_error",
]
