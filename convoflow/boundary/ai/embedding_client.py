"""
Embedding client boundary.

Narrow async interface the import pipeline uses to turn chunk text into
vectors. Provider failures surface as EmbeddingError, flagged retryable
when they look like rate limiting.

Dependencies: langchain_google_genai (via FixedDimensionEmbeddings)
System role: embed_chunks stage provider adapter
"""

import logging
from typing import Protocol

from langchain_core.embeddings import Embeddings

from convoflow.boundary.ai.embeddings_wrapper import FixedDimensionEmbeddings
from convoflow.core.exceptions import EmbeddingError

logger = logging.getLogger(__name__)

_RATE_LIMIT_MARKERS = ("429", "rate limit", "rate_limit", "resource_exhausted", "resource exhausted", "quota")


def is_rate_limit_error(exc: BaseException) -> bool:
    """Heuristic match for provider throttling responses."""
    if getattr(exc, "status_code", None) == 429 or getattr(exc, "code", None) == 429:
        return True
    text = f"{type(exc).__name__} {exc}".lower()
    return any(marker in text for marker in _RATE_LIMIT_MARKERS)


class EmbeddingClient(Protocol):
    """Interface consumed by the embed_chunks step."""

    model_name: str

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        ...


class GeminiEmbeddingClient:
    """EmbeddingClient backed by Gemini embeddings through LangChain."""

    def __init__(
        self,
        model: str = "models/gemini-embedding-001",
        dimension: int = 1536,
        embeddings: Embeddings | None = None,
    ) -> None:
        """
        Initialize client.

        Args:
            model: Embedding model ID
            dimension: Fixed output dimension
            embeddings: Pre-built LangChain embeddings (tests inject fakes)
        """
        self.model_name = model
        self.dimension = dimension
        self._embeddings = embeddings or FixedDimensionEmbeddings(
            model=model,
            output_dimensionality=dimension,
        )

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """
        Embed a batch of texts.

        Args:
            texts: Chunk contents

        Returns:
            One vector per input text, in order

        Raises:
            EmbeddingError: Provider failure or a malformed response
        """
        if not texts:
            return []
        try:
            vectors = await self._embeddings.aembed_documents(texts)
        except Exception as e:
            retryable = is_rate_limit_error(e)
            logger.warning(
                f"{__name__}:embed_texts - Provider error",
                extra={"batch_size": len(texts), "retryable": retryable, "error_type": type(e).__name__},
            )
            raise EmbeddingError(
                f"Failed to generate embeddings: {e}",
                retryable=retryable,
                details={"batch_size": len(texts)},
            ) from e

        if len(vectors) != len(texts):
            raise EmbeddingError(
                "Embedding provider returned a mismatched batch",
                details={"expected": len(texts), "received": len(vectors)},
            )
        return [list(vector) for vector in vectors]

    async def embed(self, text: str) -> list[float]:
        """Embed a single text."""
        vectors = await self.embed_texts([text])
        return vectors[0]
