"""Text chunking for embeddings."""

from convoflow.core.chunking.chunker import CHUNK_SIZE, OVERLAP, TextChunker, chunk_text

__all__ = ["CHUNK_SIZE", "OVERLAP", "TextChunker", "chunk_text"]
