"""
Boundary-aware text chunker.

Splits message text into overlapping chunks sized for embedding. Cuts
prefer a sentence or paragraph end, then a word boundary, within the last
20% of each window.

Dependencies: convoflow.models.chunk
System role: chunk_messages stage of the import pipeline
"""

from convoflow.models.chunk import Chunk

CHUNK_SIZE = 3000
OVERLAP = 200
BOUNDARY_WINDOW = 0.8

_SENTENCE_BREAKS = (".", "!", "?", "\n\n")


def _last_index(text: str, sub: str, start: int, end: int) -> int:
    """Index of the last occurrence of sub lying wholly inside text[start:end], or -1."""
    return text.rfind(sub, start, end)


class TextChunker:
    """Split text into overlapping chunks with boundary-aware cuts."""

    def __init__(self, chunk_size: int = CHUNK_SIZE, overlap: int = OVERLAP) -> None:
        """
        Initialize chunker.

        Args:
            chunk_size: Maximum chunk length in characters
            overlap: Characters repeated at the start of the next chunk

        Raises:
            ValueError: When the sizes cannot make forward progress
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if overlap < 0 or overlap >= chunk_size * BOUNDARY_WINDOW:
            raise ValueError("overlap must be non-negative and smaller than 80% of chunk_size")
        self.chunk_size = chunk_size
        self.overlap = overlap

    def _cut_position(self, text: str, start: int, end: int) -> int:
        threshold = start + self.chunk_size * BOUNDARY_WINDOW

        sentence_end = max(_last_index(text, mark, start, end) for mark in _SENTENCE_BREAKS)
        if sentence_end > threshold:
            return sentence_end + 1

        word_end = _last_index(text, " ", start, end)
        if word_end > threshold:
            return word_end
        return end

    def chunk(self, text: str) -> list[Chunk]:
        """
        Split text into chunks.

        Args:
            text: Text to split

        Returns:
            list[Chunk]: Non-empty chunks with consecutive indices, empty
            for empty input
        """
        if not text:
            return []

        if len(text) <= self.chunk_size:
            content = text.strip()
            return [Chunk(content=content, chunk_index=0)] if content else []

        chunks: list[Chunk] = []
        start = 0
        while start < len(text):
            end = start + self.chunk_size
            if end < len(text):
                end = self._cut_position(text, start, end)

            content = text[start:end].strip()
            if content:
                chunks.append(Chunk(content=content, chunk_index=len(chunks)))

            if end >= len(text):
                break
            start = max(end - self.overlap, 0)

        return chunks


_default_chunker = TextChunker()


def chunk_text(text: str) -> list[Chunk]:
    """Chunk text with the default size (3000) and overlap (200)."""
    return _default_chunker.chunk(text)
