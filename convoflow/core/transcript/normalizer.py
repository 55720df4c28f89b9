"""
Transcript normalizer.

Turns arbitrary pasted content into a canonical message list for
reduction. Never raises: malformed input degrades to a single plain
message or an empty result with a warning.

Dependencies: convoflow.core.transcript.markers, convoflow.models.transcript
System role: First stage of capture reduction and transcript imports
"""

import re

from convoflow.core.transcript.markers import has_role_markers, parse_transcript
from convoflow.models.transcript import NormalizedTranscript, TranscriptMessage

EMPTY_INPUT = "empty_input"

_FENCE = "```"


def strip_code_fence(text: str) -> str:
    """Drop one leading and one trailing ``` line when both are present."""
    lines = re.split(r"\r?\n", text)
    if (
        len(lines) >= 2
        and lines[0].strip().startswith(_FENCE)
        and lines[-1].strip().startswith(_FENCE)
    ):
        return "\n".join(lines[1:-1])
    return text


def normalize_transcript(raw: str | None) -> NormalizedTranscript:
    """
    Normalize a pasted transcript.

    Args:
        raw: Raw pasted text (None is treated as empty)

    Returns:
        NormalizedTranscript with sequential index_in_conversation values
    """
    text = strip_code_fence(raw or "")

    if not text.strip():
        return NormalizedTranscript(
            messages=[],
            detected_format="unknown",
            warnings=[EMPTY_INPUT],
        )

    if has_role_markers(text):
        parsed = parse_transcript(text)
        return NormalizedTranscript(
            messages=[
                TranscriptMessage(
                    role=message.role,
                    content=message.content,
                    index_in_conversation=index,
                )
                for index, message in enumerate(parsed.messages)
            ],
            detected_format="chat_roles",
            had_explicit_roles=True,
            normalized_roles=True,
        )

    return NormalizedTranscript(
        messages=[TranscriptMessage(role="user", content=text.strip(), index_in_conversation=0)],
        detected_format="plain",
    )
