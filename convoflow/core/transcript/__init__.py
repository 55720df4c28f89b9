"""
Transcript parsing: speaker markers, normalization, role ambiguity and
ChatGPT export parsing.
"""

from convoflow.core.transcript.chatgpt_export import parse_chatgpt_export
from convoflow.core.transcript.markers import (
    ParsedMessage,
    ParsedTranscript,
    generate_auto_title,
    has_role_markers,
    parse_transcript,
)
from convoflow.core.transcript.normalizer import normalize_transcript, strip_code_fence
from convoflow.core.transcript.role_ambiguity import is_role_ambiguous, role_ambiguity_warnings

__all__ = [
    "ParsedMessage",
    "ParsedTranscript",
    "generate_auto_title",
    "has_role_markers",
    "is_role_ambiguous",
    "normalize_transcript",
    "parse_chatgpt_export",
    "parse_transcript",
    "role_ambiguity_warnings",
    "strip_code_fence",
]
