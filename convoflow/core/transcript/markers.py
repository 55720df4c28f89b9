"""
Speaker-role markers for pasted chat transcripts.

Deterministic, line-based parser: a line that starts with a known speaker
label opens a new message; following lines are appended to it. No model,
no heuristics that can drift between runs.

Dependencies: re (stdlib)
System role: Role parsing shared by the normalizer and the import parse step
"""

import re
from dataclasses import dataclass, field
from typing import Literal

Role = Literal["user", "assistant"]

UNTITLED = "Untitled Conversation"
TITLE_MAX_LENGTH = 60

_USER_LABELS = ("User", "Me", "Human")
_ASSISTANT_LABELS = ("Assistant", "AI", "ChatGPT", "Claude")


def _label_patterns(labels: tuple[str, ...]) -> tuple[re.Pattern, ...]:
    bold = [re.compile(rf"^\s*\*\*{label}:\*\*\s*", re.IGNORECASE) for label in labels]
    plain = [re.compile(rf"^\s*{label}:\s*", re.IGNORECASE) for label in labels]
    return tuple(bold + plain)


USER_MARKERS = _label_patterns(_USER_LABELS)
ASSISTANT_MARKERS = _label_patterns(_ASSISTANT_LABELS)

_LINE_SPLIT = re.compile(r"\r?\n")


@dataclass
class ParsedMessage:
    role: Role
    content: str


@dataclass
class ParsedTranscript:
    """Messages recovered from a transcript plus per-role counts."""

    messages: list[ParsedMessage] = field(default_factory=list)

    @property
    def user_count(self) -> int:
        return sum(1 for message in self.messages if message.role == "user")

    @property
    def assistant_count(self) -> int:
        return sum(1 for message in self.messages if message.role == "assistant")


def find_marker(line: str) -> Role | None:
    """Return the role a line opens, or None if it carries no speaker label."""
    if any(pattern.match(line) for pattern in USER_MARKERS):
        return "user"
    if any(pattern.match(line) for pattern in ASSISTANT_MARKERS):
        return "assistant"
    return None


def strip_marker(line: str, role: Role) -> str:
    """Remove the speaker label from a line and trim the remainder."""
    patterns = USER_MARKERS if role == "user" else ASSISTANT_MARKERS
    for pattern in patterns:
        if pattern.match(line):
            return pattern.sub("", line, count=1).strip()
    return line.strip()


def has_role_markers(text: str) -> bool:
    """True if any line of the text starts with a recognizable speaker label."""
    return any(find_marker(line) for line in _LINE_SPLIT.split(text or ""))


def _swap(role: Role) -> Role:
    return "assistant" if role == "user" else "user"


def parse_transcript(
    text: str,
    swap_roles: bool = False,
    treat_as_single_block: bool = False,
) -> ParsedTranscript:
    """
    Split a transcript into role-tagged messages.

    Text before the first speaker label is discarded. Segments that are
    empty after trimming are skipped. If no labelled message is found, the
    whole text becomes a single user message.

    Args:
        text: Raw transcript
        swap_roles: Exchange user and assistant (for transcripts pasted
            from the other side)
        treat_as_single_block: Skip marker detection entirely

    Returns:
        ParsedTranscript
    """
    if treat_as_single_block:
        return ParsedTranscript([ParsedMessage("user", text.strip())])

    messages: list[ParsedMessage] = []
    current_role: Role | None = None
    current_lines: list[str] = []

    def flush() -> None:
        if current_role is None:
            return
        content = "\n".join(current_lines).strip()
        if content:
            role = _swap(current_role) if swap_roles else current_role
            messages.append(ParsedMessage(role, content))

    for line in _LINE_SPLIT.split(text):
        role = find_marker(line)
        if role is not None:
            flush()
            current_role = role
            current_lines = [strip_marker(line, role)]
        else:
            current_lines.append(line)
    flush()

    if not messages and text.strip():
        return ParsedTranscript([ParsedMessage("user", text.strip())])
    return ParsedTranscript(messages)


def generate_auto_title(transcript: str, parsed: ParsedTranscript) -> str:
    """
    Derive a title from the first line of the first user message.

    Falls back to the first line of the raw transcript, then to
    "Untitled Conversation". Titles are clipped to 60 characters.
    """
    first_user = next((m for m in parsed.messages if m.role == "user"), None)
    if first_user is not None:
        title = first_user.content.split("\n")[0].strip()[:TITLE_MAX_LENGTH]
        if title:
            return title

    first_line = transcript.split("\n")[0].strip()[:TITLE_MAX_LENGTH]
    return first_line or UNTITLED
