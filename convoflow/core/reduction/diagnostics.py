"""
Reduction diagnostics builder.

Describes what the reducer saw in a capture: size, detected format and
how speaker roles were parsed. Artifact counts start at zero; extraction
of decisions, tasks and highlights happens outside this service and
fills them in on its own record.

Dependencies: convoflow.core.transcript, convoflow.models.diagnostics
System role: Capture audit record construction
"""

import math

from convoflow.core.transcript.role_ambiguity import role_ambiguity_warnings
from convoflow.models.diagnostics import (
    InputDiagnostics,
    ReductionDiagnostics,
    ReductionMode,
    RoleParseInfo,
)
from convoflow.models.transcript import NormalizedTranscript

CHARS_PER_TOKEN = 4


def approx_tokens(text: str) -> int:
    """Rough token estimate (four characters per token)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def build_diagnostics(
    capture_id: str,
    raw: str,
    normalized: NormalizedTranscript,
    mode: ReductionMode = "durable",
    meta: dict | None = None,
) -> ReductionDiagnostics:
    """
    Build the diagnostics record for one capture.

    Args:
        capture_id: Id of the capture conversation
        raw: Text exactly as submitted
        normalized: normalize_transcript() output for the same text
        mode: Whether the raw source is kept after reduction
        meta: Extra context (source type, thinking choice)

    Returns:
        ReductionDiagnostics ready to persist
    """
    parse_warnings = list(normalized.warnings)
    if normalized.messages:
        parse_warnings.extend(role_ambiguity_warnings(normalized.messages))

    return ReductionDiagnostics(
        capture_id=capture_id,
        mode=mode,
        input=InputDiagnostics(
            bytes=len(raw.encode("utf-8")),
            approx_tokens=approx_tokens(raw),
            detected_format=normalized.detected_format,
            role_parse=RoleParseInfo(
                had_explicit_roles=normalized.had_explicit_roles,
                normalized_roles=normalized.normalized_roles,
                warnings=parse_warnings,
            ),
        ),
        warnings=list(parse_warnings),
        meta=dict(meta or {}),
    )
