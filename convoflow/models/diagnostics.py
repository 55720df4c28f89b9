"""
Reduction diagnostics models.

Audit record written once per capture describing what the reducer saw
and what it kept. Diagnostics never drive control flow.

Dependencies: pydantic
System role: Capture audit contract
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from convoflow.models.transcript import DetectedFormat

ReductionMode = Literal["discard_after_reduce", "durable", "other"]


class RoleParseInfo(BaseModel):
    """Outcome of speaker-role parsing."""

    had_explicit_roles: bool = False
    normalized_roles: bool = False
    warnings: list[str] = Field(default_factory=list)


class InputDiagnostics(BaseModel):
    """Size and shape of the raw capture."""

    bytes: int = 0
    approx_tokens: int = 0
    detected_format: DetectedFormat = "unknown"
    role_parse: RoleParseInfo = Field(default_factory=RoleParseInfo)


class ArtifactCounts(BaseModel):
    decisions: int = 0
    tasks: int = 0
    highlights: int = 0


class DroppedCounts(ArtifactCounts):
    reasons: list[str] = Field(default_factory=list)


class OutputDiagnostics(BaseModel):
    """Artifact counts at each stage of reduction."""

    extracted: ArtifactCounts = Field(default_factory=ArtifactCounts)
    persisted: ArtifactCounts = Field(default_factory=ArtifactCounts)
    dropped: DroppedCounts = Field(default_factory=DroppedCounts)


class ReductionDiagnostics(BaseModel):
    """Full diagnostics record for one capture."""

    capture_id: str
    mode: ReductionMode = "durable"
    input: InputDiagnostics = Field(default_factory=InputDiagnostics)
    output: OutputDiagnostics = Field(default_factory=OutputDiagnostics)
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)
