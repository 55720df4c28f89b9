"""
Job domain models and schemas.

Progress is a tagged union keyed by ``kind``; it is encoded to and
decoded from the ``progress_json`` column at the CRUD boundary so that
handlers only ever see typed values. Payload models describe the input
and intermediate state each job type keeps on its row.

Dependencies: pydantic
System role: Job progress, payload and API contracts
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from convoflow.models.transcript import ParsedConversation


class ImportCounts(BaseModel):
    """Running totals for an import job."""

    conversations: int = 0
    messages: int = 0
    chunks: int = 0
    embedded: int = 0


class ImportProgress(BaseModel):
    """Progress of an import_processing job."""

    kind: Literal["import"] = "import"
    percent: int = Field(default=0, ge=0, le=100)
    counts: ImportCounts = Field(default_factory=ImportCounts)


class RecomputeProgress(BaseModel):
    """Progress of a structure_recompute job."""

    kind: Literal["recompute"] = "recompute"
    percent: int = Field(default=0, ge=0, le=100)
    signals: int = 0
    state_hash: str | None = None
    changed: bool | None = None


JobProgress = Annotated[
    Union[ImportProgress, RecomputeProgress],
    Field(discriminator="kind"),
]

_progress_adapter: TypeAdapter[JobProgress] = TypeAdapter(JobProgress)


def encode_progress(progress: ImportProgress | RecomputeProgress) -> dict[str, Any]:
    """Serialize progress for the progress_json column."""
    return _progress_adapter.dump_python(progress, mode="json")


def decode_progress(
    data: dict[str, Any] | None,
    default_kind: str = "import",
) -> ImportProgress | RecomputeProgress:
    """
    Parse a stored progress_json value.

    Args:
        data: Raw column value (may be empty for freshly queued jobs)
        default_kind: Union tag to assume when the stored value has none

    Returns:
        Typed progress value

    Raises:
        pydantic.ValidationError: If the stored value does not match either variant
    """
    payload = dict(data or {})
    payload.setdefault("kind", default_kind)
    return _progress_adapter.validate_python(payload)


class ImportPayload(BaseModel):
    """Input and intermediate state of an import_processing job."""

    source_kind: Literal["transcript", "chatgpt_export"]
    raw_text: str | None = None
    export_data: Any = None
    selected_conversation_ids: list[str] | None = None
    title: str | None = None
    project_id: str | None = None
    parsed_conversations: list[ParsedConversation] | None = None
    conversation_map: dict[str, str] = Field(
        default_factory=dict,
        description="Source conversation id -> persisted conversation UUID",
    )


class RecomputePayload(BaseModel):
    """State of a structure_recompute job; reasons accumulate while pending."""

    user_id: str
    scope: str = "user"
    reasons: list[str] = Field(default_factory=list)
    last_reason: str | None = None


class CamelModel(BaseModel):
    """Response base emitting camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImportJobStatus(CamelModel):
    """One row of the import polling response."""

    id: str
    step: str
    step_label: str
    status: str
    percent: int
    counts: ImportCounts
    count_str: str
    error: str | None = None
    can_retry: bool
    created_at: datetime
    updated_at: datetime


class ImportJobsResponse(CamelModel):
    """Polling response: the caller's most recent import jobs."""

    jobs: list[ImportJobStatus]


class CreateImportRequest(BaseModel):
    """Request body for POST /imports."""

    source_kind: Literal["transcript", "chatgpt_export"]
    raw_text: str | None = None
    export_data: Any = None
    selected_conversation_ids: list[str] | None = None
    title: str | None = Field(default=None, max_length=500)
    project_id: str | None = None


class CreateImportResponse(BaseModel):
    """Response body for POST /imports."""

    job_id: str
    status: str
    step: str


class RetryJobResponse(BaseModel):
    """Response body for POST /imports/jobs/{id}/retry."""

    job_id: str
    status: str
    step: str


class ProcessQueueResult(BaseModel):
    """Summary of one processor batch."""

    processed: int = 0
    job_ids: list[str] = Field(default_factory=list)
    succeeded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
