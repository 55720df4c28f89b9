"""
Import processing step handler.

State machine for import_processing jobs:

    queued -> parse -> insert_conversations -> insert_messages
           -> chunk_messages -> embed_chunks (repeats) -> finalize

Each invocation runs exactly one step and reports the next one. Every
step is idempotent against rows a previous, interrupted attempt left
behind, so a retried job resumes at its failed step without duplicates.

Dependencies: sqlalchemy, convoflow.boundary.db, convoflow.boundary.ai
System role: Handler for import_processing jobs
"""

import asyncio
import logging
from typing import Awaitable, Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from convoflow.boundary.ai.embedding_client import EmbeddingClient
from convoflow.boundary.ai.tagging_client import TaggingClient
from convoflow.boundary.db.base import ensure_utc
from convoflow.boundary.db.CRUD.chunk_crud import chunk_crud, embedding_crud
from convoflow.boundary.db.CRUD.conversation_crud import conversation_crud, message_crud
from convoflow.boundary.db.CRUD.job_crud import job_crud
from convoflow.boundary.db.CRUD.tag_crud import tag_crud
from convoflow.boundary.db.models.job_model import ImportStep, JobModel
from convoflow.configs.pipeline import PipelineSettings
from convoflow.core.chunking.chunker import TextChunker
from convoflow.core.exceptions import EmbeddingError, StepProcessingError
from convoflow.core.queue.handlers import JobLease, StepOutcome
from convoflow.core.structure.dispatcher import StructureDispatcher
from convoflow.core.transcript.chatgpt_export import parse_chatgpt_export
from convoflow.core.transcript.markers import generate_auto_title, parse_transcript
from convoflow.core.transcript.normalizer import normalize_transcript, strip_code_fence
from convoflow.models.job import ImportCounts, ImportPayload, ImportProgress
from convoflow.models.transcript import ExportMessage, ParsedConversation

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

STEP_PERCENT = {
    ImportStep.PARSE: 10,
    ImportStep.INSERT_CONVERSATIONS: 30,
    ImportStep.INSERT_MESSAGES: 50,
    ImportStep.CHUNK_MESSAGES: 70,
    ImportStep.FINALIZE: 100,
}
EMBED_PARTIAL_PERCENT = 85
EMBED_DONE_PERCENT = 90


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, EmbeddingError) and exc.retryable


class ImportJobHandler:
    """
    Runs one import step per call.

    Usage:
        handler = ImportJobHandler(embedding_client, tagging_client, dispatcher)
        outcome = await handler.run_step(session, job)
    """

    def __init__(
        self,
        embedding_client: EmbeddingClient,
        tagging_client: TaggingClient,
        dispatcher: StructureDispatcher,
        settings: PipelineSettings | None = None,
        chunker: TextChunker | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """
        Initialize handler.

        Args:
            embedding_client: Vector provider for embed_chunks
            tagging_client: Best-effort tag extraction for finalize
            dispatcher: Recompute dispatcher called after finalize
            settings: Pipeline settings (defaults from environment)
            chunker: Text chunker (defaults to settings sizes)
            sleep: Backoff sleep (tests pass a no-op)
        """
        self._embedding_client = embedding_client
        self._tagging_client = tagging_client
        self._dispatcher = dispatcher
        self._settings = settings or PipelineSettings()
        self._chunker = chunker or TextChunker(
            chunk_size=self._settings.chunk_size,
            overlap=self._settings.chunk_overlap,
        )
        self._sleep = sleep

    async def run_step(
        self,
        session: AsyncSession,
        job: JobModel,
        lease: JobLease | None = None,
    ) -> StepOutcome:
        try:
            step = ImportStep(job.step)
        except ValueError:
            raise StepProcessingError(f"Unknown step: {job.step}", step=job.step, job_id=job.id)

        payload = ImportPayload.model_validate(job.payload or {})
        logger.info(
            f"{__name__}:run_step - Running step",
            extra={"job_id": str(job.id), "step": step.value, "source_kind": payload.source_kind},
        )

        if step in (ImportStep.QUEUED, ImportStep.PARSE):
            return await self._parse(session, job, payload)
        if step == ImportStep.INSERT_CONVERSATIONS:
            return await self._insert_conversations(session, job, payload)
        if step == ImportStep.INSERT_MESSAGES:
            return await self._insert_messages(session, job, payload)
        if step == ImportStep.CHUNK_MESSAGES:
            return await self._chunk_messages(session, job, payload)
        if step == ImportStep.EMBED_CHUNKS:
            return await self._embed_chunks(session, job, payload, lease)
        return await self._finalize(session, job, payload)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _parse(
        self,
        session: AsyncSession,
        job: JobModel,
        payload: ImportPayload,
    ) -> StepOutcome:
        if payload.source_kind == "transcript":
            conversations = self._parse_transcript(job, payload)
        else:
            conversations = parse_chatgpt_export(payload.export_data)
            if payload.selected_conversation_ids is not None:
                selected = set(payload.selected_conversation_ids)
                conversations = [c for c in conversations if c.id in selected]

        if not conversations:
            raise StepProcessingError(
                "No conversations found to import",
                step=ImportStep.PARSE.value,
                job_id=job.id,
            )

        payload.parsed_conversations = conversations
        await job_crud.update_payload(session, job.id, payload.model_dump(mode="json"))

        counts = ImportCounts(conversations=len(conversations))
        return StepOutcome(
            next_step=ImportStep.INSERT_CONVERSATIONS.value,
            progress=ImportProgress(percent=STEP_PERCENT[ImportStep.PARSE], counts=counts),
        )

    def _parse_transcript(self, job: JobModel, payload: ImportPayload) -> list[ParsedConversation]:
        raw = payload.raw_text or ""
        normalized = normalize_transcript(raw)
        if not normalized.messages:
            return []

        title = (payload.title or "").strip()
        if not title:
            stripped = strip_code_fence(raw)
            title = generate_auto_title(stripped, parse_transcript(stripped))

        started_at = ensure_utc(job.created_at)
        return [
            ParsedConversation(
                id=f"transcript-{job.id}",
                title=title,
                messages=[
                    ExportMessage(role=m.role, content=m.content)
                    for m in normalized.messages
                ],
                started_at=started_at,
                ended_at=started_at,
            )
        ]

    async def _insert_conversations(
        self,
        session: AsyncSession,
        job: JobModel,
        payload: ImportPayload,
    ) -> StepOutcome:
        conversations = self._require_parsed(job, payload, ImportStep.INSERT_CONVERSATIONS)
        source = payload.source_kind

        for parsed in conversations:
            existing = await conversation_crud.get_by_source(session, job.user_id, job.id, parsed.id)
            if existing is None:
                existing = await conversation_crud.create(
                    session,
                    user_id=job.user_id,
                    job_id=job.id,
                    source=source,
                    source_conversation_id=parsed.id,
                    title=parsed.title,
                    project_id=payload.project_id,
                    started_at=parsed.started_at,
                    ended_at=parsed.ended_at,
                    is_inactive=True,
                )
            payload.conversation_map[parsed.id] = str(existing.id)

        await job_crud.update_payload(session, job.id, payload.model_dump(mode="json"))
        counts = ImportCounts(conversations=len(payload.conversation_map))
        return StepOutcome(
            next_step=ImportStep.INSERT_MESSAGES.value,
            progress=ImportProgress(
                percent=STEP_PERCENT[ImportStep.INSERT_CONVERSATIONS],
                counts=counts,
            ),
        )

    async def _insert_messages(
        self,
        session: AsyncSession,
        job: JobModel,
        payload: ImportPayload,
    ) -> StepOutcome:
        conversations = self._require_parsed(job, payload, ImportStep.INSERT_MESSAGES)

        for parsed in conversations:
            conversation_id = self._mapped_id(job, payload, parsed.id, ImportStep.INSERT_MESSAGES)
            stored = await message_crud.count_for_conversation(session, conversation_id)
            if stored == len(parsed.messages):
                continue
            if stored:
                logger.info(
                    f"{__name__}:_insert_messages - Replacing partial insert",
                    extra={"conversation_id": str(conversation_id), "stored": stored},
                )
                await message_crud.delete_for_conversation(session, conversation_id)

            await message_crud.create_many(
                session,
                (
                    {
                        "conversation_id": conversation_id,
                        "user_id": job.user_id,
                        "role": message.role,
                        "content": message.content,
                        "index_in_conversation": index,
                        "source_message_id": message.source_message_id,
                    }
                    for index, message in enumerate(parsed.messages)
                ),
            )

        counts = await self._counts(session, payload)
        return StepOutcome(
            next_step=ImportStep.CHUNK_MESSAGES.value,
            progress=ImportProgress(percent=STEP_PERCENT[ImportStep.INSERT_MESSAGES], counts=counts),
        )

    async def _chunk_messages(
        self,
        session: AsyncSession,
        job: JobModel,
        payload: ImportPayload,
    ) -> StepOutcome:
        conversation_ids = self._conversation_ids(payload)
        messages = await message_crud.list_without_chunks(session, conversation_ids)

        rows = []
        for message in messages:
            for chunk in self._chunker.chunk(message.content):
                rows.append(
                    {
                        "user_id": job.user_id,
                        "conversation_id": message.conversation_id,
                        "message_id": message.id,
                        "content": chunk.content,
                        "chunk_index": chunk.chunk_index,
                    }
                )
        await chunk_crud.create_many(session, rows)

        counts = await self._counts(session, payload)
        logger.info(
            f"{__name__}:_chunk_messages - Chunks created",
            extra={"job_id": str(job.id), "messages": len(messages), "chunks": len(rows)},
        )
        return StepOutcome(
            next_step=ImportStep.EMBED_CHUNKS.value,
            progress=ImportProgress(percent=STEP_PERCENT[ImportStep.CHUNK_MESSAGES], counts=counts),
        )

    async def _embed_chunks(
        self,
        session: AsyncSession,
        job: JobModel,
        payload: ImportPayload,
        lease: JobLease | None = None,
    ) -> StepOutcome:
        conversation_ids = self._conversation_ids(payload)
        budget = self._settings.max_chunks_per_run
        batch_size = self._settings.embedding_batch_size
        model_name = getattr(self._embedding_client, "model_name", "unknown")

        embedded_this_run = 0
        while embedded_this_run < budget:
            batch = await chunk_crud.list_unembedded(
                session,
                conversation_ids,
                limit=min(batch_size, budget - embedded_this_run),
            )
            if not batch:
                break

            vectors = await self._embed_with_backoff([chunk.content for chunk in batch], job.id)
            await embedding_crud.create_many(
                session,
                (
                    {"chunk_id": chunk.id, "embedding": vector, "model": model_name}
                    for chunk, vector in zip(batch, vectors)
                ),
            )
            if lease is not None:
                await lease.renew(session)
            # Completed batches survive a later failure in this step.
            await session.commit()
            embedded_this_run += len(batch)

        remaining = await chunk_crud.count_unembedded(session, conversation_ids)
        counts = await self._counts(session, payload)
        logger.info(
            f"{__name__}:_embed_chunks - Embedding pass finished",
            extra={"job_id": str(job.id), "embedded": embedded_this_run, "remaining": remaining},
        )

        if remaining:
            return StepOutcome(
                next_step=ImportStep.EMBED_CHUNKS.value,
                progress=ImportProgress(percent=EMBED_PARTIAL_PERCENT, counts=counts),
            )
        return StepOutcome(
            next_step=ImportStep.FINALIZE.value,
            progress=ImportProgress(percent=EMBED_DONE_PERCENT, counts=counts),
        )

    async def _embed_with_backoff(self, texts: list[str], job_id: UUID) -> list[list[float]]:
        """
        Embed one batch, retrying rate-limit errors with exponential backoff.

        Raises:
            EmbeddingError: Non-retryable failure, or retries exhausted
        """
        attempts = self._settings.max_retries_per_batch
        retrying = AsyncRetrying(
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=self._settings.retry_base_delay_seconds),
            sleep=self._sleep,
            before_sleep=lambda state: logger.warning(
                f"{__name__}:_embed_with_backoff - Rate limited, retry {state.attempt_number}/{attempts}",
                extra={"job_id": str(job_id), "batch_size": len(texts)},
            ),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._embedding_client.embed_texts(texts)

    async def _finalize(
        self,
        session: AsyncSession,
        job: JobModel,
        payload: ImportPayload,
    ) -> StepOutcome:
        conversation_ids = self._conversation_ids(payload)

        for conversation in await conversation_crud.get_many(session, conversation_ids):
            if await tag_crud.has_tags(session, conversation.id):
                continue
            messages = await message_crud.list_for_conversation(session, conversation.id)
            result = await self._tagging_client.extract_tags(
                conversation.title,
                [(m.role, m.content) for m in messages],
            )
            for extracted in result.tags:
                tag = await tag_crud.get_or_create(
                    session, job.user_id, extracted.name, extracted.category
                )
                await tag_crud.attach(session, conversation.id, tag.id, extracted.confidence)

        await conversation_crud.activate(session, conversation_ids)
        counts = await self._counts(session, payload)
        await session.commit()

        enqueued = await self._dispatcher.dispatch_best_effort(job.user_id, reason="ingestion")
        logger.info(
            f"{__name__}:_finalize - Import finalized",
            extra={
                "job_id": str(job.id),
                "conversations": len(conversation_ids),
                "structure_job_enqueued": enqueued,
            },
        )
        return StepOutcome(
            next_step=None,
            progress=ImportProgress(percent=STEP_PERCENT[ImportStep.FINALIZE], counts=counts),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_parsed(
        job: JobModel,
        payload: ImportPayload,
        step: ImportStep,
    ) -> list[ParsedConversation]:
        if not payload.parsed_conversations:
            raise StepProcessingError(
                "Parsed conversations missing from payload; retry from start",
                step=step.value,
                job_id=job.id,
            )
        return payload.parsed_conversations

    @staticmethod
    def _mapped_id(job: JobModel, payload: ImportPayload, source_id: str, step: ImportStep) -> UUID:
        try:
            return UUID(payload.conversation_map[source_id])
        except KeyError:
            raise StepProcessingError(
                f"Conversation {source_id} was not inserted",
                step=step.value,
                job_id=job.id,
            )

    @staticmethod
    def _conversation_ids(payload: ImportPayload) -> list[UUID]:
        return [UUID(value) for value in payload.conversation_map.values()]

    async def _counts(self, session: AsyncSession, payload: ImportPayload) -> ImportCounts:
        conversation_ids = self._conversation_ids(payload)
        chunks = await chunk_crud.count_for_conversations(session, conversation_ids)
        unembedded = await chunk_crud.count_unembedded(session, conversation_ids)
        return ImportCounts(
            conversations=len(conversation_ids),
            messages=await message_crud.count_for_conversations(session, conversation_ids),
            chunks=chunks,
            embedded=chunks - unembedded,
        )
