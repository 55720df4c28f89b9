"""
Test suite for the import processing pipeline.

Drives import jobs through the real ImportJobHandler and QueueProcessor
against an in-memory database, with fake embedding and tagging clients.

System role: Verification of resumable, idempotent ingestion
"""

from datetime import timedelta
from uuid import UUID

import pytest
from sqlalchemy import func, select

from conftest import FakeEmbeddingClient, no_sleep, rate_limited
from convoflow.application.services import ImportService
from convoflow.boundary.db.base import ensure_utc, utcnow
from convoflow.boundary.db.CRUD.job_crud import job_crud
from convoflow.boundary.db.models import (
    ChunkEmbeddingModel,
    ConversationModel,
    ConversationTagModel,
    JobModel,
    JobStatus,
    JobType,
    MessageChunkModel,
    MessageModel,
    TagModel,
)
from convoflow.core.exceptions import EmbeddingError, LeaseLostError
from convoflow.core.import_pipeline import ImportJobHandler
from convoflow.core.queue import JobLease, QueueProcessor
from convoflow.core.structure import RecomputeJobHandler, StructureDispatcher
from convoflow.models.job import CreateImportRequest, ImportProgress, RecomputePayload

TRANSCRIPT = (
    "User: How should we shard the events table?\n"
    "Assistant: Start with time-based partitions."
)


def _export() -> list[dict]:
    def conversation(conv_id: str, title: str, base: int) -> dict:
        return {
            "id": conv_id,
            "title": title,
            "current_node": "b",
            "mapping": {
                "a": {
                    "parent": None,
                    "children": ["b"],
                    "message": {
                        "author": {"role": "user"},
                        "content": {"parts": [f"{title} question"]},
                        "create_time": base,
                    },
                },
                "b": {
                    "parent": "a",
                    "children": [],
                    "message": {
                        "author": {"role": "assistant"},
                        "content": {"parts": [f"{title} answer"]},
                        "create_time": base + 60,
                    },
                },
            },
        }

    return [
        conversation("c-1", "Billing", 1_700_000_000),
        conversation("c-2", "Search", 1_700_100_000),
    ]


def _build_processor(session_factory, settings, embedding_client, tagging_client):
    dispatcher = StructureDispatcher(session_factory)
    handlers = {
        JobType.IMPORT_PROCESSING: ImportJobHandler(
            embedding_client=embedding_client,
            tagging_client=tagging_client,
            dispatcher=dispatcher,
            settings=settings,
            sleep=no_sleep,
        ),
        JobType.STRUCTURE_RECOMPUTE: RecomputeJobHandler(),
    }
    return QueueProcessor(session_factory, handlers, settings=settings)


async def _create_import(session_factory, user_id, **request):
    async with session_factory() as session:
        response = await ImportService(session).create_import(
            user_id, CreateImportRequest(**request)
        )
    return response.job_id


async def _load(session_factory, job_id):
    async with session_factory() as session:
        return await job_crud.get_by_id(session, UUID(str(job_id)))


async def _run(processor, session_factory, job_id, max_runs: int = 30) -> JobModel:
    """Process one job until it leaves pending (or the run budget is spent)."""
    job = await _load(session_factory, job_id)
    for _ in range(max_runs):
        if job.status != JobStatus.PENDING:
            break
        await processor.process_job(job.id)
        job = await _load(session_factory, job_id)
    return job


async def _steps(processor, session_factory, job_id, count: int) -> JobModel:
    job = await _load(session_factory, job_id)
    for _ in range(count):
        await processor.process_job(job.id)
    return await _load(session_factory, job_id)


async def _count(session_factory, model, *criteria) -> int:
    async with session_factory() as session:
        stmt = select(func.count()).select_from(model)
        if criteria:
            stmt = stmt.where(*criteria)
        return int((await session.execute(stmt)).scalar_one())


@pytest.fixture
def processor(session_factory, pipeline_settings, fake_embedding_client, fake_tagging_client):
    return _build_processor(
        session_factory, pipeline_settings, fake_embedding_client, fake_tagging_client
    )


class TestTranscriptImport:
    """Test suite for transcript imports end to end."""

    @pytest.mark.asyncio
    async def test_transcript_import_should_complete_all_steps(
        self, processor, session_factory, user_id, fake_tagging_client
    ) -> None:
        # Arrange
        job_id = await _create_import(
            session_factory, user_id, source_kind="transcript", raw_text=TRANSCRIPT
        )

        # Act
        job = await _run(processor, session_factory, job_id)

        # Assert
        assert job.status == JobStatus.DONE
        assert job.step == "finalize"
        progress = job_crud.get_progress(job)
        assert progress.percent == 100
        assert progress.counts.conversations == 1
        assert progress.counts.messages == 2
        assert progress.counts.chunks == 2
        assert progress.counts.embedded == 2

        async with session_factory() as session:
            conversation = (await session.execute(select(ConversationModel))).scalar_one()
            messages = (
                await session.execute(
                    select(MessageModel).order_by(MessageModel.index_in_conversation)
                )
            ).scalars().all()
        assert conversation.title == "How should we shard the events table?"
        assert conversation.source == "transcript"
        assert conversation.is_inactive is False
        assert conversation.started_at is not None
        assert [(m.role, m.index_in_conversation) for m in messages] == [
            ("user", 0),
            ("assistant", 1),
        ]
        assert len(fake_tagging_client.calls) == 1

    @pytest.mark.asyncio
    async def test_finalize_should_tag_conversation_and_dispatch_recompute(
        self, processor, session_factory, user_id
    ) -> None:
        # Arrange
        job_id = await _create_import(
            session_factory, user_id, source_kind="transcript", raw_text=TRANSCRIPT, title="Sharding"
        )

        # Act
        await _run(processor, session_factory, job_id)

        # Assert
        assert await _count(session_factory, ConversationTagModel) == 2
        async with session_factory() as session:
            names = (await session.execute(select(TagModel.name))).scalars().all()
            recompute = (
                await session.execute(
                    select(JobModel).where(JobModel.type == JobType.STRUCTURE_RECOMPUTE)
                )
            ).scalar_one()
            conversation = (await session.execute(select(ConversationModel))).scalar_one()
        assert sorted(names) == ["postgres", "queues"]
        assert conversation.title == "Sharding"
        assert recompute.status == JobStatus.PENDING
        assert recompute.user_id == user_id
        assert RecomputePayload.model_validate(recompute.payload).reasons == ["ingestion"]

    @pytest.mark.asyncio
    async def test_step_progress_should_be_recorded_between_runs(
        self, processor, session_factory, user_id
    ) -> None:
        # Arrange
        job_id = await _create_import(
            session_factory, user_id, source_kind="transcript", raw_text=TRANSCRIPT
        )

        # Act
        after_parse = await _steps(processor, session_factory, job_id, 1)
        after_conversations = await _steps(processor, session_factory, job_id, 1)

        # Assert
        assert after_parse.step == "insert_conversations"
        assert job_crud.get_progress(after_parse).percent == 10
        assert after_conversations.step == "insert_messages"
        assert job_crud.get_progress(after_conversations).percent == 30
        async with session_factory() as session:
            conversation = (await session.execute(select(ConversationModel))).scalar_one()
        assert conversation.is_inactive is True


class TestExportImport:
    """Test suite for ChatGPT export imports."""

    @pytest.mark.asyncio
    async def test_export_import_should_only_persist_selected_conversations(
        self, processor, session_factory, user_id
    ) -> None:
        # Arrange
        job_id = await _create_import(
            session_factory,
            user_id,
            source_kind="chatgpt_export",
            export_data=_export(),
            selected_conversation_ids=["c-2"],
            project_id="proj-9",
        )

        # Act
        job = await _run(processor, session_factory, job_id)

        # Assert
        assert job.status == JobStatus.DONE
        async with session_factory() as session:
            conversations = (await session.execute(select(ConversationModel))).scalars().all()
        assert [c.source_conversation_id for c in conversations] == ["c-2"]
        assert conversations[0].source == "chatgpt_export"
        assert conversations[0].project_id == "proj-9"
        assert conversations[0].title == "Search"

    @pytest.mark.asyncio
    async def test_export_without_usable_conversations_should_fail_at_parse(
        self, processor, session_factory, user_id
    ) -> None:
        # Arrange
        job_id = await _create_import(
            session_factory,
            user_id,
            source_kind="chatgpt_export",
            export_data=[{"id": "empty", "mapping": {}}],
        )

        # Act
        job = await _run(processor, session_factory, job_id)

        # Assert
        assert job.status == JobStatus.ERROR
        assert job.step == "queued"
        assert job.last_error == "No conversations found to import"
        assert await _count(session_factory, ConversationModel) == 0


class TestIdempotentSteps:
    """Test suite for re-running steps over rows left by earlier attempts."""

    @pytest.mark.asyncio
    async def test_rerunning_insert_conversations_should_not_duplicate(
        self, processor, session_factory, user_id
    ) -> None:
        # Arrange
        job_id = await _create_import(
            session_factory, user_id, source_kind="chatgpt_export", export_data=_export()
        )
        job = await _steps(processor, session_factory, job_id, 2)
        async with session_factory() as session:
            await job_crud.record_progress(
                session, job.id, "insert_conversations", ImportProgress(percent=10)
            )
            await session.commit()

        # Act
        job = await _steps(processor, session_factory, job_id, 1)

        # Assert
        assert job.step == "insert_messages"
        assert await _count(session_factory, ConversationModel) == 2

    @pytest.mark.asyncio
    async def test_insert_messages_should_replace_partial_insert(
        self, processor, session_factory, user_id
    ) -> None:
        # Arrange
        job_id = await _create_import(
            session_factory, user_id, source_kind="transcript", raw_text=TRANSCRIPT
        )
        await _steps(processor, session_factory, job_id, 2)
        async with session_factory() as session:
            conversation = (await session.execute(select(ConversationModel))).scalar_one()
            session.add(
                MessageModel(
                    conversation_id=conversation.id,
                    user_id=user_id,
                    role="user",
                    content="half-written",
                    index_in_conversation=0,
                )
            )
            await session.commit()

        # Act
        job = await _steps(processor, session_factory, job_id, 1)

        # Assert
        assert job.step == "chunk_messages"
        async with session_factory() as session:
            contents = (
                await session.execute(
                    select(MessageModel.content).order_by(MessageModel.index_in_conversation)
                )
            ).scalars().all()
        assert contents == [
            "How should we shard the events table?",
            "Start with time-based partitions.",
        ]

    @pytest.mark.asyncio
    async def test_rerunning_chunk_messages_should_not_duplicate_chunks(
        self, processor, session_factory, user_id
    ) -> None:
        # Arrange
        job_id = await _create_import(
            session_factory, user_id, source_kind="transcript", raw_text=TRANSCRIPT
        )
        job = await _steps(processor, session_factory, job_id, 4)
        async with session_factory() as session:
            await job_crud.record_progress(
                session, job.id, "chunk_messages", ImportProgress(percent=50)
            )
            await session.commit()

        # Act
        await _steps(processor, session_factory, job_id, 1)

        # Assert
        assert await _count(session_factory, MessageChunkModel) == 2


class TestEmbedChunks:
    """Test suite for the bounded, resumable embed_chunks step."""

    @pytest.mark.asyncio
    async def test_embedding_should_span_several_passes(
        self, processor, session_factory, user_id, fake_embedding_client
    ) -> None:
        # Arrange
        raw = "User: " + "x" * 1000 + "\nAssistant: ok"
        job_id = await _create_import(session_factory, user_id, source_kind="transcript", raw_text=raw)

        # Act
        first_pass = await _steps(processor, session_factory, job_id, 5)
        second_pass = await _steps(processor, session_factory, job_id, 1)

        # Assert
        assert first_pass.step == "embed_chunks"
        first_progress = job_crud.get_progress(first_pass)
        assert first_progress.percent == 85
        assert first_progress.counts.chunks == 7
        assert first_progress.counts.embedded == 4
        assert second_pass.step == "finalize"
        assert job_crud.get_progress(second_pass).percent == 90
        assert [len(batch) for batch in fake_embedding_client.calls] == [2, 2, 2, 1]
        assert await _count(session_factory, ChunkEmbeddingModel) == 7

    @pytest.mark.asyncio
    async def test_rate_limited_batch_should_be_retried_with_backoff(
        self, session_factory, pipeline_settings, fake_tagging_client, user_id
    ) -> None:
        # Arrange
        embedding_client = FakeEmbeddingClient(failures=[rate_limited(), rate_limited()])
        processor = _build_processor(
            session_factory, pipeline_settings, embedding_client, fake_tagging_client
        )
        job_id = await _create_import(
            session_factory, user_id, source_kind="transcript", raw_text=TRANSCRIPT
        )

        # Act
        job = await _run(processor, session_factory, job_id)

        # Assert
        assert job.status == JobStatus.DONE
        assert len(embedding_client.calls) == 3
        assert await _count(session_factory, ChunkEmbeddingModel) == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_should_fail_job_and_resume_on_retry(
        self, session_factory, pipeline_settings, fake_tagging_client, user_id
    ) -> None:
        # Arrange
        embedding_client = FakeEmbeddingClient(failures=[rate_limited()] * 3)
        processor = _build_processor(
            session_factory, pipeline_settings, embedding_client, fake_tagging_client
        )
        job_id = await _create_import(
            session_factory, user_id, source_kind="transcript", raw_text=TRANSCRIPT
        )
        failed = await _run(processor, session_factory, job_id)

        # Act
        async with session_factory() as session:
            await job_crud.reset_for_retry(session, failed.id)
            await session.commit()
        job = await _run(processor, session_factory, job_id)

        # Assert
        assert failed.status == JobStatus.ERROR
        assert failed.step == "embed_chunks"
        assert failed.last_error == "429 Resource exhausted"
        assert job.status == JobStatus.DONE
        assert await _count(session_factory, MessageChunkModel) == 2
        assert await _count(session_factory, ChunkEmbeddingModel) == 2

    @pytest.mark.asyncio
    async def test_committed_batches_should_survive_a_later_failure(
        self, session_factory, pipeline_settings, fake_tagging_client, user_id
    ) -> None:
        # Arrange
        embedding_client = FakeEmbeddingClient(
            failures=[None, EmbeddingError("invalid input", retryable=False)]
        )
        processor = _build_processor(
            session_factory, pipeline_settings, embedding_client, fake_tagging_client
        )
        job_id = await _create_import(
            session_factory,
            user_id,
            source_kind="transcript",
            raw_text="User: one\nAssistant: two\nUser: three",
        )

        # Act
        failed = await _run(processor, session_factory, job_id)
        embedded_after_failure = await _count(session_factory, ChunkEmbeddingModel)
        async with session_factory() as session:
            await job_crud.reset_for_retry(session, failed.id)
            await session.commit()
        job = await _run(processor, session_factory, job_id)

        # Assert
        assert failed.status == JobStatus.ERROR
        assert failed.last_error == "invalid input"
        assert embedded_after_failure == 2
        assert job.status == JobStatus.DONE
        assert await _count(session_factory, ChunkEmbeddingModel) == 3
        assert len(embedding_client.calls) == 3


class TestEmbedLease:
    """Test suite for lease renewal during embed_chunks."""

    @pytest.fixture
    def handler(
        self, session_factory, pipeline_settings, fake_embedding_client, fake_tagging_client
    ) -> ImportJobHandler:
        return ImportJobHandler(
            embedding_client=fake_embedding_client,
            tagging_client=fake_tagging_client,
            dispatcher=StructureDispatcher(session_factory),
            settings=pipeline_settings,
            sleep=no_sleep,
        )

    @pytest.fixture
    async def job_at_embed(self, processor, session_factory, user_id) -> UUID:
        raw = "User: " + "x" * 1000 + "\nAssistant: ok"
        job_id = await _create_import(session_factory, user_id, source_kind="transcript", raw_text=raw)
        job = await _steps(processor, session_factory, job_id, 4)
        assert job.step == "embed_chunks"
        return job.id

    @pytest.mark.asyncio
    async def test_embed_pass_should_renew_lease_after_each_batch(
        self, handler, job_at_embed, session_factory
    ) -> None:
        # Arrange
        claimed_at = utcnow() - timedelta(seconds=250)
        async with session_factory() as session:
            locked_at = await job_crud.claim(session, job_at_embed, now=claimed_at)
            await session.commit()
            lease = JobLease(job_id=job_at_embed, locked_at=locked_at)
            job = await job_crud.get_by_id(session, job_at_embed)

            # Act
            await handler.run_step(session, job, lease)
            await session.commit()

        # Assert
        assert lease.locked_at > claimed_at
        stored = await _load(session_factory, job_at_embed)
        assert ensure_utc(stored.locked_at) == lease.locked_at
        async with session_factory() as session:
            swept = await job_crud.sweep_stale_locks(
                session, ttl_seconds=300, now=claimed_at + timedelta(seconds=400)
            )
        assert swept == []

    @pytest.mark.asyncio
    async def test_embed_pass_should_stop_when_lease_was_swept(
        self, handler, job_at_embed, session_factory
    ) -> None:
        # Arrange
        async with session_factory() as session:
            locked_at = await job_crud.claim(
                session, job_at_embed, now=utcnow() - timedelta(seconds=900)
            )
            await job_crud.sweep_stale_locks(session, ttl_seconds=300)
            await session.commit()
        lease = JobLease(job_id=job_at_embed, locked_at=locked_at)

        # Act / Assert
        async with session_factory() as session:
            job = await job_crud.get_by_id(session, job_at_embed)
            with pytest.raises(LeaseLostError):
                await handler.run_step(session, job, lease)
            await session.rollback()
        assert await _count(session_factory, ChunkEmbeddingModel) == 0
        stored = await _load(session_factory, job_at_embed)
        assert stored.status == JobStatus.ERROR
