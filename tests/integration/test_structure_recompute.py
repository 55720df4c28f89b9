"""
Test suite for structure recompute dispatch and processing.

Tests the debounced dispatcher and the recompute handler's
snapshot-on-change behaviour against an in-memory database.

System role: Verification of derived structure maintenance
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from convoflow.boundary.db.CRUD.job_crud import job_crud
from convoflow.boundary.db.models import (
    ConversationModel,
    DecisionModel,
    JobModel,
    JobStatus,
    JobType,
    StructureSnapshotModel,
    TaskModel,
)
from convoflow.core.exceptions import DispatchError
from convoflow.core.queue import QueueProcessor
from convoflow.core.structure import RecomputeJobHandler, StructureDispatcher, debounce_key
from convoflow.models.job import RecomputePayload


async def _recompute_jobs(session_factory, user_id=None) -> list[JobModel]:
    async with session_factory() as session:
        stmt = select(JobModel).where(JobModel.type == JobType.STRUCTURE_RECOMPUTE)
        if user_id is not None:
            stmt = stmt.where(JobModel.user_id == user_id)
        return list((await session.execute(stmt)).scalars().all())


async def _snapshot_count(session_factory) -> int:
    async with session_factory() as session:
        stmt = select(func.count()).select_from(StructureSnapshotModel)
        return int((await session.execute(stmt)).scalar_one())


async def _seed_conversation(session_factory, user_id, project_id="proj-1", day=1):
    async with session_factory() as session:
        conversation = ConversationModel(
            user_id=user_id,
            source="capture",
            title="Planning",
            started_at=datetime(2024, 3, day, 10, tzinfo=timezone.utc),
            ended_at=datetime(2024, 3, day, 12, tzinfo=timezone.utc),
        )
        session.add(conversation)
        await session.flush()
        session.add_all(
            [
                DecisionModel(
                    user_id=user_id,
                    conversation_id=conversation.id,
                    project_id=project_id,
                    content="Use partitions",
                ),
                TaskModel(
                    user_id=user_id,
                    conversation_id=conversation.id,
                    project_id=project_id,
                    description="Write migration",
                ),
                TaskModel(
                    user_id=user_id,
                    conversation_id=conversation.id,
                    project_id=project_id,
                    description="Already shipped",
                    status="done",
                ),
            ]
        )
        await session.commit()
        return conversation.id


@pytest.fixture
def dispatcher(session_factory) -> StructureDispatcher:
    return StructureDispatcher(session_factory)


@pytest.fixture
def processor(session_factory, pipeline_settings) -> QueueProcessor:
    return QueueProcessor(
        session_factory,
        {JobType.STRUCTURE_RECOMPUTE: RecomputeJobHandler()},
        settings=pipeline_settings,
    )


class TestStructureDispatcher:
    """Test suite for StructureDispatcher.dispatch()."""

    @pytest.mark.asyncio
    async def test_rapid_dispatches_should_collapse_into_one_job(
        self, dispatcher, session_factory, user_id
    ) -> None:
        # Act
        await dispatcher.dispatch(user_id, reason="ingestion")
        await dispatcher.dispatch(user_id, reason="decision_change")
        await dispatcher.dispatch(user_id, reason="ingestion")

        # Assert
        jobs = await _recompute_jobs(session_factory)
        assert len(jobs) == 1
        payload = RecomputePayload.model_validate(jobs[0].payload)
        assert payload.reasons == ["ingestion", "decision_change"]
        assert payload.last_reason == "ingestion"
        assert jobs[0].scope == "user"
        assert jobs[0].debounce_key == debounce_key(user_id, "user")

    @pytest.mark.asyncio
    async def test_dispatch_after_claim_should_create_new_job(
        self, dispatcher, session_factory, user_id
    ) -> None:
        # Arrange
        await dispatcher.dispatch(user_id, reason="ingestion")
        first = (await _recompute_jobs(session_factory))[0]
        async with session_factory() as session:
            await job_crud.claim(session, first.id)
            await session.commit()

        # Act
        await dispatcher.dispatch(user_id, reason="manual")

        # Assert
        jobs = await _recompute_jobs(session_factory)
        assert len(jobs) == 2

    @pytest.mark.asyncio
    async def test_racing_dispatch_should_merge_into_winning_job(
        self, dispatcher, session_factory, user_id, monkeypatch
    ) -> None:
        # Arrange
        await dispatcher.dispatch(user_id, reason="ingestion")
        real_find = job_crud.find_pending_recompute
        lookups = []

        async def read_before_winner_committed(session, *args):
            lookups.append(args)
            if len(lookups) == 1:
                return None
            return await real_find(session, *args)

        monkeypatch.setattr(job_crud, "find_pending_recompute", read_before_winner_committed)

        # Act
        await dispatcher.dispatch(user_id, reason="decision_change")

        # Assert
        jobs = await _recompute_jobs(session_factory)
        assert len(jobs) == 1
        payload = RecomputePayload.model_validate(jobs[0].payload)
        assert payload.reasons == ["ingestion", "decision_change"]
        assert jobs[0].coalesce_key == debounce_key(user_id, "user")
        assert len(lookups) == 2

    @pytest.mark.asyncio
    async def test_dispatch_should_keep_users_and_scopes_apart(
        self, dispatcher, session_factory
    ) -> None:
        # Act
        await dispatcher.dispatch("alice")
        await dispatcher.dispatch("bob")
        await dispatcher.dispatch("alice", scope="project")

        # Assert
        jobs = await _recompute_jobs(session_factory)
        assert sorted((job.user_id, job.scope) for job in jobs) == [
            ("alice", "project"),
            ("alice", "user"),
            ("bob", "user"),
        ]

    @pytest.mark.asyncio
    async def test_dispatch_on_broken_database_should_raise_dispatch_error(self, user_id) -> None:
        # Arrange
        engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
        dispatcher = StructureDispatcher(async_sessionmaker(engine, expire_on_commit=False))

        # Act / Assert
        try:
            with pytest.raises(DispatchError):
                await dispatcher.dispatch(user_id)
            assert await dispatcher.dispatch_best_effort(user_id) is False
        finally:
            await engine.dispose()


class TestRecomputeJobHandler:
    """Test suite for recompute processing."""

    @pytest.mark.asyncio
    async def test_first_recompute_should_write_snapshot(
        self, dispatcher, processor, session_factory, user_id
    ) -> None:
        # Arrange
        await _seed_conversation(session_factory, user_id)
        await dispatcher.dispatch(user_id, reason="ingestion")

        # Act
        result = await processor.process_queue()

        # Assert
        assert result.processed == 1
        job = (await _recompute_jobs(session_factory))[0]
        assert job.status == JobStatus.DONE
        progress = job_crud.get_progress(job)
        assert progress.signals == 2
        assert progress.changed is True
        async with session_factory() as session:
            snapshot = (await session.execute(select(StructureSnapshotModel))).scalar_one()
        assert snapshot.state_hash == progress.state_hash
        assert snapshot.job_id == job.id
        assert snapshot.state_payload["open_task_count"] == 1
        assert snapshot.state_payload["thinking_windows"] == {"2024-03-01": 2}
        assert snapshot.state_payload["tension_project_ids"] == []

    @pytest.mark.asyncio
    async def test_unchanged_state_should_not_write_snapshot(
        self, dispatcher, processor, session_factory, user_id
    ) -> None:
        # Arrange
        await _seed_conversation(session_factory, user_id)
        await dispatcher.dispatch(user_id)
        await processor.process_queue()
        await dispatcher.dispatch(user_id)

        # Act
        await processor.process_queue()

        # Assert
        jobs = await _recompute_jobs(session_factory)
        assert len(jobs) == 2
        hashes = {job_crud.get_progress(job).state_hash for job in jobs}
        changed = sorted(job_crud.get_progress(job).changed for job in jobs)
        assert len(hashes) == 1
        assert changed == [False, True]
        assert await _snapshot_count(session_factory) == 1

    @pytest.mark.asyncio
    async def test_new_signal_should_write_new_snapshot(
        self, dispatcher, processor, session_factory, user_id
    ) -> None:
        # Arrange
        await _seed_conversation(session_factory, user_id)
        await dispatcher.dispatch(user_id)
        await processor.process_queue()
        await _seed_conversation(session_factory, user_id, project_id="proj-2", day=2)
        await dispatcher.dispatch(user_id, reason="decision_change")

        # Act
        await processor.process_queue()

        # Assert
        assert await _snapshot_count(session_factory) == 2

    @pytest.mark.asyncio
    async def test_other_users_records_should_be_ignored(
        self, dispatcher, processor, session_factory, user_id
    ) -> None:
        # Arrange
        await _seed_conversation(session_factory, "someone-else")
        await dispatcher.dispatch(user_id)

        # Act
        await processor.process_queue()

        # Assert
        job = (await _recompute_jobs(session_factory, user_id))[0]
        assert job_crud.get_progress(job).signals == 0

    @pytest.mark.asyncio
    async def test_record_without_thinking_time_should_fail_job(
        self, dispatcher, processor, session_factory, user_id
    ) -> None:
        # Arrange
        async with session_factory() as session:
            session.add(DecisionModel(user_id=user_id, conversation_id=None, content="Orphan"))
            await session.commit()
        await dispatcher.dispatch(user_id)

        # Act
        result = await processor.process_queue()

        # Assert
        assert len(result.failed) == 1
        job = (await _recompute_jobs(session_factory))[0]
        assert job.status == JobStatus.ERROR
        assert job.last_error.startswith("Missing thinking time for decision")
        assert await _snapshot_count(session_factory) == 0
