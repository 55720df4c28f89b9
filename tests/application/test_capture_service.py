"""
Test suite for CaptureService and ThinkingTimeService.

Tests capture persistence, diagnostics recording and thinking-time
resolution against an in-memory database with a mocked dispatcher.

System role: Verification of the mutation entry points
"""

import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.application.services import CaptureService, ThinkingTimeService
from convoflow.boundary.db.base import ensure_utc
from convoflow.boundary.db.CRUD.structure_crud import diagnostics_crud
from convoflow.boundary.db.models import ConversationModel, MessageModel, ReductionDiagnosticsModel
from convoflow.core.exceptions import ConversationNotFoundError, ValidationError
from convoflow.models.capture import CaptureRequest

NOW = datetime(2024, 3, 15, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def capture_service(test_async_db: AsyncSession, mock_dispatcher) -> CaptureService:
    return CaptureService(db=test_async_db, dispatcher=mock_dispatcher, timezone="UTC")


@pytest.fixture
def thinking_time_service(test_async_db: AsyncSession, mock_dispatcher) -> ThinkingTimeService:
    return ThinkingTimeService(db=test_async_db, dispatcher=mock_dispatcher, timezone="UTC")


class TestCreateCapture:
    """Test suite for CaptureService.create_capture()."""

    @pytest.mark.asyncio
    async def test_capture_should_store_conversation_in_thinking_window(
        self, capture_service, test_async_db, user_id
    ) -> None:
        # Arrange
        request = CaptureRequest(
            content="User: ship it?\nAssistant: after the load test",
            thinking_choice="yesterday",
            title="Release call",
            project_id="proj-1",
        )

        # Act
        response = await capture_service.create_capture(user_id, request, now=NOW)

        # Assert
        conversation = await test_async_db.get(ConversationModel, uuid.UUID(response.capture_id))
        assert conversation.source == "capture"
        assert conversation.title == "Release call"
        assert conversation.project_id == "proj-1"
        assert ensure_utc(conversation.started_at) == datetime(2024, 3, 14, tzinfo=timezone.utc)
        assert conversation.is_inactive is False
        assert response.conversation_id == response.capture_id

    @pytest.mark.asyncio
    async def test_durable_capture_should_keep_raw_message(
        self, capture_service, test_async_db, user_id
    ) -> None:
        # Arrange
        request = CaptureRequest(content="remember the vacuum settings")

        # Act
        response = await capture_service.create_capture(user_id, request, now=NOW)

        # Assert
        messages = (await test_async_db.execute(select(MessageModel))).scalars().all()
        assert [m.content for m in messages] == ["remember the vacuum settings"]
        assert response.diagnostics.meta["source_kept"] is True
        assert response.diagnostics.input.detected_format == "plain"

    @pytest.mark.asyncio
    async def test_discard_mode_should_not_store_raw_message(
        self, capture_service, test_async_db, user_id
    ) -> None:
        # Arrange
        request = CaptureRequest(content="sensitive notes", source_mode="discard_after_reduce")

        # Act
        response = await capture_service.create_capture(user_id, request, now=NOW)

        # Assert
        messages = (await test_async_db.execute(select(MessageModel))).scalars().all()
        assert messages == []
        assert response.diagnostics.mode == "discard_after_reduce"
        assert response.diagnostics.meta["source_kept"] is False

    @pytest.mark.asyncio
    async def test_capture_should_persist_diagnostics_once(
        self, capture_service, test_async_db, user_id
    ) -> None:
        # Arrange
        request = CaptureRequest(content="User: a\nAssistant: b", source_type="slack")

        # Act
        response = await capture_service.create_capture(user_id, request, now=NOW)

        # Assert
        rows = (await test_async_db.execute(select(ReductionDiagnosticsModel))).scalars().all()
        assert len(rows) == 1
        stored = await diagnostics_crud.get_by_capture_id(
            test_async_db, uuid.UUID(response.capture_id)
        )
        assert stored.id == rows[0].id
        assert stored.payload["input"]["detected_format"] == "chat_roles"
        assert stored.payload["meta"]["source_type"] == "slack"

    @pytest.mark.asyncio
    async def test_capture_should_dispatch_recompute(
        self, capture_service, mock_dispatcher, user_id
    ) -> None:
        # Act
        response = await capture_service.create_capture(
            user_id, CaptureRequest(content="note"), now=NOW
        )

        # Assert
        mock_dispatcher.dispatch_best_effort.assert_awaited_once_with(user_id, reason="ingestion")
        assert response.structure_job_enqueued is True

    @pytest.mark.asyncio
    async def test_dispatch_failure_should_not_fail_capture(
        self, capture_service, mock_dispatcher, test_async_db, user_id
    ) -> None:
        # Arrange
        mock_dispatcher.dispatch_best_effort.return_value = False

        # Act
        response = await capture_service.create_capture(
            user_id, CaptureRequest(content="note"), now=NOW
        )

        # Assert
        assert response.structure_job_enqueued is False
        assert await test_async_db.get(ConversationModel, uuid.UUID(response.capture_id))

    @pytest.mark.asyncio
    async def test_empty_content_should_raise_without_side_effects(
        self, capture_service, mock_dispatcher, test_async_db, user_id
    ) -> None:
        # Act / Assert
        with pytest.raises(ValidationError):
            await capture_service.create_capture(user_id, CaptureRequest(content="   "), now=NOW)
        assert (await test_async_db.execute(select(ConversationModel))).first() is None
        mock_dispatcher.dispatch_best_effort.assert_not_awaited()


class TestResolveThinkingTime:
    """Test suite for ThinkingTimeService.resolve()."""

    @pytest.fixture
    async def conversation(self, test_async_db: AsyncSession, user_id) -> ConversationModel:
        conversation = ConversationModel(user_id=user_id, source="transcript", title="Old chat")
        test_async_db.add(conversation)
        await test_async_db.commit()
        return conversation

    @pytest.mark.asyncio
    async def test_resolve_should_store_window_and_dispatch(
        self, thinking_time_service, conversation, test_async_db, mock_dispatcher, user_id
    ) -> None:
        # Act
        response = await thinking_time_service.resolve(
            user_id, str(conversation.id), "today", now=NOW
        )

        # Assert
        await test_async_db.refresh(conversation)
        assert ensure_utc(conversation.started_at) == datetime(2024, 3, 15, tzinfo=timezone.utc)
        assert response.thinking_started_at == datetime(2024, 3, 15, tzinfo=timezone.utc)
        assert response.structure_job_enqueued is True
        mock_dispatcher.dispatch_best_effort.assert_awaited_once_with(user_id, reason="ingestion")

    @pytest.mark.asyncio
    async def test_resolve_for_other_user_should_raise_not_found(
        self, thinking_time_service, conversation, mock_dispatcher
    ) -> None:
        # Act / Assert
        with pytest.raises(ConversationNotFoundError):
            await thinking_time_service.resolve("intruder", str(conversation.id), "today", now=NOW)
        mock_dispatcher.dispatch_best_effort.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resolve_with_malformed_id_should_raise_validation_error(
        self, thinking_time_service, user_id
    ) -> None:
        with pytest.raises(ValidationError):
            await thinking_time_service.resolve(user_id, "not-a-uuid", "today", now=NOW)

    @pytest.mark.asyncio
    async def test_resolve_with_unknown_choice_should_raise_validation_error(
        self, thinking_time_service, conversation, user_id
    ) -> None:
        with pytest.raises(ValidationError):
            await thinking_time_service.resolve(user_id, str(conversation.id), "someday", now=NOW)
