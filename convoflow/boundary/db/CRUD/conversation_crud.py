"""
Conversation and message CRUD operations.

Dependencies: sqlalchemy, convoflow.boundary.db.models
System role: Conversation persistence for import and capture flows
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.boundary.db.base import utcnow
from convoflow.boundary.db.CRUD.base_crud import BaseCRUD
from convoflow.boundary.db.models.chunk_model import ChunkEmbeddingModel, MessageChunkModel
from convoflow.boundary.db.models.conversation_model import ConversationModel, MessageModel


class ConversationCRUD(BaseCRUD[ConversationModel]):
    """CRUD operations for ConversationModel."""

    def __init__(self) -> None:
        super().__init__(ConversationModel)

    async def get_by_source(
        self,
        session: AsyncSession,
        user_id: str,
        job_id: UUID,
        source_conversation_id: str,
    ) -> ConversationModel | None:
        """
        Find the conversation an import job already created for a source id.

        Args:
            session: Async database session
            user_id: Owning user
            job_id: Import job UUID
            source_conversation_id: Conversation id in the source export

        Returns:
            ConversationModel if the job already inserted it, None otherwise
        """
        stmt = select(ConversationModel).where(
            ConversationModel.user_id == user_id,
            ConversationModel.job_id == job_id,
            ConversationModel.source_conversation_id == source_conversation_id,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_user(
        self,
        session: AsyncSession,
        id: UUID,
        user_id: str,
    ) -> ConversationModel | None:
        """Retrieve a conversation only if it belongs to the user."""
        stmt = select(ConversationModel).where(
            ConversationModel.id == id,
            ConversationModel.user_id == user_id,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_many(
        self,
        session: AsyncSession,
        ids: Sequence[UUID],
    ) -> Sequence[ConversationModel]:
        """Retrieve conversations by id (order not guaranteed)."""
        if not ids:
            return []
        stmt = select(ConversationModel).where(ConversationModel.id.in_(ids))
        result = await session.execute(stmt)
        return result.scalars().all()

    async def activate(self, session: AsyncSession, ids: Sequence[UUID]) -> int:
        """
        Mark conversations visible once their import has finished.

        Returns:
            Number of rows updated
        """
        if not ids:
            return 0
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id.in_(ids))
            .values(is_inactive=False, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount

    async def set_thinking_window(
        self,
        session: AsyncSession,
        id: UUID,
        started_at: datetime,
        ended_at: datetime,
    ) -> ConversationModel | None:
        """Persist a resolved thinking window on a conversation."""
        return await self.update_by_id(session, id, started_at=started_at, ended_at=ended_at)


class MessageCRUD(BaseCRUD[MessageModel]):
    """CRUD operations for MessageModel."""

    def __init__(self) -> None:
        super().__init__(MessageModel)

    async def count_for_conversation(self, session: AsyncSession, conversation_id: UUID) -> int:
        """Number of messages stored for a conversation."""
        return await self.count(session, MessageModel.conversation_id == conversation_id)

    async def list_for_conversation(
        self,
        session: AsyncSession,
        conversation_id: UUID,
    ) -> Sequence[MessageModel]:
        """Messages of a conversation in index order."""
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.index_in_conversation.asc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def list_without_chunks(
        self,
        session: AsyncSession,
        conversation_ids: Sequence[UUID],
    ) -> Sequence[MessageModel]:
        """
        Messages in the given conversations that have no chunks yet.

        Args:
            session: Async database session
            conversation_ids: Conversations to scan

        Returns:
            Unchunked messages ordered by conversation and index
        """
        if not conversation_ids:
            return []
        chunked = select(MessageChunkModel.message_id).distinct()
        stmt = (
            select(MessageModel)
            .where(
                MessageModel.conversation_id.in_(conversation_ids),
                MessageModel.id.not_in(chunked),
            )
            .order_by(MessageModel.conversation_id, MessageModel.index_in_conversation)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def count_for_conversations(
        self,
        session: AsyncSession,
        conversation_ids: Sequence[UUID],
    ) -> int:
        if not conversation_ids:
            return 0
        return await self.count(session, MessageModel.conversation_id.in_(conversation_ids))

    async def delete_for_conversation(self, session: AsyncSession, conversation_id: UUID) -> int:
        """
        Remove a conversation's messages together with their chunks and embeddings.

        Deletes are explicit so partial inserts are cleaned up on backends
        that do not enforce ON DELETE CASCADE.

        Returns:
            Number of messages deleted
        """
        chunk_ids = select(MessageChunkModel.id).where(
            MessageChunkModel.conversation_id == conversation_id
        )
        await session.execute(
            delete(ChunkEmbeddingModel).where(ChunkEmbeddingModel.chunk_id.in_(chunk_ids))
        )
        await session.execute(
            delete(MessageChunkModel).where(MessageChunkModel.conversation_id == conversation_id)
        )
        result = await session.execute(
            delete(MessageModel).where(MessageModel.conversation_id == conversation_id)
        )
        return result.rowcount


conversation_crud = ConversationCRUD()
message_crud = MessageCRUD()
