"""
Message chunk and embedding CRUD operations.

Dependencies: sqlalchemy, convoflow.boundary.db.models
System role: Chunk persistence for the chunk and embed steps
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.boundary.db.CRUD.base_crud import BaseCRUD
from convoflow.boundary.db.models.chunk_model import ChunkEmbeddingModel, MessageChunkModel


class MessageChunkCRUD(BaseCRUD[MessageChunkModel]):
    """CRUD operations for MessageChunkModel."""

    def __init__(self) -> None:
        super().__init__(MessageChunkModel)

    async def list_unembedded(
        self,
        session: AsyncSession,
        conversation_ids: Sequence[UUID],
        limit: int | None = None,
    ) -> Sequence[MessageChunkModel]:
        """
        Chunks in the given conversations without a stored embedding.

        Args:
            session: Async database session
            conversation_ids: Conversations to scan
            limit: Maximum number of chunks to return

        Returns:
            Chunks in creation order
        """
        if not conversation_ids:
            return []
        embedded = select(ChunkEmbeddingModel.chunk_id)
        stmt = (
            select(MessageChunkModel)
            .where(
                MessageChunkModel.conversation_id.in_(conversation_ids),
                MessageChunkModel.id.not_in(embedded),
            )
            .order_by(
                MessageChunkModel.conversation_id,
                MessageChunkModel.message_id,
                MessageChunkModel.chunk_index,
            )
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def count_for_conversations(
        self,
        session: AsyncSession,
        conversation_ids: Sequence[UUID],
    ) -> int:
        if not conversation_ids:
            return 0
        return await self.count(session, MessageChunkModel.conversation_id.in_(conversation_ids))

    async def count_unembedded(
        self,
        session: AsyncSession,
        conversation_ids: Sequence[UUID],
    ) -> int:
        if not conversation_ids:
            return 0
        embedded = select(ChunkEmbeddingModel.chunk_id)
        return await self.count(
            session,
            MessageChunkModel.conversation_id.in_(conversation_ids),
            MessageChunkModel.id.not_in(embedded),
        )


class ChunkEmbeddingCRUD(BaseCRUD[ChunkEmbeddingModel]):
    """CRUD operations for ChunkEmbeddingModel."""

    def __init__(self) -> None:
        super().__init__(ChunkEmbeddingModel)


chunk_crud = MessageChunkCRUD()
embedding_crud = ChunkEmbeddingCRUD()
