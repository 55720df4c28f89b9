"""
Tag CRUD operations.

Dependencies: sqlalchemy, convoflow.boundary.db.models
System role: Tag persistence for import finalize
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.boundary.db.CRUD.base_crud import BaseCRUD
from convoflow.boundary.db.models.tag_model import ConversationTagModel, TagModel


class TagCRUD(BaseCRUD[TagModel]):
    """CRUD operations for TagModel and conversation associations."""

    def __init__(self) -> None:
        super().__init__(TagModel)

    async def get_or_create(
        self,
        session: AsyncSession,
        user_id: str,
        name: str,
        category: str,
    ) -> TagModel:
        """
        Return the user's tag with this name, creating it if needed.

        Args:
            session: Async database session
            user_id: Owning user
            name: Tag name (normalized to lower case)
            category: Category used when creating

        Returns:
            Existing or newly created TagModel
        """
        normalized = name.strip().lower()
        stmt = select(TagModel).where(TagModel.user_id == user_id, TagModel.name == normalized)
        result = await session.execute(stmt)
        tag = result.scalar_one_or_none()
        if tag is not None:
            return tag
        return await self.create(session, user_id=user_id, name=normalized, category=category)

    async def attach(
        self,
        session: AsyncSession,
        conversation_id: UUID,
        tag_id: UUID,
        confidence: float,
    ) -> bool:
        """
        Link a tag to a conversation.

        Returns:
            True if a new link was created, False if it already existed
        """
        stmt = select(ConversationTagModel.id).where(
            ConversationTagModel.conversation_id == conversation_id,
            ConversationTagModel.tag_id == tag_id,
        )
        result = await session.execute(stmt)
        if result.scalar_one_or_none() is not None:
            return False
        session.add(
            ConversationTagModel(
                conversation_id=conversation_id,
                tag_id=tag_id,
                confidence=confidence,
            )
        )
        await session.flush()
        return True

    async def has_tags(self, session: AsyncSession, conversation_id: UUID) -> bool:
        stmt = (
            select(ConversationTagModel.id)
            .where(ConversationTagModel.conversation_id == conversation_id)
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None


tag_crud = TagCRUD()
