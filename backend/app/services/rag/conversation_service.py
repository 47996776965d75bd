"""
Conversation Service for RAG Chat

This module manages the per-session chat transcript:
- Append user / assistant turns
- Read history back in chronological order
- Clear a session

Turns are append-only. Ordering is by created_at with id as tie-breaker,
so turns written in the same millisecond still read back in call order.
"""

import logging
from typing import Any, Optional

from sqlalchemy import delete, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PersistenceError
from app.models.conversation import ConversationTurn, MessageRole

logger = logging.getLogger(__name__)


class ConversationService:
    """
    Service for managing chat transcripts.

    Usage:
    ------
    service = ConversationService(db)

    await service.add_user_message("sess-1", "IVF kaç gün sürer?", sentiment="calm")
    await service.add_assistant_message("sess-1", "Genellikle...", sources=[...])

    history = await service.get_history("sess-1", limit=20)
    deleted = await service.clear_session("sess-1")

    Database failures surface as PersistenceError.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_user_message(
        self,
        session_id: str,
        content: str,
        sentiment: Optional[str] = None,
        is_emergency: bool = False,
    ) -> ConversationTurn:
        return await self._append(
            ConversationTurn(
                session_id=session_id,
                role=MessageRole.USER.value,
                content=content,
                sources=None,
                sentiment=sentiment,
                is_emergency=is_emergency,
            )
        )

    async def add_assistant_message(
        self,
        session_id: str,
        content: str,
        sources: Optional[list[dict[str, Any]]] = None,
        sentiment: Optional[str] = None,
    ) -> ConversationTurn:
        return await self._append(
            ConversationTurn(
                session_id=session_id,
                role=MessageRole.ASSISTANT.value,
                content=content,
                sources=sources or [],
                sentiment=sentiment,
            )
        )

    async def add_exchange(
        self,
        session_id: str,
        question: str,
        answer: str,
        sources: list[dict[str, Any]],
        sentiment: Optional[str] = None,
    ) -> tuple[ConversationTurn, ConversationTurn]:
        """
        Append a user question and the assistant answer in one transaction.

        The user turn is flushed first so it gets the lower id.
        """
        user_turn = ConversationTurn(
            session_id=session_id,
            role=MessageRole.USER.value,
            content=question,
            sentiment=sentiment,
        )
        assistant_turn = ConversationTurn(
            session_id=session_id,
            role=MessageRole.ASSISTANT.value,
            content=answer,
            sources=sources,
            sentiment=sentiment,
        )

        try:
            self.db.add(user_turn)
            await self.db.flush()
            self.db.add(assistant_turn)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to save exchange for session {session_id}: {e}")
            raise PersistenceError(f"Failed to save conversation: {e}") from e

        logger.debug(f"Saved exchange for session {session_id}")
        return user_turn, assistant_turn

    async def _append(self, turn: ConversationTurn) -> ConversationTurn:
        try:
            self.db.add(turn)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to save {turn.role} turn for session {turn.session_id}: {e}")
            raise PersistenceError(f"Failed to save conversation: {e}") from e

        return turn

    async def get_history(self, session_id: str, limit: int = 20) -> list[ConversationTurn]:
        """
        Most recent ``limit`` turns of a session, oldest first.
        """
        result = await self.db.execute(
            select(ConversationTurn)
            .where(ConversationTurn.session_id == session_id)
            .order_by(desc(ConversationTurn.created_at), desc(ConversationTurn.id))
            .limit(limit)
        )
        turns = list(result.scalars().all())
        turns.reverse()
        return turns

    async def clear_session(self, session_id: str) -> int:
        """
        Delete every turn of a session.

        Returns:
            Number of deleted turns
        """
        result = await self.db.execute(
            delete(ConversationTurn)
            .where(ConversationTurn.session_id == session_id)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        deleted = result.rowcount or 0
        logger.info(f"Cleared session {session_id}: {deleted} turns deleted")
        return deleted
