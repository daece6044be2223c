"""
Chat session repository implementation.

This module provides data access operations for assistant conversations,
including message history and session metadata.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete as sql_delete
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from loopwell.core.dates import utc_now

from ..entities.chat_sessions import ChatMessage, ChatSession
from .base import SQLModelRepository


class ChatSessionRepository(SQLModelRepository[ChatSession]):
    """Repository for chat session data access operations using SQLModel."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async session for database operations
        """
        super().__init__(session, ChatSession)

    async def list_for_user(
        self, workspace_id: str, user_id: str, limit: int = 20, offset: int = 0
    ) -> List[Tuple[ChatSession, int]]:
        """Sessions of a user in a workspace, most recently updated first.

        Returns:
            ``(session, message_count)`` pairs
        """
        counts = (
            select(ChatMessage.session_id, func.count(ChatMessage.id).label("message_count"))
            .group_by(ChatMessage.session_id)
            .subquery()
        )
        stmt = (
            select(ChatSession, func.coalesce(counts.c.message_count, 0))
            .outerjoin(counts, counts.c.session_id == ChatSession.id)
            .where(ChatSession.workspace_id == workspace_id, ChatSession.user_id == user_id)
            .order_by(ChatSession.updated_at.desc())  # type: ignore
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return [(chat, count) for chat, count in result.all()]

    async def get_for_user(self, session_id: str, user_id: str) -> Optional[ChatSession]:
        chat = await self.get_by_id(session_id)
        if chat is None or chat.user_id != user_id:
            return None
        return chat

    async def get_messages(self, session_id: str, limit: Optional[int] = None) -> List[ChatMessage]:
        """Messages of a session in chronological order."""
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.asc())  # type: ignore
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def add_messages(self, chat: ChatSession, messages: Iterable[ChatMessage]) -> List[ChatMessage]:
        """Append messages and touch the session's ``updated_at`` in one commit."""
        stored = []
        now = utc_now()
        for position, message in enumerate(messages):
            message.session_id = chat.id
            # keep insertion order stable when timestamps collide
            message.created_at = now + timedelta(microseconds=position)
            self.session.add(message)
            stored.append(message)
        chat.updated_at = now
        self.session.add(chat)
        await self.session.commit()
        return stored

    async def delete_session(self, chat: ChatSession) -> None:
        await self.session.execute(
            sql_delete(ChatMessage)
            .where(ChatMessage.session_id == chat.id)
            .execution_options(synchronize_session=False)
        )
        await self.session.delete(chat)
        await self.session.commit()
