"""
Chat session entity models.

This module contains the database entities for assistant conversations.
A chat session belongs to one user inside one workspace and keeps its
message history in ``chat_messages``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict

from sqlmodel import JSON, Field
from sqlalchemy import Text

from loopwell.core.dates import utc_now

from ..base import Base, new_id

DEFAULT_CHAT_MODEL = "gpt-4-turbo"
DEFAULT_CHAT_TITLE = "New Chat"


class MessageType(str, Enum):
    """Author of a chat message."""

    USER = "USER"
    AI = "AI"


class ChatSession(Base, table=True):
    """Persistent assistant conversation.

    Table: chat_sessions
    """

    __tablename__ = "chat_sessions"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    title: str = Field(default=DEFAULT_CHAT_TITLE, description="Chat session title")
    model: str = Field(default=DEFAULT_CHAT_MODEL, description="Model identifier used for replies")

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}, index=True)

    def __repr__(self) -> str:
        return f"ChatSession(id={self.id}, title={self.title}, model={self.model})"


class ChatMessage(Base, table=True):
    """Individual message within a chat session.

    ``meta`` holds assistant extras (sources, document plan, model).

    Table: chat_messages
    """

    __tablename__ = "chat_messages"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    session_id: str = Field(foreign_key="chat_sessions.id", index=True)
    type: MessageType = Field(description="Message author")
    content: str = Field(sa_type=Text, description="Message content")
    meta: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    created_at: datetime = Field(default_factory=utc_now, index=True)

    def __repr__(self) -> str:
        return f"ChatMessage(id={self.id}, type={self.type}, session_id={self.session_id})"
