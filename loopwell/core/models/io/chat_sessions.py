"""
Chat session I/O models for API requests and responses.

This module contains Pydantic-based I/O schemas for the assistant chat
session endpoints and the chat endpoint itself.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from loopwell.core.database.entities.chat_sessions import DEFAULT_CHAT_TITLE, MessageType


class ChatSessionCreate(BaseModel):
    """Schema for creating chat session via API."""

    title: str = Field(default=DEFAULT_CHAT_TITLE, min_length=1, max_length=255)
    model: str = Field(min_length=1, description="Model identifier used for replies")


class ChatSessionRead(BaseModel):
    """Schema for reading chat session from API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    workspace_id: str
    user_id: str
    title: str
    model: str
    message_count: int = 0
    created_at: datetime
    updated_at: datetime


class ChatMessageRead(BaseModel):
    """Schema for reading chat message from API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    session_id: str
    type: MessageType
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    created_at: datetime


class ChatSessionDetail(ChatSessionRead):
    """Schema for a session with its complete message history."""

    messages: List[ChatMessageRead] = Field(default_factory=list)


class TitleRegenerated(BaseModel):
    success: bool = True
    title: str


class ChatRequest(BaseModel):
    """Schema for a message sent to the assistant."""

    message: str = Field(default="", description="User message; must not be blank")
    session_id: Optional[str] = Field(default=None, description="Chat session receiving both messages")
    model: Optional[str] = Field(default=None, description="Model override; defaults to the session model")


class ChatSource(BaseModel):
    """A wiki page the answer drew on."""

    id: str
    title: str
    slug: str
    url: str
    excerpt: str


class ChatResponse(BaseModel):
    content: str
    sources: List[ChatSource] = Field(default_factory=list)
    document_plan: Optional[Dict[str, Any]] = None


class DraftPageRequest(BaseModel):
    page_id: str
    prompt: str = Field(min_length=1)
    model: Optional[str] = None


class ModelInfo(BaseModel):
    id: str
    name: str
    provider: str
    description: str
    max_tokens: int
    cost_per_token: float
    configured: bool = False
