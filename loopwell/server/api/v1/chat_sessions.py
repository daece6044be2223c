"""
API endpoints for managing assistant chat sessions.

Chat sessions are private to the user who created them and live in the
active workspace. Each session keeps its own message history; messages are
written by the chat endpoints in :mod:`loopwell.server.api.v1.ai_chat`.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException, Query, status

from loopwell.assistant.providers import get_model
from loopwell.assistant.titles import generate_title
from loopwell.core.database.entities.chat_sessions import ChatSession, MessageType
from loopwell.core.database.repositories import ChatSessionRepository
from loopwell.core.logging_config import get_logger
from loopwell.core.models.io.chat_sessions import (
    ChatMessageRead,
    ChatSessionCreate,
    ChatSessionDetail,
    ChatSessionRead,
    TitleRegenerated,
)
from loopwell.server.services.auth import AuthContext
from loopwell.server.services.deps import AuthDep, LLMClientDep, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["chat-sessions"])


async def _get_owned(repo: ChatSessionRepository, auth: AuthContext, session_id: str) -> ChatSession:
    chat = await repo.get_for_user(session_id, auth.user.id)
    if not chat:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Chat session {session_id} not found",
        )
    return chat


@router.get(
    "",
    response_model=List[ChatSessionRead],
    summary="List Chat Sessions",
    description="Retrieve the caller's chat sessions in the active workspace.",
    response_description="Sessions ordered by last activity, each with its message count.",
    responses={
        200: {"description": "List of sessions retrieved successfully"},
    },
)
async def list_chat_sessions(
    auth: AuthDep,
    session: SessionDep,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> List[ChatSessionRead]:
    """
    List chat sessions.

    - **limit**: Maximum number of sessions to return (default 20).
    - **offset**: Number of sessions to skip.
    """
    rows = await ChatSessionRepository(session).list_for_user(auth.workspace_id, auth.user.id, limit, offset)
    return [
        ChatSessionRead(**ChatSessionRead.model_validate(chat).model_dump(exclude={"message_count"}), message_count=count)
        for chat, count in rows
    ]


@router.post(
    "",
    response_model=ChatSessionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Chat Session",
    description="Create a new chat session for the caller. Each session maintains its own message history.",
    response_description="The created chat session object with auto-generated ID.",
    responses={
        201: {"description": "Chat session created successfully"},
        400: {"description": "Unknown model"},
    },
)
async def create_chat_session(body: ChatSessionCreate, auth: AuthDep, session: SessionDep) -> ChatSessionRead:
    """
    Create a new chat session.

    - **title**: A human-readable title (default "New Chat").
    - **model**: Identifier of the model answering in this session.
    """
    get_model(body.model)
    chat = await ChatSessionRepository(session).create(
        ChatSession(workspace_id=auth.workspace_id, user_id=auth.user.id, title=body.title, model=body.model)
    )
    return ChatSessionRead.model_validate(chat)


@router.get(
    "/{session_id}",
    response_model=ChatSessionDetail,
    summary="Get Chat Session",
    description="Retrieve a chat session with its complete message history.",
    responses={
        200: {"description": "Chat session found"},
        404: {"description": "Chat session not found"},
    },
)
async def get_chat_session(session_id: str, auth: AuthDep, session: SessionDep) -> ChatSessionDetail:
    """
    Get chat session by ID.

    Messages are returned in chronological order.

    - **session_id**: The unique identifier of the chat session.
    """
    repo = ChatSessionRepository(session)
    chat = await _get_owned(repo, auth, session_id)
    messages = [ChatMessageRead.model_validate(message) for message in await repo.get_messages(chat.id)]
    return ChatSessionDetail(
        **ChatSessionRead.model_validate(chat).model_dump(exclude={"message_count"}),
        message_count=len(messages),
        messages=messages,
    )


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Chat Session",
    responses={404: {"description": "Chat session not found"}},
)
async def delete_chat_session(session_id: str, auth: AuthDep, session: SessionDep) -> None:
    """
    Delete a chat session and all of its messages.
    """
    repo = ChatSessionRepository(session)
    chat = await _get_owned(repo, auth, session_id)
    await repo.delete_session(chat)
    logger.info(f"Chat session {session_id} deleted")


@router.post(
    "/{session_id}/regenerate-title",
    response_model=TitleRegenerated,
    summary="Regenerate Chat Title",
    description="Derive a short title from the opening exchange of the session.",
    responses={
        400: {"description": "The session has no complete exchange yet"},
        404: {"description": "Chat session not found"},
    },
)
async def regenerate_title(session_id: str, auth: AuthDep, session: SessionDep, llm: LLMClientDep) -> TitleRegenerated:
    """
    Regenerate the session title.

    Uses the first user message and the first assistant reply. When the
    model is unavailable the title falls back to the user's opening words.
    """
    repo = ChatSessionRepository(session)
    chat = await _get_owned(repo, auth, session_id)
    messages = await repo.get_messages(chat.id)

    user_message = next((message for message in messages if message.type == MessageType.USER), None)
    ai_message = next((message for message in messages if message.type == MessageType.AI), None)
    if user_message is None or ai_message is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Not enough messages to generate title",
        )

    chat.title = await generate_title(llm, user_message.content, ai_message.content)
    chat = await repo.update(chat)
    logger.info(f"Chat session {session_id} retitled")
    return TitleRegenerated(title=chat.title)
