"""
Assistant API Endpoints.

The assistant answers questions with the workspace wiki as context, streams
replies as Server-Sent Events and drafts wiki pages.

Includes:
- Single-shot chat with sources and document plans
- Streamed chat within a chat session
- Streamed drafting of a wiki page
- The model catalog with per-provider configuration flags
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException, Request, status
from sse_starlette.sse import EventSourceResponse

from loopwell.assistant.chat import AssistantChat
from loopwell.assistant.providers import get_model, list_models
from loopwell.core.database.entities.workspaces import WorkspaceRole
from loopwell.core.database.repositories import WikiRepository
from loopwell.core.logging_config import get_logger
from loopwell.core.models.io.chat_sessions import ChatRequest, ChatResponse, DraftPageRequest, ModelInfo
from loopwell.server.services.access import assert_active_role
from loopwell.server.services.deps import AuthDep, LLMClientDep, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["ai"])


@router.post(
    "/chat",
    response_model=ChatResponse,
    summary="Chat With Assistant",
    description="Answer a message using the published wiki pages of the active workspace as context.",
    response_description="The answer, the pages it drew on and an optional document plan.",
    responses={400: {"description": "Message is blank or the model is unknown"}},
)
async def chat(body: ChatRequest, auth: AuthDep, session: SessionDep, llm: LLMClientDep) -> ChatResponse:
    """
    Send a message to the assistant.

    - **message**: The user's message.
    - **session_id**: Optional chat session recording the exchange.
    - **model**: Optional model override; defaults to the session model.

    Messages asking to create, draft or write a document are answered with
    a ``document_plan`` describing the proposed page.
    """
    return await AssistantChat(session, llm).reply(auth.user.id, auth.workspace_id, body)


@router.post(
    "/chat/stream",
    summary="Stream Chat Reply",
    description="Stream the assistant's answer within a chat session as Server-Sent Events.",
    response_description="Events of the form {content, done}; the last one carries done=true.",
    responses={
        400: {"description": "Message or session id missing"},
        404: {"description": "Chat session not found"},
    },
)
async def chat_stream(body: ChatRequest, request: Request, auth: AuthDep, session: SessionDep, llm: LLMClientDep):
    """
    Stream a reply.

    The user message is stored before streaming starts; the full answer is
    stored once the stream completes.
    """
    message = body.message.strip()
    if not message:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")
    if not body.session_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Session ID is required")

    assistant = AssistantChat(session, llm)
    chat_session = await assistant.chats.get_for_user(body.session_id, auth.user.id)
    if not chat_session:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"Chat session {body.session_id} not found"
        )
    model_id = body.model or chat_session.model
    get_model(model_id)

    async def event_generator():
        async for event in assistant.stream_reply(chat_session, message, model_id):
            if await request.is_disconnected():
                logger.info(f"Client disconnected from chat stream {chat_session.id}")
                break
            yield event

    return EventSourceResponse(event_generator())


@router.post(
    "/draft-page",
    summary="Draft Wiki Page",
    description="Stream Markdown for a wiki page; the finished draft becomes the page's new version.",
    responses={404: {"description": "Page not found"}},
)
async def draft_page(body: DraftPageRequest, request: Request, auth: AuthDep, session: SessionDep, llm: LLMClientDep):
    """
    Draft a wiki page.

    - **page_id**: Page in the active workspace receiving the draft.
    - **prompt**: What the page should cover.
    - **model**: Optional model override.
    """
    assert_active_role(auth, WorkspaceRole.MEMBER)
    page = await WikiRepository(session).get_by_id(body.page_id)
    if not page or page.workspace_id != auth.workspace_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Wiki page {body.page_id} not found")
    if body.model:
        get_model(body.model)

    assistant = AssistantChat(session, llm)

    async def event_generator():
        async for event in assistant.draft_page(page, body.prompt, auth.user.id, body.model):
            if await request.is_disconnected():
                logger.info(f"Client disconnected while drafting page {page.id}")
                break
            yield event

    return EventSourceResponse(event_generator())


@router.get(
    "/models",
    response_model=List[ModelInfo],
    summary="List Models",
    description="The models users can pick, flagged by whether their provider has an API key.",
)
async def models(llm: LLMClientDep) -> List[ModelInfo]:
    return [
        ModelInfo(
            id=model.id,
            name=model.name,
            provider=model.provider,
            description=model.description,
            max_tokens=model.max_tokens,
            cost_per_token=model.cost_per_token,
            configured=llm.is_configured(model.provider),
        )
        for model in list_models()
    ]
