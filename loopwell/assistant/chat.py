"""
Workspace assistant chat.

Builds prompts from published wiki pages, asks the configured model for an
answer, best-effort parses structured document replies and records the
exchange in the caller's chat session.
"""

from __future__ import annotations

import json
import re
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from loopwell.core.database.entities.chat_sessions import (
    DEFAULT_CHAT_MODEL,
    ChatMessage,
    ChatSession,
    MessageType,
)
from loopwell.core.database.entities.wiki import WikiPage
from loopwell.core.database.repositories import ChatSessionRepository, WikiRepository
from loopwell.core.errors import DomainValidationError
from loopwell.core.logging_config import get_logger
from loopwell.core.models.io.chat_sessions import ChatRequest, ChatResponse, ChatSource
from loopwell.core.text import make_excerpt, strip_html

from .prompts import assistant_prompt, draft_page_prompt
from .providers import ChatTurn, LLMClient

logger = get_logger(__name__)

DOCUMENT_KEYWORDS = ("create", "draft", "write", "document")
FALLBACK_REPLY = "I apologize, but I couldn't generate a response."
STREAM_SYSTEM_PROMPT = (
    "You are Loopwell's AI assistant. Help users with questions about their workspace, "
    "wiki pages, projects, and tasks. Be concise and helpful."
)
CONTEXT_PAGE_LIMIT = 10
HISTORY_LIMIT = 10
MAX_SOURCES = 3
SOURCE_EXCERPT_LENGTH = 150
DRAFT_MODEL = "gpt-4-turbo"
DRAFT_MAX_TOKENS = 4000

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def wants_document(message: str) -> bool:
    lowered = message.lower()
    return any(keyword in lowered for keyword in DOCUMENT_KEYWORDS)


def parse_reply(raw: str) -> Tuple[str, Optional[Dict[str, Any]]]:
    """Split a model reply into ``(content, document_plan)``.

    JSON replies, optionally wrapped in a code fence, provide ``content`` and
    ``document_plan``; anything else is returned as plain content.
    """
    text = (raw or "").strip()
    if not text:
        return FALLBACK_REPLY, None

    fenced = _CODE_FENCE.match(text)
    candidate = fenced.group(1) if fenced else text
    try:
        data = json.loads(candidate)
    except ValueError:
        return text, None
    if not isinstance(data, dict):
        return text, None

    content = data.get("content")
    plan = data.get("document_plan", data.get("documentPlan"))
    return (
        content if isinstance(content, str) and content else text,
        plan if isinstance(plan, dict) else None,
    )


def find_sources(message: str, pages: Sequence[WikiPage]) -> List[ChatSource]:
    """Context pages named in the message, or containing its first word."""
    lowered = message.lower()
    words = lowered.split()
    first_word = words[0] if words else ""
    sources = []
    for page in pages:
        mentioned = page.title.lower() in lowered
        contains_first = bool(first_word) and first_word in (page.content or "").lower()
        if not (mentioned or contains_first):
            continue
        sources.append(
            ChatSource(
                id=page.id,
                title=page.title,
                slug=page.slug,
                url=f"/wiki/{page.slug}",
                excerpt=make_excerpt(strip_html(page.excerpt or page.content or ""), SOURCE_EXCERPT_LENGTH),
            )
        )
        if len(sources) == MAX_SOURCES:
            break
    return sources


def sse_event(payload: Dict[str, Any]) -> str:
    return json.dumps(payload)


class AssistantChat:
    """Assistant conversations for one request."""

    def __init__(self, session: AsyncSession, llm: LLMClient) -> None:
        self.session = session
        self.llm = llm
        self.chats = ChatSessionRepository(session)
        self.wiki = WikiRepository(session)

    async def context_pages(self, workspace_id: str) -> List[WikiPage]:
        return await self.wiki.list_published(workspace_id, limit=CONTEXT_PAGE_LIMIT)

    async def owned_session(self, session_id: Optional[str], user_id: str) -> Optional[ChatSession]:
        if not session_id:
            return None
        chat = await self.chats.get_for_user(session_id, user_id)
        if chat is None:
            logger.warning(f"Chat session {session_id} not found for user {user_id}; reply will not be saved")
        return chat

    async def _save(self, chat: ChatSession, messages: List[ChatMessage]) -> None:
        try:
            await self.chats.add_messages(chat, messages)
        except Exception as e:
            logger.error(f"Error saving messages to chat session {chat.id}: {e}", exc_info=True)
            await self.session.rollback()

    async def reply(self, user_id: str, workspace_id: str, request: ChatRequest) -> ChatResponse:
        """Answer one message, optionally recording it in ``request.session_id``.

        Raises:
            DomainValidationError: the message is blank.
        """
        message = request.message.strip()
        if not message:
            raise DomainValidationError("Message is required")

        chat = await self.owned_session(request.session_id, user_id)
        model_id = request.model or (chat.model if chat else DEFAULT_CHAT_MODEL)
        pages = await self.context_pages(workspace_id)
        document_mode = wants_document(message)

        result = await self.llm.generate(message, model_id, system_prompt=assistant_prompt(pages, document_mode))
        content, plan = parse_reply(result.content)
        sources = find_sources(message, pages)

        if chat is not None:
            await self._save(
                chat,
                [
                    ChatMessage(session_id=chat.id, type=MessageType.USER, content=message),
                    ChatMessage(
                        session_id=chat.id,
                        type=MessageType.AI,
                        content=content,
                        meta={
                            "sources": [source.model_dump() for source in sources],
                            "document_plan": plan,
                            "model": model_id,
                        },
                    ),
                ],
            )

        return ChatResponse(content=content, sources=sources, document_plan=plan)

    async def stream_reply(self, chat: ChatSession, message: str, model_id: str) -> AsyncIterator[str]:
        """Server-sent event payloads for a streamed answer within ``chat``."""
        history = [
            ChatTurn(role="user" if item.type == MessageType.USER else "assistant", content=item.content)
            for item in await self.chats.get_messages(chat.id, limit=HISTORY_LIMIT)
        ]
        await self._save(chat, [ChatMessage(session_id=chat.id, type=MessageType.USER, content=message)])

        full_content = ""
        try:
            async for chunk in self.llm.stream(message, model_id, system_prompt=STREAM_SYSTEM_PROMPT, history=history):
                full_content += chunk
                yield sse_event({"content": chunk, "done": False})
        except Exception as e:
            logger.error(f"Streaming error in chat session {chat.id}: {e}", exc_info=True)
            yield sse_event({"error": str(e), "done": True})
            return

        await self._save(
            chat,
            [
                ChatMessage(
                    session_id=chat.id,
                    type=MessageType.AI,
                    content=full_content,
                    meta={"model": model_id, "streaming": True},
                )
            ],
        )
        yield sse_event({"content": "", "done": True, "full_content": full_content})

    async def draft_page(
        self, page: WikiPage, prompt: str, author_id: str, model_id: Optional[str] = None
    ) -> AsyncIterator[str]:
        """Stream Markdown for ``page``; the complete draft replaces its content as a new version."""
        full_content = ""
        try:
            async for chunk in self.llm.stream(
                prompt,
                model_id or DRAFT_MODEL,
                system_prompt=draft_page_prompt(page.title, page.content),
                max_tokens=DRAFT_MAX_TOKENS,
            ):
                full_content += chunk
                yield sse_event({"content": chunk, "done": False})

            draft = full_content.strip()
            page.content = draft
            page.excerpt = make_excerpt(draft)
            await self.wiki.save_with_version(page, author_id, draft)
        except Exception as e:
            logger.error(f"Error streaming draft for page {page.id}: {e}", exc_info=True)
            yield sse_event({"error": str(e) or "Streaming failed"})
            return

        yield sse_event({"done": True})
