"""
Unit tests for the assistant API endpoints.

The streaming endpoints are called directly and their SSE body iterators
consumed in-process; the plain JSON endpoints go through the HTTP client.
"""

import json
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi import HTTPException
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from loopwell.core.database.entities.chat_sessions import ChatSession, MessageType
from loopwell.core.database.entities.wiki import WikiPage
from loopwell.core.database.entities.workspaces import WorkspaceRole
from loopwell.core.database.repositories import ChatSessionRepository, WikiRepository
from loopwell.core.models.io.chat_sessions import ChatRequest, DraftPageRequest
from loopwell.server.api.v1.ai_chat import chat_stream, draft_page
from loopwell.server.services.auth import AuthContext

pytestmark = pytest.mark.asyncio


def _request(disconnected: bool = False) -> Mock:
    request = Mock()
    request.is_disconnected = AsyncMock(return_value=disconnected)
    return request


async def _events(response) -> list:
    return [json.loads(item) async for item in response.body_iterator]


@pytest.fixture
def member_auth(workspace, member) -> AuthContext:
    return AuthContext(user=member, workspace_id=workspace.id, role=WorkspaceRole.MEMBER)


async def _chat_session(session: AsyncSession, workspace, user) -> ChatSession:
    return await ChatSessionRepository(session).create(
        ChatSession(workspace_id=workspace.id, user_id=user.id, model="gpt-4o-mini")
    )


async def _page(session: AsyncSession, workspace, user, **fields) -> WikiPage:
    fields.setdefault("title", "Handbook")
    fields.setdefault("slug", "handbook")
    return await WikiRepository(session).create_page(
        WikiPage(workspace_id=workspace.id, created_by_id=user.id, **fields)
    )


async def test_chat(client: AsyncClient, session: AsyncSession, workspace, member, as_user, fake_llm):
    await _page(session, workspace, member, content="Vacation policy and benefits")
    chat = await _chat_session(session, workspace, member)

    response = await client.post(
        "/api/v1/ai/chat",
        json={"message": "What does the Handbook say?", "session_id": chat.id},
        headers=as_user(member, workspace.id),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["content"] == fake_llm.reply
    assert body["sources"][0]["url"] == "/wiki/handbook"
    assert body["document_plan"] is None
    assert fake_llm.requested_models == ["gpt-4o-mini"]


@pytest.mark.parametrize(
    ("payload", "detail"),
    [
        ({"message": "  "}, "Message is required"),
        ({"message": "Hello", "model": "gpt-2"}, "Model gpt-2 not found"),
    ],
)
async def test_chat_rejects_bad_requests(client: AsyncClient, workspace, member, as_user, payload, detail):
    response = await client.post("/api/v1/ai/chat", json=payload, headers=as_user(member, workspace.id))

    assert response.status_code == 400
    assert response.json() == {"detail": detail}


async def test_models(client: AsyncClient, workspace, member, as_user):
    response = await client.get("/api/v1/ai/models", headers=as_user(member, workspace.id))

    assert response.status_code == 200
    models = {model["id"]: model for model in response.json()}
    assert models["claude-sonnet-4-20250514"]["provider"] == "anthropic"
    assert models["gemini-2.5-flash"]["max_tokens"] == 8192
    assert all(model["configured"] for model in models.values())


class TestChatStream:
    async def test_streams_reply_and_stores_exchange(self, session, llm, fake_llm, workspace, member, member_auth):
        chat = await _chat_session(session, workspace, member)

        response = await chat_stream(
            ChatRequest(message=" Hi ", session_id=chat.id), _request(), member_auth, session, llm
        )
        events = await _events(response)

        assert "".join(e["content"] for e in events if not e["done"]) == fake_llm.reply
        assert events[-1]["full_content"] == fake_llm.reply
        messages = await ChatSessionRepository(session).get_messages(chat.id)
        assert [(m.type, m.content) for m in messages] == [(MessageType.USER, "Hi"), (MessageType.AI, fake_llm.reply)]

    async def test_disconnect_stops_stream(self, session, llm, workspace, member, member_auth):
        chat = await _chat_session(session, workspace, member)

        response = await chat_stream(
            ChatRequest(message="Hi", session_id=chat.id), _request(disconnected=True), member_auth, session, llm
        )

        assert await _events(response) == []

    @pytest.mark.parametrize(
        ("message", "session_id", "status_code"),
        [
            ("", "abc", 400),
            ("Hi", None, 400),
            ("Hi", "missing", 404),
        ],
    )
    async def test_invalid_requests(self, session, llm, member_auth, message, session_id, status_code):
        with pytest.raises(HTTPException) as exc_info:
            await chat_stream(ChatRequest(message=message, session_id=session_id), _request(), member_auth, session, llm)

        assert exc_info.value.status_code == status_code

    async def test_session_of_another_user(self, session, llm, workspace, admin, member_auth):
        chat = await _chat_session(session, workspace, admin)

        with pytest.raises(HTTPException) as exc_info:
            await chat_stream(ChatRequest(message="Hi", session_id=chat.id), _request(), member_auth, session, llm)

        assert exc_info.value.status_code == 404


class TestDraftPage:
    async def test_draft_becomes_new_version(self, session, llm, fake_llm, workspace, member, member_auth):
        fake_llm.reply = "# Onboarding\n\nWelcome!"
        page = await _page(session, workspace, member, content="old")
        page_id = page.id

        response = await draft_page(
            DraftPageRequest(page_id=page_id, prompt="Write onboarding"), _request(), member_auth, session, llm
        )
        events = await _events(response)

        assert events[-1] == {"done": True}
        stored = await WikiRepository(session).get_by_id(page_id)
        assert stored.content == "# Onboarding\n\nWelcome!"
        versions = await WikiRepository(session).list_versions(page_id)
        assert versions[0].content == "# Onboarding\n\nWelcome!"
        assert fake_llm.requested_models == ["gpt-4-turbo"]

    async def test_unknown_page(self, session, llm, member_auth):
        with pytest.raises(HTTPException) as exc_info:
            await draft_page(DraftPageRequest(page_id="nope", prompt="x"), _request(), member_auth, session, llm)

        assert exc_info.value.status_code == 404

    async def test_requires_member(self, client: AsyncClient, session, workspace, owner, viewer, as_user):
        page = await _page(session, workspace, owner)

        response = await client.post(
            "/api/v1/ai/draft-page", json={"page_id": page.id, "prompt": "x"}, headers=as_user(viewer, workspace.id)
        )

        assert response.status_code == 403
