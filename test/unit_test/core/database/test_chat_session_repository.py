"""Unit tests for the chat session repository."""

import pytest

from loopwell.core.database.entities.chat_sessions import ChatMessage, ChatSession, MessageType
from loopwell.core.database.repositories import ChatSessionRepository


@pytest.fixture
def chats(session):
    return ChatSessionRepository(session)


class TestChatSessionRepository:
    @pytest.mark.asyncio
    async def test_defaults(self, chats, workspace, owner):
        chat = await chats.create(ChatSession(workspace_id=workspace.id, user_id=owner.id))

        assert chat.title == "New Chat"
        assert chat.model == "gpt-4-turbo"

    @pytest.mark.asyncio
    async def test_add_messages_keeps_order_and_touches_session(self, chats, workspace, owner):
        chat = await chats.create(ChatSession(workspace_id=workspace.id, user_id=owner.id))
        created_at = chat.updated_at

        await chats.add_messages(
            chat,
            [
                ChatMessage(type=MessageType.USER, content="Question"),
                ChatMessage(type=MessageType.AI, content="Answer", meta={"model": "gpt-4o-mini"}),
            ],
        )

        messages = await chats.get_messages(chat.id)
        assert [(m.type, m.content) for m in messages] == [(MessageType.USER, "Question"), (MessageType.AI, "Answer")]
        assert messages[1].meta == {"model": "gpt-4o-mini"}
        assert chat.updated_at >= created_at
        assert len(await chats.get_messages(chat.id, limit=1)) == 1

    @pytest.mark.asyncio
    async def test_list_for_user_counts_messages(self, chats, workspace, owner, member):
        quiet = await chats.create(ChatSession(workspace_id=workspace.id, user_id=owner.id, title="Quiet"))
        busy = await chats.create(ChatSession(workspace_id=workspace.id, user_id=owner.id, title="Busy"))
        await chats.create(ChatSession(workspace_id=workspace.id, user_id=member.id, title="Not mine"))
        await chats.add_messages(busy, [ChatMessage(type=MessageType.USER, content="hi")])

        listed = await chats.list_for_user(workspace.id, owner.id)

        assert [(chat.title, count) for chat, count in listed] == [("Busy", 1), ("Quiet", 0)]
        assert len(await chats.list_for_user(workspace.id, owner.id, limit=1, offset=1)) == 1
        assert quiet.id in {chat.id for chat, _ in listed}

    @pytest.mark.asyncio
    async def test_get_for_user_checks_owner(self, chats, workspace, owner, member):
        chat = await chats.create(ChatSession(workspace_id=workspace.id, user_id=owner.id))

        assert (await chats.get_for_user(chat.id, owner.id)).id == chat.id
        assert await chats.get_for_user(chat.id, member.id) is None
        assert await chats.get_for_user("missing", owner.id) is None

    @pytest.mark.asyncio
    async def test_delete_session_removes_messages(self, chats, workspace, owner):
        chat = await chats.create(ChatSession(workspace_id=workspace.id, user_id=owner.id))
        chat_id = chat.id
        await chats.add_messages(chat, [ChatMessage(type=MessageType.USER, content="bye")])

        await chats.delete_session(chat)

        assert await chats.get_messages(chat_id) == []
