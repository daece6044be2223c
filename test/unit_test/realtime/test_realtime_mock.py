"""Unit tests for the mock realtime hub used when WebSockets are disabled."""

import pytest

from loopwell.realtime import EmittedEvent, MockRealtimeHub, ServerEvent


class RecordingSocket:
    def __init__(self) -> None:
        self.sent = []

    async def send_json(self, payload) -> None:
        self.sent.append(payload)


class TestMockRealtimeHub:
    @pytest.mark.asyncio
    async def test_room_events_are_recorded_not_delivered(self):
        hub = MockRealtimeHub()

        delivered = await hub.emit_to_project("p1", ServerEvent.TASK_DELETED, {"task_id": "t1"})

        assert delivered == 0
        assert hub.emitted == [EmittedEvent("project:p1", "taskDeleted", {"task_id": "t1"})]

    @pytest.mark.asyncio
    async def test_broadcast_is_recorded_per_workspace(self):
        hub = MockRealtimeHub()

        await hub.broadcast("userLeft", {"user_id": "u1"}, workspace_id="ws1")
        await hub.broadcast("userLeft", {"user_id": "u2"})

        assert [event.room for event in hub.emitted] == ["workspace:ws1", "*"]

    @pytest.mark.asyncio
    async def test_authenticate_is_echoed_to_sender(self):
        hub = MockRealtimeHub()
        socket = RecordingSocket()
        connection = hub.register(socket, user_id="u1", user_name="Ada")

        await hub.handle_message(connection, {"event": "authenticate", "data": {"user_id": "u9", "user_name": "Mallory"}})

        assert connection.authenticated
        assert connection.user_id == "u1"
        assert socket.sent == [{"event": "userJoined", "data": {"user_id": "u1", "user_name": "Ada"}}]

    @pytest.mark.asyncio
    async def test_task_messages_are_echoed_to_sender(self):
        hub = MockRealtimeHub()
        socket = RecordingSocket()
        connection = hub.register(socket)

        await hub.handle_message(connection, {"event": "updateTask", "data": {"task_id": "t1", "updates": {"title": "x"}}})
        await hub.handle_message(connection, {"event": "createTask", "data": {"project_id": "p1", "task": {"id": "t2"}}})
        await hub.handle_message(connection, {"event": "deleteTask", "data": {"project_id": "p1", "task_id": "t2"}})

        assert socket.sent == [
            {"event": "taskUpdated", "data": {"task_id": "t1", "updates": {"title": "x"}, "user_id": "mock-user"}},
            {"event": "taskCreated", "data": {"task": {"id": "t2"}, "project_id": "p1"}},
            {"event": "taskDeleted", "data": {"task_id": "t2", "project_id": "p1"}},
        ]

    @pytest.mark.asyncio
    async def test_other_messages_are_ignored(self):
        hub = MockRealtimeHub()
        socket = RecordingSocket()
        connection = hub.register(socket)

        await hub.handle_message(connection, {"event": "joinProject", "data": {"project_id": "p1"}})
        await hub.handle_message(connection, ["not", "a", "dict"])

        assert socket.sent == []
        assert hub.rooms == {}

    @pytest.mark.asyncio
    async def test_authenticate_without_verified_identity_is_ignored(self):
        hub = MockRealtimeHub()
        socket = RecordingSocket()
        connection = hub.register(socket)

        await hub.handle_message(connection, {"event": "authenticate", "data": {"user_id": "u1"}})

        assert not connection.authenticated
        assert socket.sent == []
