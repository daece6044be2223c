"""Unit tests for the process-wide hub and the emit helpers."""

from unittest.mock import AsyncMock

import pytest

from loopwell.realtime import (
    MockRealtimeHub,
    RealtimeHub,
    ServerEvent,
    current_hub,
    emit_project_event,
    emit_wiki_event,
    get_realtime_hub,
    init_realtime_hub,
    reset_realtime_hub,
)


@pytest.fixture(autouse=True)
def _reset_hub():
    reset_realtime_hub()
    yield
    reset_realtime_hub()


class TestHubLifecycle:
    def test_init_enabled_creates_websocket_hub(self):
        hub = init_realtime_hub(True)

        assert type(hub) is RealtimeHub
        assert current_hub() is hub

    def test_init_disabled_creates_mock_hub(self):
        assert isinstance(init_realtime_hub(False), MockRealtimeHub)

    def test_dependency_creates_hub_from_settings_once(self):
        # REALTIME_ENABLED is false for the test run
        hub = get_realtime_hub()

        assert isinstance(hub, MockRealtimeHub)
        assert get_realtime_hub() is hub

    def test_reset_forgets_hub(self):
        init_realtime_hub(False)
        reset_realtime_hub()

        assert current_hub() is None


class TestEmit:
    @pytest.mark.asyncio
    async def test_emit_project_event_uses_global_hub(self):
        hub = init_realtime_hub(False)

        assert await emit_project_event("p1", ServerEvent.TASK_CREATED, {"task": {"id": "t1"}}) is True
        assert hub.emitted[0].room == "project:p1"
        assert hub.emitted[0].event == "taskCreated"

    @pytest.mark.asyncio
    async def test_emit_wiki_event_with_explicit_hub(self, hub: MockRealtimeHub):
        assert await emit_wiki_event("w1", "wikiPageUpdated", {"page_id": "w1"}, hub=hub) is True
        assert hub.emitted[0].room == "wiki:w1"

    @pytest.mark.asyncio
    async def test_unknown_event_is_not_emitted(self, hub: MockRealtimeHub):
        assert await emit_project_event("p1", "somethingElse", {}, hub=hub) is False
        assert hub.emitted == []

    @pytest.mark.asyncio
    async def test_missing_hub_returns_false(self):
        assert await emit_project_event("p1", ServerEvent.TASK_DELETED, {"task_id": "t1"}) is False

    @pytest.mark.asyncio
    async def test_hub_failure_is_swallowed(self, hub: MockRealtimeHub):
        hub.emit_to_room = AsyncMock(side_effect=RuntimeError("boom"))

        assert await emit_project_event("p1", ServerEvent.TASK_DELETED, {"task_id": "t1"}, hub=hub) is False
