"""
Mock realtime hub.

Used when ``REALTIME_ENABLED`` is false. Nothing is fanned out to other
clients: emitted events are recorded in ``emitted``, and a few client
messages are echoed straight back to the sender so a single browser tab
still sees its own updates.
"""

from __future__ import annotations

from typing import Any, Dict, List, NamedTuple, Optional

from loopwell.core.logging_config import get_logger

from .events import ClientEvent, ServerEvent
from .hub import Connection, RealtimeHub

logger = get_logger(__name__)


class EmittedEvent(NamedTuple):
    room: str
    event: str
    data: Dict[str, Any]


class MockRealtimeHub(RealtimeHub):
    """Realtime hub that records events instead of relaying them."""

    def __init__(self) -> None:
        super().__init__()
        self.emitted: List[EmittedEvent] = []

    def _record(self, room: str, event: ServerEvent | str, data: Dict[str, Any]) -> None:
        name = event.value if isinstance(event, ServerEvent) else event
        self.emitted.append(EmittedEvent(room, name, data))
        logger.debug(f"[mock realtime] {name} -> {room}")

    async def emit_to_room(
        self, room: str, event: ServerEvent | str, data: Dict[str, Any], exclude: Optional[str] = None
    ) -> int:
        self._record(room, event, data)
        return 0

    async def broadcast(
        self,
        event: ServerEvent | str,
        data: Dict[str, Any],
        exclude: Optional[str] = None,
        workspace_id: Optional[str] = None,
    ) -> int:
        self._record(f"workspace:{workspace_id}" if workspace_id else "*", event, data)
        return 0

    async def handle_message(self, connection: Connection, message: Any) -> None:
        if not isinstance(message, dict):
            return
        event = message.get("event")
        data = message.get("data") or {}

        if event == ClientEvent.AUTHENTICATE.value and connection.user_id is not None:
            connection.announced = True
            await self.send(
                connection,
                ServerEvent.USER_JOINED,
                {"user_id": connection.user_id, "user_name": connection.user_name},
            )
        elif event == ClientEvent.UPDATE_TASK.value and isinstance(data, dict):
            await self.send(
                connection,
                ServerEvent.TASK_UPDATED,
                {
                    "task_id": data.get("task_id"),
                    "updates": data.get("updates") or {},
                    "user_id": connection.user_id or "mock-user",
                },
            )
        elif event == ClientEvent.CREATE_TASK.value and isinstance(data, dict):
            await self.send(
                connection,
                ServerEvent.TASK_CREATED,
                {"task": data.get("task") or {}, "project_id": data.get("project_id")},
            )
        elif event == ClientEvent.DELETE_TASK.value and isinstance(data, dict):
            await self.send(
                connection,
                ServerEvent.TASK_DELETED,
                {"task_id": data.get("task_id"), "project_id": data.get("project_id")},
            )
        else:
            logger.debug(f"[mock realtime] ignoring client event {event!r}")
