"""
WebSocket event hub.

Keeps the registry of connected clients, their room subscriptions
(``project:{id}`` and ``wiki:{id}``), presence and the set of users editing
each wiki page. Delivery is best effort: a client whose socket fails to
receive is dropped from the registry and nothing is retried.

Messages travel as JSON objects ``{"event": <name>, "data": {...}}``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from loopwell.core.database.base import new_id
from loopwell.core.dates import utc_now
from loopwell.core.logging_config import get_logger
from loopwell.core.monitoring import log_realtime_event

from .events import ClientEvent, ServerEvent, project_room, wiki_room

logger = get_logger(__name__)

PRESENCE_STATUSES = ("online", "away", "offline")

# decides whether a connection may subscribe to a project room
ProjectAccessCheck = Callable[[str], Awaitable[bool]]


@dataclass
class Connection:
    """One connected client socket and what the hub knows about it."""

    socket: Any
    id: str = field(default_factory=new_id)
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    workspace_id: Optional[str] = None
    status: str = "online"
    current_project: Optional[str] = None
    current_wiki_page: Optional[str] = None
    last_seen: datetime = field(default_factory=utc_now)
    rooms: Set[str] = field(default_factory=set)
    can_join_project: Optional[ProjectAccessCheck] = None
    announced: bool = False

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None and self.announced


def _target(data: Any, key: str) -> Optional[str]:
    # joinProject("abc") and joinProject({"project_id": "abc"}) are both accepted
    if isinstance(data, str):
        return data or None
    if isinstance(data, dict):
        value = data.get(key)
        return str(value) if value else None
    return None


class RealtimeHub:
    """In-process pub/sub relay for WebSocket clients."""

    def __init__(self) -> None:
        self.connections: Dict[str, Connection] = {}
        self.rooms: Dict[str, Set[str]] = {}
        self.wiki_editors: Dict[str, Set[str]] = {}

    # Connection registry

    def register(
        self,
        socket: Any,
        user_id: Optional[str] = None,
        user_name: Optional[str] = None,
        workspace_id: Optional[str] = None,
        can_join_project: Optional[ProjectAccessCheck] = None,
    ) -> Connection:
        """Track a new socket under the identity the server verified for it.

        A connection without ``user_id`` can never authenticate.
        """
        connection = Connection(
            socket=socket,
            user_id=user_id,
            user_name=user_name,
            workspace_id=workspace_id,
            can_join_project=can_join_project,
        )
        self.connections[connection.id] = connection
        logger.debug(f"Realtime client connected: {connection.id}")
        return connection

    def _drop(self, connection: Connection) -> None:
        self.connections.pop(connection.id, None)
        for room in list(connection.rooms):
            self._leave_room(connection, room)
        if connection.user_id:
            for page_id in list(self.wiki_editors):
                self._remove_editor(page_id, connection.user_id)

    async def unregister(self, connection: Connection) -> None:
        """Remove a client and tell the others it left."""
        self._drop(connection)
        if connection.authenticated:
            await self.broadcast(
                ServerEvent.USER_LEFT,
                {"user_id": connection.user_id, "project_id": connection.current_project},
                exclude=connection.id,
                workspace_id=connection.workspace_id,
            )
        logger.debug(f"Realtime client disconnected: {connection.id}")

    def _join_room(self, connection: Connection, room: str) -> None:
        self.rooms.setdefault(room, set()).add(connection.id)
        connection.rooms.add(room)

    def _leave_room(self, connection: Connection, room: str) -> None:
        members = self.rooms.get(room)
        if members is not None:
            members.discard(connection.id)
            if not members:
                del self.rooms[room]
        connection.rooms.discard(room)

    def _remove_editor(self, page_id: str, user_id: str) -> None:
        editors = self.wiki_editors.get(page_id)
        if editors is None:
            return
        editors.discard(user_id)
        if not editors:
            del self.wiki_editors[page_id]

    # Delivery

    async def send(self, connection: Connection, event: ServerEvent | str, data: Dict[str, Any]) -> bool:
        name = event.value if isinstance(event, ServerEvent) else event
        try:
            await connection.socket.send_json({"event": name, "data": data})
            return True
        except Exception as e:
            logger.warning(f"Dropping realtime client {connection.id} after failed send of {name}: {e}")
            self._drop(connection)
            return False

    async def emit_to_room(
        self, room: str, event: ServerEvent | str, data: Dict[str, Any], exclude: Optional[str] = None
    ) -> int:
        """Send an event to every client in ``room``; returns the number of deliveries."""
        delivered = 0
        for connection_id in list(self.rooms.get(room, ())):
            connection = self.connections.get(connection_id)
            if connection is None or connection_id == exclude:
                continue
            if await self.send(connection, event, data):
                delivered += 1
        log_realtime_event(room, getattr(event, "value", event), delivered)
        return delivered

    async def broadcast(
        self,
        event: ServerEvent | str,
        data: Dict[str, Any],
        exclude: Optional[str] = None,
        workspace_id: Optional[str] = None,
    ) -> int:
        """Send an event to every client, or only to those of ``workspace_id``."""
        delivered = 0
        for connection in list(self.connections.values()):
            if connection.id == exclude:
                continue
            if workspace_id is not None and connection.workspace_id != workspace_id:
                continue
            if await self.send(connection, event, data):
                delivered += 1
        return delivered

    async def emit_to_project(self, project_id: str, event: ServerEvent | str, data: Dict[str, Any]) -> int:
        return await self.emit_to_room(project_room(project_id), event, data)

    # Introspection

    def presence(self) -> Dict[str, Dict[str, Any]]:
        """``user_id -> presence`` for every authenticated client."""
        return {
            connection.user_id: {
                "user_id": connection.user_id,
                "user_name": connection.user_name,
                "status": connection.status,
                "project_id": connection.current_project,
                "last_seen": connection.last_seen.isoformat(),
            }
            for connection in self.connections.values()
            if connection.authenticated
        }

    def active_users_in_project(self, project_id: str) -> List[Dict[str, Any]]:
        return [
            {"user_id": c.user_id, "user_name": c.user_name, "status": c.status}
            for c in self.connections.values()
            if c.authenticated and c.current_project == project_id
        ]

    def editors_of(self, page_id: str) -> List[Dict[str, Any]]:
        names = {c.user_id: c.user_name for c in self.connections.values() if c.user_id}
        return [
            {"user_id": user_id, "user_name": names.get(user_id) or "Unknown"}
            for user_id in sorted(self.wiki_editors.get(page_id, ()))
        ]

    # Client messages

    async def handle_message(self, connection: Connection, message: Any) -> None:
        """Dispatch one client message. Unknown or unauthenticated messages are ignored."""
        if not isinstance(message, dict):
            logger.warning(f"Ignoring malformed realtime message from {connection.id}")
            return
        try:
            event = ClientEvent(message.get("event"))
        except ValueError:
            logger.warning(f"Ignoring unknown realtime event {message.get('event')!r} from {connection.id}")
            return
        if event is not ClientEvent.AUTHENTICATE and not connection.authenticated:
            logger.debug(f"Ignoring {event.value} from unauthenticated client {connection.id}")
            return

        data = message.get("data") or {}
        connection.last_seen = utc_now()
        handler = getattr(self, f"_on_{event.name.lower()}")
        await handler(connection, data)

    async def _on_authenticate(self, connection: Connection, data: Any) -> None:
        # identity comes from register(); the client may only restate it
        if connection.user_id is None:
            logger.warning(f"Realtime client {connection.id} has no verified identity")
            return
        claimed = data.get("user_id") if isinstance(data, dict) else None
        if claimed and str(claimed) != connection.user_id:
            logger.warning(f"Realtime client {connection.id} claimed user {claimed} but is {connection.user_id}")
            return
        connection.announced = True
        connection.status = "online"
        logger.info(f"Realtime user authenticated: {connection.user_name} ({connection.user_id})")
        await self.broadcast(
            ServerEvent.USER_JOINED,
            {"user_id": connection.user_id, "user_name": connection.user_name},
            exclude=connection.id,
            workspace_id=connection.workspace_id,
        )

    async def _on_join_project(self, connection: Connection, data: Any) -> None:
        project_id = _target(data, "project_id")
        if not project_id:
            return
        if connection.can_join_project is not None and not await connection.can_join_project(project_id):
            logger.warning(f"User {connection.user_id} refused access to project room {project_id}")
            await self.send(
                connection,
                ServerEvent.NOTIFICATION,
                {"type": "error", "message": f"Access to project {project_id} denied", "data": {"project_id": project_id}},
            )
            return
        room = project_room(project_id)
        self._join_room(connection, room)
        connection.current_project = project_id
        await self.emit_to_room(
            room,
            ServerEvent.USER_JOINED,
            {"user_id": connection.user_id, "user_name": connection.user_name, "project_id": project_id},
            exclude=connection.id,
        )

    async def _on_leave_project(self, connection: Connection, data: Any) -> None:
        project_id = _target(data, "project_id")
        if not project_id:
            return
        room = project_room(project_id)
        self._leave_room(connection, room)
        if connection.current_project == project_id:
            connection.current_project = None
        await self.emit_to_room(room, ServerEvent.USER_LEFT, {"user_id": connection.user_id, "project_id": project_id})

    async def _on_join_wiki_page(self, connection: Connection, data: Any) -> None:
        page_id = _target(data, "page_id")
        if page_id:
            self._join_room(connection, wiki_room(page_id))
            connection.current_wiki_page = page_id

    async def _on_leave_wiki_page(self, connection: Connection, data: Any) -> None:
        page_id = _target(data, "page_id")
        if not page_id:
            return
        self._leave_room(connection, wiki_room(page_id))
        if connection.current_wiki_page == page_id:
            connection.current_wiki_page = None
        self._remove_editor(page_id, connection.user_id)

    async def _on_update_presence(self, connection: Connection, data: Any) -> None:
        status = data.get("status") if isinstance(data, dict) else None
        if status not in PRESENCE_STATUSES:
            logger.warning(f"Ignoring invalid presence status {status!r} from {connection.id}")
            return
        connection.status = status
        project_id = data.get("project_id")
        payload = {"user_id": connection.user_id, "status": status, "project_id": project_id}
        if project_id:
            await self.emit_to_room(project_room(project_id), ServerEvent.USER_PRESENCE, payload, exclude=connection.id)
        else:
            await self.broadcast(
                ServerEvent.USER_PRESENCE, payload, exclude=connection.id, workspace_id=connection.workspace_id
            )

    async def _on_start_editing_wiki(self, connection: Connection, data: Any) -> None:
        page_id = _target(data, "page_id")
        if not page_id:
            return
        self.wiki_editors.setdefault(page_id, set()).add(connection.user_id)
        await self.emit_to_room(
            wiki_room(page_id),
            ServerEvent.WIKI_PAGE_EDITING,
            {
                "page_id": page_id,
                "user_id": connection.user_id,
                "user_name": connection.user_name,
                "cursor_position": data.get("cursor_position") if isinstance(data, dict) else None,
            },
            exclude=connection.id,
        )

    async def _on_stop_editing_wiki(self, connection: Connection, data: Any) -> None:
        page_id = _target(data, "page_id")
        if not page_id:
            return
        self._remove_editor(page_id, connection.user_id)
        await self.emit_to_room(
            wiki_room(page_id),
            ServerEvent.WIKI_PAGE_STOPPED_EDITING,
            {"page_id": page_id, "user_id": connection.user_id},
            exclude=connection.id,
        )

    async def _on_update_task(self, connection: Connection, data: Any) -> None:
        if not isinstance(data, dict) or not data.get("project_id") or not data.get("task_id"):
            logger.warning(f"updateTask from {connection.id} needs task_id and project_id")
            return
        task_id = str(data["task_id"])
        room = project_room(str(data["project_id"]))
        await self.emit_to_room(
            room,
            ServerEvent.TASK_UPDATED,
            {"task_id": task_id, "updates": data.get("updates") or {}, "user_id": connection.user_id},
            exclude=connection.id,
        )
        await self.emit_to_room(
            room,
            ServerEvent.NOTIFICATION,
            {
                "type": "task_updated",
                "message": f"{connection.user_name or 'Someone'} updated a task",
                "data": {"task_id": task_id},
            },
            exclude=connection.id,
        )

    async def _on_create_task(self, connection: Connection, data: Any) -> None:
        if not isinstance(data, dict) or not data.get("project_id"):
            logger.warning(f"createTask from {connection.id} needs project_id")
            return
        project_id = str(data["project_id"])
        task = data.get("task") or {}
        room = project_room(project_id)
        await self.emit_to_room(
            room, ServerEvent.TASK_CREATED, {"task": task, "project_id": project_id}, exclude=connection.id
        )
        await self.emit_to_room(
            room,
            ServerEvent.NOTIFICATION,
            {
                "type": "task_created",
                "message": f"{connection.user_name or 'Someone'} created a new task",
                "data": {"task_id": task.get("id"), "task_title": task.get("title")},
            },
            exclude=connection.id,
        )

    async def _on_delete_task(self, connection: Connection, data: Any) -> None:
        if not isinstance(data, dict) or not data.get("project_id") or not data.get("task_id"):
            logger.warning(f"deleteTask from {connection.id} needs task_id and project_id")
            return
        task_id = str(data["task_id"])
        project_id = str(data["project_id"])
        room = project_room(project_id)
        await self.emit_to_room(
            room, ServerEvent.TASK_DELETED, {"task_id": task_id, "project_id": project_id}, exclude=connection.id
        )
        await self.emit_to_room(
            room,
            ServerEvent.NOTIFICATION,
            {
                "type": "task_deleted",
                "message": f"{connection.user_name or 'Someone'} deleted a task",
                "data": {"task_id": task_id},
            },
            exclude=connection.id,
        )
