"""
Realtime event relay.

The server keeps one process-wide hub. ``REALTIME_ENABLED=false`` swaps in
the mock hub. API handlers publish through :func:`emit_project_event`, which
never raises.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from loopwell.core.logging_config import get_logger

from .events import SERVER_EVENT_NAMES, ClientEvent, ServerEvent, project_room, wiki_room
from .hub import Connection, RealtimeHub
from .mock import EmittedEvent, MockRealtimeHub

logger = get_logger(__name__)

_hub: Optional[RealtimeHub] = None


def init_realtime_hub(enabled: bool) -> RealtimeHub:
    """Create the process-wide hub, real or mock."""
    global _hub
    _hub = RealtimeHub() if enabled else MockRealtimeHub()
    logger.info(f"Realtime hub initialized ({'websocket' if enabled else 'mock'})")
    return _hub


def current_hub() -> Optional[RealtimeHub]:
    return _hub


def reset_realtime_hub() -> None:
    global _hub
    _hub = None


def get_realtime_hub() -> RealtimeHub:
    """FastAPI dependency returning the hub, creating it from settings on first use."""
    if _hub is None:
        from loopwell.server.core.config import settings

        return init_realtime_hub(settings.realtime.enabled)
    return _hub


async def _emit(room: str, event: ServerEvent | str, data: Dict[str, Any], hub: Optional[RealtimeHub]) -> bool:
    name = event.value if isinstance(event, ServerEvent) else event
    if name not in SERVER_EVENT_NAMES:
        logger.warning(f"Unknown realtime event {name!r}, not emitted")
        return False
    hub = hub or _hub
    if hub is None:
        logger.warning(f"Realtime hub not available, could not emit {name}")
        return False
    try:
        await hub.emit_to_room(room, name, data)
    except Exception as e:
        logger.error(f"Error emitting {name} to {room}: {e}", exc_info=True)
        return False
    logger.debug(f"Emitted {name} to {room}")
    return True


async def emit_project_event(
    project_id: str,
    event: ServerEvent | str,
    data: Dict[str, Any],
    hub: Optional[RealtimeHub] = None,
) -> bool:
    """Publish ``event`` to the ``project:{project_id}`` room.

    Returns:
        True when the event was handed to a hub.
    """
    return await _emit(project_room(project_id), event, data, hub)


async def emit_wiki_event(
    page_id: str,
    event: ServerEvent | str,
    data: Dict[str, Any],
    hub: Optional[RealtimeHub] = None,
) -> bool:
    """Publish ``event`` to the ``wiki:{page_id}`` room."""
    return await _emit(wiki_room(page_id), event, data, hub)


__all__ = [
    "ClientEvent",
    "Connection",
    "EmittedEvent",
    "MockRealtimeHub",
    "RealtimeHub",
    "ServerEvent",
    "current_hub",
    "emit_project_event",
    "emit_wiki_event",
    "get_realtime_hub",
    "init_realtime_hub",
    "project_room",
    "reset_realtime_hub",
    "wiki_room",
]
