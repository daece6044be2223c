"""
Realtime WebSocket endpoint.

The socket is authenticated from the same forwarded identity headers as
HTTP requests (``X-User-Email``, ``X-User-Name``, ``X-Workspace-Id``); a
handshake without a usable identity is closed with a policy violation.
Clients then exchange ``{"event": ..., "data": ...}`` JSON messages with the
hub. The first message is expected to be ``authenticate``; everything else
sent before it is ignored. Joining a project room requires access to the
project.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from loopwell.core.errors import AccessDeniedError, AuthenticationError, NotFoundError
from loopwell.core.logging_config import get_logger
from loopwell.server.services.access import assert_project_access
from loopwell.server.services.auth import authenticate, resolve_workspace
from loopwell.server.services.deps import RealtimeDep, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, hub: RealtimeDep, session: SessionDep) -> None:
    try:
        identity = await authenticate(
            session, websocket.headers.get("x-user-email"), websocket.headers.get("x-user-name")
        )
        workspace_id, _ = await resolve_workspace(
            session,
            identity,
            workspace_id=websocket.query_params.get("workspace_id"),
            header_workspace_id=websocket.headers.get("x-workspace-id"),
        )
    except (AuthenticationError, AccessDeniedError) as e:
        logger.warning(f"Refusing realtime socket: {e}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    async def can_join_project(project_id: str) -> bool:
        try:
            await assert_project_access(session, identity, project_id)
        except (NotFoundError, AccessDeniedError):
            return False
        return True

    await websocket.accept()
    user = identity.user
    connection = hub.register(
        websocket,
        user_id=user.id,
        user_name=user.name or user.email,
        workspace_id=workspace_id,
        can_join_project=can_join_project,
    )
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                logger.warning(f"Ignoring non-JSON realtime message from {connection.id}")
                continue
            await hub.handle_message(connection, message)
    except WebSocketDisconnect:
        logger.debug(f"Realtime socket {connection.id} closed")
    finally:
        await hub.unregister(connection)
