"""
Caller identity and active workspace resolution.

Identity is established by the upstream session layer, which forwards the
verified email in the ``X-User-Email`` header. When the development login is
enabled, requests without that header act as the configured dev user.

The active workspace is resolved in this order, first match wins:

1. ``workspace_id`` query parameter
2. ``project_id`` query parameter, mapped to the project's workspace
3. ``X-Workspace-Id`` header
4. the caller's earliest membership
5. a freshly created default workspace owned by the caller
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from loopwell.core.database import get_session
from loopwell.core.database.entities.projects import Project
from loopwell.core.database.entities.workspaces import User, WorkspaceRole
from loopwell.core.database.repositories import UserRepository, WorkspaceRepository
from loopwell.core.errors import AccessDeniedError, AuthenticationError, NotFoundError
from loopwell.core.logging_config import get_logger
from loopwell.server.core.config import AuthConfig, settings

logger = get_logger(__name__)


@dataclass
class AuthContext:
    """The authenticated caller and the workspace the request operates on."""

    user: User
    workspace_id: str
    role: WorkspaceRole
    is_dev: bool = False


@dataclass
class Identity:
    user: User
    is_dev: bool = False


async def authenticate(
    session: AsyncSession,
    email: Optional[str],
    name: Optional[str] = None,
    auth_config: Optional[AuthConfig] = None,
) -> Identity:
    """Resolve the caller from the forwarded identity headers.

    Raises:
        AuthenticationError: no identity and the dev bypass is off.
    """
    auth_config = auth_config or settings.auth
    users = UserRepository(session)
    if email and email.strip():
        return Identity(user=await users.get_or_create(email.strip(), name))
    if auth_config.dev_bypass_enabled:
        logger.warning("Development login bypass used for request without identity")
        user = await users.get_or_create(auth_config.dev_user_email, auth_config.dev_user_name)
        return Identity(user=user, is_dev=True)
    raise AuthenticationError()


async def resolve_workspace(
    session: AsyncSession,
    identity: Identity,
    workspace_id: Optional[str] = None,
    project_id: Optional[str] = None,
    header_workspace_id: Optional[str] = None,
) -> Tuple[str, WorkspaceRole]:
    """Pick the active workspace for a request and the caller's role in it.

    Raises:
        NotFoundError: ``project_id`` does not exist.
        AccessDeniedError: the caller is not a member of an explicitly requested workspace.
    """
    workspaces = WorkspaceRepository(session)
    user = identity.user

    explicit = workspace_id
    if explicit is None and project_id:
        project = await session.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        explicit = project.workspace_id
    if explicit is None:
        explicit = header_workspace_id

    if explicit:
        membership = await workspaces.get_membership(explicit, user.id)
        if membership is not None:
            return explicit, membership.role
        if identity.is_dev:
            return explicit, WorkspaceRole.OWNER
        raise AccessDeniedError(f"Not a member of workspace {explicit}")

    earliest = await workspaces.earliest_membership(user.id)
    if earliest is not None:
        return earliest.workspace_id, earliest.role

    display = user.name or user.email.split("@")[0]
    workspace, membership = await workspaces.create_with_owner(f"{display}'s Workspace", owner=user)
    logger.info(f"Created default workspace {workspace.slug} for user {user.id}")
    return workspace.id, membership.role


async def get_identity(
    session: AsyncSession = Depends(get_session),
    x_user_email: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
) -> Identity:
    """FastAPI dependency: the authenticated caller, without workspace resolution."""
    return await authenticate(session, x_user_email, x_user_name)


async def get_auth_context(
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
    query_workspace_id: Optional[str] = Query(
        default=None, alias="workspace_id", description="Active workspace override"
    ),
    query_project_id: Optional[str] = Query(
        default=None, alias="project_id", description="Resolve the workspace from this project"
    ),
    x_workspace_id: Optional[str] = Header(default=None),
) -> AuthContext:
    """FastAPI dependency: the authenticated caller and the active workspace."""
    active_id, role = await resolve_workspace(
        session,
        identity,
        workspace_id=query_workspace_id,
        project_id=query_project_id,
        header_workspace_id=x_workspace_id,
    )
    return AuthContext(user=identity.user, workspace_id=active_id, role=role, is_dev=identity.is_dev)
