"""
Role-based access checks.

Workspace roles are ordered ``VIEWER < MEMBER < ADMIN < OWNER``. Project
access is granted by the workspace role, by a project membership role, or
by being the project's creator or owner. Development bypass sessions skip
every check.
"""

from __future__ import annotations

from typing import Union

from sqlalchemy.ext.asyncio import AsyncSession

from loopwell.core.database.entities.projects import Project
from loopwell.core.database.entities.workspaces import WorkspaceRole
from loopwell.core.database.repositories import ProjectRepository, WorkspaceRepository
from loopwell.core.errors import AccessDeniedError, NotFoundError
from loopwell.core.logging_config import get_logger

from .auth import AuthContext, Identity

logger = get_logger(__name__)

# endpoints addressing a workspace by path only need the identity
Caller = Union[AuthContext, Identity]


async def assert_workspace_access(
    session: AsyncSession,
    auth: Caller,
    workspace_id: str,
    required: WorkspaceRole = WorkspaceRole.VIEWER,
) -> WorkspaceRole:
    """Ensure the caller holds at least ``required`` in ``workspace_id``.

    Returns:
        The caller's role in the workspace (OWNER for dev bypass sessions).

    Raises:
        AccessDeniedError: not a member, or the role is insufficient.
    """
    if auth.is_dev:
        logger.warning(f"Dev bypass: skipping {required.value} check on workspace {workspace_id}")
        return WorkspaceRole.OWNER

    membership = await WorkspaceRepository(session).get_membership(workspace_id, auth.user.id)
    if membership is None:
        raise AccessDeniedError(f"Not a member of workspace {workspace_id}")
    if not membership.role.satisfies(required):
        raise AccessDeniedError(f"Requires {required.value} role in workspace")
    return membership.role


async def assert_project_access(
    session: AsyncSession,
    auth: Caller,
    project_id: str,
    required: WorkspaceRole = WorkspaceRole.VIEWER,
) -> Project:
    """Load ``project_id`` and ensure the caller may act on it with ``required``.

    Raises:
        NotFoundError: the project does not exist.
        AccessDeniedError: the caller has no sufficient role.
    """
    projects = ProjectRepository(session)
    project = await projects.get_by_id(project_id)
    if project is None:
        raise NotFoundError("Project", project_id)

    if auth.is_dev:
        logger.warning(f"Dev bypass: skipping {required.value} check on project {project_id}")
        return project

    membership = await WorkspaceRepository(session).get_membership(project.workspace_id, auth.user.id)
    if membership is None:
        raise AccessDeniedError(f"Not a member of workspace {project.workspace_id}")
    if membership.role.satisfies(required):
        return project
    if auth.user.id in (project.created_by_id, project.owner_id):
        return project

    project_member = await projects.get_member(project_id, auth.user.id)
    if project_member is not None and project_member.role.satisfies(required):
        return project
    raise AccessDeniedError(f"Requires {required.value} role on project")


def assert_active_role(auth: AuthContext, required: WorkspaceRole) -> None:
    """Check the role already resolved for the active workspace."""
    if auth.is_dev or auth.role.satisfies(required):
        return
    raise AccessDeniedError(f"Requires {required.value} role in workspace")
