"""
API endpoints for workspaces, memberships and invitations.

A workspace is the tenant boundary. Its members carry a role
(VIEWER, MEMBER, ADMIN, OWNER) that gates every other endpoint.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException, status

from loopwell.core.dates import utc_now
from loopwell.core.database.entities.workspaces import Workspace, WorkspaceMember, WorkspaceRole
from loopwell.core.database.repositories import InviteRepository, UserRepository, WorkspaceRepository
from loopwell.core.logging_config import get_logger
from loopwell.core.models.io.workspaces import (
    InviteCreate,
    InviteRead,
    MemberAdd,
    MemberRead,
    MemberRoleUpdate,
    WorkspaceCreate,
    WorkspaceRead,
    WorkspaceUpdate,
    WorkspaceWithRole,
)
from loopwell.server.services.access import assert_workspace_access
from loopwell.server.services.deps import IdentityDep, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["workspaces"])
invites_router = APIRouter(tags=["workspaces"])


def _with_role(workspace: Workspace, role: WorkspaceRole) -> WorkspaceWithRole:
    return WorkspaceWithRole(**WorkspaceRead.model_validate(workspace).model_dump(), user_role=role)


def _member_read(member: WorkspaceMember, email: str, name) -> MemberRead:
    return MemberRead(user_id=member.user_id, email=email, name=name, role=member.role, joined_at=member.joined_at)


async def _get_workspace(repo: WorkspaceRepository, workspace_id: str) -> Workspace:
    workspace = await repo.get_by_id(workspace_id)
    if not workspace:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Workspace {workspace_id} not found",
        )
    return workspace


@router.get(
    "",
    response_model=List[WorkspaceWithRole],
    summary="List Workspaces",
    description="List the workspaces the caller belongs to, with the caller's role in each.",
    response_description="Workspaces ordered by membership date.",
)
async def list_workspaces(identity: IdentityDep, session: SessionDep) -> List[WorkspaceWithRole]:
    """
    List workspaces of the caller.

    Workspaces are returned in the order the caller joined them.
    """
    rows = await WorkspaceRepository(session).list_for_user(identity.user.id)
    return [_with_role(workspace, membership.role) for workspace, membership in rows]


@router.post(
    "",
    response_model=WorkspaceWithRole,
    status_code=status.HTTP_201_CREATED,
    summary="Create Workspace",
    description="Create a workspace owned by the caller.",
    response_description="The created workspace.",
    responses={
        201: {"description": "Workspace created successfully"},
        422: {"description": "Invalid workspace data"},
    },
)
async def create_workspace(body: WorkspaceCreate, identity: IdentityDep, session: SessionDep) -> WorkspaceWithRole:
    """
    Create a new workspace.

    The creator becomes its OWNER in the same transaction.

    - **name**: Workspace name.
    - **slug**: Preferred URL slug; derived from the name when omitted. A
      numeric suffix is appended when the slug is taken.
    - **description**: Optional description.
    """
    workspace, membership = await WorkspaceRepository(session).create_with_owner(
        body.name, owner=identity.user, slug=body.slug, description=body.description
    )
    logger.info(f"Workspace {workspace.slug} created by user {identity.user.id}")
    return _with_role(workspace, membership.role)


@router.get(
    "/{workspace_id}",
    response_model=WorkspaceWithRole,
    summary="Get Workspace",
    responses={
        403: {"description": "Caller is not a member"},
        404: {"description": "Workspace not found"},
    },
)
async def get_workspace(workspace_id: str, identity: IdentityDep, session: SessionDep) -> WorkspaceWithRole:
    """
    Get a workspace by ID.

    - **workspace_id**: The workspace identifier.
    """
    repo = WorkspaceRepository(session)
    workspace = await _get_workspace(repo, workspace_id)
    role = await assert_workspace_access(session, identity, workspace_id)
    return _with_role(workspace, role)


@router.patch(
    "/{workspace_id}",
    response_model=WorkspaceWithRole,
    summary="Update Workspace",
    description="Rename a workspace or change its description. Requires ADMIN.",
)
async def update_workspace(
    workspace_id: str, body: WorkspaceUpdate, identity: IdentityDep, session: SessionDep
) -> WorkspaceWithRole:
    """
    Update a workspace.

    Only provided fields are changed.
    """
    repo = WorkspaceRepository(session)
    workspace = await _get_workspace(repo, workspace_id)
    role = await assert_workspace_access(session, identity, workspace_id, WorkspaceRole.ADMIN)
    repo.apply_changes(workspace, body.model_dump(exclude_unset=True))
    workspace = await repo.update(workspace)
    return _with_role(workspace, role)


@router.delete(
    "/{workspace_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Workspace",
    description="Delete a workspace and everything in it. Requires OWNER.",
)
async def delete_workspace(workspace_id: str, identity: IdentityDep, session: SessionDep) -> None:
    """
    Delete a workspace.

    Projects, tasks, wiki pages, org chart rows, chat sessions, invites and
    memberships of the workspace are removed with it.
    """
    repo = WorkspaceRepository(session)
    workspace = await _get_workspace(repo, workspace_id)
    await assert_workspace_access(session, identity, workspace_id, WorkspaceRole.OWNER)
    await repo.delete_workspace(workspace)
    logger.info(f"Workspace {workspace_id} deleted by user {identity.user.id}")


# Members


@router.get(
    "/{workspace_id}/members",
    response_model=List[MemberRead],
    summary="List Workspace Members",
)
async def list_members(workspace_id: str, identity: IdentityDep, session: SessionDep) -> List[MemberRead]:
    """
    List members of a workspace with their roles.
    """
    repo = WorkspaceRepository(session)
    await _get_workspace(repo, workspace_id)
    await assert_workspace_access(session, identity, workspace_id)
    return [_member_read(member, user.email, user.name) for member, user in await repo.list_members(workspace_id)]


@router.post(
    "/{workspace_id}/members",
    response_model=MemberRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add Workspace Member",
    responses={
        404: {"description": "No user with this email"},
        409: {"description": "User is already a member"},
    },
)
async def add_member(workspace_id: str, body: MemberAdd, identity: IdentityDep, session: SessionDep) -> MemberRead:
    """
    Add an existing user to a workspace. Requires ADMIN; granting OWNER requires OWNER.

    - **email**: Email of a registered user.
    - **role**: Role to grant (default MEMBER).
    """
    repo = WorkspaceRepository(session)
    await _get_workspace(repo, workspace_id)
    caller_role = await assert_workspace_access(session, identity, workspace_id, WorkspaceRole.ADMIN)
    if body.role == WorkspaceRole.OWNER and caller_role != WorkspaceRole.OWNER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only owners can grant OWNER")

    user = await UserRepository(session).get_by_email(body.email)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User {body.email} not found")
    if await repo.get_membership(workspace_id, user.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User is already a member")

    member = await repo.add_member(workspace_id, user.id, body.role)
    return _member_read(member, user.email, user.name)


@router.patch(
    "/{workspace_id}/members/{user_id}",
    response_model=MemberRead,
    summary="Change Member Role",
)
async def update_member_role(
    workspace_id: str, user_id: str, body: MemberRoleUpdate, identity: IdentityDep, session: SessionDep
) -> MemberRead:
    """
    Change the role of a member. Requires ADMIN; only owners can grant OWNER.
    The last OWNER of a workspace cannot be demoted.
    """
    repo = WorkspaceRepository(session)
    await _get_workspace(repo, workspace_id)
    caller_role = await assert_workspace_access(session, identity, workspace_id, WorkspaceRole.ADMIN)
    if body.role == WorkspaceRole.OWNER and caller_role != WorkspaceRole.OWNER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only owners can grant OWNER")

    member = await repo.get_membership(workspace_id, user_id)
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Member {user_id} not found")
    if member.role == WorkspaceRole.OWNER and body.role != WorkspaceRole.OWNER:
        if await repo.count_owners(workspace_id) <= 1:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Workspace must keep at least one owner")

    member.role = body.role
    session.add(member)
    await session.commit()
    user = await UserRepository(session).get_by_id(user_id)
    return _member_read(member, user.email, user.name)


@router.delete(
    "/{workspace_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove Workspace Member",
)
async def remove_member(workspace_id: str, user_id: str, identity: IdentityDep, session: SessionDep) -> None:
    """
    Remove a member. Requires ADMIN. The last OWNER cannot be removed.
    """
    repo = WorkspaceRepository(session)
    await _get_workspace(repo, workspace_id)
    await assert_workspace_access(session, identity, workspace_id, WorkspaceRole.ADMIN)

    member = await repo.get_membership(workspace_id, user_id)
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Member {user_id} not found")
    if member.role == WorkspaceRole.OWNER and await repo.count_owners(workspace_id) <= 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot remove the last owner")
    await repo.remove_member(member)


# Invites


@router.get(
    "/{workspace_id}/invites",
    response_model=List[InviteRead],
    summary="List Pending Invites",
)
async def list_invites(workspace_id: str, identity: IdentityDep, session: SessionDep) -> List[InviteRead]:
    """
    List invitations that are neither accepted nor revoked. Requires ADMIN.
    """
    await _get_workspace(WorkspaceRepository(session), workspace_id)
    await assert_workspace_access(session, identity, workspace_id, WorkspaceRole.ADMIN)
    invites = await InviteRepository(session).list_pending(workspace_id)
    return [InviteRead.model_validate(invite) for invite in invites]


@router.post(
    "/{workspace_id}/invites",
    response_model=InviteRead,
    status_code=status.HTTP_201_CREATED,
    summary="Invite By Email",
    description="Create an invitation token valid for 7 days. Requires ADMIN.",
)
async def create_invite(
    workspace_id: str, body: InviteCreate, identity: IdentityDep, session: SessionDep
) -> InviteRead:
    """
    Invite someone to the workspace.

    - **email**: Address the invitation is bound to.
    - **role**: Role granted on acceptance (default MEMBER).
    """
    await _get_workspace(WorkspaceRepository(session), workspace_id)
    caller_role = await assert_workspace_access(session, identity, workspace_id, WorkspaceRole.ADMIN)
    if body.role == WorkspaceRole.OWNER and caller_role != WorkspaceRole.OWNER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only owners can grant OWNER")
    invite = await InviteRepository(session).create_invite(workspace_id, body.email, body.role, identity.user.id)
    logger.info(f"Invite created for workspace {workspace_id} by user {identity.user.id}")
    return InviteRead.model_validate(invite)


@router.delete(
    "/{workspace_id}/invites/{invite_id}",
    response_model=InviteRead,
    summary="Revoke Invite",
    responses={
        400: {"description": "Invite already accepted"},
        404: {"description": "Invite not found in this workspace"},
    },
)
async def revoke_invite(workspace_id: str, invite_id: str, identity: IdentityDep, session: SessionDep) -> InviteRead:
    """
    Revoke a pending invitation so its token can no longer be accepted. Requires ADMIN.
    """
    await _get_workspace(WorkspaceRepository(session), workspace_id)
    await assert_workspace_access(session, identity, workspace_id, WorkspaceRole.ADMIN)
    invites = InviteRepository(session)
    invite = await invites.get_by_id(invite_id)
    if not invite or invite.workspace_id != workspace_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Invite {invite_id} not found")
    if invite.accepted_at is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invite already accepted")
    if invite.revoked_at is None:
        invite = await invites.revoke(invite)
        logger.info(f"Invite {invite_id} revoked by user {identity.user.id}")
    return InviteRead.model_validate(invite)


@invites_router.post(
    "/{token}/accept",
    response_model=WorkspaceWithRole,
    summary="Accept Invite",
    responses={
        400: {"description": "Invite expired, revoked or already accepted"},
        403: {"description": "Invite is bound to another email"},
        404: {"description": "Invite not found"},
    },
)
async def accept_invite(token: str, identity: IdentityDep, session: SessionDep) -> WorkspaceWithRole:
    """
    Accept an invitation and join its workspace with the invited role.

    - **token**: Invitation token.
    """
    invites = InviteRepository(session)
    invite = await invites.get_by_token(token)
    if not invite:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invite not found")
    if invite.accepted_at is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invite already accepted")
    if invite.revoked_at is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invite revoked")
    if invite.expires_at < utc_now():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invite expired")
    if invite.email != identity.user.email.lower():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invite was sent to another email")

    workspaces = WorkspaceRepository(session)
    if await workspaces.get_membership(invite.workspace_id, identity.user.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Already a member of this workspace")

    membership = await invites.accept(invite, identity.user)
    workspace = await _get_workspace(workspaces, invite.workspace_id)
    return _with_role(workspace, membership.role)
