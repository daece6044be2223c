"""
Workspace repository implementations.

This module provides data access for users, workspaces, memberships and
invites: the tables that define who can see which tenant.
"""

from __future__ import annotations

import secrets
from datetime import timedelta
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete as sql_delete
from sqlalchemy import func
from sqlalchemy import update as sql_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from loopwell.core.dates import utc_now
from loopwell.core.text import slugify

from ..entities import chat_sessions, migrations, org, projects, tasks, wiki
from ..entities.workspaces import User, Workspace, WorkspaceInvite, WorkspaceMember, WorkspaceRole
from .base import SQLModelRepository, next_available_slug

INVITE_TTL = timedelta(days=7)


class UserRepository(SQLModelRepository[User]):
    """Repository for users."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email.lower())
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_or_create(self, email: str, name: Optional[str] = None) -> User:
        """Fetch the user with ``email``, creating it on first sight.

        A provided ``name`` fills an empty display name on existing users.
        """
        user = await self.get_by_email(email)
        if user is None:
            return await self.create(User(email=email.lower(), name=name))
        if name and not user.name:
            user.name = name
            await self.session.commit()
        return user


class WorkspaceRepository(SQLModelRepository[Workspace]):
    """Repository for workspaces and their memberships."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Workspace)

    async def create_with_owner(
        self, name: str, owner: User, slug: Optional[str] = None, description: Optional[str] = None
    ) -> Tuple[Workspace, WorkspaceMember]:
        """Create a workspace and its OWNER membership in one transaction.

        The slug (derived from ``name`` when not given) is made unique with
        ``-1``, ``-2``... suffixes.
        """
        base_slug = slugify(slug or name) or "workspace"
        unique_slug = await next_available_slug(self.session, Workspace, base_slug)
        workspace = Workspace(name=name, slug=unique_slug, description=description, owner_id=owner.id)
        membership = WorkspaceMember(workspace_id=workspace.id, user_id=owner.id, role=WorkspaceRole.OWNER)
        self.session.add(workspace)
        await self.session.flush()
        self.session.add(membership)
        await self.session.commit()
        await self.session.refresh(workspace)
        return workspace, membership

    async def list_for_user(self, user_id: str) -> List[Tuple[Workspace, WorkspaceMember]]:
        stmt = (
            select(Workspace, WorkspaceMember)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .where(WorkspaceMember.user_id == user_id)
            .order_by(WorkspaceMember.joined_at.asc())  # type: ignore
        )
        result = await self.session.execute(stmt)
        return [(workspace, membership) for workspace, membership in result.all()]

    async def get_membership(self, workspace_id: str, user_id: str) -> Optional[WorkspaceMember]:
        stmt = select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id, WorkspaceMember.user_id == user_id
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def non_member_ids(self, workspace_id: str, user_ids: Iterable[str]) -> List[str]:
        """The ids among ``user_ids`` without a membership in ``workspace_id``, in input order."""
        wanted = list(dict.fromkeys(user_ids))
        if not wanted:
            return []
        stmt = select(WorkspaceMember.user_id).where(
            WorkspaceMember.workspace_id == workspace_id, WorkspaceMember.user_id.in_(wanted)  # type: ignore
        )
        members = set((await self.session.execute(stmt)).scalars().all())
        return [user_id for user_id in wanted if user_id not in members]

    async def earliest_membership(self, user_id: str) -> Optional[WorkspaceMember]:
        stmt = (
            select(WorkspaceMember)
            .where(WorkspaceMember.user_id == user_id)
            .order_by(WorkspaceMember.joined_at.asc())  # type: ignore
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_members(self, workspace_id: str) -> List[Tuple[WorkspaceMember, User]]:
        stmt = (
            select(WorkspaceMember, User)
            .join(User, User.id == WorkspaceMember.user_id)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .order_by(WorkspaceMember.joined_at.asc())  # type: ignore
        )
        result = await self.session.execute(stmt)
        return [(member, user) for member, user in result.all()]

    async def add_member(self, workspace_id: str, user_id: str, role: WorkspaceRole) -> WorkspaceMember:
        membership = WorkspaceMember(workspace_id=workspace_id, user_id=user_id, role=role)
        self.session.add(membership)
        await self.session.commit()
        await self.session.refresh(membership)
        return membership

    async def count_owners(self, workspace_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(WorkspaceMember)
            .where(WorkspaceMember.workspace_id == workspace_id, WorkspaceMember.role == WorkspaceRole.OWNER)
        )
        return (await self.session.execute(stmt)).scalar_one()

    async def remove_member(self, membership: WorkspaceMember) -> None:
        await self.session.delete(membership)
        await self.session.commit()

    async def delete_workspace(self, workspace: Workspace) -> None:
        """Delete a workspace together with every row scoped to it."""
        project_ids = select(projects.Project.id).where(projects.Project.workspace_id == workspace.id)
        task_ids = select(tasks.Task.id).where(tasks.Task.workspace_id == workspace.id)
        page_ids = select(wiki.WikiPage.id).where(wiki.WikiPage.workspace_id == workspace.id)
        session_ids = select(chat_sessions.ChatSession.id).where(
            chat_sessions.ChatSession.workspace_id == workspace.id
        )
        field_ids = select(tasks.CustomFieldDef.id).where(tasks.CustomFieldDef.project_id.in_(project_ids))

        statements = [
            sql_delete(tasks.Subtask).where(tasks.Subtask.task_id.in_(task_ids)),
            sql_delete(tasks.TaskComment).where(tasks.TaskComment.task_id.in_(task_ids)),
            sql_delete(tasks.CustomFieldValue).where(tasks.CustomFieldValue.task_id.in_(task_ids)),
            sql_delete(tasks.CustomFieldDef).where(tasks.CustomFieldDef.id.in_(field_ids)),
            sql_delete(tasks.Task).where(tasks.Task.workspace_id == workspace.id),
            sql_delete(projects.Epic).where(projects.Epic.workspace_id == workspace.id),
            sql_delete(projects.Milestone).where(projects.Milestone.workspace_id == workspace.id),
            sql_delete(projects.ProjectMember).where(projects.ProjectMember.project_id.in_(project_ids)),
            sql_delete(projects.ProjectWatcher).where(projects.ProjectWatcher.project_id.in_(project_ids)),
            sql_delete(projects.ProjectAssignee).where(projects.ProjectAssignee.project_id.in_(project_ids)),
            sql_delete(projects.Project).where(projects.Project.workspace_id == workspace.id),
            sql_delete(wiki.WikiVersion).where(wiki.WikiVersion.page_id.in_(page_ids)),
            sql_delete(wiki.WikiAttachment).where(wiki.WikiAttachment.page_id.in_(page_ids)),
            sql_update(wiki.WikiPage).where(wiki.WikiPage.workspace_id == workspace.id).values(parent_id=None),
            sql_delete(wiki.WikiPage).where(wiki.WikiPage.workspace_id == workspace.id),
            sql_update(org.OrgPosition).where(org.OrgPosition.workspace_id == workspace.id).values(parent_id=None),
            sql_delete(org.OrgPosition).where(org.OrgPosition.workspace_id == workspace.id),
            sql_delete(org.OrgTeam).where(org.OrgTeam.workspace_id == workspace.id),
            sql_delete(org.OrgDepartment).where(org.OrgDepartment.workspace_id == workspace.id),
            sql_delete(chat_sessions.ChatMessage).where(chat_sessions.ChatMessage.session_id.in_(session_ids)),
            sql_delete(chat_sessions.ChatSession).where(chat_sessions.ChatSession.workspace_id == workspace.id),
            sql_delete(migrations.MigrationRecord).where(migrations.MigrationRecord.workspace_id == workspace.id),
            sql_delete(WorkspaceInvite).where(WorkspaceInvite.workspace_id == workspace.id),
            sql_delete(WorkspaceMember).where(WorkspaceMember.workspace_id == workspace.id),
        ]
        for statement in statements:
            await self.session.execute(statement.execution_options(synchronize_session=False))
        await self.session.delete(workspace)
        await self.session.commit()


class InviteRepository(SQLModelRepository[WorkspaceInvite]):
    """Repository for workspace invitations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, WorkspaceInvite)

    async def create_invite(
        self, workspace_id: str, email: str, role: WorkspaceRole, invited_by_id: str
    ) -> WorkspaceInvite:
        invite = WorkspaceInvite(
            workspace_id=workspace_id,
            email=email.lower(),
            role=role,
            token=secrets.token_urlsafe(32),
            invited_by_id=invited_by_id,
            expires_at=utc_now() + INVITE_TTL,
        )
        return await self.create(invite)

    async def get_by_token(self, token: str) -> Optional[WorkspaceInvite]:
        stmt = select(WorkspaceInvite).where(WorkspaceInvite.token == token)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_pending(self, workspace_id: str) -> List[WorkspaceInvite]:
        stmt = (
            select(WorkspaceInvite)
            .where(
                WorkspaceInvite.workspace_id == workspace_id,
                WorkspaceInvite.accepted_at.is_(None),  # type: ignore
                WorkspaceInvite.revoked_at.is_(None),  # type: ignore
            )
            .order_by(WorkspaceInvite.created_at.desc())  # type: ignore
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def accept(self, invite: WorkspaceInvite, user: User) -> WorkspaceMember:
        """Mark ``invite`` accepted and add ``user`` with the invited role."""
        membership = WorkspaceMember(workspace_id=invite.workspace_id, user_id=user.id, role=invite.role)
        invite.accepted_at = utc_now()
        self.session.add(membership)
        self.session.add(invite)
        await self.session.commit()
        await self.session.refresh(membership)
        return membership

    async def revoke(self, invite: WorkspaceInvite) -> WorkspaceInvite:
        """Stamp ``revoked_at``; the row stays for the audit trail."""
        invite.revoked_at = utc_now()
        return await self.update(invite)
