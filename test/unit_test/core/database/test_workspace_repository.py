"""Unit tests for the user, workspace and invite repositories."""

from datetime import timedelta

import pytest
from sqlmodel import select

from loopwell.core.database.entities.projects import Project
from loopwell.core.database.entities.wiki import WikiPage
from loopwell.core.database.entities.workspaces import WorkspaceMember, WorkspaceRole
from loopwell.core.database.repositories import (
    InviteRepository,
    ProjectRepository,
    UserRepository,
    WikiRepository,
    WorkspaceRepository,
)
from loopwell.core.dates import utc_now


class TestUserRepository:
    @pytest.mark.asyncio
    async def test_get_or_create_is_case_insensitive(self, session):
        users = UserRepository(session)

        created = await users.get_or_create("Jane@Example.com", "Jane")
        again = await users.get_or_create("jane@example.com")

        assert created.email == "jane@example.com"
        assert again.id == created.id

    @pytest.mark.asyncio
    async def test_get_or_create_fills_missing_name(self, session):
        users = UserRepository(session)
        await users.get_or_create("noname@example.com")

        user = await users.get_or_create("noname@example.com", "Named Later")

        assert user.name == "Named Later"

    @pytest.mark.asyncio
    async def test_get_or_create_keeps_existing_name(self, session, owner):
        user = await UserRepository(session).get_or_create(owner.email, "Someone Else")

        assert user.name == "Olivia Owner"


class TestWorkspaceRepository:
    @pytest.mark.asyncio
    async def test_create_with_owner(self, session, owner):
        workspace, membership = await WorkspaceRepository(session).create_with_owner("Design Team", owner)

        assert workspace.slug == "design-team"
        assert workspace.owner_id == owner.id
        assert membership.role == WorkspaceRole.OWNER
        assert membership.workspace_id == workspace.id

    @pytest.mark.asyncio
    async def test_slug_collisions_get_suffixes(self, session, owner):
        workspaces = WorkspaceRepository(session)

        first, _ = await workspaces.create_with_owner("Acme Labs", owner)
        second, _ = await workspaces.create_with_owner("Acme Labs", owner)
        third, _ = await workspaces.create_with_owner("Other", owner, slug="acme-labs")

        assert [first.slug, second.slug, third.slug] == ["acme-labs", "acme-labs-1", "acme-labs-2"]

    @pytest.mark.asyncio
    async def test_memberships(self, session, workspace, owner, member):
        workspaces = WorkspaceRepository(session)

        listed = await workspaces.list_for_user(member.id)
        members = await workspaces.list_members(workspace.id)

        assert [(ws.id, m.role) for ws, m in listed] == [(workspace.id, WorkspaceRole.MEMBER)]
        assert [user.email for _, user in members] == [owner.email, member.email]
        assert (await workspaces.get_membership(workspace.id, member.id)).role == WorkspaceRole.MEMBER
        assert await workspaces.get_membership(workspace.id, "missing") is None

    @pytest.mark.asyncio
    async def test_earliest_membership(self, session, workspace, owner):
        workspaces = WorkspaceRepository(session)
        await workspaces.create_with_owner("Second", owner)

        earliest = await workspaces.earliest_membership(owner.id)

        assert earliest.workspace_id == workspace.id

    @pytest.mark.asyncio
    async def test_count_owners_and_remove_member(self, session, workspace, admin):
        workspaces = WorkspaceRepository(session)
        assert await workspaces.count_owners(workspace.id) == 1

        membership = await workspaces.get_membership(workspace.id, admin.id)
        await workspaces.remove_member(membership)

        assert await workspaces.get_membership(workspace.id, admin.id) is None

    @pytest.mark.asyncio
    async def test_non_member_ids(self, session, workspace, member, outsider):
        workspaces = WorkspaceRepository(session)

        missing = await workspaces.non_member_ids(workspace.id, [outsider.id, member.id, "ghost", outsider.id])

        assert missing == [outsider.id, "ghost"]
        assert await workspaces.non_member_ids(workspace.id, []) == []

    @pytest.mark.asyncio
    async def test_delete_workspace_removes_scoped_rows(self, session, workspace, owner):
        workspace_id = workspace.id
        await ProjectRepository(session).create_with_members(
            Project(workspace_id=workspace_id, name="Launch", created_by_id=owner.id), owner.id
        )
        await WikiRepository(session).create_page(
            WikiPage(workspace_id=workspace_id, title="Home", slug="home", created_by_id=owner.id)
        )

        await WorkspaceRepository(session).delete_workspace(workspace)

        for model in (Project, WikiPage, WorkspaceMember):
            rows = (await session.execute(select(model).where(model.workspace_id == workspace_id))).scalars().all()
            assert rows == []


class TestInviteRepository:
    @pytest.mark.asyncio
    async def test_create_invite(self, session, workspace, owner):
        invite = await InviteRepository(session).create_invite(
            workspace.id, "New.Person@Example.com", WorkspaceRole.ADMIN, owner.id
        )

        assert invite.email == "new.person@example.com"
        assert len(invite.token) >= 32
        assert invite.expires_at - utc_now() > timedelta(days=6)
        assert invite.accepted_at is None

    @pytest.mark.asyncio
    async def test_accept_creates_membership(self, session, workspace, owner, outsider):
        invites = InviteRepository(session)
        invite = await invites.create_invite(workspace.id, outsider.email, WorkspaceRole.MEMBER, owner.id)

        membership = await invites.accept(invite, outsider)

        assert membership.role == WorkspaceRole.MEMBER
        assert (await invites.get_by_token(invite.token)).accepted_at is not None
        assert await invites.list_pending(workspace.id) == []

    @pytest.mark.asyncio
    async def test_list_pending(self, session, workspace, owner):
        invites = InviteRepository(session)
        invite = await invites.create_invite(workspace.id, "a@example.com", WorkspaceRole.VIEWER, owner.id)

        assert [i.id for i in await invites.list_pending(workspace.id)] == [invite.id]
        assert await invites.get_by_token("nope") is None

    @pytest.mark.asyncio
    async def test_revoke_hides_invite_from_pending(self, session, workspace, owner):
        invites = InviteRepository(session)
        invite = await invites.create_invite(workspace.id, "b@example.com", WorkspaceRole.MEMBER, owner.id)

        revoked = await invites.revoke(invite)

        assert revoked.revoked_at is not None
        assert await invites.list_pending(workspace.id) == []
