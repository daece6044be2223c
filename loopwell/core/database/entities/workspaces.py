"""
Workspace and membership entity models.

A workspace is the tenant boundary: every project, task, wiki page, org
position and chat session belongs to exactly one workspace. Users join
workspaces through memberships that carry a role.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from loopwell.core.dates import utc_now

from ..base import Base, new_id


class WorkspaceRole(str, Enum):
    """Membership role, ordered from least to most privileged."""

    VIEWER = "VIEWER"
    MEMBER = "MEMBER"
    ADMIN = "ADMIN"
    OWNER = "OWNER"

    @property
    def level(self) -> int:
        return ROLE_LEVELS[self]

    def satisfies(self, required: "WorkspaceRole") -> bool:
        """Whether this role grants at least the privileges of ``required``."""
        return self.level >= required.level


ROLE_LEVELS = {
    WorkspaceRole.VIEWER: 1,
    WorkspaceRole.MEMBER: 2,
    WorkspaceRole.ADMIN: 3,
    WorkspaceRole.OWNER: 4,
}


class User(Base, table=True):
    """Application user, identified by email.

    Table: users
    """

    __tablename__ = "users"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(unique=True, index=True, description="Login email")
    name: Optional[str] = Field(default=None, description="Display name")
    image: Optional[str] = Field(default=None, description="Avatar URL")
    created_at: datetime = Field(default_factory=utc_now)

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email})"


class Workspace(Base, table=True):
    """Tenant container.

    Table: workspaces
    """

    __tablename__ = "workspaces"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(description="Workspace name")
    slug: str = Field(unique=True, index=True, description="URL-safe unique identifier")
    description: Optional[str] = Field(default=None)
    owner_id: str = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    def __repr__(self) -> str:
        return f"Workspace(id={self.id}, slug={self.slug})"


class WorkspaceMember(Base, table=True):
    """Membership of a user in a workspace.

    Table: workspace_members
    """

    __tablename__ = "workspace_members"
    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    role: WorkspaceRole = Field(default=WorkspaceRole.MEMBER)
    joined_at: datetime = Field(default_factory=utc_now, index=True)

    def __repr__(self) -> str:
        return f"WorkspaceMember(workspace_id={self.workspace_id}, user_id={self.user_id}, role={self.role})"


class WorkspaceInvite(Base, table=True):
    """Pending invitation to join a workspace.

    Table: workspace_invites
    """

    __tablename__ = "workspace_invites"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    email: str = Field(index=True)
    role: WorkspaceRole = Field(default=WorkspaceRole.MEMBER)
    token: str = Field(unique=True, index=True)
    invited_by_id: str = Field(foreign_key="users.id")
    expires_at: datetime
    accepted_at: Optional[datetime] = Field(default=None)
    revoked_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
