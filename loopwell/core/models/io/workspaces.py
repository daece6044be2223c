"""
Workspace I/O models for API requests and responses.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from loopwell.core.database.entities.workspaces import WorkspaceRole

from .common import reject_nulls


class UserRead(BaseModel):
    """Schema for reading a user."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None


class WorkspaceCreate(BaseModel):
    """Schema for creating a workspace."""

    name: str = Field(min_length=1, max_length=100, description="Workspace name")
    slug: Optional[str] = Field(default=None, max_length=100, description="Preferred slug; derived from name if omitted")
    description: Optional[str] = Field(default=None, max_length=500)


class WorkspaceUpdate(BaseModel):
    """Schema for updating a workspace."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _check_required(self) -> "WorkspaceUpdate":
        reject_nulls(self, ("name",))
        return self


class WorkspaceRead(BaseModel):
    """Schema for reading a workspace."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str
    description: Optional[str] = None
    owner_id: str
    created_at: datetime
    updated_at: datetime


class WorkspaceWithRole(WorkspaceRead):
    """A workspace as seen by one of its members."""

    user_role: WorkspaceRole = Field(description="Role of the calling user in this workspace")


class MemberRead(BaseModel):
    """Schema for reading a workspace or project membership."""

    user_id: str
    email: str
    name: Optional[str] = None
    role: WorkspaceRole
    joined_at: datetime


class MemberAdd(BaseModel):
    """Schema for adding an existing user to a workspace."""

    email: str = Field(min_length=3, max_length=255)
    role: WorkspaceRole = WorkspaceRole.MEMBER


class MemberRoleUpdate(BaseModel):
    role: WorkspaceRole


class InviteCreate(BaseModel):
    """Schema for inviting someone by email."""

    email: str = Field(min_length=3, max_length=255)
    role: WorkspaceRole = WorkspaceRole.MEMBER


class InviteRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workspace_id: str
    email: str
    role: WorkspaceRole
    token: str
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    created_at: datetime
