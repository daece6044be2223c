"""
Project I/O models for API requests and responses.

Covers projects, project memberships, epics and milestones.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from loopwell.core.database.entities.projects import Priority, ProjectStatus, ProjectVisibility
from loopwell.core.database.entities.workspaces import WorkspaceRole

from .common import EndDate, HexColor, ShortLabel, StartDate, ensure_ordered, reject_nulls
from .workspaces import MemberRead


class ProjectCreate(BaseModel):
    """Schema for creating a project.

    Date-only ``start_date`` values start at midnight and date-only
    ``end_date`` values end at 23:59:59.999 of that day.
    """

    name: str = Field(min_length=1, max_length=255, description="Project name")
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    priority: Priority = Priority.MEDIUM
    start_date: StartDate = None
    end_date: EndDate = None
    color: Optional[HexColor] = None
    department: Optional[ShortLabel] = None
    team: Optional[ShortLabel] = None
    owner_id: Optional[str] = None
    daily_summary_enabled: bool = False
    visibility: ProjectVisibility = ProjectVisibility.PUBLIC
    member_user_ids: List[str] = Field(default_factory=list, description="Users added as project members")
    watcher_ids: List[str] = Field(default_factory=list)
    assignee_ids: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_consistency(self) -> "ProjectCreate":
        ensure_ordered(self.start_date, self.end_date)
        if self.visibility == ProjectVisibility.TARGETED and not self.member_user_ids:
            raise ValueError("Targeted projects require at least one member")
        return self


class ProjectUpdate(BaseModel):
    """Schema for updating a project; only provided fields change."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    priority: Optional[Priority] = None
    start_date: StartDate = None
    end_date: EndDate = None
    color: Optional[HexColor] = None
    department: Optional[ShortLabel] = None
    team: Optional[ShortLabel] = None
    owner_id: Optional[str] = None
    daily_summary_enabled: Optional[bool] = None
    visibility: Optional[ProjectVisibility] = None

    @model_validator(mode="after")
    def _check_dates(self) -> "ProjectUpdate":
        reject_nulls(self, ("name", "status", "priority", "visibility", "daily_summary_enabled"))
        ensure_ordered(self.start_date, self.end_date)
        return self


class ProjectRead(BaseModel):
    """Schema for reading a project."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    workspace_id: str
    name: str
    description: Optional[str] = None
    status: ProjectStatus
    priority: Priority
    visibility: ProjectVisibility
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    color: Optional[str] = None
    department: Optional[str] = None
    team: Optional[str] = None
    owner_id: Optional[str] = None
    created_by_id: str
    daily_summary_enabled: bool
    created_at: datetime
    updated_at: datetime


class ProjectSummary(ProjectRead):
    task_count: int = 0


class ProjectDetail(ProjectRead):
    """A project with its people."""

    members: List[MemberRead] = Field(default_factory=list)
    watcher_ids: List[str] = Field(default_factory=list)
    assignee_ids: List[str] = Field(default_factory=list)


class ProjectMemberAdd(BaseModel):
    user_id: str
    role: WorkspaceRole = WorkspaceRole.MEMBER


# Epics


class EpicCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[HexColor] = None
    order: int = Field(default=0, ge=0)


class EpicUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[HexColor] = None
    order: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_required(self) -> "EpicUpdate":
        reject_nulls(self, ("title", "order"))
        return self


class EpicRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    title: str
    description: Optional[str] = None
    color: Optional[str] = None
    order: int
    created_at: datetime
    updated_at: datetime


# Milestones


class MilestoneCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: StartDate = None
    end_date: EndDate = None

    @model_validator(mode="after")
    def _check_dates(self) -> "MilestoneCreate":
        ensure_ordered(self.start_date, self.end_date)
        return self


class MilestoneUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: StartDate = None
    end_date: EndDate = None

    @model_validator(mode="after")
    def _check_dates(self) -> "MilestoneUpdate":
        reject_nulls(self, ("title",))
        ensure_ordered(self.start_date, self.end_date)
        return self


class MilestoneRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    title: str
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
