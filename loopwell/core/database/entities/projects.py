"""
Project entity models.

This module contains projects, their per-project memberships, watchers and
assignees, plus the planning rows hanging off a project (epics and
milestones).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from loopwell.core.dates import utc_now

from ..base import Base, new_id
from .workspaces import WorkspaceRole


class ProjectStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Priority(str, Enum):
    """Priority shared by projects and tasks."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


PRIORITY_RANK = {Priority.LOW: 1, Priority.MEDIUM: 2, Priority.HIGH: 3, Priority.URGENT: 4}


class ProjectVisibility(str, Enum):
    PUBLIC = "PUBLIC"
    TARGETED = "TARGETED"


class Project(Base, table=True):
    """A project inside a workspace.

    Table: projects
    """

    __tablename__ = "projects"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    name: str
    description: Optional[str] = Field(default=None)
    status: ProjectStatus = Field(default=ProjectStatus.ACTIVE, index=True)
    priority: Priority = Field(default=Priority.MEDIUM)
    visibility: ProjectVisibility = Field(default=ProjectVisibility.PUBLIC)
    start_date: Optional[datetime] = Field(default=None)
    end_date: Optional[datetime] = Field(default=None)
    color: Optional[str] = Field(default=None)
    department: Optional[str] = Field(default=None)
    team: Optional[str] = Field(default=None)
    owner_id: Optional[str] = Field(default=None, foreign_key="users.id")
    created_by_id: str = Field(foreign_key="users.id")
    daily_summary_enabled: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}, index=True)

    def __repr__(self) -> str:
        return f"Project(id={self.id}, name={self.name}, status={self.status})"


class ProjectMember(Base, table=True):
    """Per-project role assignment.

    Table: project_members
    """

    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_member"),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    project_id: str = Field(foreign_key="projects.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    role: WorkspaceRole = Field(default=WorkspaceRole.MEMBER)
    joined_at: datetime = Field(default_factory=utc_now)


class ProjectWatcher(Base, table=True):
    """Table: project_watchers"""

    __tablename__ = "project_watchers"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_watcher"),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    project_id: str = Field(foreign_key="projects.id", index=True)
    user_id: str = Field(foreign_key="users.id")


class ProjectAssignee(Base, table=True):
    """Table: project_assignees"""

    __tablename__ = "project_assignees"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_assignee"),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    project_id: str = Field(foreign_key="projects.id", index=True)
    user_id: str = Field(foreign_key="users.id")
    role: Optional[str] = Field(default=None, description="Free-form responsibility label")


class Epic(Base, table=True):
    """A group of related tasks within a project.

    Table: epics
    """

    __tablename__ = "epics"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    project_id: str = Field(foreign_key="projects.id", index=True)
    title: str
    description: Optional[str] = Field(default=None)
    color: Optional[str] = Field(default=None)
    order: int = Field(default=0)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class Milestone(Base, table=True):
    """A dated checkpoint within a project.

    Table: milestones
    """

    __tablename__ = "milestones"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    project_id: str = Field(foreign_key="projects.id", index=True)
    title: str
    description: Optional[str] = Field(default=None)
    start_date: Optional[datetime] = Field(default=None)
    end_date: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})
