"""
Org chart entity models.

Positions form a tree through ``parent_id``. Departments and teams are flat
lookup rows scoped to a workspace. Deleting a position is a soft delete.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from loopwell.core.dates import utc_now

from ..base import Base, new_id


class OrgPosition(Base, table=True):
    """Table: org_positions"""

    __tablename__ = "org_positions"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    title: str
    department: Optional[str] = Field(default=None)
    level: int = Field(default=1)
    parent_id: Optional[str] = Field(default=None, foreign_key="org_positions.id", index=True)
    user_id: Optional[str] = Field(default=None, foreign_key="users.id")
    order: int = Field(default=0)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    def __repr__(self) -> str:
        return f"OrgPosition(id={self.id}, title={self.title}, level={self.level})"


class OrgDepartment(Base, table=True):
    """Table: org_departments"""

    __tablename__ = "org_departments"
    __table_args__ = (
        UniqueConstraint("workspace_id", "name", name="uq_org_department_name"),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    name: str
    description: Optional[str] = Field(default=None)
    color: Optional[str] = Field(default=None)
    order: int = Field(default=0)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class OrgTeam(Base, table=True):
    """Table: org_teams"""

    __tablename__ = "org_teams"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    department_id: str = Field(foreign_key="org_departments.id", index=True)
    name: str
    description: Optional[str] = Field(default=None)
    color: Optional[str] = Field(default=None)
    order: int = Field(default=0)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)
