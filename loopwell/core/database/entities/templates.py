"""
Template entity models.

Task templates hold an ordered list of task blueprints that can be stamped
into an existing project. Project templates carry a JSON blueprint of a whole
project with its tasks. Both are scoped to a workspace.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import JSON, Field

from loopwell.core.dates import utc_now

from ..base import Base, new_id
from .projects import Priority
from .tasks import TaskStatus


class TaskTemplate(Base, table=True):
    """Table: task_templates"""

    __tablename__ = "task_templates"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    name: str
    description: Optional[str] = Field(default=None)
    category: str = Field(default="general", index=True)
    is_public: bool = Field(default=False)
    extra: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    created_by_id: str = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class TaskTemplateItem(Base, table=True):
    """One task blueprint of a task template.

    ``dependencies`` holds the ``order`` positions of sibling items.

    Table: task_template_items
    """

    __tablename__ = "task_template_items"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    template_id: str = Field(foreign_key="task_templates.id", index=True)
    title: str
    description: Optional[str] = Field(default=None)
    status: TaskStatus = Field(default=TaskStatus.TODO)
    priority: Priority = Field(default=Priority.MEDIUM)
    estimated_duration: Optional[int] = Field(default=None)
    assignee_role: Optional[str] = Field(default=None)
    tags: List[str] = Field(default_factory=list, sa_type=JSON)
    dependencies: List[int] = Field(default_factory=list, sa_type=JSON)
    order: int = Field(default=0)


class ProjectTemplate(Base, table=True):
    """Blueprint of a project and its tasks.

    Table: project_templates
    """

    __tablename__ = "project_templates"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    name: str
    description: Optional[str] = Field(default=None)
    category: str = Field(default="General", index=True)
    is_default: bool = Field(default=False)
    is_public: bool = Field(default=True)
    template_data: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    created_by_id: str = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    def __repr__(self) -> str:
        return f"ProjectTemplate(id={self.id}, name={self.name})"
