"""
Task entity models.

Tasks belong to a project; subtasks, comments and custom field values belong
to a task. Custom field definitions are declared per project.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import JSON, Field

from loopwell.core.dates import utc_now

from ..base import Base, new_id
from .projects import Priority


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"
    BLOCKED = "BLOCKED"


class CustomFieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    DATE = "date"
    BOOLEAN = "boolean"


class Task(Base, table=True):
    """A unit of work in a project.

    ``depends_on`` and ``blocks`` hold task ids; ``tags`` holds free-form
    labels.

    Table: tasks
    """

    __tablename__ = "tasks"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    project_id: str = Field(foreign_key="projects.id", index=True)
    title: str
    description: Optional[str] = Field(default=None)
    status: TaskStatus = Field(default=TaskStatus.TODO, index=True)
    priority: Priority = Field(default=Priority.MEDIUM)
    assignee_id: Optional[str] = Field(default=None, foreign_key="users.id", index=True)
    created_by_id: str = Field(foreign_key="users.id")
    due_date: Optional[datetime] = Field(default=None)
    tags: List[str] = Field(default_factory=list, sa_type=JSON)
    depends_on: List[str] = Field(default_factory=list, sa_type=JSON)
    blocks: List[str] = Field(default_factory=list, sa_type=JSON)
    epic_id: Optional[str] = Field(default=None, foreign_key="epics.id", index=True)
    milestone_id: Optional[str] = Field(default=None, foreign_key="milestones.id", index=True)
    points: Optional[int] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    def __repr__(self) -> str:
        return f"Task(id={self.id}, title={self.title}, status={self.status})"


class Subtask(Base, table=True):
    """Table: subtasks"""

    __tablename__ = "subtasks"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", index=True)
    title: str
    description: Optional[str] = Field(default=None)
    assignee_id: Optional[str] = Field(default=None, foreign_key="users.id")
    due_date: Optional[datetime] = Field(default=None)
    is_completed: bool = Field(default=False)
    order: int = Field(default=0)
    created_at: datetime = Field(default_factory=utc_now)


class TaskComment(Base, table=True):
    """Table: task_comments"""

    __tablename__ = "task_comments"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", index=True)
    user_id: str = Field(foreign_key="users.id")
    content: str
    mentions: List[str] = Field(default_factory=list, sa_type=JSON)
    created_at: datetime = Field(default_factory=utc_now, index=True)


class CustomFieldDef(Base, table=True):
    """Project-scoped custom field definition.

    Table: custom_field_defs
    """

    __tablename__ = "custom_field_defs"
    __table_args__ = (
        UniqueConstraint("project_id", "key", name="uq_custom_field_key"),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    project_id: str = Field(foreign_key="projects.id", index=True)
    key: str
    label: str
    type: CustomFieldType
    options: Optional[List[str]] = Field(default=None, sa_type=JSON)
    created_at: datetime = Field(default_factory=utc_now)


class CustomFieldValue(Base, table=True):
    """Table: custom_field_values"""

    __tablename__ = "custom_field_values"
    __table_args__ = (
        UniqueConstraint("task_id", "field_id", name="uq_custom_field_value"),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", index=True)
    field_id: str = Field(foreign_key="custom_field_defs.id", index=True)
    value: Any = Field(default=None, sa_type=JSON)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})
