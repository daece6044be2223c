"""
Task I/O models for API requests and responses.

Due dates accept a full ISO-8601 datetime, ``YYYY-MM-DD`` or ``DD.MM.YYYY``;
the two date-only forms mean the end of that day.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from loopwell.core.database.entities.projects import Priority
from loopwell.core.database.entities.tasks import CustomFieldType, TaskStatus

from .common import EndDate, Tag, reject_nulls


class SubtaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    assignee_id: Optional[str] = None
    due_date: EndDate = None
    is_completed: bool = False
    order: int = Field(default=0, ge=0)


class SubtaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    task_id: str
    title: str
    description: Optional[str] = None
    assignee_id: Optional[str] = None
    due_date: Optional[datetime] = None
    is_completed: bool
    order: int


class TaskCreate(BaseModel):
    """Schema for creating a task."""

    project_id: str
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    assignee_id: Optional[str] = None
    due_date: EndDate = None
    tags: List[Tag] = Field(default_factory=list)
    depends_on: List[str] = Field(default_factory=list, description="Ids of tasks this task waits for")
    blocks: List[str] = Field(default_factory=list, description="Ids of tasks waiting for this task")
    epic_id: Optional[str] = None
    milestone_id: Optional[str] = None
    points: Optional[int] = Field(default=None, ge=0, le=100)
    subtasks: List[SubtaskCreate] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Schema for updating a task; at least one field must be provided."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[Priority] = None
    assignee_id: Optional[str] = None
    due_date: EndDate = None
    tags: Optional[List[Tag]] = None
    depends_on: Optional[List[str]] = None
    blocks: Optional[List[str]] = None
    epic_id: Optional[str] = None
    milestone_id: Optional[str] = None
    points: Optional[int] = Field(default=None, ge=0, le=100)
    completed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _require_change(self) -> "TaskUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        reject_nulls(self, ("title", "status", "priority", "tags", "depends_on", "blocks"))
        return self


class TaskRead(BaseModel):
    """Schema for reading a task."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    workspace_id: str
    project_id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: Priority
    assignee_id: Optional[str] = None
    created_by_id: str
    due_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    depends_on: List[str] = Field(default_factory=list)
    blocks: List[str] = Field(default_factory=list)
    epic_id: Optional[str] = None
    milestone_id: Optional[str] = None
    points: Optional[int] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class DependencyAction(str, Enum):
    SET = "set"
    ADD = "add"
    REMOVE = "remove"


class TaskDependencyUpdate(BaseModel):
    """Change the dependency links of a task; an omitted list is left as is."""

    action: DependencyAction = DependencyAction.SET
    depends_on: Optional[List[str]] = None
    blocks: Optional[List[str]] = None


class DependencyTaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    status: TaskStatus
    priority: Priority
    assignee_id: Optional[str] = None
    due_date: Optional[datetime] = None


class TaskDependencies(BaseModel):
    task: DependencyTaskRead
    dependencies: List[DependencyTaskRead] = Field(default_factory=list)
    blocked_tasks: List[DependencyTaskRead] = Field(default_factory=list)


class CustomFieldValueRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    field_id: str
    value: Any = None


class TaskDetail(TaskRead):
    """A task with its subtasks and custom field values."""

    subtasks: List[SubtaskRead] = Field(default_factory=list)
    custom_fields: List[CustomFieldValueRead] = Field(default_factory=list)


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=2000)
    mentions: List[str] = Field(default_factory=list, description="Ids of mentioned users")


class CommentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    task_id: str
    user_id: str
    author_name: Optional[str] = None
    content: str
    mentions: List[str] = Field(default_factory=list)
    created_at: datetime


class CustomFieldDefCreate(BaseModel):
    """Schema for declaring a project custom field."""

    key: str = Field(min_length=1, max_length=50, pattern=r"^[a-zA-Z0-9_]+$")
    label: str = Field(min_length=1, max_length=100)
    type: CustomFieldType
    options: Optional[List[str]] = None

    @model_validator(mode="after")
    def _select_needs_options(self) -> "CustomFieldDefCreate":
        if self.type == CustomFieldType.SELECT and not self.options:
            raise ValueError("Select fields require at least one option")
        return self


class CustomFieldDefUpdate(BaseModel):
    """Schema for changing a custom field; at least one field must be provided."""

    key: Optional[str] = Field(default=None, min_length=1, max_length=50, pattern=r"^[a-zA-Z0-9_]+$")
    label: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[CustomFieldType] = None
    options: Optional[List[str]] = None

    @model_validator(mode="after")
    def _require_change(self) -> "CustomFieldDefUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        reject_nulls(self, ("key", "label", "type"))
        return self


class CustomFieldDefRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    key: str
    label: str
    type: CustomFieldType
    options: Optional[List[str]] = None
    created_at: datetime


class CustomFieldValueSet(BaseModel):
    value: Any = None
