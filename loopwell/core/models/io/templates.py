"""
Template I/O models for API requests and responses.

Task template items refer to each other by position (``dependencies``);
project template tasks refer to each other by title (``depends_on``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from loopwell.core.database.entities.projects import Priority, ProjectStatus
from loopwell.core.database.entities.tasks import TaskStatus

from .common import EndDate, HexColor, ShortLabel, StartDate, Tag, reject_nulls
from .projects import ProjectRead
from .tasks import TaskRead


class TaskTemplateItemIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    estimated_duration: Optional[int] = Field(default=None, ge=0, description="Estimate in hours")
    assignee_role: Optional[ShortLabel] = None
    tags: List[Tag] = Field(default_factory=list)
    dependencies: List[int] = Field(default_factory=list, description="Positions of the items this one waits for")


class TaskTemplateItemRead(TaskTemplateItemIn):
    model_config = ConfigDict(from_attributes=True)

    id: str
    template_id: str
    order: int


class TaskTemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category: ShortLabel = "general"
    is_public: bool = False
    extra: Dict[str, Any] = Field(default_factory=dict, description="Free-form settings kept with the template")
    tasks: List[TaskTemplateItemIn] = Field(default_factory=list)


class TaskTemplateUpdate(BaseModel):
    """Change a task template; ``tasks`` replaces every item when given."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[ShortLabel] = None
    is_public: Optional[bool] = None
    extra: Optional[Dict[str, Any]] = None
    tasks: Optional[List[TaskTemplateItemIn]] = None

    @model_validator(mode="after")
    def _check_required(self) -> "TaskTemplateUpdate":
        reject_nulls(self, ("name", "category", "is_public", "extra", "tasks"))
        return self


class TaskTemplateRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workspace_id: str
    name: str
    description: Optional[str] = None
    category: str
    is_public: bool
    extra: Dict[str, Any] = Field(default_factory=dict)
    created_by_id: str
    created_at: datetime
    updated_at: datetime
    tasks: List[TaskTemplateItemRead] = Field(default_factory=list)


class TaskCustomization(BaseModel):
    """Overrides for one template item when the template is applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    assignee_id: Optional[str] = None
    due_date: EndDate = None
    tags: Optional[List[Tag]] = None


class TaskTemplateApply(BaseModel):
    project_id: str
    customizations: Dict[str, TaskCustomization] = Field(
        default_factory=dict, description="Overrides keyed by template item id"
    )


class TemplateSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    category: str


class TaskTemplateApplyResult(BaseModel):
    message: str
    tasks: List[TaskRead]
    template: TemplateSummary


class ProjectBlueprint(BaseModel):
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    priority: Priority = Priority.MEDIUM
    start_date: StartDate = None
    end_date: EndDate = None
    color: Optional[HexColor] = None
    department: Optional[ShortLabel] = None
    team: Optional[ShortLabel] = None


class TaskBlueprint(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    tags: List[Tag] = Field(default_factory=list)
    depends_on: List[str] = Field(default_factory=list, description="Titles of the tasks this one waits for")


class ProjectTemplateData(BaseModel):
    project: ProjectBlueprint = Field(default_factory=ProjectBlueprint)
    tasks: List[TaskBlueprint] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_references(self) -> "ProjectTemplateData":
        titles = [task.title for task in self.tasks]
        if len(set(titles)) != len(titles):
            raise ValueError("Task titles in a project template must be unique")
        for task in self.tasks:
            unknown = [ref for ref in task.depends_on if ref not in titles or ref == task.title]
            if unknown:
                raise ValueError(f"Task '{task.title}' depends on unknown tasks: {', '.join(unknown)}")
        return self


class ProjectTemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category: ShortLabel = "General"
    is_default: bool = False
    is_public: bool = True
    template_data: ProjectTemplateData


class ProjectTemplateRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workspace_id: str
    name: str
    description: Optional[str] = None
    category: str
    is_default: bool
    is_public: bool
    template_data: ProjectTemplateData
    created_by_id: str
    created_at: datetime
    updated_at: datetime


class ProjectTemplateApply(BaseModel):
    project_name: str = Field(min_length=1, max_length=255)
    project_description: Optional[str] = None


class ProjectTemplateApplyResult(BaseModel):
    project: ProjectRead
    tasks: List[TaskRead]
    template: TemplateSummary
