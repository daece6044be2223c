"""
Org chart I/O models for API requests and responses.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .common import HexColor, ShortLabel, reject_nulls


class PositionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    department: Optional[ShortLabel] = None
    level: int = Field(default=1, ge=1)
    parent_id: Optional[str] = None
    user_id: Optional[str] = None
    order: int = Field(default=0, ge=0)


class PositionUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    department: Optional[ShortLabel] = None
    level: Optional[int] = Field(default=None, ge=1)
    parent_id: Optional[str] = None
    user_id: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_required(self) -> "PositionUpdate":
        reject_nulls(self, ("title", "level", "order"))
        return self


class PositionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workspace_id: str
    title: str
    department: Optional[str] = None
    level: int
    parent_id: Optional[str] = None
    user_id: Optional[str] = None
    order: int
    is_active: bool
    children: List[str] = Field(default_factory=list, description="Ids of active direct reports")
    created_at: datetime
    updated_at: datetime


class OrgChartNode(BaseModel):
    """One position in the org chart tree."""

    id: str
    title: str
    department: Optional[str] = None
    level: int
    user_id: Optional[str] = None
    children: List["OrgChartNode"] = Field(default_factory=list)


class DepartmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    color: Optional[HexColor] = None
    order: int = Field(default=0, ge=0)


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    color: Optional[HexColor] = None
    order: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_required(self) -> "DepartmentUpdate":
        reject_nulls(self, ("name", "order"))
        return self


class DepartmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workspace_id: str
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    order: int
    is_active: bool


class TeamCreate(BaseModel):
    department_id: str
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    color: Optional[HexColor] = None
    order: int = Field(default=0, ge=0)


class TeamUpdate(BaseModel):
    department_id: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    color: Optional[HexColor] = None
    order: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def _check_required(self) -> "TeamUpdate":
        reject_nulls(self, ("department_id", "name", "order", "is_active"))
        return self


class TeamRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workspace_id: str
    department_id: str
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    order: int
    is_active: bool
