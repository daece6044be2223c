"""
Wiki I/O models for API requests and responses.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .common import Tag, reject_nulls


class WikiPageCreate(BaseModel):
    """Schema for creating a wiki page. The slug is derived from the title."""

    title: str = Field(min_length=1, max_length=255)
    content: str = ""
    parent_id: Optional[str] = None
    tags: List[Tag] = Field(default_factory=list)
    category: str = Field(default="general", max_length=100)
    is_published: bool = True
    permission_level: str = Field(default="team", max_length=50)
    order: int = Field(default=0, ge=0)


class WikiPageUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = None
    parent_id: Optional[str] = None
    tags: Optional[List[Tag]] = None
    category: Optional[str] = Field(default=None, max_length=100)
    is_published: Optional[bool] = None
    permission_level: Optional[str] = Field(default=None, max_length=50)
    order: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_required(self) -> "WikiPageUpdate":
        reject_nulls(self, ("title", "content", "tags", "category", "is_published", "permission_level", "order"))
        return self


class WikiPageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workspace_id: str
    title: str
    slug: str
    content: str
    excerpt: str
    parent_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category: str
    is_published: bool
    is_featured: bool = False
    permission_level: str
    order: int
    created_by_id: str
    created_at: datetime
    updated_at: datetime


class WikiVersionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    page_id: str
    version: int
    content: str
    created_by_id: str
    created_at: datetime


class WikiSearchHit(WikiPageRead):
    relevance_score: int


class WikiSearchResponse(BaseModel):
    results: List[WikiSearchHit]
    total: int
    query: str


class WikiFavoriteResponse(BaseModel):
    message: str
    page: WikiPageRead


class WikiPageCounts(BaseModel):
    """Published pages split into personal pages and everything shared with the team."""

    personal: int = 0
    team: int = 0
