"""
Content import models.

Importers reshape third-party documents into ``MigrationItem`` objects; the
migration service turns those into wiki pages and reports a
``MigrationResult``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class MigrationItemType(str, Enum):
    PAGE = "page"
    DOCUMENT = "document"
    FOLDER = "folder"


class MigrationAttachment(BaseModel):
    """A file linked from an imported document."""

    id: str
    name: str
    url: str
    type: str = "application/octet-stream"
    size: int = 0


class MigrationItemMetadata(BaseModel):
    """Provenance and classification of an imported document."""

    original_id: str
    original_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    author: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    parent_id: Optional[str] = Field(default=None, description="Source-side parent reference")
    attachments: List[MigrationAttachment] = Field(default_factory=list)


class MigrationItem(BaseModel):
    """One document ready to become a wiki page."""

    id: str
    title: str
    content: str = ""
    type: MigrationItemType = MigrationItemType.PAGE
    metadata: MigrationItemMetadata


class MigrationResult(BaseModel):
    """Outcome of importing a batch of items."""

    success: bool = True
    imported_count: int = 0
    failed_count: int = 0
    errors: List[str] = Field(default_factory=list)
    imported_items: List[str] = Field(default_factory=list, description="Ids of the created wiki pages")
