"""
Wiki entity models.

This module contains wiki pages, their content history and attachments.
Slugs are unique per workspace.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Text, UniqueConstraint
from sqlmodel import JSON, Field

from loopwell.core.dates import utc_now

from ..base import Base, new_id


class WikiPage(Base, table=True):
    """A knowledge base page.

    Table: wiki_pages
    """

    __tablename__ = "wiki_pages"
    __table_args__ = (
        UniqueConstraint("workspace_id", "slug", name="uq_wiki_page_slug"),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    title: str
    slug: str = Field(index=True)
    content: str = Field(default="", sa_type=Text)
    excerpt: str = Field(default="")
    parent_id: Optional[str] = Field(default=None, foreign_key="wiki_pages.id")
    tags: List[str] = Field(default_factory=list, sa_type=JSON)
    category: str = Field(default="general")
    is_published: bool = Field(default=True, index=True)
    is_featured: bool = Field(default=False, index=True)
    permission_level: str = Field(default="team")
    order: int = Field(default=0)
    created_by_id: str = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    def __repr__(self) -> str:
        return f"WikiPage(id={self.id}, slug={self.slug})"


class WikiVersion(Base, table=True):
    """Snapshot of a page's content.

    Table: wiki_versions
    """

    __tablename__ = "wiki_versions"
    __table_args__ = (
        UniqueConstraint("page_id", "version", name="uq_wiki_version"),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    page_id: str = Field(foreign_key="wiki_pages.id", index=True)
    content: str = Field(default="", sa_type=Text)
    version: int
    created_by_id: str = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_now)


class WikiAttachment(Base, table=True):
    """Table: wiki_attachments"""

    __tablename__ = "wiki_attachments"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    page_id: str = Field(foreign_key="wiki_pages.id", index=True)
    file_name: str
    file_size: int = Field(default=0)
    file_type: str = Field(default="application/octet-stream")
    file_url: str
    uploaded_by_id: str = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_now)
