"""
Content migration records.

One row per import run from a third-party platform into the wiki.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlmodel import JSON, Field

from loopwell.core.dates import utc_now

from ..base import Base, new_id


class MigrationPlatform(str, Enum):
    CLICKUP = "clickup"
    SLITE = "slite"


class MigrationStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class MigrationRecord(Base, table=True):
    """Table: migration_records"""

    __tablename__ = "migration_records"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True)
    platform: MigrationPlatform
    status: MigrationStatus = Field(default=MigrationStatus.RUNNING)
    imported_count: int = Field(default=0)
    failed_count: int = Field(default=0)
    errors: List[str] = Field(default_factory=list, sa_type=JSON)
    started_by_id: str = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_now, index=True)
    finished_at: Optional[datetime] = Field(default=None)
