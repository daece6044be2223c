"""
Content migration I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from loopwell.core.database.entities.migrations import MigrationPlatform, MigrationStatus


class MigrationImportRequest(BaseModel):
    """Schema for starting an import from a third-party platform."""

    platform: MigrationPlatform
    api_key: SecretStr = Field(description="Platform API key; used for this request only")
    team_id: Optional[str] = Field(default=None, description="ClickUp team (workspace) id")

    @model_validator(mode="after")
    def _clickup_needs_team(self) -> "MigrationImportRequest":
        if self.platform == MigrationPlatform.CLICKUP and not self.team_id:
            raise ValueError("ClickUp imports require a team_id")
        return self


class MigrationRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workspace_id: str
    platform: MigrationPlatform
    status: MigrationStatus
    imported_count: int
    failed_count: int
    errors: List[str] = Field(default_factory=list)
    started_by_id: str
    created_at: datetime
    finished_at: Optional[datetime] = None


class MigrationImportResponse(BaseModel):
    """Result of one import run."""

    migration_id: str
    status: MigrationStatus
    success: bool
    imported_count: int
    failed_count: int
    errors: List[str] = Field(default_factory=list)
    imported_items: List[str] = Field(default_factory=list, description="Ids of the created wiki pages")
