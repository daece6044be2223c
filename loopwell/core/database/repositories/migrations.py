"""
Migration record repository.
"""

from __future__ import annotations

from typing import List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.migrations import MigrationRecord
from .base import SQLModelRepository


class MigrationRecordRepository(SQLModelRepository[MigrationRecord]):
    """Repository for content import runs."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, MigrationRecord)

    async def list_for_workspace(self, workspace_id: str, limit: int = 50) -> List[MigrationRecord]:
        stmt = (
            select(MigrationRecord)
            .where(MigrationRecord.workspace_id == workspace_id)
            .order_by(MigrationRecord.created_at.desc())  # type: ignore
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
