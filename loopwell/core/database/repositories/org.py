"""
Org chart repository implementations.

Positions are soft-deleted: ``is_active`` is cleared instead of removing the
row, so historical assignments survive.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.org import OrgDepartment, OrgPosition, OrgTeam
from .base import SQLModelRepository


class OrgPositionRepository(SQLModelRepository[OrgPosition]):
    """Repository for org positions."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, OrgPosition)

    async def list_active(self, workspace_id: str) -> List[OrgPosition]:
        stmt = (
            select(OrgPosition)
            .where(OrgPosition.workspace_id == workspace_id, OrgPosition.is_active == True)  # noqa: E712
            .order_by(OrgPosition.level.asc(), OrgPosition.order.asc())  # type: ignore
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_active_children(self, position_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(OrgPosition)
            .where(OrgPosition.parent_id == position_id, OrgPosition.is_active == True)  # noqa: E712
        )
        return (await self.session.execute(stmt)).scalar_one()

    async def parent_map(self, workspace_id: str) -> Dict[str, Optional[str]]:
        """``position id -> parent id`` for every position in the workspace."""
        stmt = select(OrgPosition.id, OrgPosition.parent_id).where(OrgPosition.workspace_id == workspace_id)
        result = await self.session.execute(stmt)
        return {position_id: parent_id for position_id, parent_id in result.all()}

    async def soft_delete(self, position: OrgPosition) -> OrgPosition:
        position.is_active = False
        return await self.update(position)


class OrgDepartmentRepository(SQLModelRepository[OrgDepartment]):
    """Repository for departments."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, OrgDepartment)

    async def list_active(self, workspace_id: str) -> List[OrgDepartment]:
        stmt = (
            select(OrgDepartment)
            .where(OrgDepartment.workspace_id == workspace_id, OrgDepartment.is_active == True)  # noqa: E712
            .order_by(OrgDepartment.order.asc(), OrgDepartment.name.asc())  # type: ignore
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_name(self, workspace_id: str, name: str) -> Optional[OrgDepartment]:
        stmt = select(OrgDepartment).where(OrgDepartment.workspace_id == workspace_id, OrgDepartment.name == name)
        result = await self.session.execute(stmt)
        return result.scalars().first()


class OrgTeamRepository(SQLModelRepository[OrgTeam]):
    """Repository for teams."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, OrgTeam)

    async def list_active(self, workspace_id: str, department_id: Optional[str] = None) -> List[OrgTeam]:
        stmt = select(OrgTeam).where(OrgTeam.workspace_id == workspace_id, OrgTeam.is_active == True)  # noqa: E712
        if department_id:
            stmt = stmt.where(OrgTeam.department_id == department_id)
        result = await self.session.execute(stmt.order_by(OrgTeam.order.asc(), OrgTeam.name.asc()))  # type: ignore
        return list(result.scalars().all())

    async def get_by_name(self, workspace_id: str, department_id: str, name: str) -> Optional[OrgTeam]:
        stmt = select(OrgTeam).where(
            OrgTeam.workspace_id == workspace_id, OrgTeam.department_id == department_id, OrgTeam.name == name
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def count_in_department(self, department_id: str) -> int:
        """Teams of a department, active or not."""
        stmt = select(func.count()).select_from(OrgTeam).where(OrgTeam.department_id == department_id)
        return (await self.session.execute(stmt)).scalar_one()
