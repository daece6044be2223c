"""
Template repository implementations.

A template is visible to every member of its workspace when public and only
to its creator otherwise.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from sqlalchemy import delete as sql_delete
from sqlalchemy import or_
from sqlalchemy import update as sql_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.templates import ProjectTemplate, TaskTemplate, TaskTemplateItem
from .base import SQLModelRepository


class TaskTemplateRepository(SQLModelRepository[TaskTemplate]):
    """Repository for task templates and their items."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, TaskTemplate)

    async def list_visible(
        self,
        workspace_id: str,
        user_id: str,
        category: Optional[str] = None,
        is_public: Optional[bool] = None,
    ) -> List[TaskTemplate]:
        """Templates of the workspace the user may see, newest first."""
        stmt = select(TaskTemplate).where(
            TaskTemplate.workspace_id == workspace_id,
            or_(TaskTemplate.is_public == True, TaskTemplate.created_by_id == user_id),  # noqa: E712
        )
        if category:
            stmt = stmt.where(TaskTemplate.category == category)
        if is_public is not None:
            stmt = stmt.where(TaskTemplate.is_public == is_public)
        result = await self.session.execute(stmt.order_by(TaskTemplate.created_at.desc()))  # type: ignore
        return list(result.scalars().all())

    async def list_items(self, template_id: str) -> List[TaskTemplateItem]:
        stmt = (
            select(TaskTemplateItem)
            .where(TaskTemplateItem.template_id == template_id)
            .order_by(TaskTemplateItem.order.asc())  # type: ignore
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    def _add_items(self, template: TaskTemplate, items: Iterable[TaskTemplateItem]) -> None:
        # positions are rewritten so item dependencies can refer to them
        for order, item in enumerate(items):
            item.template_id = template.id
            item.order = order
            self.session.add(item)

    async def create_with_items(self, template: TaskTemplate, items: Iterable[TaskTemplateItem]) -> TaskTemplate:
        self.session.add(template)
        await self.session.flush()
        self._add_items(template, items)
        await self.session.commit()
        await self.session.refresh(template)
        return template

    async def replace_items(self, template: TaskTemplate, items: Iterable[TaskTemplateItem]) -> TaskTemplate:
        """Swap every item of ``template`` for ``items`` and save pending template changes."""
        await self.session.execute(
            sql_delete(TaskTemplateItem)
            .where(TaskTemplateItem.template_id == template.id)
            .execution_options(synchronize_session=False)
        )
        self._add_items(template, items)
        return await self.update(template)

    async def delete_template(self, template: TaskTemplate) -> None:
        await self.session.execute(
            sql_delete(TaskTemplateItem)
            .where(TaskTemplateItem.template_id == template.id)
            .execution_options(synchronize_session=False)
        )
        await self.session.delete(template)
        await self.session.commit()


class ProjectTemplateRepository(SQLModelRepository[ProjectTemplate]):
    """Repository for project templates."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ProjectTemplate)

    async def list_visible(self, workspace_id: str, user_id: str, category: Optional[str] = None) -> List[ProjectTemplate]:
        """Templates of the workspace the user may see, the default one first."""
        stmt = select(ProjectTemplate).where(
            ProjectTemplate.workspace_id == workspace_id,
            or_(ProjectTemplate.is_public == True, ProjectTemplate.created_by_id == user_id),  # noqa: E712
        )
        if category:
            stmt = stmt.where(ProjectTemplate.category == category)
        stmt = stmt.order_by(ProjectTemplate.is_default.desc(), ProjectTemplate.created_at.desc())  # type: ignore
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create_template(self, template: ProjectTemplate) -> ProjectTemplate:
        """Insert ``template``; a new default replaces the workspace's previous default."""
        if template.is_default:
            await self.session.execute(
                sql_update(ProjectTemplate)
                .where(ProjectTemplate.workspace_id == template.workspace_id, ProjectTemplate.is_default == True)  # noqa: E712
                .values(is_default=False)
            )
        return await self.create(template)
