"""
Project repository implementations.

Data access for projects, project memberships, epics and milestones.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete as sql_delete
from sqlalchemy import func
from sqlalchemy import update as sql_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.projects import (
    Epic,
    Milestone,
    Project,
    ProjectAssignee,
    ProjectMember,
    ProjectStatus,
    ProjectWatcher,
)
from ..entities.tasks import CustomFieldDef, CustomFieldValue, Subtask, Task, TaskComment
from ..entities.workspaces import User, WorkspaceRole
from .base import SQLModelRepository


class ProjectRepository(SQLModelRepository[Project]):
    """Repository for projects and their memberships."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Project)

    async def list_for_workspace(
        self, workspace_id: str, status: Optional[ProjectStatus] = None
    ) -> List[Tuple[Project, int]]:
        """Projects of a workspace, most recently updated first, with task counts."""
        task_count = (
            select(Task.project_id, func.count(Task.id).label("task_count"))
            .group_by(Task.project_id)
            .subquery()
        )
        stmt = (
            select(Project, func.coalesce(task_count.c.task_count, 0))
            .outerjoin(task_count, task_count.c.project_id == Project.id)
            .where(Project.workspace_id == workspace_id)
            .order_by(Project.updated_at.desc())  # type: ignore
        )
        if status is not None:
            stmt = stmt.where(Project.status == status)
        result = await self.session.execute(stmt)
        return [(project, count) for project, count in result.all()]

    async def create_with_members(
        self,
        project: Project,
        creator_id: str,
        member_ids: Iterable[str] = (),
        watcher_ids: Iterable[str] = (),
        assignee_ids: Iterable[str] = (),
    ) -> Project:
        """Create a project, its creator OWNER membership and the related rows atomically."""
        self.session.add(project)
        await self.session.flush()
        self.session.add(ProjectMember(project_id=project.id, user_id=creator_id, role=WorkspaceRole.OWNER))
        for user_id in dict.fromkeys(member_ids):
            if user_id != creator_id:
                self.session.add(ProjectMember(project_id=project.id, user_id=user_id, role=WorkspaceRole.MEMBER))
        for user_id in dict.fromkeys(watcher_ids):
            self.session.add(ProjectWatcher(project_id=project.id, user_id=user_id))
        for user_id in dict.fromkeys(assignee_ids):
            self.session.add(ProjectAssignee(project_id=project.id, user_id=user_id))
        await self.session.commit()
        await self.session.refresh(project)
        return project

    async def get_member(self, project_id: str, user_id: str) -> Optional[ProjectMember]:
        stmt = select(ProjectMember).where(ProjectMember.project_id == project_id, ProjectMember.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_members(self, project_id: str) -> List[Tuple[ProjectMember, User]]:
        stmt = (
            select(ProjectMember, User)
            .join(User, User.id == ProjectMember.user_id)
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.joined_at.asc())  # type: ignore
        )
        result = await self.session.execute(stmt)
        return [(member, user) for member, user in result.all()]

    async def add_member(self, project_id: str, user_id: str, role: WorkspaceRole) -> ProjectMember:
        member = ProjectMember(project_id=project_id, user_id=user_id, role=role)
        self.session.add(member)
        await self.session.commit()
        await self.session.refresh(member)
        return member

    async def remove_member(self, member: ProjectMember) -> None:
        await self.session.delete(member)
        await self.session.commit()

    async def related_user_ids(self, project_id: str) -> Dict[str, List[str]]:
        """Watcher and assignee ids of a project."""
        watchers = await self.session.execute(
            select(ProjectWatcher.user_id).where(ProjectWatcher.project_id == project_id)
        )
        assignees = await self.session.execute(
            select(ProjectAssignee.user_id).where(ProjectAssignee.project_id == project_id)
        )
        return {
            "watcher_ids": list(watchers.scalars().all()),
            "assignee_ids": list(assignees.scalars().all()),
        }

    async def delete_project(self, project: Project) -> None:
        """Delete a project with its tasks, planning rows and memberships."""
        task_ids = select(Task.id).where(Task.project_id == project.id)
        statements = [
            sql_delete(Subtask).where(Subtask.task_id.in_(task_ids)),
            sql_delete(TaskComment).where(TaskComment.task_id.in_(task_ids)),
            sql_delete(CustomFieldValue).where(CustomFieldValue.task_id.in_(task_ids)),
            sql_delete(Task).where(Task.project_id == project.id),
            sql_delete(CustomFieldDef).where(CustomFieldDef.project_id == project.id),
            sql_delete(Epic).where(Epic.project_id == project.id),
            sql_delete(Milestone).where(Milestone.project_id == project.id),
            sql_delete(ProjectMember).where(ProjectMember.project_id == project.id),
            sql_delete(ProjectWatcher).where(ProjectWatcher.project_id == project.id),
            sql_delete(ProjectAssignee).where(ProjectAssignee.project_id == project.id),
        ]
        for statement in statements:
            await self.session.execute(statement.execution_options(synchronize_session=False))
        await self.session.delete(project)
        await self.session.commit()


class EpicRepository(SQLModelRepository[Epic]):
    """Repository for project epics."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Epic)

    async def list_for_project(self, project_id: str) -> List[Epic]:
        stmt = (
            select(Epic)
            .where(Epic.project_id == project_id)
            .order_by(Epic.order.asc(), Epic.created_at.asc())  # type: ignore
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_epic(self, epic: Epic) -> None:
        """Delete an epic and detach its tasks."""
        await self.session.execute(
            sql_update(Task)
            .where(Task.epic_id == epic.id)
            .values(epic_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.session.delete(epic)
        await self.session.commit()


class MilestoneRepository(SQLModelRepository[Milestone]):
    """Repository for project milestones."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Milestone)

    async def list_for_project(self, project_id: str) -> List[Milestone]:
        stmt = (
            select(Milestone)
            .where(Milestone.project_id == project_id)
            .order_by(Milestone.start_date.asc(), Milestone.created_at.asc())  # type: ignore
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_milestone(self, milestone: Milestone) -> None:
        """Delete a milestone and detach its tasks."""
        await self.session.execute(
            sql_update(Task)
            .where(Task.milestone_id == milestone.id)
            .values(milestone_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.session.delete(milestone)
        await self.session.commit()
