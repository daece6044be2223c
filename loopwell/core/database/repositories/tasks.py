"""
Task repository implementations.

Data access for tasks, subtasks, comments and custom fields.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import case
from sqlalchemy import delete as sql_delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.projects import PRIORITY_RANK
from ..entities.tasks import (
    CustomFieldDef,
    CustomFieldValue,
    Subtask,
    Task,
    TaskComment,
    TaskStatus,
)
from ..entities.workspaces import User
from .base import QueryBuilder, SQLModelRepository

STATUS_ORDER = {status: index for index, status in enumerate(TaskStatus)}

_status_rank = case(dict(STATUS_ORDER), value=Task.status, else_=99)
_priority_rank = case(dict(PRIORITY_RANK), value=Task.priority, else_=0)


class TaskRepository(SQLModelRepository[Task]):
    """Repository for tasks and their child rows."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Task)

    def _ordered(self, stmt):
        # Board order: status, most urgent first, soonest due, newest
        return stmt.order_by(
            _status_rank,
            _priority_rank.desc(),
            Task.due_date.is_(None),  # type: ignore
            Task.due_date.asc(),  # type: ignore
            Task.created_at.desc(),  # type: ignore
        )

    async def list_for_project(
        self,
        project_id: str,
        status: Optional[TaskStatus] = None,
        assignee_id: Optional[str] = None,
    ) -> List[Task]:
        stmt = select(Task).where(Task.project_id == project_id)
        stmt = QueryBuilder.apply_filters(stmt, Task, {"status": status, "assignee_id": assignee_id})
        result = await self.session.execute(self._ordered(stmt))
        return list(result.scalars().all())

    async def list_for_assignee(self, workspace_id: str, user_id: str) -> List[Task]:
        stmt = select(Task).where(Task.workspace_id == workspace_id, Task.assignee_id == user_id)
        result = await self.session.execute(self._ordered(stmt))
        return list(result.scalars().all())

    async def create_with_subtasks(self, task: Task, subtasks: Iterable[Subtask] = ()) -> Task:
        self.session.add(task)
        await self.session.flush()
        for order, subtask in enumerate(subtasks):
            subtask.task_id = task.id
            subtask.order = subtask.order or order
            self.session.add(subtask)
        await self.session.commit()
        await self.session.refresh(task)
        return task

    async def list_subtasks(self, task_id: str) -> List[Subtask]:
        stmt = select(Subtask).where(Subtask.task_id == task_id).order_by(Subtask.order.asc())  # type: ignore
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def add_subtask(self, subtask: Subtask) -> Subtask:
        self.session.add(subtask)
        await self.session.commit()
        await self.session.refresh(subtask)
        return subtask

    async def set_links(self, task: Task, depends_on: List[str], blocks: List[str], project_tasks: List[Task]) -> Task:
        """Store the dependency links of ``task`` and mirror them on the linked tasks.

        ``project_tasks`` are the other tasks of the project, already loaded.
        """
        for other in project_tasks:
            if other.id == task.id:
                continue
            waits = other.id in depends_on
            blocked = other.id in blocks
            other_blocks = [i for i in other.blocks or [] if i != task.id or waits]
            other_depends_on = [i for i in other.depends_on or [] if i != task.id or blocked]
            if waits and task.id not in other_blocks:
                other_blocks.append(task.id)
            if blocked and task.id not in other_depends_on:
                other_depends_on.append(task.id)
            if other_blocks != (other.blocks or []) or other_depends_on != (other.depends_on or []):
                # new lists so the JSON columns register the change
                other.blocks = other_blocks
                other.depends_on = other_depends_on
                self.session.add(other)

        task.depends_on = list(depends_on)
        task.blocks = list(blocks)
        self.session.add(task)
        await self.session.commit()
        await self.session.refresh(task)
        return task

    async def create_linked(self, tasks: List[Task], waits_for: Dict[int, List[int]]) -> List[Task]:
        """Insert ``tasks`` in one transaction.

        ``waits_for`` maps a position in ``tasks`` to the positions it depends
        on; each link is stored on both ends.
        """
        for index, targets in waits_for.items():
            task = tasks[index]
            for target in dict.fromkeys(targets):
                if target == index or not 0 <= target < len(tasks):
                    continue
                blocker = tasks[target]
                task.depends_on = [*(task.depends_on or []), blocker.id]
                blocker.blocks = [*(blocker.blocks or []), task.id]
        self.session.add_all(tasks)
        await self.session.commit()
        for task in tasks:
            await self.session.refresh(task)
        return tasks

    async def delete_task(self, task: Task) -> None:
        """Delete a task with its subtasks, comments and custom field values."""
        for model in (Subtask, TaskComment, CustomFieldValue):
            await self.session.execute(
                sql_delete(model).where(model.task_id == task.id).execution_options(synchronize_session=False)
            )
        await self.session.delete(task)
        await self.session.commit()

    # Comments

    async def list_comments(self, task_id: str) -> List[Tuple[TaskComment, User]]:
        stmt = (
            select(TaskComment, User)
            .join(User, User.id == TaskComment.user_id)
            .where(TaskComment.task_id == task_id)
            .order_by(TaskComment.created_at.asc())  # type: ignore
        )
        result = await self.session.execute(stmt)
        return [(comment, user) for comment, user in result.all()]

    async def add_comment(self, comment: TaskComment) -> TaskComment:
        self.session.add(comment)
        await self.session.commit()
        await self.session.refresh(comment)
        return comment

    # Custom fields

    async def list_field_defs(self, project_id: str) -> List[CustomFieldDef]:
        stmt = (
            select(CustomFieldDef)
            .where(CustomFieldDef.project_id == project_id)
            .order_by(CustomFieldDef.created_at.asc())  # type: ignore
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_field_def_by_key(self, project_id: str, key: str) -> Optional[CustomFieldDef]:
        stmt = select(CustomFieldDef).where(CustomFieldDef.project_id == project_id, CustomFieldDef.key == key)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def add_field_def(self, field_def: CustomFieldDef) -> CustomFieldDef:
        self.session.add(field_def)
        await self.session.commit()
        await self.session.refresh(field_def)
        return field_def

    async def delete_field_def(self, field_def: CustomFieldDef) -> None:
        """Delete a custom field with every value stored for it."""
        await self.session.execute(
            sql_delete(CustomFieldValue)
            .where(CustomFieldValue.field_id == field_def.id)
            .execution_options(synchronize_session=False)
        )
        await self.session.delete(field_def)
        await self.session.commit()

    async def list_field_values(self, task_id: str) -> List[CustomFieldValue]:
        stmt = select(CustomFieldValue).where(CustomFieldValue.task_id == task_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_field_value(self, task_id: str, field_id: str, value: Any) -> CustomFieldValue:
        stmt = select(CustomFieldValue).where(
            CustomFieldValue.task_id == task_id, CustomFieldValue.field_id == field_id
        )
        existing = (await self.session.execute(stmt)).scalars().first()
        if existing is None:
            existing = CustomFieldValue(task_id=task_id, field_id=field_id, value=value)
        else:
            existing.value = value
        self.session.add(existing)
        await self.session.commit()
        await self.session.refresh(existing)
        return existing
