"""
API endpoints for tasks.

Tasks live in a project; access is checked against that project. Every
mutation is announced to the project's realtime room.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from loopwell.core.dates import parse_day_or_datetime, utc_now
from loopwell.core.database.entities.projects import Epic, Milestone
from loopwell.core.database.entities.tasks import (
    CustomFieldDef,
    CustomFieldType,
    Subtask,
    Task,
    TaskComment,
    TaskStatus,
)
from loopwell.core.database.entities.workspaces import WorkspaceRole
from loopwell.core.database.repositories import TaskRepository
from loopwell.core.logging_config import get_logger
from loopwell.core.models.io.tasks import (
    CommentCreate,
    CommentRead,
    CustomFieldValueRead,
    CustomFieldValueSet,
    DependencyAction,
    DependencyTaskRead,
    SubtaskRead,
    TaskCreate,
    TaskDependencies,
    TaskDependencyUpdate,
    TaskDetail,
    TaskRead,
    TaskUpdate,
)
from loopwell.realtime import ServerEvent, emit_project_event
from loopwell.server.services.access import assert_project_access, assert_workspace_access
from loopwell.server.services.dependencies import check_dependencies, merge_links
from loopwell.server.services.deps import AuthDep, RealtimeDep, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["tasks"])


async def _get_task(repo: TaskRepository, task_id: str) -> Task:
    task = await repo.get_by_id(task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Task {task_id} not found")
    return task


async def _task_detail(repo: TaskRepository, task: Task) -> TaskDetail:
    subtasks = [SubtaskRead.model_validate(item) for item in await repo.list_subtasks(task.id)]
    fields = [CustomFieldValueRead.model_validate(item) for item in await repo.list_field_values(task.id)]
    return TaskDetail(**TaskRead.model_validate(task).model_dump(), subtasks=subtasks, custom_fields=fields)


async def _check_planning(
    session: AsyncSession, project_id: str, epic_id: Optional[str], milestone_id: Optional[str]
) -> None:
    """Epics and milestones referenced by a task must belong to its project."""
    if epic_id:
        epic = await session.get(Epic, epic_id)
        if not epic or epic.project_id != project_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Epic {epic_id} is not in this project")
    if milestone_id:
        milestone = await session.get(Milestone, milestone_id)
        if not milestone or milestone.project_id != project_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=f"Milestone {milestone_id} is not in this project"
            )


def apply_status_change(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Derive ``completed_at`` from a status change.

    DONE stamps the current time unless ``completed_at`` is supplied; any
    other status clears it.
    """
    if "status" not in changes:
        return changes
    if changes["status"] == TaskStatus.DONE:
        changes["completed_at"] = changes.get("completed_at") or utc_now()
    else:
        changes["completed_at"] = None
    return changes


def validate_field_value(field_def: CustomFieldDef, value: Any) -> Any:
    """Check ``value`` against the field type; ``None`` clears the field.

    Raises:
        HTTPException: 400 when the value does not fit the field.
    """
    if value is None:
        return None
    invalid = HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Invalid value for {field_def.type.value} field {field_def.key}",
    )
    if field_def.type == CustomFieldType.SELECT:
        if value not in (field_def.options or []):
            raise invalid
    elif field_def.type == CustomFieldType.NUMBER:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise invalid
    elif field_def.type == CustomFieldType.BOOLEAN:
        if not isinstance(value, bool):
            raise invalid
    elif field_def.type == CustomFieldType.DATE:
        if not isinstance(value, str):
            raise invalid
        try:
            parse_day_or_datetime(value, "start")
        except ValueError:
            raise invalid from None
    elif not isinstance(value, str):
        raise invalid
    return value


@router.get(
    "",
    response_model=List[TaskRead],
    summary="List Tasks",
    description="List the tasks of a project in board order.",
    response_description="Tasks ordered by status, priority, due date and creation time.",
)
async def list_tasks(
    auth: AuthDep,
    session: SessionDep,
    project_id: str = Query(description="Project whose tasks are listed"),
    status_filter: Optional[TaskStatus] = Query(default=None, alias="status"),
    assignee_id: Optional[str] = None,
) -> List[TaskRead]:
    """
    List tasks of a project.

    - **project_id**: The project to list.
    - **status**: Optional status filter.
    - **assignee_id**: Optional assignee filter.
    """
    await assert_project_access(session, auth, project_id)
    tasks = await TaskRepository(session).list_for_project(project_id, status=status_filter, assignee_id=assignee_id)
    return [TaskRead.model_validate(task) for task in tasks]


@router.get(
    "/mine",
    response_model=List[TaskRead],
    summary="List My Tasks",
    description="Tasks assigned to the caller in the active workspace.",
)
async def list_my_tasks(auth: AuthDep, session: SessionDep) -> List[TaskRead]:
    """
    List the caller's tasks across the projects of the active workspace.
    """
    await assert_workspace_access(session, auth, auth.workspace_id)
    tasks = await TaskRepository(session).list_for_assignee(auth.workspace_id, auth.user.id)
    return [TaskRead.model_validate(task) for task in tasks]


@router.post(
    "",
    response_model=TaskDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    responses={
        201: {"description": "Task created successfully"},
        400: {"description": "Epic, milestone or linked task belongs to another project, or the links form a cycle"},
    },
)
async def create_task(body: TaskCreate, auth: AuthDep, session: SessionDep, hub: RealtimeDep) -> TaskDetail:
    """
    Create a task, optionally with subtasks. Requires MEMBER on the project.

    - **project_id**: Project receiving the task.
    - **title**: Task title (1-255 characters).
    - **due_date**: ISO datetime, or a ``YYYY-MM-DD`` / ``DD.MM.YYYY`` date meaning the end of that day.
    - **points**: Estimate between 0 and 100.
    - **subtasks**: Optional checklist items.
    - **depends_on** / **blocks**: Ids of tasks in the same project; the linked tasks get the reverse link.
    """
    project = await assert_project_access(session, auth, body.project_id, WorkspaceRole.MEMBER)
    await _check_planning(session, project.id, body.epic_id, body.milestone_id)

    task = Task(
        workspace_id=project.workspace_id,
        created_by_id=auth.user.id,
        completed_at=utc_now() if body.status == TaskStatus.DONE else None,
        **body.model_dump(exclude={"subtasks", "depends_on", "blocks"}),
    )
    repo = TaskRepository(session)
    depends_on = merge_links([], body.depends_on, DependencyAction.SET)
    blocks = merge_links([], body.blocks, DependencyAction.SET)
    project_tasks = await repo.list_for_project(project.id)
    check_dependencies(task.id, depends_on, blocks, project_tasks)

    task = await repo.create_with_subtasks(task, [Subtask(**item.model_dump()) for item in body.subtasks])
    if depends_on or blocks:
        task = await repo.set_links(task, depends_on, blocks, project_tasks)
    logger.info(f"Task {task.id} created in project {project.id}")

    detail = await _task_detail(repo, task)
    await emit_project_event(
        project.id,
        ServerEvent.TASK_CREATED,
        {"task": TaskRead.model_validate(task).model_dump(mode="json"), "project_id": project.id},
        hub=hub,
    )
    return detail


@router.get(
    "/{task_id}",
    response_model=TaskDetail,
    summary="Get Task",
    responses={404: {"description": "Task not found"}},
)
async def get_task(task_id: str, auth: AuthDep, session: SessionDep) -> TaskDetail:
    """
    Get a task with its subtasks and custom field values.
    """
    repo = TaskRepository(session)
    task = await _get_task(repo, task_id)
    await assert_project_access(session, auth, task.project_id)
    return await _task_detail(repo, task)


@router.put("/{task_id}", response_model=TaskRead, summary="Update Task")
@router.patch("/{task_id}", response_model=TaskRead, summary="Update Task")
async def update_task(
    task_id: str, body: TaskUpdate, auth: AuthDep, session: SessionDep, hub: RealtimeDep
) -> TaskRead:
    """
    Update a task. Requires MEMBER on the project.

    Only provided fields change and at least one must be given. Moving a task
    to DONE stamps ``completed_at`` unless it is supplied; any other status
    clears it.
    Changing ``depends_on`` or ``blocks`` replaces that list and updates the
    reverse links of the tasks involved.
    """
    repo = TaskRepository(session)
    task = await _get_task(repo, task_id)
    await assert_project_access(session, auth, task.project_id, WorkspaceRole.MEMBER)

    changes = apply_status_change(body.model_dump(exclude_unset=True))
    await _check_planning(session, task.project_id, changes.get("epic_id"), changes.get("milestone_id"))
    previous = {key: getattr(task, key) for key in ("epic_id", "milestone_id", "points")}

    links = None
    if "depends_on" in changes or "blocks" in changes:
        links = (
            merge_links(task.depends_on or [], changes.pop("depends_on", None), DependencyAction.SET),
            merge_links(task.blocks or [], changes.pop("blocks", None), DependencyAction.SET),
        )
        project_tasks = await repo.list_for_project(task.project_id)
        check_dependencies(task.id, *links, project_tasks)

    repo.apply_changes(task, changes)
    task = await repo.update(task)
    if links is not None:
        task = await repo.set_links(task, *links, project_tasks)
        changes.update(depends_on=task.depends_on, blocks=task.blocks)
    result = TaskRead.model_validate(task)

    dumped = result.model_dump(mode="json")
    await emit_project_event(
        task.project_id,
        ServerEvent.TASK_UPDATED,
        {
            "task_id": task.id,
            "task": dumped,
            "updates": {key: dumped[key] for key in changes},
            "user_id": auth.user.id,
        },
        hub=hub,
    )
    if "epic_id" in changes and changes["epic_id"] != previous["epic_id"]:
        await emit_project_event(
            task.project_id, ServerEvent.TASK_EPIC_ASSIGNED, {"task_id": task.id, "epic_id": task.epic_id}, hub=hub
        )
    if "milestone_id" in changes and changes["milestone_id"] != previous["milestone_id"]:
        await emit_project_event(
            task.project_id,
            ServerEvent.TASK_MILESTONE_ASSIGNED,
            {"task_id": task.id, "milestone_id": task.milestone_id},
            hub=hub,
        )
    if "points" in changes and changes["points"] != previous["points"]:
        await emit_project_event(
            task.project_id, ServerEvent.TASK_POINTS_UPDATED, {"task_id": task.id, "points": task.points}, hub=hub
        )
    return result


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Task",
)
async def delete_task(task_id: str, auth: AuthDep, session: SessionDep, hub: RealtimeDep) -> None:
    """
    Delete a task with its subtasks, comments and custom field values.
    Requires MEMBER on the project. Linked tasks drop their links to it.
    """
    repo = TaskRepository(session)
    task = await _get_task(repo, task_id)
    project_id = task.project_id
    await assert_project_access(session, auth, project_id, WorkspaceRole.MEMBER)
    await repo.set_links(task, [], [], await repo.list_for_project(project_id))
    await repo.delete_task(task)
    await emit_project_event(project_id, ServerEvent.TASK_DELETED, {"task_id": task_id, "project_id": project_id}, hub=hub)


# Dependencies


@router.get("/{task_id}/dependencies", response_model=TaskDependencies, summary="Get Task Dependencies")
async def get_dependencies(task_id: str, auth: AuthDep, session: SessionDep) -> TaskDependencies:
    """
    The tasks this task waits for and the tasks waiting for it.
    """
    repo = TaskRepository(session)
    task = await _get_task(repo, task_id)
    await assert_project_access(session, auth, task.project_id)
    by_id = {other.id: other for other in await repo.list_for_project(task.project_id)}
    return TaskDependencies(
        task=DependencyTaskRead.model_validate(task),
        dependencies=[DependencyTaskRead.model_validate(by_id[i]) for i in task.depends_on or [] if i in by_id],
        blocked_tasks=[DependencyTaskRead.model_validate(by_id[i]) for i in task.blocks or [] if i in by_id],
    )


@router.post(
    "/{task_id}/dependencies",
    response_model=TaskRead,
    summary="Change Task Dependencies",
    responses={400: {"description": "Unknown or foreign task ids, or a circular dependency"}},
)
@router.put("/{task_id}/dependencies", response_model=TaskRead, summary="Change Task Dependencies")
async def change_dependencies(
    task_id: str, body: TaskDependencyUpdate, auth: AuthDep, session: SessionDep, hub: RealtimeDep
) -> TaskRead:
    """
    Set, add or remove dependency links. Requires MEMBER on the project.

    - **action**: ``set`` replaces the given lists, ``add`` appends to them and ``remove`` drops ids from them.
    - **depends_on**: Tasks this task waits for.
    - **blocks**: Tasks waiting for this task.

    Linked tasks get the reverse link. Ids must belong to the same project and
    the links may not form a cycle.
    """
    repo = TaskRepository(session)
    task = await _get_task(repo, task_id)
    await assert_project_access(session, auth, task.project_id, WorkspaceRole.MEMBER)

    depends_on = merge_links(task.depends_on or [], body.depends_on, body.action)
    blocks = merge_links(task.blocks or [], body.blocks, body.action)
    project_tasks = await repo.list_for_project(task.project_id)
    check_dependencies(task.id, depends_on, blocks, project_tasks)
    task = await repo.set_links(task, depends_on, blocks, project_tasks)
    logger.info(f"Task {task.id} now depends on {len(depends_on)} and blocks {len(blocks)} tasks")

    result = TaskRead.model_validate(task)
    dumped = result.model_dump(mode="json")
    await emit_project_event(
        task.project_id,
        ServerEvent.TASK_UPDATED,
        {
            "task_id": task.id,
            "task": dumped,
            "updates": {"depends_on": dumped["depends_on"], "blocks": dumped["blocks"]},
            "user_id": auth.user.id,
        },
        hub=hub,
    )
    return result


# Comments


@router.get("/{task_id}/comments", response_model=List[CommentRead], summary="List Comments")
async def list_comments(task_id: str, auth: AuthDep, session: SessionDep) -> List[CommentRead]:
    """
    List the comments of a task, oldest first.
    """
    repo = TaskRepository(session)
    task = await _get_task(repo, task_id)
    await assert_project_access(session, auth, task.project_id)
    return [
        CommentRead(**CommentRead.model_validate(comment).model_dump(exclude={"author_name"}), author_name=user.name)
        for comment, user in await repo.list_comments(task_id)
    ]


@router.post(
    "/{task_id}/comments",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add Comment",
)
async def add_comment(
    task_id: str, body: CommentCreate, auth: AuthDep, session: SessionDep, hub: RealtimeDep
) -> CommentRead:
    """
    Comment on a task. Requires MEMBER on the project.

    - **content**: Comment text (1-2000 characters).
    - **mentions**: Ids of mentioned users.
    """
    repo = TaskRepository(session)
    task = await _get_task(repo, task_id)
    await assert_project_access(session, auth, task.project_id, WorkspaceRole.MEMBER)
    comment = await repo.add_comment(TaskComment(task_id=task_id, user_id=auth.user.id, **body.model_dump()))

    result = CommentRead(
        **CommentRead.model_validate(comment).model_dump(exclude={"author_name"}), author_name=auth.user.name
    )
    await emit_project_event(
        task.project_id,
        ServerEvent.TASK_COMMENT_ADDED,
        {"task_id": task_id, "comment": result.model_dump(mode="json")},
        hub=hub,
    )
    return result


# Custom field values


@router.put(
    "/{task_id}/custom-fields/{field_id}",
    response_model=CustomFieldValueRead,
    summary="Set Custom Field Value",
    responses={400: {"description": "Value does not match the field type"}},
)
async def set_custom_field_value(
    task_id: str, field_id: str, body: CustomFieldValueSet, auth: AuthDep, session: SessionDep
) -> CustomFieldValueRead:
    """
    Store a custom field value on a task. Requires MEMBER on the project.

    Select values must be one of the field options, numbers must be numeric
    and booleans must be ``true`` or ``false``.
    """
    repo = TaskRepository(session)
    task = await _get_task(repo, task_id)
    await assert_project_access(session, auth, task.project_id, WorkspaceRole.MEMBER)

    field_def = await session.get(CustomFieldDef, field_id)
    if not field_def or field_def.project_id != task.project_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Custom field {field_id} not found")
    stored = await repo.set_field_value(task_id, field_id, validate_field_value(field_def, body.value))
    return CustomFieldValueRead.model_validate(stored)
