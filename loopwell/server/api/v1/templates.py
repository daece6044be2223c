"""
API endpoints for task and project templates.

Templates belong to the active workspace. Public templates are visible to
every member, private ones only to their creator. A template can be changed
or removed by its creator or by a workspace ADMIN.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from loopwell.core.database.entities.projects import Project
from loopwell.core.database.entities.tasks import Task, TaskStatus
from loopwell.core.database.entities.templates import ProjectTemplate, TaskTemplate, TaskTemplateItem
from loopwell.core.database.entities.workspaces import WorkspaceRole
from loopwell.core.database.repositories import (
    ProjectRepository,
    ProjectTemplateRepository,
    TaskRepository,
    TaskTemplateRepository,
    WorkspaceRepository,
)
from loopwell.core.dates import utc_now
from loopwell.core.logging_config import get_logger
from loopwell.core.models.io.projects import ProjectRead
from loopwell.core.models.io.tasks import TaskRead
from loopwell.core.models.io.templates import (
    ProjectTemplateApply,
    ProjectTemplateApplyResult,
    ProjectTemplateCreate,
    ProjectTemplateData,
    ProjectTemplateRead,
    TaskTemplateApply,
    TaskTemplateApplyResult,
    TaskTemplateCreate,
    TaskTemplateItemIn,
    TaskTemplateItemRead,
    TaskTemplateRead,
    TaskTemplateUpdate,
    TemplateSummary,
)
from loopwell.realtime import ServerEvent, emit_project_event
from loopwell.server.services.access import assert_active_role, assert_project_access
from loopwell.server.services.auth import AuthContext
from loopwell.server.services.dependencies import assert_acyclic
from loopwell.server.services.deps import AuthDep, RealtimeDep, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["templates"])
project_router = APIRouter(tags=["templates"])


def _visible(template, auth: AuthContext) -> bool:
    if template.workspace_id != auth.workspace_id:
        return False
    return template.is_public or template.created_by_id == auth.user.id


def _assert_can_manage(template, auth: AuthContext) -> None:
    if template.created_by_id != auth.user.id:
        assert_active_role(auth, WorkspaceRole.ADMIN)


def _check_item_links(items: List[TaskTemplateItemIn]) -> None:
    """Item dependencies must name other positions of the same template and form no loop."""
    for position, item in enumerate(items):
        unknown = [d for d in item.dependencies if d == position or not 0 <= d < len(items)]
        if unknown:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Task '{item.title}' depends on unknown positions: {', '.join(map(str, unknown))}",
            )
    assert_acyclic({str(i): {str(d) for d in item.dependencies} for i, item in enumerate(items)})


async def _check_assignees(session: AsyncSession, workspace_id: str, user_ids: List[str]) -> None:
    outsiders = await WorkspaceRepository(session).non_member_ids(workspace_id, user_ids)
    if outsiders:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Users are not members of the workspace: {', '.join(outsiders)}",
        )


async def _get_task_template(repo: TaskTemplateRepository, auth: AuthContext, template_id: str) -> TaskTemplate:
    template = await repo.get_by_id(template_id)
    if not template or not _visible(template, auth):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Task template {template_id} not found")
    return template


async def _task_template_read(repo: TaskTemplateRepository, template: TaskTemplate) -> TaskTemplateRead:
    items = [TaskTemplateItemRead.model_validate(item) for item in await repo.list_items(template.id)]
    return TaskTemplateRead.model_validate(template).model_copy(update={"tasks": items})


def _items(tasks: List[TaskTemplateItemIn]) -> List[TaskTemplateItem]:
    return [TaskTemplateItem(**task.model_dump()) for task in tasks]


@router.get("", response_model=List[TaskTemplateRead], summary="List Task Templates")
async def list_task_templates(
    auth: AuthDep,
    session: SessionDep,
    category: Optional[str] = Query(default=None),
    is_public: Optional[bool] = Query(default=None),
) -> List[TaskTemplateRead]:
    """
    List the task templates visible to the caller, newest first.
    """
    assert_active_role(auth, WorkspaceRole.VIEWER)
    repo = TaskTemplateRepository(session)
    templates = await repo.list_visible(auth.workspace_id, auth.user.id, category=category, is_public=is_public)
    return [await _task_template_read(repo, template) for template in templates]


@router.post(
    "",
    response_model=TaskTemplateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task Template",
    responses={400: {"description": "Invalid item dependencies"}},
)
async def create_task_template(body: TaskTemplateCreate, auth: AuthDep, session: SessionDep) -> TaskTemplateRead:
    """
    Create a task template. Requires MEMBER.

    - **tasks**: Ordered task blueprints; ``dependencies`` lists the positions
      of the items each one waits for.
    """
    assert_active_role(auth, WorkspaceRole.MEMBER)
    _check_item_links(body.tasks)
    repo = TaskTemplateRepository(session)
    template = TaskTemplate(
        workspace_id=auth.workspace_id, created_by_id=auth.user.id, **body.model_dump(exclude={"tasks"})
    )
    template = await repo.create_with_items(template, _items(body.tasks))
    logger.info(f"Task template {template.id} created with {len(body.tasks)} tasks")
    return await _task_template_read(repo, template)


@router.get(
    "/{template_id}",
    response_model=TaskTemplateRead,
    summary="Get Task Template",
    responses={404: {"description": "Template not found"}},
)
async def get_task_template(template_id: str, auth: AuthDep, session: SessionDep) -> TaskTemplateRead:
    assert_active_role(auth, WorkspaceRole.VIEWER)
    repo = TaskTemplateRepository(session)
    return await _task_template_read(repo, await _get_task_template(repo, auth, template_id))


@router.put("/{template_id}", response_model=TaskTemplateRead, summary="Update Task Template")
async def update_task_template(
    template_id: str, body: TaskTemplateUpdate, auth: AuthDep, session: SessionDep
) -> TaskTemplateRead:
    """
    Update a task template. Only provided fields change; ``tasks`` replaces all items.
    """
    repo = TaskTemplateRepository(session)
    template = await _get_task_template(repo, auth, template_id)
    _assert_can_manage(template, auth)
    if body.tasks is not None:
        _check_item_links(body.tasks)
    repo.apply_changes(template, body.model_dump(exclude_unset=True, exclude={"tasks"}))
    if body.tasks is not None:
        template = await repo.replace_items(template, _items(body.tasks))
    else:
        template = await repo.update(template)
    return await _task_template_read(repo, template)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Task Template")
async def delete_task_template(template_id: str, auth: AuthDep, session: SessionDep) -> None:
    repo = TaskTemplateRepository(session)
    template = await _get_task_template(repo, auth, template_id)
    _assert_can_manage(template, auth)
    await repo.delete_template(template)
    logger.info(f"Task template {template_id} deleted")


@router.post(
    "/{template_id}/apply",
    response_model=TaskTemplateApplyResult,
    status_code=status.HTTP_201_CREATED,
    summary="Apply Task Template",
    responses={
        400: {"description": "Project outside the template's workspace, or assignee outside the workspace"},
        404: {"description": "Template or project not found"},
    },
)
async def apply_task_template(
    template_id: str, body: TaskTemplateApply, auth: AuthDep, session: SessionDep, hub: RealtimeDep
) -> TaskTemplateApplyResult:
    """
    Create one task per template item in a project. Requires MEMBER on the project.

    - **customizations**: Per item id overrides of title, description,
      assignee, due date and tags.

    Item dependencies become ``depends_on`` / ``blocks`` links between the
    new tasks.
    """
    templates = TaskTemplateRepository(session)
    template = await _get_task_template(templates, auth, template_id)
    project = await assert_project_access(session, auth, body.project_id, WorkspaceRole.MEMBER)
    if project.workspace_id != template.workspace_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Project is not in the template's workspace"
        )
    items = await templates.list_items(template.id)
    overrides = body.customizations
    await _check_assignees(
        session, project.workspace_id, [c.assignee_id for c in overrides.values() if c.assignee_id]
    )

    tasks = []
    for item in items:
        override = overrides.get(item.id)
        tasks.append(
            Task(
                workspace_id=project.workspace_id,
                project_id=project.id,
                title=(override and override.title) or item.title,
                description=(override and override.description) or item.description,
                status=item.status,
                priority=item.priority,
                assignee_id=override.assignee_id if override else None,
                due_date=override.due_date if override else None,
                tags=list(override.tags) if override and override.tags is not None else list(item.tags or []),
                created_by_id=auth.user.id,
                completed_at=utc_now() if item.status == TaskStatus.DONE else None,
            )
        )
    positions = {item.order: index for index, item in enumerate(items)}
    waits_for = {
        index: [positions[d] for d in item.dependencies if d in positions] for index, item in enumerate(items)
    }
    tasks = await TaskRepository(session).create_linked(tasks, waits_for)
    logger.info(f"Task template {template.id} applied to project {project.id}: {len(tasks)} tasks")

    created = [TaskRead.model_validate(task) for task in tasks]
    for task in created:
        await emit_project_event(
            project.id,
            ServerEvent.TASK_CREATED,
            {"task": task.model_dump(mode="json"), "project_id": project.id},
            hub=hub,
        )
    return TaskTemplateApplyResult(
        message="Template applied successfully", tasks=created, template=TemplateSummary.model_validate(template)
    )


# Project templates


async def _get_project_template(
    repo: ProjectTemplateRepository, auth: AuthContext, template_id: str
) -> ProjectTemplate:
    template = await repo.get_by_id(template_id)
    if not template or not _visible(template, auth):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Project template {template_id} not found")
    return template


@project_router.get("", response_model=List[ProjectTemplateRead], summary="List Project Templates")
async def list_project_templates(
    auth: AuthDep, session: SessionDep, category: Optional[str] = Query(default=None)
) -> List[ProjectTemplateRead]:
    """
    List the project templates visible to the caller; the default template comes first.
    """
    assert_active_role(auth, WorkspaceRole.VIEWER)
    templates = await ProjectTemplateRepository(session).list_visible(auth.workspace_id, auth.user.id, category)
    return [ProjectTemplateRead.model_validate(template) for template in templates]


@project_router.post(
    "",
    response_model=ProjectTemplateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Project Template",
    responses={400: {"description": "Task dependencies form a loop"}},
)
async def create_project_template(
    body: ProjectTemplateCreate, auth: AuthDep, session: SessionDep
) -> ProjectTemplateRead:
    """
    Create a project template. Requires MEMBER.

    A template created with ``is_default`` becomes the workspace's only default.
    """
    assert_active_role(auth, WorkspaceRole.MEMBER)
    assert_acyclic({task.title: set(task.depends_on) for task in body.template_data.tasks})
    template = ProjectTemplate(
        workspace_id=auth.workspace_id,
        created_by_id=auth.user.id,
        template_data=body.template_data.model_dump(mode="json"),
        **body.model_dump(exclude={"template_data"}),
    )
    template = await ProjectTemplateRepository(session).create_template(template)
    logger.info(f"Project template {template.id} created")
    return ProjectTemplateRead.model_validate(template)


@project_router.get(
    "/{template_id}",
    response_model=ProjectTemplateRead,
    summary="Get Project Template",
    responses={404: {"description": "Template not found"}},
)
async def get_project_template(template_id: str, auth: AuthDep, session: SessionDep) -> ProjectTemplateRead:
    assert_active_role(auth, WorkspaceRole.VIEWER)
    template = await _get_project_template(ProjectTemplateRepository(session), auth, template_id)
    return ProjectTemplateRead.model_validate(template)


@project_router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Project Template")
async def delete_project_template(template_id: str, auth: AuthDep, session: SessionDep) -> None:
    repo = ProjectTemplateRepository(session)
    template = await _get_project_template(repo, auth, template_id)
    _assert_can_manage(template, auth)
    await repo.delete(template.id)
    logger.info(f"Project template {template_id} deleted")


@project_router.post(
    "/{template_id}/apply",
    response_model=ProjectTemplateApplyResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create Project From Template",
    responses={404: {"description": "Template not found"}},
)
async def apply_project_template(
    template_id: str, body: ProjectTemplateApply, auth: AuthDep, session: SessionDep, hub: RealtimeDep
) -> ProjectTemplateApplyResult:
    """
    Create a project and its tasks from a template. Requires MEMBER.

    The caller becomes the project's owner. Task ``depends_on`` titles become
    links between the new tasks.
    """
    assert_active_role(auth, WorkspaceRole.MEMBER)
    template = await _get_project_template(ProjectTemplateRepository(session), auth, template_id)
    data = ProjectTemplateData.model_validate(template.template_data)
    blueprint = data.project

    project = Project(
        workspace_id=auth.workspace_id,
        name=body.project_name,
        description=body.project_description or blueprint.description or template.description,
        status=blueprint.status,
        priority=blueprint.priority,
        start_date=blueprint.start_date,
        end_date=blueprint.end_date,
        color=blueprint.color,
        department=blueprint.department or template.category,
        team=blueprint.team,
        owner_id=auth.user.id,
        created_by_id=auth.user.id,
    )
    project = await ProjectRepository(session).create_with_members(project, creator_id=auth.user.id)

    tasks = [
        Task(
            workspace_id=project.workspace_id,
            project_id=project.id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            tags=list(task.tags),
            created_by_id=auth.user.id,
            completed_at=utc_now() if task.status == TaskStatus.DONE else None,
        )
        for task in data.tasks
    ]
    index_of: Dict[str, int] = {task.title: index for index, task in enumerate(data.tasks)}
    waits_for = {index: [index_of[ref] for ref in task.depends_on] for index, task in enumerate(data.tasks)}
    tasks = await TaskRepository(session).create_linked(tasks, waits_for)
    logger.info(f"Project {project.id} created from template {template.id} with {len(tasks)} tasks")

    result = ProjectRead.model_validate(project)
    await emit_project_event(
        project.id,
        ServerEvent.PROJECT_UPDATED,
        {"action": "created", "project": result.model_dump(mode="json")},
        hub=hub,
    )
    return ProjectTemplateApplyResult(
        project=result,
        tasks=[TaskRead.model_validate(task) for task in tasks],
        template=TemplateSummary.model_validate(template),
    )
