"""
API endpoints for projects.

Covers project CRUD, per-project memberships, epics, milestones and the
project-scoped custom field definitions. Mutations are announced to the
``project:{id}`` realtime room.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from loopwell.core.database.entities.projects import Epic, Milestone, Project, ProjectStatus
from loopwell.core.database.entities.tasks import CustomFieldDef, CustomFieldType
from loopwell.core.database.entities.workspaces import WorkspaceRole
from loopwell.core.database.repositories import (
    EpicRepository,
    MilestoneRepository,
    ProjectRepository,
    TaskRepository,
    UserRepository,
    WorkspaceRepository,
)
from loopwell.core.logging_config import get_logger
from loopwell.core.models.io.common import ensure_ordered
from loopwell.core.models.io.projects import (
    EpicCreate,
    EpicRead,
    EpicUpdate,
    MilestoneCreate,
    MilestoneRead,
    MilestoneUpdate,
    ProjectCreate,
    ProjectDetail,
    ProjectMemberAdd,
    ProjectRead,
    ProjectSummary,
    ProjectUpdate,
)
from loopwell.core.models.io.tasks import CustomFieldDefCreate, CustomFieldDefRead, CustomFieldDefUpdate
from loopwell.core.models.io.workspaces import MemberRead
from loopwell.realtime import ServerEvent, emit_project_event
from loopwell.server.services.access import assert_project_access, assert_workspace_access
from loopwell.server.services.deps import AuthDep, RealtimeDep, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["projects"])


async def _project_detail(repo: ProjectRepository, project: Project) -> ProjectDetail:
    members = [
        MemberRead(user_id=member.user_id, email=user.email, name=user.name, role=member.role, joined_at=member.joined_at)
        for member, user in await repo.list_members(project.id)
    ]
    related = await repo.related_user_ids(project.id)
    return ProjectDetail(**ProjectRead.model_validate(project).model_dump(), members=members, **related)


async def _check_workspace_users(session: AsyncSession, workspace_id: str, *user_ids: List[str]) -> None:
    outsiders = await WorkspaceRepository(session).non_member_ids(workspace_id, [i for ids in user_ids for i in ids])
    if outsiders:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Users are not members of the workspace: {', '.join(outsiders)}",
        )


def _check_dates(start, end) -> None:
    try:
        ensure_ordered(start, end)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get(
    "",
    response_model=List[ProjectSummary],
    summary="List Projects",
    description="List the projects of the active workspace, most recently updated first.",
    response_description="Projects with their task counts.",
)
async def list_projects(
    auth: AuthDep,
    session: SessionDep,
    status_filter: Optional[ProjectStatus] = Query(default=None, alias="status"),
) -> List[ProjectSummary]:
    """
    List projects.

    - **status**: Optional project status filter.
    """
    await assert_workspace_access(session, auth, auth.workspace_id)
    rows = await ProjectRepository(session).list_for_workspace(auth.workspace_id, status=status_filter)
    return [
        ProjectSummary(**ProjectRead.model_validate(project).model_dump(), task_count=count)
        for project, count in rows
    ]


@router.post(
    "",
    response_model=ProjectDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Create Project",
    description="Create a project in the active workspace. Requires MEMBER.",
    response_description="The created project with its members.",
    responses={
        201: {"description": "Project created successfully"},
        400: {"description": "A listed user is not a member of the workspace"},
        422: {"description": "Invalid project data"},
    },
)
async def create_project(body: ProjectCreate, auth: AuthDep, session: SessionDep, hub: RealtimeDep) -> ProjectDetail:
    """
    Create a new project.

    The project, the creator's OWNER membership, the listed members, watchers
    and assignees are written in one transaction.

    - **name**: Project name (1-255 characters).
    - **visibility**: PUBLIC or TARGETED; TARGETED projects need at least one member.
    - **start_date** / **end_date**: Date-only values span whole days.
    - **member_user_ids**: Users added as project members.
    - **watcher_ids** / **assignee_ids**: Watchers and assignees; like members they must belong to the workspace.
    """
    await assert_workspace_access(session, auth, auth.workspace_id, WorkspaceRole.MEMBER)
    await _check_workspace_users(session, auth.workspace_id, body.member_user_ids, body.watcher_ids, body.assignee_ids)
    project = Project(
        workspace_id=auth.workspace_id,
        created_by_id=auth.user.id,
        **body.model_dump(exclude={"member_user_ids", "watcher_ids", "assignee_ids"}),
    )
    repo = ProjectRepository(session)
    project = await repo.create_with_members(
        project,
        creator_id=auth.user.id,
        member_ids=body.member_user_ids,
        watcher_ids=body.watcher_ids,
        assignee_ids=body.assignee_ids,
    )
    logger.info(f"Project {project.id} created in workspace {auth.workspace_id}")

    detail = await _project_detail(repo, project)
    payload = {"action": "created", "project": ProjectRead.model_validate(project).model_dump(mode="json")}
    await emit_project_event(project.id, ServerEvent.PROJECT_UPDATED, payload, hub=hub)
    return detail


@router.get(
    "/{project_id}",
    response_model=ProjectDetail,
    summary="Get Project",
    responses={
        403: {"description": "No access to this project"},
        404: {"description": "Project not found"},
    },
)
async def get_project(project_id: str, auth: AuthDep, session: SessionDep) -> ProjectDetail:
    """
    Get a project with its members, watchers and assignees.

    - **project_id**: The project identifier.
    """
    project = await assert_project_access(session, auth, project_id)
    return await _project_detail(ProjectRepository(session), project)


@router.put(
    "/{project_id}",
    response_model=ProjectRead,
    summary="Update Project",
    description="Update project fields. Requires ADMIN on the project.",
)
async def update_project(
    project_id: str, body: ProjectUpdate, auth: AuthDep, session: SessionDep, hub: RealtimeDep
) -> ProjectRead:
    """
    Update a project.

    Only provided fields change. The resulting end date must not precede the
    start date.
    """
    project = await assert_project_access(session, auth, project_id, WorkspaceRole.ADMIN)
    repo = ProjectRepository(session)
    changes = body.model_dump(exclude_unset=True)
    _check_dates(changes.get("start_date", project.start_date), changes.get("end_date", project.end_date))
    repo.apply_changes(project, changes)
    project = await repo.update(project)

    result = ProjectRead.model_validate(project)
    await emit_project_event(
        project.id, ServerEvent.PROJECT_UPDATED, {"action": "updated", "project": result.model_dump(mode="json")}, hub=hub
    )
    return result


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Project",
    description="Delete a project with its tasks, epics and milestones. Requires OWNER.",
)
async def delete_project(project_id: str, auth: AuthDep, session: SessionDep, hub: RealtimeDep) -> None:
    """
    Delete a project.
    """
    project = await assert_project_access(session, auth, project_id, WorkspaceRole.OWNER)
    await ProjectRepository(session).delete_project(project)
    logger.info(f"Project {project_id} deleted by user {auth.user.id}")
    await emit_project_event(
        project_id, ServerEvent.PROJECT_UPDATED, {"action": "deleted", "project_id": project_id}, hub=hub
    )


# Members


@router.get("/{project_id}/members", response_model=List[MemberRead], summary="List Project Members")
async def list_project_members(project_id: str, auth: AuthDep, session: SessionDep) -> List[MemberRead]:
    """
    List members of a project with their project roles.
    """
    project = await assert_project_access(session, auth, project_id)
    return (await _project_detail(ProjectRepository(session), project)).members


@router.post(
    "/{project_id}/members",
    response_model=MemberRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add Project Member",
    responses={
        400: {"description": "User is not a member of the workspace"},
        409: {"description": "User is already a project member"},
    },
)
async def add_project_member(
    project_id: str, body: ProjectMemberAdd, auth: AuthDep, session: SessionDep
) -> MemberRead:
    """
    Add a workspace member to a project. Requires ADMIN on the project.

    - **user_id**: User to add.
    - **role**: Project role (default MEMBER).
    """
    project = await assert_project_access(session, auth, project_id, WorkspaceRole.ADMIN)
    if not await WorkspaceRepository(session).get_membership(project.workspace_id, body.user_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is not a member of the workspace")

    repo = ProjectRepository(session)
    if await repo.get_member(project_id, body.user_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User is already a project member")
    member = await repo.add_member(project_id, body.user_id, body.role)
    user = await UserRepository(session).get_by_id(body.user_id)
    return MemberRead(user_id=member.user_id, email=user.email, name=user.name, role=member.role, joined_at=member.joined_at)


@router.delete(
    "/{project_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove Project Member",
)
async def remove_project_member(project_id: str, user_id: str, auth: AuthDep, session: SessionDep) -> None:
    """
    Remove a member from a project. Requires ADMIN on the project.
    """
    await assert_project_access(session, auth, project_id, WorkspaceRole.ADMIN)
    repo = ProjectRepository(session)
    member = await repo.get_member(project_id, user_id)
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Project member {user_id} not found")
    await repo.remove_member(member)


# Epics


async def _get_epic(repo: EpicRepository, project_id: str, epic_id: str) -> Epic:
    epic = await repo.get_by_id(epic_id)
    if not epic or epic.project_id != project_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Epic {epic_id} not found")
    return epic


@router.get("/{project_id}/epics", response_model=List[EpicRead], summary="List Epics")
async def list_epics(project_id: str, auth: AuthDep, session: SessionDep) -> List[EpicRead]:
    """
    List the epics of a project in display order.
    """
    await assert_project_access(session, auth, project_id)
    return [EpicRead.model_validate(epic) for epic in await EpicRepository(session).list_for_project(project_id)]


@router.post(
    "/{project_id}/epics",
    response_model=EpicRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Epic",
)
async def create_epic(
    project_id: str, body: EpicCreate, auth: AuthDep, session: SessionDep, hub: RealtimeDep
) -> EpicRead:
    """
    Create an epic in a project. Requires MEMBER on the project.
    """
    project = await assert_project_access(session, auth, project_id, WorkspaceRole.MEMBER)
    epic = await EpicRepository(session).create(
        Epic(workspace_id=project.workspace_id, project_id=project_id, **body.model_dump())
    )
    result = EpicRead.model_validate(epic)
    await emit_project_event(project_id, ServerEvent.EPIC_CREATED, {"epic": result.model_dump(mode="json")}, hub=hub)
    return result


@router.patch("/{project_id}/epics/{epic_id}", response_model=EpicRead, summary="Update Epic")
async def update_epic(
    project_id: str, epic_id: str, body: EpicUpdate, auth: AuthDep, session: SessionDep, hub: RealtimeDep
) -> EpicRead:
    """
    Update an epic. Requires MEMBER on the project.
    """
    await assert_project_access(session, auth, project_id, WorkspaceRole.MEMBER)
    repo = EpicRepository(session)
    epic = await _get_epic(repo, project_id, epic_id)
    repo.apply_changes(epic, body.model_dump(exclude_unset=True))
    result = EpicRead.model_validate(await repo.update(epic))
    await emit_project_event(project_id, ServerEvent.EPIC_UPDATED, {"epic": result.model_dump(mode="json")}, hub=hub)
    return result


@router.delete(
    "/{project_id}/epics/{epic_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Epic",
    description="Delete an epic. Its tasks stay in the project without an epic.",
)
async def delete_epic(project_id: str, epic_id: str, auth: AuthDep, session: SessionDep, hub: RealtimeDep) -> None:
    """
    Delete an epic. Requires MEMBER on the project.
    """
    await assert_project_access(session, auth, project_id, WorkspaceRole.MEMBER)
    repo = EpicRepository(session)
    epic = await _get_epic(repo, project_id, epic_id)
    await repo.delete_epic(epic)
    await emit_project_event(project_id, ServerEvent.EPIC_DELETED, {"epic_id": epic_id}, hub=hub)


# Milestones


async def _get_milestone(repo: MilestoneRepository, project_id: str, milestone_id: str) -> Milestone:
    milestone = await repo.get_by_id(milestone_id)
    if not milestone or milestone.project_id != project_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Milestone {milestone_id} not found")
    return milestone


@router.get("/{project_id}/milestones", response_model=List[MilestoneRead], summary="List Milestones")
async def list_milestones(project_id: str, auth: AuthDep, session: SessionDep) -> List[MilestoneRead]:
    """
    List the milestones of a project by start date.
    """
    await assert_project_access(session, auth, project_id)
    milestones = await MilestoneRepository(session).list_for_project(project_id)
    return [MilestoneRead.model_validate(milestone) for milestone in milestones]


@router.post(
    "/{project_id}/milestones",
    response_model=MilestoneRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Milestone",
)
async def create_milestone(
    project_id: str, body: MilestoneCreate, auth: AuthDep, session: SessionDep, hub: RealtimeDep
) -> MilestoneRead:
    """
    Create a milestone in a project. Requires MEMBER on the project.
    """
    project = await assert_project_access(session, auth, project_id, WorkspaceRole.MEMBER)
    milestone = await MilestoneRepository(session).create(
        Milestone(workspace_id=project.workspace_id, project_id=project_id, **body.model_dump())
    )
    result = MilestoneRead.model_validate(milestone)
    await emit_project_event(
        project_id, ServerEvent.MILESTONE_CREATED, {"milestone": result.model_dump(mode="json")}, hub=hub
    )
    return result


@router.patch("/{project_id}/milestones/{milestone_id}", response_model=MilestoneRead, summary="Update Milestone")
async def update_milestone(
    project_id: str, milestone_id: str, body: MilestoneUpdate, auth: AuthDep, session: SessionDep, hub: RealtimeDep
) -> MilestoneRead:
    """
    Update a milestone. Requires MEMBER on the project.
    """
    await assert_project_access(session, auth, project_id, WorkspaceRole.MEMBER)
    repo = MilestoneRepository(session)
    milestone = await _get_milestone(repo, project_id, milestone_id)
    changes = body.model_dump(exclude_unset=True)
    _check_dates(changes.get("start_date", milestone.start_date), changes.get("end_date", milestone.end_date))
    repo.apply_changes(milestone, changes)
    result = MilestoneRead.model_validate(await repo.update(milestone))
    await emit_project_event(
        project_id, ServerEvent.MILESTONE_UPDATED, {"milestone": result.model_dump(mode="json")}, hub=hub
    )
    return result


@router.delete(
    "/{project_id}/milestones/{milestone_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Milestone",
)
async def delete_milestone(
    project_id: str, milestone_id: str, auth: AuthDep, session: SessionDep, hub: RealtimeDep
) -> None:
    """
    Delete a milestone. Its tasks are kept without a milestone.
    """
    await assert_project_access(session, auth, project_id, WorkspaceRole.MEMBER)
    repo = MilestoneRepository(session)
    milestone = await _get_milestone(repo, project_id, milestone_id)
    await repo.delete_milestone(milestone)
    await emit_project_event(project_id, ServerEvent.MILESTONE_DELETED, {"milestone_id": milestone_id}, hub=hub)


# Custom fields


@router.get("/{project_id}/custom-fields", response_model=List[CustomFieldDefRead], summary="List Custom Fields")
async def list_custom_fields(project_id: str, auth: AuthDep, session: SessionDep) -> List[CustomFieldDefRead]:
    """
    List the custom field definitions of a project.
    """
    await assert_project_access(session, auth, project_id)
    return [CustomFieldDefRead.model_validate(item) for item in await TaskRepository(session).list_field_defs(project_id)]


@router.post(
    "/{project_id}/custom-fields",
    response_model=CustomFieldDefRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Custom Field",
    responses={409: {"description": "A field with this key already exists"}},
)
async def create_custom_field(
    project_id: str, body: CustomFieldDefCreate, auth: AuthDep, session: SessionDep
) -> CustomFieldDefRead:
    """
    Declare a custom field for the tasks of a project. Requires ADMIN.

    - **key**: Letters, digits and underscores, unique per project.
    - **type**: text, number, select, date or boolean.
    - **options**: Allowed values of a select field.
    """
    await assert_project_access(session, auth, project_id, WorkspaceRole.ADMIN)
    repo = TaskRepository(session)
    if await repo.get_field_def_by_key(project_id, body.key):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Custom field {body.key} already exists")
    field_def = await repo.add_field_def(CustomFieldDef(project_id=project_id, **body.model_dump()))
    return CustomFieldDefRead.model_validate(field_def)


async def _get_field_def(session: AsyncSession, project_id: str, field_id: str) -> CustomFieldDef:
    field_def = await session.get(CustomFieldDef, field_id)
    if not field_def or field_def.project_id != project_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Custom field {field_id} not found")
    return field_def


@router.put("/{project_id}/custom-fields/{field_id}", response_model=CustomFieldDefRead, summary="Update Custom Field")
@router.patch("/{project_id}/custom-fields/{field_id}", response_model=CustomFieldDefRead, summary="Update Custom Field")
async def update_custom_field(
    project_id: str, field_id: str, body: CustomFieldDefUpdate, auth: AuthDep, session: SessionDep
) -> CustomFieldDefRead:
    """
    Change a custom field definition. Requires ADMIN.

    A new key must stay unique in the project and a select field keeps at
    least one option. Stored values are left untouched.
    """
    await assert_project_access(session, auth, project_id, WorkspaceRole.ADMIN)
    field_def = await _get_field_def(session, project_id, field_id)
    changes = body.model_dump(exclude_unset=True)

    repo = TaskRepository(session)
    if changes.get("key") and changes["key"] != field_def.key:
        if await repo.get_field_def_by_key(project_id, changes["key"]):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Custom field {changes['key']} already exists")
    field_type = changes.get("type", field_def.type)
    options = changes.get("options", field_def.options)
    if field_type == CustomFieldType.SELECT and not options:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Select fields require at least one option")

    repo.apply_changes(field_def, changes)
    return CustomFieldDefRead.model_validate(await repo.update(field_def))


@router.delete(
    "/{project_id}/custom-fields/{field_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Custom Field"
)
async def delete_custom_field(project_id: str, field_id: str, auth: AuthDep, session: SessionDep) -> None:
    """
    Delete a custom field and every value stored for it. Requires ADMIN.
    """
    await assert_project_access(session, auth, project_id, WorkspaceRole.ADMIN)
    field_def = await _get_field_def(session, project_id, field_id)
    await TaskRepository(session).delete_field_def(field_def)
    logger.info(f"Custom field {field_id} deleted from project {project_id}")
