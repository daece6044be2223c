"""
API endpoints for the org chart.

Positions form a forest through ``parent_id``. Deleting a position only
deactivates it; departments and teams are removed outright.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, status

from loopwell.core.database.entities.org import OrgDepartment, OrgPosition, OrgTeam
from loopwell.core.database.entities.workspaces import WorkspaceRole
from loopwell.core.database.repositories import OrgDepartmentRepository, OrgPositionRepository, OrgTeamRepository
from loopwell.core.logging_config import get_logger
from loopwell.core.models.io.org import (
    DepartmentCreate,
    DepartmentRead,
    DepartmentUpdate,
    OrgChartNode,
    PositionCreate,
    PositionRead,
    PositionUpdate,
    TeamCreate,
    TeamRead,
    TeamUpdate,
)
from loopwell.server.services.access import assert_active_role
from loopwell.server.services.auth import AuthContext
from loopwell.server.services.deps import AuthDep, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["org"])


def build_org_chart(positions: List[OrgPosition]) -> List[OrgChartNode]:
    """Arrange positions into trees.

    Positions whose parent is missing from ``positions`` become roots. The
    input order is kept among siblings.
    """
    nodes = {
        position.id: OrgChartNode(
            id=position.id,
            title=position.title,
            department=position.department,
            level=position.level,
            user_id=position.user_id,
        )
        for position in positions
    }
    roots: List[OrgChartNode] = []
    for position in positions:
        node = nodes[position.id]
        if position.parent_id and position.parent_id in nodes:
            nodes[position.parent_id].children.append(node)
        else:
            roots.append(node)
    return roots


def creates_cycle(parents: Dict[str, Optional[str]], position_id: str, new_parent_id: Optional[str]) -> bool:
    """True when ``new_parent_id`` is ``position_id`` or one of its descendants."""
    current = new_parent_id
    seen = set()
    while current is not None and current not in seen:
        if current == position_id:
            return True
        seen.add(current)
        current = parents.get(current)
    return False


def _children_index(positions: List[OrgPosition]) -> Dict[str, List[str]]:
    children = defaultdict(list)
    for position in positions:
        if position.parent_id:
            children[position.parent_id].append(position.id)
    return children


def _position_read(position: OrgPosition, children: List[str]) -> PositionRead:
    return PositionRead(**PositionRead.model_validate(position).model_dump(exclude={"children"}), children=children)


async def _get_position(repo: OrgPositionRepository, auth: AuthContext, position_id: str) -> OrgPosition:
    position = await repo.get_by_id(position_id)
    if not position or position.workspace_id != auth.workspace_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Position {position_id} not found")
    return position


async def _check_parent(repo: OrgPositionRepository, auth: AuthContext, parent_id: Optional[str]) -> None:
    if parent_id is None:
        return
    parent = await repo.get_by_id(parent_id)
    if not parent or parent.workspace_id != auth.workspace_id or not parent.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Parent position {parent_id} not found")


async def _get_department(repo: OrgDepartmentRepository, auth: AuthContext, department_id: str) -> OrgDepartment:
    department = await repo.get_by_id(department_id)
    if not department or department.workspace_id != auth.workspace_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Department {department_id} not found")
    return department


async def _get_team(repo: OrgTeamRepository, auth: AuthContext, team_id: str) -> OrgTeam:
    team = await repo.get_by_id(team_id)
    if not team or team.workspace_id != auth.workspace_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Team {team_id} not found")
    return team


# Positions


@router.get(
    "/positions",
    response_model=List[PositionRead],
    summary="List Positions",
    description="List the active positions of the active workspace.",
    response_description="Positions ordered by level, then order, each with its direct reports.",
)
async def list_positions(auth: AuthDep, session: SessionDep) -> List[PositionRead]:
    assert_active_role(auth, WorkspaceRole.VIEWER)
    positions = await OrgPositionRepository(session).list_active(auth.workspace_id)
    children = _children_index(positions)
    return [_position_read(position, children.get(position.id, [])) for position in positions]


@router.get(
    "/chart",
    response_model=List[OrgChartNode],
    summary="Get Org Chart",
    description="The active positions arranged as a forest of reporting lines.",
)
async def get_chart(auth: AuthDep, session: SessionDep) -> List[OrgChartNode]:
    assert_active_role(auth, WorkspaceRole.VIEWER)
    return build_org_chart(await OrgPositionRepository(session).list_active(auth.workspace_id))


@router.post(
    "/positions",
    response_model=PositionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Position",
)
async def create_position(body: PositionCreate, auth: AuthDep, session: SessionDep) -> PositionRead:
    """
    Create a position. Requires ADMIN in the active workspace.

    - **title**: Position title.
    - **level**: Hierarchy level, 1 being the top.
    - **parent_id**: Optional active position this one reports to.
    """
    assert_active_role(auth, WorkspaceRole.ADMIN)
    repo = OrgPositionRepository(session)
    await _check_parent(repo, auth, body.parent_id)
    position = await repo.create(OrgPosition(workspace_id=auth.workspace_id, **body.model_dump()))
    return _position_read(position, [])


@router.get(
    "/positions/{position_id}",
    response_model=PositionRead,
    summary="Get Position",
    responses={404: {"description": "Position not found"}},
)
async def get_position(position_id: str, auth: AuthDep, session: SessionDep) -> PositionRead:
    assert_active_role(auth, WorkspaceRole.VIEWER)
    repo = OrgPositionRepository(session)
    position = await _get_position(repo, auth, position_id)
    children = _children_index(await repo.list_active(auth.workspace_id))
    return _position_read(position, children.get(position.id, []))


@router.put(
    "/positions/{position_id}",
    response_model=PositionRead,
    summary="Update Position",
    responses={400: {"description": "The new parent would create a reporting cycle"}},
)
async def update_position(position_id: str, body: PositionUpdate, auth: AuthDep, session: SessionDep) -> PositionRead:
    """
    Update a position. Requires ADMIN in the active workspace.

    A position cannot report to itself or to one of its own reports.
    """
    assert_active_role(auth, WorkspaceRole.ADMIN)
    repo = OrgPositionRepository(session)
    position = await _get_position(repo, auth, position_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("parent_id"):
        if creates_cycle(await repo.parent_map(auth.workspace_id), position.id, changes["parent_id"]):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="A position cannot be its own ancestor"
            )
        await _check_parent(repo, auth, changes["parent_id"])

    repo.apply_changes(position, changes)
    position = await repo.update(position)
    children = _children_index(await repo.list_active(auth.workspace_id))
    return _position_read(position, children.get(position.id, []))


@router.delete("/positions/{position_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Position")
async def delete_position(position_id: str, auth: AuthDep, session: SessionDep) -> None:
    """
    Deactivate a position. Requires ADMIN; fails while it has active reports.
    """
    assert_active_role(auth, WorkspaceRole.ADMIN)
    repo = OrgPositionRepository(session)
    position = await _get_position(repo, auth, position_id)
    if await repo.count_active_children(position.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete a position that has active reports"
        )
    await repo.soft_delete(position)
    logger.info(f"Position {position_id} deactivated")


# Departments


@router.get("/departments", response_model=List[DepartmentRead], summary="List Departments")
async def list_departments(auth: AuthDep, session: SessionDep) -> List[DepartmentRead]:
    assert_active_role(auth, WorkspaceRole.VIEWER)
    departments = await OrgDepartmentRepository(session).list_active(auth.workspace_id)
    return [DepartmentRead.model_validate(department) for department in departments]


@router.post(
    "/departments",
    response_model=DepartmentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Department",
    responses={409: {"description": "A department with this name already exists"}},
)
async def create_department(body: DepartmentCreate, auth: AuthDep, session: SessionDep) -> DepartmentRead:
    """
    Create a department. Requires ADMIN; names are unique per workspace.
    """
    assert_active_role(auth, WorkspaceRole.ADMIN)
    repo = OrgDepartmentRepository(session)
    if await repo.get_by_name(auth.workspace_id, body.name):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Department '{body.name}' already exists")
    department = await repo.create(OrgDepartment(workspace_id=auth.workspace_id, **body.model_dump()))
    return DepartmentRead.model_validate(department)


@router.put("/departments/{department_id}", response_model=DepartmentRead, summary="Update Department")
async def update_department(
    department_id: str, body: DepartmentUpdate, auth: AuthDep, session: SessionDep
) -> DepartmentRead:
    assert_active_role(auth, WorkspaceRole.ADMIN)
    repo = OrgDepartmentRepository(session)
    department = await _get_department(repo, auth, department_id)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("name") and changes["name"] != department.name:
        if await repo.get_by_name(auth.workspace_id, changes["name"]):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail=f"Department '{changes['name']}' already exists"
            )
    repo.apply_changes(department, changes)
    return DepartmentRead.model_validate(await repo.update(department))


@router.delete("/departments/{department_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Department")
async def delete_department(department_id: str, auth: AuthDep, session: SessionDep) -> None:
    """
    Delete a department that has no teams left.
    """
    assert_active_role(auth, WorkspaceRole.ADMIN)
    repo = OrgDepartmentRepository(session)
    department = await _get_department(repo, auth, department_id)
    if await OrgTeamRepository(session).count_in_department(department.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete department with existing teams. Delete or move the teams first.",
        )
    await repo.delete(department.id)
    logger.info(f"Department {department_id} deleted")


# Teams


@router.get("/teams", response_model=List[TeamRead], summary="List Teams")
async def list_teams(auth: AuthDep, session: SessionDep, department_id: Optional[str] = None) -> List[TeamRead]:
    """
    List active teams, optionally of one department.
    """
    assert_active_role(auth, WorkspaceRole.VIEWER)
    teams = await OrgTeamRepository(session).list_active(auth.workspace_id, department_id)
    return [TeamRead.model_validate(team) for team in teams]


@router.post("/teams", response_model=TeamRead, status_code=status.HTTP_201_CREATED, summary="Create Team")
async def create_team(body: TeamCreate, auth: AuthDep, session: SessionDep) -> TeamRead:
    """
    Create a team in one of the workspace's departments. Requires ADMIN.
    """
    assert_active_role(auth, WorkspaceRole.ADMIN)
    department = await OrgDepartmentRepository(session).get_by_id(body.department_id)
    if not department or department.workspace_id != auth.workspace_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Department {body.department_id} not found"
        )
    repo = OrgTeamRepository(session)
    if await repo.get_by_name(auth.workspace_id, department.id, body.name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=f"Team '{body.name}' already exists in this department"
        )
    team = await repo.create(OrgTeam(workspace_id=auth.workspace_id, **body.model_dump()))
    return TeamRead.model_validate(team)


@router.put("/teams/{team_id}", response_model=TeamRead, summary="Update Team")
async def update_team(team_id: str, body: TeamUpdate, auth: AuthDep, session: SessionDep) -> TeamRead:
    """
    Update a team, possibly moving it to another department. Requires ADMIN.
    """
    assert_active_role(auth, WorkspaceRole.ADMIN)
    repo = OrgTeamRepository(session)
    team = await _get_team(repo, auth, team_id)
    changes = body.model_dump(exclude_unset=True)

    department_id = changes.get("department_id", team.department_id)
    if department_id != team.department_id:
        await _get_department(OrgDepartmentRepository(session), auth, department_id)
    name = changes.get("name", team.name)
    if name != team.name or department_id != team.department_id:
        existing = await repo.get_by_name(auth.workspace_id, department_id, name)
        if existing and existing.id != team.id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail=f"Team '{name}' already exists in this department"
            )
    repo.apply_changes(team, changes)
    return TeamRead.model_validate(await repo.update(team))


@router.delete("/teams/{team_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Team")
async def delete_team(team_id: str, auth: AuthDep, session: SessionDep) -> None:
    """
    Delete a team. Requires ADMIN.
    """
    assert_active_role(auth, WorkspaceRole.ADMIN)
    repo = OrgTeamRepository(session)
    team = await _get_team(repo, auth, team_id)
    await repo.delete(team.id)
    logger.info(f"Team {team_id} deleted")
