import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlmodel import select

from loopwell.core.database.entities.projects import Project
from loopwell.core.database.entities.workspaces import WorkspaceRole
from loopwell.core.database.repositories import WorkspaceRepository
from loopwell.realtime import MockRealtimeHub

# Mark all tests in this module as async
pytestmark = pytest.mark.asyncio

BASE = "/api/v1/projects"


@pytest_asyncio.fixture
async def project(client: AsyncClient, workspace, owner, as_user) -> dict:
    response = await client.post(
        BASE,
        json={"name": "Website", "start_date": "2026-03-01", "end_date": "2026-03-31", "color": "#3366FF"},
        headers=as_user(owner, workspace.id),
    )
    assert response.status_code == 201
    return response.json()


async def test_create_project(client: AsyncClient, workspace, owner, member, as_user, hub: MockRealtimeHub):
    response = await client.post(
        BASE,
        json={
            "name": "Launch",
            "priority": "HIGH",
            "start_date": "2026-01-05",
            "end_date": "2026-01-09",
            "member_user_ids": [member.id],
            "watcher_ids": [member.id],
        },
        headers=as_user(owner, workspace.id),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["workspace_id"] == workspace.id
    assert data["priority"] == "HIGH"
    assert data["status"] == "ACTIVE"
    assert data["start_date"] == "2026-01-05T00:00:00"
    assert data["end_date"] == "2026-01-09T23:59:59.999000"
    assert {(m["user_id"], m["role"]) for m in data["members"]} == {(owner.id, "OWNER"), (member.id, "MEMBER")}
    assert data["watcher_ids"] == [member.id]
    assert hub.emitted[-1].event == "projectUpdated"
    assert hub.emitted[-1].data["action"] == "created"


async def test_create_project_validation(client: AsyncClient, workspace, owner, viewer, as_user):
    headers = as_user(owner, workspace.id)

    response = await client.post(BASE, json={"name": "Bad", "start_date": "2026-02-10", "end_date": "2026-02-01"}, headers=headers)
    assert response.status_code == 422

    response = await client.post(BASE, json={"name": "Secret", "visibility": "TARGETED"}, headers=headers)
    assert response.status_code == 422

    response = await client.post(BASE, json={"name": "Colour", "color": "blue"}, headers=headers)
    assert response.status_code == 422

    response = await client.post(BASE, json={"name": "Nope"}, headers=as_user(viewer, workspace.id))
    assert response.status_code == 403


@pytest.mark.parametrize("field", ["member_user_ids", "watcher_ids", "assignee_ids"])
async def test_create_project_rejects_users_outside_the_workspace(
    client: AsyncClient, session, workspace, owner, member, outsider, as_user, field
):
    response = await client.post(
        BASE, json={"name": "Leaky", field: [member.id, outsider.id]}, headers=as_user(owner, workspace.id)
    )

    assert response.status_code == 400
    assert response.json() == {"detail": f"Users are not members of the workspace: {outsider.id}"}
    assert (await session.execute(select(Project.id).where(Project.name == "Leaky"))).first() is None


async def test_list_projects_with_task_counts(client: AsyncClient, workspace, owner, viewer, project, as_user):
    await client.post(
        "/api/v1/tasks", json={"title": "First", "project_id": project["id"]}, headers=as_user(owner, workspace.id)
    )

    response = await client.get(BASE, headers=as_user(viewer, workspace.id))
    assert response.status_code == 200
    assert [(p["name"], p["task_count"]) for p in response.json()] == [("Website", 1)]

    response = await client.get(BASE, params={"status": "COMPLETED"}, headers=as_user(viewer, workspace.id))
    assert response.json() == []


async def test_project_in_other_workspace_is_forbidden(client: AsyncClient, project, outsider, as_user):
    response = await client.get(f"{BASE}/{project['id']}", headers=as_user(outsider))
    assert response.status_code == 403


async def test_missing_project(client: AsyncClient, workspace, owner, as_user):
    response = await client.get(f"{BASE}/nope", headers=as_user(owner, workspace.id))
    assert response.status_code == 404
    assert response.json() == {"detail": "Project nope not found"}


async def test_update_project(client: AsyncClient, workspace, owner, member, project, as_user, hub):
    url = f"{BASE}/{project['id']}"

    response = await client.put(url, json={"status": "ON_HOLD"}, headers=as_user(member, workspace.id))
    assert response.status_code == 403

    response = await client.put(url, json={"status": "ON_HOLD", "end_date": "2026-04-15"}, headers=as_user(owner))
    assert response.status_code == 200
    assert response.json()["status"] == "ON_HOLD"
    assert response.json()["end_date"] == "2026-04-15T23:59:59.999000"
    assert response.json()["name"] == "Website"
    assert hub.emitted[-1].data["action"] == "updated"

    response = await client.put(url, json={"end_date": "2026-02-01"}, headers=as_user(owner))
    assert response.status_code == 400
    assert response.json() == {"detail": "End date must be after or equal to start date"}


async def test_delete_project(client: AsyncClient, workspace, owner, admin, project, as_user, hub):
    url = f"{BASE}/{project['id']}"

    response = await client.delete(url, headers=as_user(admin, workspace.id))
    assert response.status_code == 403

    response = await client.delete(url, headers=as_user(owner))
    assert response.status_code == 204
    assert hub.emitted[-1].data == {"action": "deleted", "project_id": project["id"]}

    response = await client.get(url, headers=as_user(owner, workspace.id))
    assert response.status_code == 404


async def test_project_members(client: AsyncClient, workspace, owner, viewer, outsider, project, as_user):
    url = f"{BASE}/{project['id']}/members"

    response = await client.post(url, json={"user_id": outsider.id}, headers=as_user(owner))
    assert response.status_code == 400

    response = await client.post(url, json={"user_id": viewer.id, "role": "ADMIN"}, headers=as_user(owner))
    assert response.status_code == 201
    assert response.json()["role"] == "ADMIN"

    response = await client.post(url, json={"user_id": viewer.id}, headers=as_user(owner))
    assert response.status_code == 409

    # the project ADMIN role lifts the workspace viewer
    response = await client.put(f"{BASE}/{project['id']}", json={"team": "Web"}, headers=as_user(viewer))
    assert response.status_code == 200

    response = await client.get(url, headers=as_user(viewer))
    assert {m["user_id"] for m in response.json()} == {owner.id, viewer.id}

    response = await client.delete(f"{url}/{viewer.id}", headers=as_user(owner))
    assert response.status_code == 204
    response = await client.delete(f"{url}/{viewer.id}", headers=as_user(owner))
    assert response.status_code == 404



async def test_project_id_query_selects_workspace(
    client: AsyncClient, session, workspace, outsider, project, as_user
):
    response = await client.post("/api/v1/workspaces", json={"name": "Otto Labs"}, headers=as_user(outsider))
    assert response.status_code == 201
    await WorkspaceRepository(session).add_member(workspace.id, outsider.id, WorkspaceRole.MEMBER)

    # without a hint the earliest membership wins
    response = await client.get(BASE, headers=as_user(outsider))
    assert response.json() == []

    response = await client.get(BASE, params={"project_id": project["id"]}, headers=as_user(outsider))
    assert [p["name"] for p in response.json()] == ["Website"]

    response = await client.get(
        f"{BASE}/{project['id']}/members", params={"project_id": project["id"]}, headers=as_user(outsider)
    )
    assert response.status_code == 200
    assert [m["role"] for m in response.json()] == ["OWNER"]


async def test_epics(client: AsyncClient, workspace, member, project, as_user, hub):
    url = f"{BASE}/{project['id']}/epics"
    headers = as_user(member)

    response = await client.post(url, json={"title": "Checkout", "order": 2}, headers=headers)
    assert response.status_code == 201
    epic = response.json()
    await client.post(url, json={"title": "Search", "order": 1}, headers=headers)
    assert hub.emitted[-1].event == "epicCreated"

    response = await client.get(url, headers=headers)
    assert [e["title"] for e in response.json()] == ["Search", "Checkout"]

    response = await client.patch(f"{url}/{epic['id']}", json={"color": "#00AA00"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["color"] == "#00AA00"
    assert hub.emitted[-1].event == "epicUpdated"

    response = await client.delete(f"{url}/{epic['id']}", headers=headers)
    assert response.status_code == 204
    assert hub.emitted[-1].data == {"epic_id": epic["id"]}

    response = await client.patch(f"{url}/{epic['id']}", json={"title": "Gone"}, headers=headers)
    assert response.status_code == 404


async def test_milestones(client: AsyncClient, workspace, member, project, as_user, hub):
    url = f"{BASE}/{project['id']}/milestones"
    headers = as_user(member)

    response = await client.post(
        url, json={"title": "Beta", "start_date": "2026-03-10", "end_date": "2026-03-20"}, headers=headers
    )
    assert response.status_code == 201
    milestone = response.json()
    assert milestone["end_date"] == "2026-03-20T23:59:59.999000"

    response = await client.patch(f"{url}/{milestone['id']}", json={"end_date": "2026-03-01"}, headers=headers)
    assert response.status_code == 400

    response = await client.patch(f"{url}/{milestone['id']}", json={"title": "Public beta"}, headers=headers)
    assert response.json()["title"] == "Public beta"

    response = await client.get(url, headers=headers)
    assert [m["title"] for m in response.json()] == ["Public beta"]

    response = await client.delete(f"{url}/{milestone['id']}", headers=headers)
    assert response.status_code == 204
    assert hub.emitted[-1].event == "milestoneDeleted"


async def test_custom_field_definitions(client: AsyncClient, workspace, owner, member, project, as_user):
    url = f"{BASE}/{project['id']}/custom-fields"

    response = await client.post(url, json={"key": "effort", "label": "Effort", "type": "number"}, headers=as_user(member))
    assert response.status_code == 403

    response = await client.post(url, json={"key": "effort", "label": "Effort", "type": "number"}, headers=as_user(owner))
    assert response.status_code == 201

    response = await client.post(url, json={"key": "effort", "label": "Again", "type": "text"}, headers=as_user(owner))
    assert response.status_code == 409

    response = await client.post(url, json={"key": "stage", "label": "Stage", "type": "select"}, headers=as_user(owner))
    assert response.status_code == 422

    response = await client.get(url, headers=as_user(member))
    assert [f["key"] for f in response.json()] == ["effort"]
