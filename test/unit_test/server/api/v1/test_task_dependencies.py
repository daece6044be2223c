import pytest
import pytest_asyncio
from httpx import AsyncClient

from loopwell.realtime import MockRealtimeHub

# Mark all tests in this module as async
pytestmark = pytest.mark.asyncio

BASE = "/api/v1/tasks"


@pytest_asyncio.fixture
async def project(client: AsyncClient, workspace, owner, as_user) -> dict:
    response = await client.post("/api/v1/projects", json={"name": "Launch"}, headers=as_user(owner, workspace.id))
    return response.json()


@pytest_asyncio.fixture
async def make_task(client: AsyncClient, project, member, as_user):
    async def _make(title: str, project_id: str = None, **fields) -> dict:
        response = await client.post(
            BASE, json={"project_id": project_id or project["id"], "title": title, **fields}, headers=as_user(member)
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make


async def _task(client: AsyncClient, headers, task_id: str) -> dict:
    return (await client.get(f"{BASE}/{task_id}", headers=headers)).json()


async def test_set_dependencies_updates_reverse_links(
    client: AsyncClient, make_task, member, as_user, hub: MockRealtimeHub
):
    headers = as_user(member)
    design = await make_task("Design")
    build = await make_task("Build")
    ship = await make_task("Ship")

    response = await client.post(
        f"{BASE}/{build['id']}/dependencies",
        json={"action": "set", "depends_on": [design["id"]], "blocks": [ship["id"]]},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()["depends_on"] == [design["id"]]
    assert response.json()["blocks"] == [ship["id"]]
    assert (await _task(client, headers, design["id"]))["blocks"] == [build["id"]]
    assert (await _task(client, headers, ship["id"]))["depends_on"] == [build["id"]]
    assert hub.emitted[-1].event == "taskUpdated"
    assert hub.emitted[-1].data["updates"] == {"depends_on": [design["id"]], "blocks": [ship["id"]]}

    overview = (await client.get(f"{BASE}/{build['id']}/dependencies", headers=headers)).json()
    assert [item["title"] for item in overview["dependencies"]] == ["Design"]
    assert [item["title"] for item in overview["blocked_tasks"]] == ["Ship"]


async def test_add_and_remove_dependencies(client: AsyncClient, make_task, member, as_user):
    headers = as_user(member)
    first = await make_task("First")
    second = await make_task("Second")
    last = await make_task("Last")
    url = f"{BASE}/{last['id']}/dependencies"

    await client.post(url, json={"action": "add", "depends_on": [first["id"]]}, headers=headers)
    response = await client.post(url, json={"action": "add", "depends_on": [second["id"], first["id"]]}, headers=headers)
    assert response.json()["depends_on"] == [first["id"], second["id"]]

    response = await client.put(url, json={"action": "remove", "depends_on": [first["id"]]}, headers=headers)
    assert response.json()["depends_on"] == [second["id"]]
    assert (await _task(client, headers, first["id"]))["blocks"] == []
    assert (await _task(client, headers, second["id"]))["blocks"] == [last["id"]]


async def test_circular_dependency_is_rejected(client: AsyncClient, make_task, member, as_user):
    headers = as_user(member)
    a = await make_task("A")
    b = await make_task("B", depends_on=[a["id"]])
    c = await make_task("C", depends_on=[b["id"]])

    response = await client.post(f"{BASE}/{a['id']}/dependencies", json={"depends_on": [c["id"]]}, headers=headers)
    assert response.status_code == 400
    assert response.json() == {"detail": "Circular dependency detected"}

    response = await client.post(f"{BASE}/{a['id']}/dependencies", json={"depends_on": [a["id"]]}, headers=headers)
    assert response.status_code == 400

    response = await client.patch(f"{BASE}/{c['id']}", json={"blocks": [a["id"]]}, headers=headers)
    assert response.status_code == 400
    assert (await _task(client, headers, a["id"]))["depends_on"] == []


async def test_links_must_stay_in_the_project(client: AsyncClient, workspace, owner, make_task, member, as_user):
    other = await client.post("/api/v1/projects", json={"name": "Other"}, headers=as_user(owner, workspace.id))
    foreign = await make_task("Foreign", project_id=other.json()["id"])
    local = await make_task("Local")
    headers = as_user(member)

    response = await client.post(
        f"{BASE}/{local['id']}/dependencies", json={"depends_on": [foreign["id"]]}, headers=headers
    )
    assert response.status_code == 400
    assert response.json() == {"detail": "Some dependency tasks not found or not in the same project"}

    response = await client.post(
        BASE, json={"project_id": local["project_id"], "title": "New", "blocks": ["missing"]}, headers=headers
    )
    assert response.status_code == 400
    assert response.json() == {"detail": "Some blocked tasks not found or not in the same project"}


async def test_create_and_update_sync_reverse_links(client: AsyncClient, make_task, member, as_user):
    headers = as_user(member)
    design = await make_task("Design")
    impl = await make_task("Implement", depends_on=[design["id"]])

    assert (await _task(client, headers, design["id"]))["blocks"] == [impl["id"]]

    review = await make_task("Review")
    response = await client.patch(f"{BASE}/{impl['id']}", json={"blocks": [review["id"]]}, headers=headers)
    assert response.status_code == 200
    assert response.json()["depends_on"] == [design["id"]]
    assert (await _task(client, headers, review["id"]))["depends_on"] == [impl["id"]]


async def test_delete_clears_links(client: AsyncClient, make_task, member, as_user):
    headers = as_user(member)
    base = await make_task("Base")
    top = await make_task("Top", depends_on=[base["id"]])

    assert (await client.delete(f"{BASE}/{base['id']}", headers=headers)).status_code == 204

    assert (await _task(client, headers, top["id"]))["depends_on"] == []


async def test_dependency_changes_require_member(client: AsyncClient, make_task, viewer, as_user):
    task = await make_task("Guarded")

    response = await client.post(f"{BASE}/{task['id']}/dependencies", json={"depends_on": []}, headers=as_user(viewer))

    assert response.status_code == 403
    assert (await client.get(f"{BASE}/{task['id']}/dependencies", headers=as_user(viewer))).status_code == 200
