import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from loopwell.core.database.entities.wiki import WikiPage, WikiVersion

# Mark all tests in this module as async
pytestmark = pytest.mark.asyncio

BASE = "/api/v1/wiki"


async def _create(client: AsyncClient, headers, **fields) -> dict:
    response = await client.post(f"{BASE}/pages", json=fields, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_page(client: AsyncClient, workspace, member, as_user):
    page = await _create(
        client, as_user(member, workspace.id), title="Onboarding Guide!", content="Welcome aboard", tags=["hr"]
    )

    assert page["slug"] == "onboarding-guide"
    assert page["workspace_id"] == workspace.id
    assert page["excerpt"] == "Welcome aboard"
    assert page["category"] == "general"
    assert page["created_by_id"] == member.id


async def test_create_page_errors(client: AsyncClient, workspace, member, viewer, as_user):
    headers = as_user(member, workspace.id)
    await _create(client, headers, title="Runbook")

    response = await client.post(f"{BASE}/pages", json={"title": "runbook"}, headers=headers)
    assert response.status_code == 409

    response = await client.post(f"{BASE}/pages", json={"title": "!!!"}, headers=headers)
    assert response.status_code == 400

    response = await client.post(f"{BASE}/pages", json={"title": "Child", "parent_id": "missing"}, headers=headers)
    assert response.status_code == 400

    response = await client.post(f"{BASE}/pages", json={"title": "Mine"}, headers=as_user(viewer, workspace.id))
    assert response.status_code == 403


async def test_get_by_id_or_slug(client: AsyncClient, workspace, member, viewer, as_user):
    page = await _create(client, as_user(member, workspace.id), title="Style Guide")
    headers = as_user(viewer, workspace.id)

    assert (await client.get(f"{BASE}/pages/{page['id']}", headers=headers)).json()["title"] == "Style Guide"
    assert (await client.get(f"{BASE}/pages/style-guide", headers=headers)).json()["id"] == page["id"]
    assert (await client.get(f"{BASE}/pages/nothing", headers=headers)).status_code == 404


async def test_list_published_pages(client: AsyncClient, workspace, member, as_user):
    headers = as_user(member, workspace.id)
    await _create(client, headers, title="Zebra", order=0)
    await _create(client, headers, title="Alpha", order=0)
    await _create(client, headers, title="First")
    await _create(client, headers, title="Draft", is_published=False)

    response = await client.get(f"{BASE}/pages", headers=headers)
    assert [p["title"] for p in response.json()] == ["Alpha", "First", "Zebra"]


async def test_update_page_versions_and_slug(client: AsyncClient, workspace, member, admin, as_user, hub):
    page = await _create(client, as_user(member, workspace.id), title="Release Notes", content="v1")
    url = f"{BASE}/pages/{page['id']}"

    response = await client.put(url, json={"content": "v2", "title": "Changelog"}, headers=as_user(admin, workspace.id))
    assert response.status_code == 200
    updated = response.json()
    assert updated["slug"] == "changelog"
    assert updated["excerpt"] == "v2"
    assert hub.emitted[-1].room == f"wiki:{page['id']}"
    assert hub.emitted[-1].event == "wikiPageUpdated"

    # unchanged content does not add a version
    await client.put(url, json={"content": "v2", "tags": ["ops"]}, headers=as_user(admin, workspace.id))

    response = await client.get(f"{url}/versions", headers=as_user(member, workspace.id))
    assert [(v["version"], v["content"]) for v in response.json()] == [(2, "v2"), (1, "v1")]


async def test_update_page_errors(client: AsyncClient, workspace, member, as_user):
    headers = as_user(member, workspace.id)
    first = await _create(client, headers, title="First")
    await _create(client, headers, title="Second")
    url = f"{BASE}/pages/{first['id']}"

    assert (await client.put(url, json={"title": "Second"}, headers=headers)).status_code == 409
    assert (await client.put(url, json={"parent_id": first["id"]}, headers=headers)).status_code == 400
    assert (await client.put(url, json={"content": None}, headers=headers)).status_code == 422
    assert (await client.put(f"{BASE}/pages/missing", json={"title": "X"}, headers=headers)).status_code == 404


async def test_page_in_other_workspace_is_hidden(client: AsyncClient, workspace, member, outsider, as_user):
    page = await _create(client, as_user(member, workspace.id), title="Internal")

    response = await client.put(f"{BASE}/pages/{page['id']}", json={"title": "Hijack"}, headers=as_user(outsider))
    assert response.status_code == 404


async def test_delete_page_orphans_children(
    client: AsyncClient, session: AsyncSession, workspace, member, as_user
):
    headers = as_user(member, workspace.id)
    parent = await _create(client, headers, title="Parent", content="p")
    child = await _create(client, headers, title="Child", parent_id=parent["id"])

    response = await client.delete(f"{BASE}/pages/{parent['id']}", headers=headers)
    assert response.status_code == 204

    parent_ids = (await session.execute(select(WikiPage.parent_id).where(WikiPage.id == child["id"]))).scalars().all()
    assert parent_ids == [None]
    versions = await session.execute(select(WikiVersion.id).where(WikiVersion.page_id == parent["id"]))
    assert versions.first() is None


async def test_search(client: AsyncClient, workspace, member, owner, as_user):
    headers = as_user(member, workspace.id)
    await _create(client, headers, title="Deploy checklist", content="Steps to deploy", tags=["ops"])
    await _create(client, headers, title="Holidays", content="We rarely deploy on Fridays")
    await _create(client, headers, title="Incident review", tags=["deploy-failures"])
    await _create(client, as_user(owner, workspace.id), title="Deploy keys", tags=["security"])

    response = await client.get(f"{BASE}/search", params={"q": "Deploy"}, headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["query"] == "Deploy"
    assert data["total"] == 4
    scores = {hit["title"]: hit["relevance_score"] for hit in data["results"]}
    assert scores["Deploy checklist"] == 3 + 2 + 1
    assert scores["Holidays"] == 2 + 1
    assert scores["Incident review"] == 2
    assert data["results"][0]["title"] == "Deploy checklist"

    response = await client.get(f"{BASE}/search", params={"q": "deploy", "tags": "ops, security"}, headers=headers)
    assert {hit["title"] for hit in response.json()["results"]} == {"Deploy checklist", "Deploy keys"}

    response = await client.get(f"{BASE}/search", params={"q": "deploy", "author": owner.id}, headers=headers)
    assert [hit["title"] for hit in response.json()["results"]] == ["Deploy keys"]


async def test_search_requires_query(client: AsyncClient, workspace, member, as_user):
    response = await client.get(f"{BASE}/search", params={"q": "  "}, headers=as_user(member, workspace.id))
    assert response.status_code == 400
    assert response.json() == {"detail": "Search query is required"}


async def test_search_excludes_drafts(client: AsyncClient, workspace, member, as_user):
    headers = as_user(member, workspace.id)
    await _create(client, headers, title="Pricing", content="Public price list")
    await _create(client, headers, title="Pricing draft", content="Next quarter pricing", is_published=False)

    response = await client.get(f"{BASE}/search", params={"q": "pricing"}, headers=headers)

    assert response.status_code == 200
    assert [hit["title"] for hit in response.json()["results"]] == ["Pricing"]


async def test_search_matches_percent_and_underscore_literally(client: AsyncClient, workspace, member, as_user):
    headers = as_user(member, workspace.id)
    await _create(client, headers, title="Discount 50%")
    await _create(client, headers, title="Config keys", content="Use max_retries in the worker")
    await _create(client, headers, title="Lunch menu", content="Soup and bread")

    percent = await client.get(f"{BASE}/search", params={"q": "%"}, headers=headers)
    underscore = await client.get(f"{BASE}/search", params={"q": "_"}, headers=headers)

    assert [hit["title"] for hit in percent.json()["results"]] == ["Discount 50%"]
    assert [hit["title"] for hit in underscore.json()["results"]] == ["Config keys"]


async def test_favorite_and_unfavorite_page(client: AsyncClient, workspace, member, viewer, as_user):
    headers = as_user(member, workspace.id)
    page = await _create(client, headers, title="Release Checklist")
    await _create(client, headers, title="Other Page")
    assert page["is_featured"] is False

    response = await client.post(f"{BASE}/pages/{page['id']}/favorite", headers=headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Page added to favorites"
    assert response.json()["page"]["is_featured"] is True

    favorites = await client.get(f"{BASE}/favorites", headers=as_user(viewer, workspace.id))
    assert [item["id"] for item in favorites.json()] == [page["id"]]

    response = await client.delete(f"{BASE}/pages/{page['id']}/favorite", headers=headers)
    assert response.json()["message"] == "Page removed from favorites"
    assert response.json()["page"]["is_featured"] is False
    assert (await client.get(f"{BASE}/favorites", headers=headers)).json() == []


async def test_favorite_requires_member_and_existing_page(client: AsyncClient, workspace, member, viewer, as_user):
    page = await _create(client, as_user(member, workspace.id), title="Handbook")

    response = await client.post(f"{BASE}/pages/{page['id']}/favorite", headers=as_user(viewer, workspace.id))
    assert response.status_code == 403

    response = await client.post(f"{BASE}/pages/missing/favorite", headers=as_user(member, workspace.id))
    assert response.status_code == 404


async def test_page_counts_split_personal_and_team(client: AsyncClient, workspace, member, viewer, as_user):
    headers = as_user(member, workspace.id)
    await _create(client, headers, title="My Notes", permission_level="personal")
    await _create(client, headers, title="Team Wiki")
    await _create(client, headers, title="Leads Only", permission_level="restricted")
    await _create(client, headers, title="Draft Plan", is_published=False)

    response = await client.get(f"{BASE}/page-counts", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"personal": 1, "team": 2}
    assert (await client.get(f"{BASE}/page-counts", headers=as_user(viewer, workspace.id))).status_code == 403
