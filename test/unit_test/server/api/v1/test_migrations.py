from typing import List

import pytest
from httpx import AsyncClient

from loopwell.core.database.entities.migrations import MigrationPlatform
from loopwell.core.errors import ImportSourceError
from loopwell.integrations import ClickUpImporter, MigrationItem, MigrationItemMetadata, SliteImporter, build_importer
from loopwell.server.api.v1.migrations import get_importer_factory
from loopwell.server.main import app

BASE = "/api/v1/migrations"


class FakeImporter:
    def __init__(self, items: List[MigrationItem], error: Exception = None) -> None:
        self.items = items
        self.error = error
        self.closed = False

    async def __aenter__(self) -> "FakeImporter":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.closed = True

    async def fetch_items(self) -> List[MigrationItem]:
        if self.error:
            raise self.error
        return self.items


@pytest.fixture
def importer_calls():
    return []


@pytest.fixture
def use_importer(client, importer_calls):
    """Route imports to a fake importer; returns a setter for its items or error."""

    def _use(items: List[MigrationItem] = (), error: Exception = None) -> FakeImporter:
        importer = FakeImporter(list(items), error)

        def factory(platform, api_key, team_id):
            importer_calls.append((platform, api_key, team_id))
            return importer

        app.dependency_overrides[get_importer_factory] = lambda: factory
        return importer

    return _use


def _item(title: str, content: str = "Imported body") -> MigrationItem:
    return MigrationItem(
        id=f"src_{title}", title=title, content=content, metadata=MigrationItemMetadata(original_id=title, category="docs")
    )


class TestBuildImporter:
    def test_clickup(self):
        importer = build_importer(MigrationPlatform.CLICKUP, "pk_1", "team_9")

        assert isinstance(importer, ClickUpImporter)
        assert importer.team_id == "team_9"

    def test_slite(self):
        assert isinstance(build_importer(MigrationPlatform.SLITE, "sl_1"), SliteImporter)


@pytest.mark.asyncio
async def test_import(client: AsyncClient, workspace, admin, as_user, use_importer, importer_calls):
    importer = use_importer([_item("Roadmap"), _item("Runbook")])

    response = await client.post(
        f"{BASE}/import",
        json={"platform": "clickup", "api_key": "pk_secret", "team_id": "t1"},
        headers=as_user(admin, workspace.id),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["success"] is True
    assert body["imported_count"] == 2
    assert body["failed_count"] == 0
    assert len(body["imported_items"]) == 2
    assert importer_calls == [(MigrationPlatform.CLICKUP, "pk_secret", "t1")]
    assert importer.closed

    pages = (await client.get("/api/v1/wiki/pages", headers=as_user(admin, workspace.id))).json()
    assert {page["title"] for page in pages} == {"Roadmap", "Runbook"}

    records = (await client.get(BASE, headers=as_user(admin, workspace.id))).json()
    assert [(r["id"], r["status"], r["imported_count"]) for r in records] == [(body["migration_id"], "completed", 2)]
    assert "pk_secret" not in str(records)


@pytest.mark.asyncio
async def test_import_source_failure(client: AsyncClient, workspace, admin, as_user, use_importer):
    use_importer(error=ImportSourceError("Slite", "API error: 403 Forbidden"))

    response = await client.post(
        f"{BASE}/import", json={"platform": "slite", "api_key": "bad"}, headers=as_user(admin, workspace.id)
    )

    assert response.status_code == 502
    assert response.json() == {"detail": "Slite import failed: API error: 403 Forbidden"}
    records = (await client.get(BASE, headers=as_user(admin, workspace.id))).json()
    assert [r["status"] for r in records] == ["failed"]


@pytest.mark.asyncio
async def test_import_requires_admin(client: AsyncClient, workspace, member, as_user, use_importer, importer_calls):
    use_importer([_item("Roadmap")])

    response = await client.post(
        f"{BASE}/import", json={"platform": "slite", "api_key": "k"}, headers=as_user(member, workspace.id)
    )
    assert response.status_code == 403
    assert importer_calls == []

    response = await client.get(BASE, headers=as_user(member, workspace.id))
    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"platform": "clickup", "api_key": "pk"},
        {"platform": "notion", "api_key": "k"},
        {"platform": "slite"},
    ],
)
async def test_import_validation(client: AsyncClient, workspace, admin, as_user, use_importer, payload):
    use_importer()

    response = await client.post(f"{BASE}/import", json=payload, headers=as_user(admin, workspace.id))

    assert response.status_code == 422
