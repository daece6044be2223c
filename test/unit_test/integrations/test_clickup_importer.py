"""Unit tests for the ClickUp importer."""

import httpx
import pytest

from loopwell.core.errors import ImportSourceError
from loopwell.integrations.clickup import ClickUpImporter, format_task_content, map_status_category, task_to_item

BASE_URL = "http://mock.clickup/api/v2"

TASK = {
    "id": "abc1",
    "name": "Ship onboarding",
    "description": "Make the first run smooth",
    "status": {"status": "In Progress"},
    "assignees": [{"username": "mia", "email": "mia@example.com"}],
    "tags": [{"name": "ux"}, {"name": "q3"}],
    "custom_fields": [{"name": "Effort", "value": 3}],
    "attachments": [{"id": 7, "title": "mock.png", "url": "http://mock/files/mock.png", "size": 10}],
    "date_created": "1700000000000",
    "date_updated": "1700000360000",
}


def _importer(routes, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        path = request.url.path.removeprefix("/api/v2")
        if path not in routes:
            return httpx.Response(404, json={"err": "not found"})
        status, body = routes[path]
        return httpx.Response(status, json=body)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ClickUpImporter("pk_test", "team1", base_url=BASE_URL, client=client)


class TestTaskConversion:
    def test_task_to_item(self):
        item = task_to_item(TASK)

        assert item.id == "clickup_abc1"
        assert item.title == "Ship onboarding"
        assert item.metadata.original_url == "https://app.clickup.com/t/abc1"
        assert item.metadata.author == "mia"
        assert item.metadata.tags == ["ux", "q3"]
        assert item.metadata.category == "engineering"
        assert item.metadata.created_at.year == 2023
        assert [a.name for a in item.metadata.attachments] == ["mock.png"]

    def test_task_without_name_or_description_is_skipped(self):
        assert task_to_item({"id": "x", "name": "", "description": None}) is None

    def test_unassigned_task_author(self):
        item = task_to_item({"id": "y", "description": "Only a description"})

        assert item.metadata.author == "Unknown"
        assert item.title == "ClickUp task y"

    def test_format_task_content(self):
        content = format_task_content(TASK)

        assert content.startswith("# Ship onboarding\n\n")
        assert "## Description\nMake the first run smooth" in content
        assert "## Status\n**In Progress**" in content
        assert "- mia (mia@example.com)" in content
        assert "- **Effort**: 3" in content
        assert "- [mock.png](http://mock/files/mock.png)" in content

    @pytest.mark.parametrize(
        "status,category",
        [("in progress", "engineering"), ("REVIEW", "product"), ("done", "general"), ("custom", "general"), (None, "general")],
    )
    def test_map_status_category(self, status, category):
        assert map_status_category(status) == category


class TestClickUpImporter:
    @pytest.mark.asyncio
    async def test_walks_spaces_folders_and_lists(self):
        seen = []
        routes = {
            "/team/team1/space": (200, {"spaces": [{"id": "s1"}]}),
            "/space/s1/folder": (200, {"folders": [{"id": "f1"}, {"id": "f2"}]}),
            "/folder/f1/list": (200, {"lists": [{"id": "l1"}]}),
            "/folder/f2/list": (500, {"err": "boom"}),
            "/list/l1/task": (200, {"tasks": [TASK, {"id": "empty"}]}),
        }

        async with _importer(routes, seen) as importer:
            items = await importer.fetch_items()

        assert [item.id for item in items] == ["clickup_abc1"]
        assert all(request.headers["Authorization"] == "pk_test" for request in seen)

    @pytest.mark.asyncio
    async def test_space_listing_failure_raises(self):
        routes = {"/team/team1/space": (401, {"err": "Token invalid"})}

        async with _importer(routes) as importer:
            with pytest.raises(ImportSourceError, match="ClickUp import failed: API error: 401"):
                await importer.fetch_items()
