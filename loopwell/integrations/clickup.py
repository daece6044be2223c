"""
ClickUp importer.

Walks team -> spaces -> folders -> lists -> tasks through the ClickUp v2 REST
API and renders every task as a Markdown wiki page. Only the team's space
listing is required; a folder, list or task listing that fails is skipped.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from loopwell.core.dates import from_epoch_millis
from loopwell.core.logging_config import get_logger

from .base import ContentImporter
from .types import MigrationAttachment, MigrationItem, MigrationItemMetadata, MigrationItemType

logger = get_logger(__name__)

CLICKUP_API_URL = "https://api.clickup.com/api/v2"
CLICKUP_TASK_URL = "https://app.clickup.com/t/{task_id}"

STATUS_CATEGORIES = {
    "to do": "general",
    "in progress": "engineering",
    "review": "product",
    "done": "general",
    "closed": "general",
}


def map_status_category(status: Optional[str]) -> str:
    if not status:
        return "general"
    return STATUS_CATEGORIES.get(status.lower(), "general")


def format_task_content(task: Dict[str, Any]) -> str:
    """Markdown body for a task: description, status, people, tags, fields, files."""
    parts = [f"# {task.get('name', '')}\n\n"]

    if task.get("description"):
        parts.append(f"## Description\n{task['description']}\n\n")

    status = (task.get("status") or {}).get("status")
    if status:
        parts.append(f"## Status\n**{status}**\n\n")

    assignees = task.get("assignees") or []
    if assignees:
        parts.append("## Assignees\n")
        parts.extend(f"- {person.get('username')} ({person.get('email')})\n" for person in assignees)
        parts.append("\n")

    tags = task.get("tags") or []
    if tags:
        parts.append("## Tags\n")
        parts.extend(f"- {tag.get('name')}\n" for tag in tags)
        parts.append("\n")

    fields = task.get("custom_fields") or []
    if fields:
        parts.append("## Custom Fields\n")
        parts.extend(f"- **{field.get('name')}**: {field.get('value')}\n" for field in fields)
        parts.append("\n")

    attachments = task.get("attachments") or []
    if attachments:
        parts.append("## Attachments\n")
        parts.extend(f"- [{item.get('title')}]({item.get('url')})\n" for item in attachments)

    return "".join(parts)


def task_to_item(task: Dict[str, Any]) -> Optional[MigrationItem]:
    """Convert a task payload, or ``None`` when it has neither name nor description."""
    if not task.get("name") and not task.get("description"):
        return None

    task_id = str(task["id"])
    assignees = task.get("assignees") or []
    return MigrationItem(
        id=f"clickup_{task_id}",
        title=task.get("name") or f"ClickUp task {task_id}",
        content=format_task_content(task),
        type=MigrationItemType.PAGE,
        metadata=MigrationItemMetadata(
            original_id=task_id,
            original_url=CLICKUP_TASK_URL.format(task_id=task_id),
            created_at=from_epoch_millis(task.get("date_created")),
            updated_at=from_epoch_millis(task.get("date_updated")),
            author=(assignees[0].get("username") if assignees else None) or "Unknown",
            tags=[tag["name"] for tag in task.get("tags") or [] if tag.get("name")],
            category=map_status_category((task.get("status") or {}).get("status")),
            attachments=[
                MigrationAttachment(
                    id=str(item.get("id")),
                    name=item.get("title") or "attachment",
                    url=item.get("url") or "",
                    type=item.get("type") or "application/octet-stream",
                    size=item.get("size") or 0,
                )
                for item in task.get("attachments") or []
            ],
        ),
    )


class ClickUpImporter(ContentImporter):
    """Imports every task of a ClickUp team.

    Args:
        api_key: Personal API token, sent verbatim in ``Authorization``
        team_id: ClickUp team (workspace) id
    """

    platform = "clickup"
    platform_label = "ClickUp"
    default_base_url = CLICKUP_API_URL

    def __init__(
        self,
        api_key: str,
        team_id: str,
        *,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(api_key, base_url=base_url, client=client)
        self.team_id = team_id

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": self.api_key, "Content-Type": "application/json"}

    async def fetch_tasks(self) -> List[Dict[str, Any]]:
        """Raw task payloads across all spaces, folders and lists of the team.

        Raises:
            ImportSourceError: the team's spaces cannot be listed.
        """
        spaces = await self._get_required(f"/team/{self.team_id}/space")
        tasks: List[Dict[str, Any]] = []
        for space in spaces.get("spaces", []):
            folders = await self._get_optional(f"/space/{space['id']}/folder")
            for folder in (folders or {}).get("folders", []):
                lists = await self._get_optional(f"/folder/{folder['id']}/list")
                for task_list in (lists or {}).get("lists", []):
                    payload = await self._get_optional(f"/list/{task_list['id']}/task")
                    tasks.extend((payload or {}).get("tasks", []))
        logger.info(f"Fetched {len(tasks)} ClickUp tasks from team {self.team_id}")
        return tasks

    async def fetch_items(self) -> List[MigrationItem]:
        items = []
        for task in await self.fetch_tasks():
            item = task_to_item(task)
            if item is not None:
                items.append(item)
        return items
