"""
Slite importer.

Lists notes through the cursor-paginated ``/search-notes`` endpoint, then
fetches each note's body and attachments. A note whose body cannot be read
is logged and skipped.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import httpx

from loopwell.core.dates import parse_iso
from loopwell.core.logging_config import get_logger

from .base import ContentImporter
from .types import MigrationAttachment, MigrationItem, MigrationItemMetadata, MigrationItemType

logger = get_logger(__name__)

SLITE_API_URL = "https://api.slite.com/v1"
SLITE_NOTE_URL = "https://slite.com/workspace/document/{note_id}"

FOLDER_CATEGORIES = {"engineering", "product", "marketing", "sales", "hr", "general"}

_WIKI_LINK = re.compile(r"\[\[([^\]]+)\]\]")
_CODE_BLOCK = re.compile(r"```(\w+)?\n([\s\S]*?)```")


def convert_content(content: str) -> str:
    """Rewrite Slite ``[[links]]`` as Markdown links and close code blocks on their own line."""
    content = _WIKI_LINK.sub(r"[\1](\1)", content)
    return _CODE_BLOCK.sub(lambda match: f"```{match.group(1) or ''}\n{match.group(2)}\n```", content)


def map_folder_category(folder: Optional[str]) -> str:
    if folder and folder.lower() in FOLDER_CATEGORIES:
        return folder.lower()
    return "general"


def _page(data: Any) -> tuple[List[Dict[str, Any]], Optional[str], bool]:
    """Split a search response into ``(notes, next_cursor, recognised)``."""
    if isinstance(data, list):
        return data, None, True
    if isinstance(data, dict):
        for key in ("hits", "notes", "documents"):
            if isinstance(data.get(key), list):
                return data[key], data.get("next_cursor") or None, True
    return [], None, False


class SliteImporter(ContentImporter):
    """Imports every note visible to a Slite API key."""

    platform = "slite"
    platform_label = "Slite"
    default_base_url = SLITE_API_URL

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def fetch_documents(self) -> List[Dict[str, Any]]:
        """Note summaries across all result pages.

        Raises:
            ImportSourceError: a search page cannot be read.
        """
        documents: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        while True:
            data = await self._get_required("/search-notes", params={"cursor": cursor} if cursor else None)
            notes, cursor, recognised = _page(data)
            if not recognised:
                shape = sorted(data) if isinstance(data, dict) else type(data).__name__
                logger.warning(f"Unexpected Slite response format: {shape}")
                break
            documents.extend(notes)
            if not cursor:
                break
        logger.info(f"Fetched {len(documents)} Slite notes")
        return documents

    async def fetch_content(self, note_id: str) -> str:
        response = await self._request(f"/notes/{note_id}")
        response.raise_for_status()
        data = response.json()
        return data.get("content") or data.get("body") or ""

    async def fetch_attachments(self, note_id: str) -> List[Dict[str, Any]]:
        data = await self._get_optional(f"/notes/{note_id}/attachments")
        return (data or {}).get("attachments", [])

    async def note_to_item(self, note: Dict[str, Any]) -> MigrationItem:
        note_id = str(note["id"])
        content = await self.fetch_content(note_id)
        attachments = await self.fetch_attachments(note_id)
        parents = note.get("parentNotes") or []
        updated = note.get("updatedAt") or note.get("updated_at")
        return MigrationItem(
            id=f"slite_{note_id}",
            title=note.get("title") or f"Slite note {note_id}",
            content=convert_content(content),
            type=MigrationItemType.PAGE,
            metadata=MigrationItemMetadata(
                original_id=note_id,
                original_url=SLITE_NOTE_URL.format(note_id=note_id),
                created_at=parse_iso(note.get("created_at") or updated),
                updated_at=parse_iso(updated),
                author=(note.get("author") or {}).get("name") or "Unknown",
                tags=list(note.get("tags") or []),
                category=map_folder_category(note.get("folder_id")),
                parent_id=f"slite_folder_{parents[0]['id']}" if parents and parents[0].get("id") else None,
                attachments=[
                    MigrationAttachment(
                        id=str(item.get("id")),
                        name=item.get("name") or "attachment",
                        url=item.get("url") or "",
                        type=item.get("type") or "application/octet-stream",
                        size=item.get("size") or 0,
                    )
                    for item in attachments
                ],
            ),
        )

    async def fetch_items(self) -> List[MigrationItem]:
        items = []
        for note in await self.fetch_documents():
            try:
                items.append(await self.note_to_item(note))
            except (httpx.HTTPError, KeyError, ValueError) as e:
                logger.error(f"Error converting Slite note {note.get('id')}: {e}")
        return items
