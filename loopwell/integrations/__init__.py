"""
Third-party content importers.

- clickup: ClickUp tasks as Markdown pages
- slite: Slite notes
- service: writes imported items into the wiki
"""

from typing import Optional

from loopwell.core.database.entities.migrations import MigrationPlatform

from .base import ContentImporter
from .clickup import ClickUpImporter
from .service import MigrationService
from .slite import SliteImporter
from .types import MigrationAttachment, MigrationItem, MigrationItemMetadata, MigrationItemType, MigrationResult


def build_importer(platform: MigrationPlatform, api_key: str, team_id: Optional[str] = None) -> ContentImporter:
    """Importer for ``platform`` using its public API URL."""
    if platform == MigrationPlatform.CLICKUP:
        return ClickUpImporter(api_key, team_id or "")
    return SliteImporter(api_key)


__all__ = [
    "ClickUpImporter",
    "ContentImporter",
    "MigrationAttachment",
    "MigrationItem",
    "MigrationItemMetadata",
    "MigrationItemType",
    "MigrationResult",
    "MigrationService",
    "SliteImporter",
    "build_importer",
]
