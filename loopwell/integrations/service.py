"""
Migration service.

Turns imported items into wiki pages of one workspace. Every item is its own
transaction: a failing item is rolled back and reported while the rest of
the batch continues.
"""

from __future__ import annotations

import re
from typing import Iterable, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from loopwell.core.dates import utc_now
from loopwell.core.database.entities.migrations import MigrationPlatform, MigrationRecord, MigrationStatus
from loopwell.core.database.entities.wiki import WikiAttachment, WikiPage
from loopwell.core.database.repositories import MigrationRecordRepository, WikiRepository
from loopwell.core.errors import ImportSourceError
from loopwell.core.logging_config import get_logger
from loopwell.core.monitoring import log_import_run
from loopwell.core.text import make_excerpt, slugify, strip_html

from .base import ContentImporter
from .types import MigrationItem, MigrationResult

logger = get_logger(__name__)

MIGRATED_CATEGORY = "migrated"

_NEWLINES = re.compile(r"\n+")


def plain_excerpt(content: str) -> str:
    return make_excerpt(_NEWLINES.sub(" ", strip_html(content)))


def run_status(result: MigrationResult) -> MigrationStatus:
    if result.failed_count == 0:
        return MigrationStatus.COMPLETED
    if result.imported_count == 0:
        return MigrationStatus.FAILED
    return MigrationStatus.PARTIAL


class MigrationService:
    """Writes imported content into a workspace on behalf of a user."""

    def __init__(self, session: AsyncSession, workspace_id: str, user_id: str) -> None:
        self.session = session
        self.workspace_id = workspace_id
        self.user_id = user_id
        self.wiki = WikiRepository(session)
        self.records = MigrationRecordRepository(session)

    async def _import_item(self, item: MigrationItem) -> WikiPage:
        base_slug = slugify(item.title) or slugify(item.id) or "page"
        page = WikiPage(
            workspace_id=self.workspace_id,
            title=item.title,
            slug=await self.wiki.unique_slug(self.workspace_id, base_slug),
            content=item.content,
            excerpt=plain_excerpt(item.content),
            tags=list(item.metadata.tags),
            category=item.metadata.category or MIGRATED_CATEGORY,
            created_by_id=self.user_id,
        )
        attachments = [
            WikiAttachment(
                page_id=page.id,
                file_name=attachment.name,
                file_size=attachment.size,
                file_type=attachment.type,
                file_url=attachment.url,
                uploaded_by_id=self.user_id,
            )
            for attachment in item.metadata.attachments
        ]
        return await self.wiki.create_page(page, attachments)

    async def migrate_items(self, items: Iterable[MigrationItem]) -> MigrationResult:
        """Create a wiki page (version 1 plus attachments) for every item."""
        result = MigrationResult()
        for item in items:
            try:
                page = await self._import_item(item)
            except Exception as e:
                await self.session.rollback()
                logger.error(f"Migration error for item {item.id}: {e}", exc_info=True)
                result.failed_count += 1
                result.errors.append(f'Failed to import "{item.title}": {e}')
                continue
            result.imported_count += 1
            result.imported_items.append(page.id)

        result.success = result.failed_count == 0
        return result

    async def run_import(
        self, importer: ContentImporter, platform: MigrationPlatform
    ) -> Tuple[MigrationRecord, MigrationResult]:
        """Fetch everything from ``importer`` and migrate it, tracking the run in a record.

        Raises:
            ImportSourceError: the source could not be read. Any error raised while
                fetching marks the record failed before it propagates.
        """
        record = await self.records.create(
            MigrationRecord(workspace_id=self.workspace_id, platform=platform, started_by_id=self.user_id)
        )
        logger.info(f"Starting {platform.value} import {record.id} into workspace {self.workspace_id}")

        try:
            items = await importer.fetch_items()
        except Exception as e:
            message = e.message if isinstance(e, ImportSourceError) else f"{platform.value} import failed: {e}"
            logger.error(f"Import {record.id} failed: {message}")
            record.status = MigrationStatus.FAILED
            record.errors = [message]
            record.finished_at = utc_now()
            await self.records.update(record)
            raise

        result = await self.migrate_items(items)
        record.status = run_status(result)
        record.imported_count = result.imported_count
        record.failed_count = result.failed_count
        record.errors = list(result.errors)
        record.finished_at = utc_now()
        record = await self.records.update(record)

        log_import_run(platform.value, self.workspace_id, result.imported_count, result.failed_count)
        logger.info(
            f"Import {record.id} finished: {result.imported_count} imported, {result.failed_count} failed"
        )
        return record, result
