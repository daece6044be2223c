"""
Wiki repository implementations.

Data access for wiki pages, their version history and attachments.
Every content change on a page appends a new ``WikiVersion``.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete as sql_delete
from sqlalchemy import func, or_
from sqlalchemy import update as sql_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.wiki import WikiAttachment, WikiPage, WikiVersion
from .base import SQLModelRepository, next_available_slug


class WikiRepository(SQLModelRepository[WikiPage]):
    """Repository for wiki pages."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, WikiPage)

    async def list_published(self, workspace_id: str, limit: Optional[int] = None) -> List[WikiPage]:
        stmt = (
            select(WikiPage)
            .where(WikiPage.workspace_id == workspace_id, WikiPage.is_published == True)  # noqa: E712
            .order_by(WikiPage.order.asc(), WikiPage.title.asc())  # type: ignore
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_featured(self, workspace_id: str) -> List[WikiPage]:
        stmt = (
            select(WikiPage)
            .where(WikiPage.workspace_id == workspace_id, WikiPage.is_featured == True)  # noqa: E712
            .order_by(WikiPage.updated_at.desc())  # type: ignore
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_featured(self, page: WikiPage, featured: bool) -> WikiPage:
        page.is_featured = featured
        return await self.update(page)

    async def count_by_space(self, workspace_id: str) -> Dict[str, int]:
        """Count published pages as ``personal`` or ``team``; any level but personal counts as team."""
        stmt = (
            select(WikiPage.permission_level, func.count())
            .where(WikiPage.workspace_id == workspace_id, WikiPage.is_published == True)  # noqa: E712
            .group_by(WikiPage.permission_level)
        )
        counts = {"personal": 0, "team": 0}
        for level, count in (await self.session.execute(stmt)).all():
            counts["personal" if level == "personal" else "team"] += count
        return counts

    async def get_by_slug(self, workspace_id: str, slug: str) -> Optional[WikiPage]:
        stmt = select(WikiPage).where(WikiPage.workspace_id == workspace_id, WikiPage.slug == slug)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_id_or_slug(self, workspace_id: str, id_or_slug: str) -> Optional[WikiPage]:
        """Resolve a page by primary key first, then by slug within the workspace."""
        page = await self.get_by_id(id_or_slug)
        if page is not None and page.workspace_id == workspace_id:
            return page
        return await self.get_by_slug(workspace_id, id_or_slug)

    async def slug_taken(self, workspace_id: str, slug: str, exclude_page_id: Optional[str] = None) -> bool:
        stmt = select(func.count()).select_from(WikiPage).where(
            WikiPage.workspace_id == workspace_id, WikiPage.slug == slug
        )
        if exclude_page_id is not None:
            stmt = stmt.where(WikiPage.id != exclude_page_id)
        return (await self.session.execute(stmt)).scalar_one() > 0

    async def unique_slug(self, workspace_id: str, base_slug: str) -> str:
        return await next_available_slug(self.session, WikiPage, base_slug, workspace_id=workspace_id)

    async def create_page(
        self, page: WikiPage, attachments: Iterable[WikiAttachment] = (), commit: bool = True
    ) -> WikiPage:
        """Insert a page together with its first version and attachments.

        With ``commit=False`` the rows are only flushed so the caller controls
        the transaction.
        """
        self.session.add(page)
        await self.session.flush()
        self.session.add(
            WikiVersion(page_id=page.id, content=page.content, version=1, created_by_id=page.created_by_id)
        )
        for attachment in attachments:
            attachment.page_id = page.id
            self.session.add(attachment)
        if commit:
            await self.session.commit()
            await self.session.refresh(page)
        else:
            await self.session.flush()
        return page

    async def latest_version_number(self, page_id: str) -> int:
        stmt = select(func.max(WikiVersion.version)).where(WikiVersion.page_id == page_id)
        return (await self.session.execute(stmt)).scalar_one() or 0

    async def save_with_version(self, page: WikiPage, author_id: str, new_content: Optional[str]) -> WikiPage:
        """Persist ``page``; when ``new_content`` is given, append a version for it."""
        if new_content is not None:
            next_version = await self.latest_version_number(page.id) + 1
            self.session.add(
                WikiVersion(page_id=page.id, content=new_content, version=next_version, created_by_id=author_id)
            )
        return await self.update(page)

    async def list_versions(self, page_id: str) -> List[WikiVersion]:
        stmt = select(WikiVersion).where(WikiVersion.page_id == page_id).order_by(WikiVersion.version.desc())  # type: ignore
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_attachments(self, page_id: str) -> List[WikiAttachment]:
        stmt = select(WikiAttachment).where(WikiAttachment.page_id == page_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_page(self, page: WikiPage) -> None:
        """Delete a page with its versions and attachments; children become top-level pages."""
        statements = [
            sql_delete(WikiVersion).where(WikiVersion.page_id == page.id),
            sql_delete(WikiAttachment).where(WikiAttachment.page_id == page.id),
            sql_update(WikiPage).where(WikiPage.parent_id == page.id).values(parent_id=None),
        ]
        for statement in statements:
            await self.session.execute(statement.execution_options(synchronize_session=False))
        await self.session.delete(page)
        await self.session.commit()

    async def search(
        self,
        workspace_id: str,
        query: str,
        author_id: Optional[str] = None,
        tags: Optional[List[str]] = None,
        limit: int = 50,
    ) -> List[WikiPage]:
        """Published pages whose title, content, excerpt or tags contain ``query``, case-insensitively.

        ``%`` and ``_`` in ``query`` match literally.

        Args:
            workspace_id: Workspace to search in
            query: Search text
            author_id: Only pages created by this user
            tags: Only pages carrying at least one of these tags
            limit: Maximum number of pages returned
        """
        needle = query.lower()
        base = select(WikiPage).where(
            WikiPage.workspace_id == workspace_id, WikiPage.is_published == True  # noqa: E712
        )
        if author_id:
            base = base.where(WikiPage.created_by_id == author_id)

        text_stmt = base.where(
            or_(
                func.lower(WikiPage.title).contains(needle, autoescape=True),
                func.lower(WikiPage.content).contains(needle, autoescape=True),
                func.lower(WikiPage.excerpt).contains(needle, autoescape=True),
            )
        ).order_by(WikiPage.updated_at.desc())  # type: ignore
        matches = {page.id: page for page in (await self.session.execute(text_stmt)).scalars().all()}

        for page in (await self.session.execute(base)).scalars().all():
            if page.id not in matches and any(needle in tag.lower() for tag in page.tags or []):
                matches[page.id] = page

        pages = list(matches.values())
        if tags:
            wanted = {tag.lower() for tag in tags}
            pages = [page for page in pages if wanted & {tag.lower() for tag in page.tags or []}]
        return pages[:limit]


def relevance_score(page: WikiPage, query: str) -> int:
    """Score a search hit: title +3, excerpt +2, content +1, any matching tag +2."""
    needle = query.lower()
    score = 0
    if needle in page.title.lower():
        score += 3
    if page.excerpt and needle in page.excerpt.lower():
        score += 2
    if page.content and needle in page.content.lower():
        score += 1
    if any(needle in tag.lower() for tag in page.tags or []):
        score += 2
    return score
