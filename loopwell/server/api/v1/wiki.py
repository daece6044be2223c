"""
API endpoints for the wiki.

Pages belong to the active workspace and are addressed by id or slug.
Every content change appends a version; updates are announced to the
``wiki:{id}`` realtime room.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from loopwell.core.database.entities.wiki import WikiPage
from loopwell.core.database.entities.workspaces import WorkspaceRole
from loopwell.core.database.repositories import WikiRepository, relevance_score
from loopwell.core.logging_config import get_logger
from loopwell.core.models.io.wiki import (
    WikiFavoriteResponse,
    WikiPageCounts,
    WikiPageCreate,
    WikiPageRead,
    WikiPageUpdate,
    WikiSearchHit,
    WikiSearchResponse,
    WikiVersionRead,
)
from loopwell.core.text import make_excerpt, slugify
from loopwell.realtime import ServerEvent, emit_wiki_event
from loopwell.server.services.access import assert_active_role
from loopwell.server.services.auth import AuthContext
from loopwell.server.services.deps import AuthDep, RealtimeDep, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["wiki"])

SEARCH_LIMIT = 50


def _slug_for(title: str) -> str:
    slug = slugify(title)
    if not slug:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Title must contain at least one letter or digit"
        )
    return slug


async def _get_page(repo: WikiRepository, auth: AuthContext, page_id: str) -> WikiPage:
    page = await repo.get_by_id(page_id)
    if not page or page.workspace_id != auth.workspace_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Wiki page {page_id} not found")
    return page


async def _check_parent(repo: WikiRepository, auth: AuthContext, parent_id: Optional[str], page_id: Optional[str] = None):
    if parent_id is None:
        return
    if parent_id == page_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A page cannot be its own parent")
    parent = await repo.get_by_id(parent_id)
    if not parent or parent.workspace_id != auth.workspace_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Parent page {parent_id} not found")


@router.get(
    "/pages",
    response_model=List[WikiPageRead],
    summary="List Wiki Pages",
    description="List the published pages of the active workspace.",
    response_description="Pages ordered by their position, then title.",
)
async def list_pages(auth: AuthDep, session: SessionDep) -> List[WikiPageRead]:
    assert_active_role(auth, WorkspaceRole.VIEWER)
    pages = await WikiRepository(session).list_published(auth.workspace_id)
    return [WikiPageRead.model_validate(page) for page in pages]


@router.post(
    "/pages",
    response_model=WikiPageRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Wiki Page",
    responses={
        201: {"description": "Page created successfully"},
        409: {"description": "A page with the same slug already exists"},
    },
)
async def create_page(body: WikiPageCreate, auth: AuthDep, session: SessionDep) -> WikiPageRead:
    """
    Create a wiki page. Requires MEMBER in the active workspace.

    - **title**: Page title; the slug is derived from it.
    - **content**: Markdown content, stored as version 1.
    - **parent_id**: Optional parent page in the same workspace.
    """
    assert_active_role(auth, WorkspaceRole.MEMBER)
    repo = WikiRepository(session)
    slug = _slug_for(body.title)
    if await repo.slug_taken(auth.workspace_id, slug):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"A page with slug '{slug}' already exists")
    await _check_parent(repo, auth, body.parent_id)

    page = WikiPage(
        workspace_id=auth.workspace_id,
        slug=slug,
        excerpt=make_excerpt(body.content),
        created_by_id=auth.user.id,
        **body.model_dump(),
    )
    page = await repo.create_page(page)
    logger.info(f"Wiki page {page.id} ({slug}) created")
    return WikiPageRead.model_validate(page)


@router.get(
    "/pages/{id_or_slug}",
    response_model=WikiPageRead,
    summary="Get Wiki Page",
    responses={404: {"description": "Page not found"}},
)
async def get_page(id_or_slug: str, auth: AuthDep, session: SessionDep) -> WikiPageRead:
    """
    Get a page by id, or by slug within the active workspace.
    """
    assert_active_role(auth, WorkspaceRole.VIEWER)
    page = await WikiRepository(session).get_by_id_or_slug(auth.workspace_id, id_or_slug)
    if not page:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Wiki page {id_or_slug} not found")
    return WikiPageRead.model_validate(page)


@router.put(
    "/pages/{page_id}",
    response_model=WikiPageRead,
    summary="Update Wiki Page",
    responses={
        404: {"description": "Page not found"},
        409: {"description": "The new title collides with another page's slug"},
    },
)
async def update_page(
    page_id: str, body: WikiPageUpdate, auth: AuthDep, session: SessionDep, hub: RealtimeDep
) -> WikiPageRead:
    """
    Update a wiki page. Requires MEMBER in the active workspace.

    A new title re-derives the slug. New content refreshes the excerpt and
    appends the next version.
    """
    assert_active_role(auth, WorkspaceRole.MEMBER)
    repo = WikiRepository(session)
    page = await _get_page(repo, auth, page_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("title") and changes["title"] != page.title:
        slug = _slug_for(changes["title"])
        if await repo.slug_taken(auth.workspace_id, slug, exclude_page_id=page.id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"A page with slug '{slug}' already exists")
        changes["slug"] = slug
    if "parent_id" in changes:
        await _check_parent(repo, auth, changes["parent_id"], page.id)

    new_content = None
    if changes.get("content") is not None and changes["content"] != page.content:
        new_content = changes["content"]
        changes["excerpt"] = make_excerpt(new_content)
    elif "content" in changes:
        changes.pop("content")

    repo.apply_changes(page, changes)
    page = await repo.save_with_version(page, auth.user.id, new_content)
    result = WikiPageRead.model_validate(page)

    await emit_wiki_event(
        page.id,
        ServerEvent.WIKI_PAGE_UPDATED,
        {"page_id": page.id, "page": result.model_dump(mode="json"), "user_id": auth.user.id},
        hub=hub,
    )
    return result


@router.delete("/pages/{page_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Wiki Page")
async def delete_page(page_id: str, auth: AuthDep, session: SessionDep) -> None:
    """
    Delete a page together with its versions and attachments.
    """
    assert_active_role(auth, WorkspaceRole.MEMBER)
    repo = WikiRepository(session)
    page = await _get_page(repo, auth, page_id)
    await repo.delete_page(page)
    logger.info(f"Wiki page {page_id} deleted")


@router.get("/pages/{page_id}/versions", response_model=List[WikiVersionRead], summary="List Page Versions")
async def list_versions(page_id: str, auth: AuthDep, session: SessionDep) -> List[WikiVersionRead]:
    """
    List the versions of a page, newest first.
    """
    assert_active_role(auth, WorkspaceRole.VIEWER)
    repo = WikiRepository(session)
    page = await _get_page(repo, auth, page_id)
    return [WikiVersionRead.model_validate(version) for version in await repo.list_versions(page.id)]


@router.get(
    "/search",
    response_model=WikiSearchResponse,
    summary="Search Wiki",
    description="Case-insensitive search over titles, content, excerpts and tags.",
    responses={400: {"description": "Search query is missing"}},
)
async def search_pages(
    auth: AuthDep,
    session: SessionDep,
    q: Optional[str] = Query(default=None, description="Search text"),
    author: Optional[str] = Query(default=None, description="Only pages created by this user id"),
    tags: Optional[str] = Query(default=None, description="Comma-separated tags; any of them must match"),
) -> WikiSearchResponse:
    """
    Search the wiki of the active workspace.

    - **q**: Search text (required).
    - **author**: Optional author id filter.
    - **tags**: Optional comma-separated tag filter.

    Results are ranked by relevance: title +3, excerpt +2, content +1 and
    +2 for each matching tag.
    """
    assert_active_role(auth, WorkspaceRole.VIEWER)
    query = (q or "").strip()
    if not query:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Search query is required")

    tag_filter = [tag.strip() for tag in tags.split(",") if tag.strip()] if tags else None
    pages = await WikiRepository(session).search(
        auth.workspace_id, query, author_id=author, tags=tag_filter, limit=SEARCH_LIMIT
    )
    hits = [
        WikiSearchHit(**WikiPageRead.model_validate(page).model_dump(), relevance_score=relevance_score(page, query))
        for page in pages
    ]
    hits.sort(key=lambda hit: hit.relevance_score, reverse=True)
    return WikiSearchResponse(results=hits, total=len(hits), query=query)


@router.get("/favorites", response_model=List[WikiPageRead], summary="List Favorite Pages")
async def list_favorites(auth: AuthDep, session: SessionDep) -> List[WikiPageRead]:
    """
    List the favorite pages of the active workspace, most recently updated first.
    """
    assert_active_role(auth, WorkspaceRole.VIEWER)
    pages = await WikiRepository(session).list_featured(auth.workspace_id)
    return [WikiPageRead.model_validate(page) for page in pages]


async def _set_favorite(page_id: str, featured: bool, auth: AuthContext, session: AsyncSession) -> WikiPageRead:
    assert_active_role(auth, WorkspaceRole.MEMBER)
    repo = WikiRepository(session)
    page = await repo.set_featured(await _get_page(repo, auth, page_id), featured)
    logger.info(f"Wiki page {page_id} {'added to' if featured else 'removed from'} favorites")
    return WikiPageRead.model_validate(page)


@router.post(
    "/pages/{page_id}/favorite",
    response_model=WikiFavoriteResponse,
    summary="Add Page To Favorites",
    responses={404: {"description": "Page not found"}},
)
async def add_favorite(page_id: str, auth: AuthDep, session: SessionDep) -> WikiFavoriteResponse:
    page = await _set_favorite(page_id, True, auth, session)
    return WikiFavoriteResponse(message="Page added to favorites", page=page)


@router.delete(
    "/pages/{page_id}/favorite",
    response_model=WikiFavoriteResponse,
    summary="Remove Page From Favorites",
    responses={404: {"description": "Page not found"}},
)
async def remove_favorite(page_id: str, auth: AuthDep, session: SessionDep) -> WikiFavoriteResponse:
    page = await _set_favorite(page_id, False, auth, session)
    return WikiFavoriteResponse(message="Page removed from favorites", page=page)


@router.get("/page-counts", response_model=WikiPageCounts, summary="Count Wiki Pages")
async def page_counts(auth: AuthDep, session: SessionDep) -> WikiPageCounts:
    """
    Count the published pages of the active workspace. Requires MEMBER.

    Pages with the ``personal`` permission level count as personal, every
    other page counts as team.
    """
    assert_active_role(auth, WorkspaceRole.MEMBER)
    return WikiPageCounts(**await WikiRepository(session).count_by_space(auth.workspace_id))
