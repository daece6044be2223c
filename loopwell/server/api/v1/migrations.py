"""
API endpoints for importing content from third-party platforms.

Imports run within the request. Each run is tracked by a migration record
whose status is ``completed``, ``partial`` or ``failed``.
"""

from __future__ import annotations

from typing import Annotated, Callable, List, Optional

from fastapi import APIRouter, Depends, status

from loopwell.core.database.entities.migrations import MigrationPlatform
from loopwell.core.database.entities.workspaces import WorkspaceRole
from loopwell.core.database.repositories import MigrationRecordRepository
from loopwell.core.logging_config import get_logger
from loopwell.core.models.io.migrations import MigrationImportRequest, MigrationImportResponse, MigrationRecordRead
from loopwell.integrations import ContentImporter, MigrationService, build_importer
from loopwell.server.services.access import assert_active_role
from loopwell.server.services.deps import AuthDep, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["migrations"])

ImporterFactory = Callable[[MigrationPlatform, str, Optional[str]], ContentImporter]


def get_importer_factory() -> ImporterFactory:
    """FastAPI dependency building importers against the public platform APIs."""
    return build_importer


ImporterFactoryDep = Annotated[ImporterFactory, Depends(get_importer_factory)]


@router.post(
    "/import",
    response_model=MigrationImportResponse,
    status_code=status.HTTP_200_OK,
    summary="Import Content",
    description="Import pages from ClickUp or Slite into the wiki of the active workspace.",
    response_description="Counts of imported and failed items with the created page ids.",
    responses={
        403: {"description": "Requires ADMIN in the workspace"},
        502: {"description": "The platform could not be read"},
    },
)
async def import_content(
    body: MigrationImportRequest, auth: AuthDep, session: SessionDep, importer_factory: ImporterFactoryDep
) -> MigrationImportResponse:
    """
    Run an import.

    - **platform**: ``clickup`` or ``slite``.
    - **api_key**: The platform API key; it is not stored.
    - **team_id**: ClickUp team id (required for ClickUp).

    Items that fail are reported in ``errors`` and do not stop the run.
    """
    assert_active_role(auth, WorkspaceRole.ADMIN)
    service = MigrationService(session, auth.workspace_id, auth.user.id)
    async with importer_factory(body.platform, body.api_key.get_secret_value(), body.team_id) as importer:
        record, result = await service.run_import(importer, body.platform)

    return MigrationImportResponse(
        migration_id=record.id,
        status=record.status,
        success=result.success,
        imported_count=result.imported_count,
        failed_count=result.failed_count,
        errors=result.errors,
        imported_items=result.imported_items,
    )


@router.get("", response_model=List[MigrationRecordRead], summary="List Migrations")
async def list_migrations(auth: AuthDep, session: SessionDep) -> List[MigrationRecordRead]:
    """
    List import runs of the active workspace, newest first.
    """
    assert_active_role(auth, WorkspaceRole.ADMIN)
    records = await MigrationRecordRepository(session).list_for_workspace(auth.workspace_id)
    return [MigrationRecordRead.model_validate(record) for record in records]
