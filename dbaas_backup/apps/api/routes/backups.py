from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import PlainTextResponse

from dbaas_backup.apps.api.deps import get_orchestrator, get_request_context, require_blob_path
from dbaas_backup.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from dbaas_backup.core.context import RequestContext
from dbaas_backup.domain.models import (
    BackupResponse,
    CreateBackupRequest,
    CreateRestoreRequest,
    RestoreResponse,
)
from dbaas_backup.services.orchestrator import BackupOrchestrator


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/backups", tags=["Backup and Restore"], responses=DEFAULT_ERROR_RESPONSES)


def _not_found(message: str) -> PlainTextResponse:
    return PlainTextResponse(message, status_code=status.HTTP_404_NOT_FOUND)


@router.post(
    "",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=BackupResponse,
    response_model_exclude_none=True,
    summary="Initiate database backup",
)
async def collect_backup(
    body: CreateBackupRequest,
    ctx: RequestContext = Depends(get_request_context),
    orchestrator: BackupOrchestrator = Depends(get_orchestrator),
):
    # Asynchronous: returns as soon as the daemon accepts the job.
    logger.debug("backup_request body=%s request_id=%s", body.to_wire(), ctx.request_id)
    database_names = [database.database_name for database in body.databases]
    backup = await orchestrator.collect_backup(ctx, body.storage_name, body.blob_path, database_names)
    if backup is None:
        logger.info("backup_database_not_found request_id=%s", ctx.request_id)
        return _not_found("Database not found")
    return backup


@router.get(
    "/backup/{backup_id}",
    response_model=BackupResponse,
    response_model_exclude_none=True,
    summary="Get backup details",
)
async def track_backup(
    backup_id: str,
    blob_path: str = Depends(require_blob_path),
    ctx: RequestContext = Depends(get_request_context),
    orchestrator: BackupOrchestrator = Depends(get_orchestrator),
):
    backup = await orchestrator.track_backup(ctx, backup_id, blob_path)
    if backup is None:
        return _not_found("Backup not found")
    return backup


@router.delete(
    "/backup/{backup_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete backup",
)
async def delete_backup(
    backup_id: str,
    blob_path: str = Depends(require_blob_path),
    ctx: RequestContext = Depends(get_request_context),
    orchestrator: BackupOrchestrator = Depends(get_orchestrator),
) -> Response:
    if not await orchestrator.evict_backup(ctx, backup_id, blob_path):
        return _not_found("Backup not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/backup/{backup_id}/restore",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=RestoreResponse,
    response_model_exclude_none=True,
    summary="Restore databases from backup",
)
async def restore_backup(
    backup_id: str,
    body: CreateRestoreRequest,
    dry_run: bool = Query(default=False, alias="dryRun"),
    ctx: RequestContext = Depends(get_request_context),
    orchestrator: BackupOrchestrator = Depends(get_orchestrator),
):
    # Dry runs go through the same name generation; only the daemon treats them differently.
    logger.debug(
        "restore_request backup_id=%s body=%s dry_run=%s request_id=%s",
        backup_id,
        body.to_wire(),
        dry_run,
        ctx.request_id,
    )
    restore = await orchestrator.restore_backup(ctx, backup_id, body, dry_run)
    if restore is None:
        return _not_found("Backup not found")
    return restore


@router.get(
    "/restore/{restore_id}",
    response_model=RestoreResponse,
    response_model_exclude_none=True,
    summary="Get restore details",
)
async def track_restore(
    restore_id: str,
    blob_path: str = Depends(require_blob_path),
    ctx: RequestContext = Depends(get_request_context),
    orchestrator: BackupOrchestrator = Depends(get_orchestrator),
):
    restore = await orchestrator.track_restore(ctx, restore_id, blob_path)
    if restore is None:
        return _not_found("Restore not found")
    return restore


@router.delete(
    "/restore/{restore_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete restore",
)
async def delete_restore(
    restore_id: str,
    blob_path: str = Depends(require_blob_path),
    ctx: RequestContext = Depends(get_request_context),
    orchestrator: BackupOrchestrator = Depends(get_orchestrator),
) -> Response:
    if not await orchestrator.evict_restore(ctx, restore_id, blob_path):
        return _not_found("Restore not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
