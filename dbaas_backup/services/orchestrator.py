from __future__ import annotations

import logging
from typing import Any

from dbaas_backup.core.config import DEFAULT_DB_NAME_MAX_LENGTH, Settings, get_settings
from dbaas_backup.core.context import RequestContext
from dbaas_backup.core.errors import ContractError, DaemonError, NameGenerationError
from dbaas_backup.domain.models import (
    NOT_STARTED,
    BackupResponse,
    CreateRestoreRequest,
    DaemonRestoreMapping,
    LogicalDatabaseBackup,
    LogicalDatabaseRestore,
    RestoreResponse,
)
from dbaas_backup.services.daemon_client import DaemonClient, DaemonResponse
from dbaas_backup.services.naming import db_info_from_mapping, generate_new_name
from dbaas_backup.services.overlay import BODY_EXCERPT_LIMIT, overlay_response
from dbaas_backup.services.telemetry import increment_counter
from dbaas_backup.services.wire import V2_CONTRACT, WireContract, get_wire_contract


logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404
SUCCESS_STATUSES = frozenset({200, 202})


class BackupOrchestrator:
    """Translate client backup/restore calls into backup daemon jobs.

    The orchestrator keeps no state between calls: every operation makes
    exactly one daemon request (none when a restore mapping is rejected) and
    projects the daemon's answer onto the client DTO. A daemon 404 is a
    normal outcome and comes back as ``None`` (``False`` for evictions);
    everything else that goes wrong raises an ``AdapterError`` subclass.
    """

    def __init__(
        self,
        daemon: DaemonClient,
        *,
        contract: WireContract = V2_CONTRACT,
        db_name_max_length: int = DEFAULT_DB_NAME_MAX_LENGTH,
    ) -> None:
        self._daemon = daemon
        self._contract = contract
        self._db_name_max_length = db_name_max_length

    @classmethod
    def from_settings(cls, daemon: DaemonClient, settings: Settings | None = None) -> BackupOrchestrator:
        settings = settings or get_settings()
        return cls(
            daemon,
            contract=get_wire_contract(settings.backup_daemon_contract),
            db_name_max_length=settings.db_name_max_length,
        )

    @property
    def contract(self) -> WireContract:
        return self._contract

    async def collect_backup(
        self,
        ctx: RequestContext,
        storage_name: str,
        blob_path: str,
        database_names: list[str],
    ) -> BackupResponse | None:
        operation = "collect_backup"
        payload = self._contract.backup_payload(
            storage_name=storage_name,
            blob_path=blob_path,
            database_names=database_names,
        )
        response = await self._daemon.post(
            self._contract.backup_collection_path(),
            ctx=ctx,
            operation=operation,
            json=payload,
        )
        if self._not_found(response, ctx, operation):
            return None
        self._expect_success(response, ctx, operation, "failed to create backup")

        default: dict[str, Any] = {
            "status": NOT_STARTED,
            "storageName": storage_name,
            "blobPath": blob_path,
            "databases": [
                LogicalDatabaseBackup(database_name=name, status=NOT_STARTED).to_wire()
                for name in database_names
            ],
        }
        backup = overlay_response(
            BackupResponse,
            default,
            response.body,
            operation=operation,
            request_id=ctx.request_id,
        )
        logger.info(
            "backup_started backup_id=%s storage_name=%s blob_path=%s databases=%s request_id=%s",
            backup.backup_id,
            storage_name,
            blob_path,
            ",".join(database_names),
            ctx.request_id,
        )
        return backup

    async def track_backup(
        self,
        ctx: RequestContext,
        backup_id: str,
        blob_path: str,
    ) -> BackupResponse | None:
        operation = "track_backup"
        response = await self._daemon.get(
            self._contract.backup_path(backup_id),
            ctx=ctx,
            operation=operation,
            params=self._contract.blob_path_params(blob_path),
        )
        if self._not_found(response, ctx, operation, backup_id=backup_id):
            return None
        self._expect_success(response, ctx, operation, "failed to get backup status")
        return overlay_response(
            BackupResponse,
            {"blobPath": blob_path},
            response.body,
            operation=operation,
            request_id=ctx.request_id,
        )

    async def evict_backup(self, ctx: RequestContext, backup_id: str, blob_path: str) -> bool:
        operation = "evict_backup"
        response = await self._daemon.delete(
            self._contract.backup_path(backup_id),
            ctx=ctx,
            operation=operation,
            params=self._contract.blob_path_params(blob_path),
        )
        if self._not_found(response, ctx, operation, backup_id=backup_id):
            return False
        self._expect_success(response, ctx, operation, "failed to evict backup")
        logger.info("backup_evicted backup_id=%s request_id=%s", backup_id, ctx.request_id)
        return True

    async def restore_backup(
        self,
        ctx: RequestContext,
        backup_id: str,
        request: CreateRestoreRequest,
        dry_run: bool,
    ) -> RestoreResponse | None:
        operation = "restore_backup"
        daemon_databases: list[DaemonRestoreMapping] = []
        client_databases: list[dict[str, Any]] = []
        for mapping in request.databases:
            try:
                new_name = generate_new_name(
                    db_info_from_mapping(mapping),
                    False,
                    max_length=self._db_name_max_length,
                )
            except NameGenerationError as exc:
                exc.operation = operation
                exc.request_id = ctx.request_id
                raise
            daemon_databases.append(
                DaemonRestoreMapping(
                    previous_database_name=mapping.database_name,
                    database_name=new_name,
                )
            )
            client_databases.append(
                LogicalDatabaseRestore(
                    database_name=new_name,
                    previous_database_name=mapping.database_name,
                    microservice_name=mapping.microservice_name,
                    namespace=mapping.namespace,
                    prefix=mapping.prefix,
                    status=NOT_STARTED,
                ).to_wire()
            )

        try:
            payload = self._contract.restore_payload(
                storage_name=request.storage_name,
                blob_path=request.blob_path,
                databases=daemon_databases,
                dry_run=dry_run,
            )
        except ContractError as exc:
            exc.operation = operation
            exc.request_id = ctx.request_id
            raise

        response = await self._daemon.post(
            self._contract.restore_collection_path(backup_id),
            ctx=ctx,
            operation=operation,
            json=payload,
        )
        if self._not_found(response, ctx, operation, backup_id=backup_id):
            return None
        self._expect_success(response, ctx, operation, "failed to create restore")

        default: dict[str, Any] = {
            "status": NOT_STARTED,
            "storageName": request.storage_name,
            "blobPath": request.blob_path,
            "databases": client_databases,
        }
        restore = overlay_response(
            RestoreResponse,
            default,
            response.body,
            operation=operation,
            request_id=ctx.request_id,
        )
        logger.info(
            "restore_started restore_id=%s backup_id=%s dry_run=%s databases=%s request_id=%s",
            restore.restore_id,
            backup_id,
            dry_run,
            ",".join(f"{item.previous_database_name}->{item.database_name}" for item in daemon_databases),
            ctx.request_id,
        )
        return restore

    async def track_restore(
        self,
        ctx: RequestContext,
        restore_id: str,
        blob_path: str,
    ) -> RestoreResponse | None:
        operation = "track_restore"
        response = await self._daemon.get(
            self._contract.restore_path(restore_id),
            ctx=ctx,
            operation=operation,
            params=self._contract.blob_path_params(blob_path),
        )
        if self._not_found(response, ctx, operation, restore_id=restore_id):
            return None
        self._expect_success(response, ctx, operation, "failed to get restore status")
        return overlay_response(
            RestoreResponse,
            {"blobPath": blob_path},
            response.body,
            operation=operation,
            request_id=ctx.request_id,
        )

    async def evict_restore(self, ctx: RequestContext, restore_id: str, blob_path: str) -> bool:
        operation = "evict_restore"
        response = await self._daemon.delete(
            self._contract.restore_path(restore_id),
            ctx=ctx,
            operation=operation,
            params=self._contract.blob_path_params(blob_path),
        )
        if self._not_found(response, ctx, operation, restore_id=restore_id):
            return False
        self._expect_success(response, ctx, operation, "failed to evict restore")
        logger.info("restore_evicted restore_id=%s request_id=%s", restore_id, ctx.request_id)
        return True

    @staticmethod
    def _not_found(
        response: DaemonResponse,
        ctx: RequestContext,
        operation: str,
        **identifiers: str,
    ) -> bool:
        if response.status_code != HTTP_NOT_FOUND:
            return False
        increment_counter("daemon_not_found_total")
        details = " ".join(f"{key}={value}" for key, value in identifiers.items())
        logger.warning(
            "daemon_not_found operation=%s %s request_id=%s",
            operation,
            details,
            ctx.request_id,
        )
        return True

    @staticmethod
    def _expect_success(
        response: DaemonResponse,
        ctx: RequestContext,
        operation: str,
        message: str,
    ) -> None:
        if response.status_code in SUCCESS_STATUSES:
            return
        increment_counter(f"daemon_errors_total.{operation}")
        body = response.text
        raise DaemonError(
            f"{message}: daemon responded with status {response.status_code}: {body[:BODY_EXCERPT_LIMIT]}",
            status_code=response.status_code,
            body=body,
            operation=operation,
            request_id=ctx.request_id,
        )
