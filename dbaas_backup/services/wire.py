from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from dbaas_backup.core.errors import ContractError
from dbaas_backup.domain.models import (
    DaemonBackupRequest,
    DaemonRestoreMapping,
    DaemonRestoreRequest,
)


DAEMON_API_PREFIX = "api/v1"


@dataclass(frozen=True)
class WireContract:
    # Capture the payload differences between daemon generations in one value.
    name: str
    api_prefix: str = DAEMON_API_PREFIX
    restore_carries_dry_run: bool = True

    def backup_collection_path(self) -> str:
        return f"/{self.api_prefix}/backup"

    def backup_path(self, backup_id: str) -> str:
        return f"/{self.api_prefix}/backup/{quote(backup_id, safe='')}"

    def restore_collection_path(self, backup_id: str) -> str:
        return f"/{self.api_prefix}/restore/{quote(backup_id, safe='')}"

    def restore_path(self, restore_id: str) -> str:
        return f"/{self.api_prefix}/restore/{quote(restore_id, safe='')}"

    def blob_path_params(self, blob_path: str) -> dict[str, str]:
        # Backup ids are only unique within a blob path, so pass it whenever known.
        return {"blobPath": blob_path} if blob_path else {}

    def backup_payload(
        self,
        *,
        storage_name: str,
        blob_path: str,
        database_names: list[str],
    ) -> dict[str, Any]:
        request = DaemonBackupRequest(
            storage_name=storage_name,
            blob_path=blob_path,
            databases=list(database_names),
        )
        return request.to_wire()

    def restore_payload(
        self,
        *,
        storage_name: str,
        blob_path: str,
        databases: list[DaemonRestoreMapping],
        dry_run: bool,
    ) -> dict[str, Any]:
        if dry_run and not self.restore_carries_dry_run:
            raise ContractError(f"wire contract {self.name!r} cannot express a dry-run restore")
        request = DaemonRestoreRequest(
            storage_name=storage_name,
            blob_path=blob_path,
            databases=databases,
            dry_run=dry_run if self.restore_carries_dry_run else None,
        )
        return request.to_wire()


V2_CONTRACT = WireContract(name="v2")
LEGACY_CONTRACT = WireContract(name="legacy", restore_carries_dry_run=False)

_CONTRACTS: dict[str, WireContract] = {
    V2_CONTRACT.name: V2_CONTRACT,
    LEGACY_CONTRACT.name: LEGACY_CONTRACT,
}


def get_wire_contract(name: str) -> WireContract:
    contract = _CONTRACTS.get(name.strip().lower())
    if contract is None:
        supported = ", ".join(sorted(_CONTRACTS))
        raise ContractError(f"unknown backup daemon contract {name!r}; expected one of: {supported}")
    return contract
