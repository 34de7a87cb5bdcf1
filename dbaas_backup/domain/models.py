from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


BackupRestoreStatus = Literal["notStarted", "inProgress", "completed", "failed"]

NOT_STARTED: BackupRestoreStatus = "notStarted"


class WireModel(BaseModel):
    # Daemon and client payloads are camelCase; accept either spelling on input.
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# Client-facing requests.


class BackupDatabaseInfo(WireModel):
    database_name: str = Field(alias="databaseName", min_length=1)


class CreateBackupRequest(WireModel):
    storage_name: str = Field(alias="storageName", min_length=1)
    blob_path: str = Field(alias="blobPath", min_length=1)
    databases: list[BackupDatabaseInfo]


class RestoreMapping(WireModel):
    microservice_name: str = Field(alias="microserviceName", min_length=1)
    database_name: str = Field(alias="databaseName", min_length=1)
    namespace: str = Field(min_length=1)
    prefix: str | None = None


class CreateRestoreRequest(WireModel):
    storage_name: str = Field(alias="storageName", min_length=1)
    blob_path: str = Field(alias="blobPath", min_length=1)
    databases: list[RestoreMapping]


# Client-facing job views.


class LogicalDatabaseBackup(WireModel):
    database_name: str = Field(alias="databaseName")
    status: BackupRestoreStatus
    size: int | None = None
    duration: int | None = None
    path: str | None = None
    error_message: str | None = Field(default=None, alias="errorMessage")
    creation_time: str | None = Field(default=None, alias="creationTime")


class BackupResponse(WireModel):
    status: BackupRestoreStatus
    error_message: str | None = Field(default=None, alias="errorMessage")
    backup_id: str = Field(alias="backupId")
    creation_time: str = Field(default="", alias="creationTime")
    completion_time: str | None = Field(default=None, alias="completionTime")
    storage_name: str = Field(default="", alias="storageName")
    blob_path: str = Field(default="", alias="blobPath")
    databases: list[LogicalDatabaseBackup] = Field(default_factory=list)


class LogicalDatabaseRestore(WireModel):
    microservice_name: str | None = Field(default=None, alias="microserviceName")
    namespace: str | None = None
    prefix: str | None = None
    previous_database_name: str | None = Field(default=None, alias="previousDatabaseName")
    database_name: str = Field(alias="databaseName")
    status: BackupRestoreStatus
    duration: int | None = None
    path: str | None = None
    error_message: str | None = Field(default=None, alias="errorMessage")
    creation_time: str | None = Field(default=None, alias="creationTime")


class RestoreResponse(WireModel):
    status: BackupRestoreStatus
    error_message: str | None = Field(default=None, alias="errorMessage")
    restore_id: str = Field(alias="restoreId")
    creation_time: str = Field(default="", alias="creationTime")
    completion_time: str | None = Field(default=None, alias="completionTime")
    storage_name: str = Field(default="", alias="storageName")
    blob_path: str = Field(default="", alias="blobPath")
    databases: list[LogicalDatabaseRestore] = Field(default_factory=list)


# Daemon-facing requests.


class DaemonBackupRequest(WireModel):
    storage_name: str = Field(alias="storageName")
    blob_path: str = Field(alias="blobPath")
    databases: list[str]


class DaemonRestoreMapping(WireModel):
    previous_database_name: str = Field(alias="previousDatabaseName")
    database_name: str = Field(alias="databaseName")


class DaemonRestoreRequest(WireModel):
    storage_name: str = Field(alias="storageName")
    blob_path: str = Field(alias="blobPath")
    databases: list[DaemonRestoreMapping]
    dry_run: bool | None = Field(default=None, alias="dryRun")


# Error bodies returned by the API layer.


class BadRequestResponse(WireModel):
    error: str
    details: list[str] | None = None


class ServerErrorResponse(WireModel):
    error: str
    request_id: str = Field(alias="requestId")
