from __future__ import annotations

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


# PostgreSQL truncates identifiers beyond NAMEDATALEN - 1 bytes.
DEFAULT_DB_NAME_MAX_LENGTH = 63


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Database family served by this adapter; part of every route path.
    app_name: str = "postgresql"
    # Version segment of the inbound API path.
    api_version: str = "v2"
    log_level: str = "INFO"

    # Base URL of the backup daemon, without the api/v1 suffix.
    backup_daemon_url: str = "http://localhost:8080"
    # The daemon guards its endpoints with basic auth when credentials are set.
    backup_daemon_username: str | None = None
    backup_daemon_password: str | None = None
    # Upper bound for a single daemon call when the caller sets no deadline.
    backup_daemon_timeout_ms: int = 30000
    # Size of the shared connection pool to the daemon.
    backup_daemon_max_connections: int = 20
    # Payload shape spoken to the daemon: "v2" or "legacy".
    backup_daemon_contract: str = "v2"

    # Upper bound for generated database names during restore.
    db_name_max_length: int = DEFAULT_DB_NAME_MAX_LENGTH

    http_host: str = "0.0.0.0"
    http_port: int = 8080


@lru_cache
def get_settings() -> Settings:
    return Settings()
