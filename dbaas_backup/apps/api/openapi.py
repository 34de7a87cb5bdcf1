from __future__ import annotations

from typing import Any

from dbaas_backup.domain.models import BadRequestResponse, ServerErrorResponse


DEFAULT_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {
        "model": BadRequestResponse,
        "description": "The request was invalid or cannot be served",
        "content": {
            "application/json": {
                "example": {
                    "error": "Invalid request parameters",
                    "details": ["Field 'storageName' failed validation: Field required"],
                },
            }
        },
    },
    404: {
        "description": "The requested resource could not be found",
        "content": {"text/plain": {"example": "Backup not found"}},
    },
    500: {
        "model": ServerErrorResponse,
        "description": "An unexpected error occurred on the server",
        "content": {
            "application/json": {
                "example": {"error": "Internal server error", "requestId": "req_example"},
            }
        },
    },
}
