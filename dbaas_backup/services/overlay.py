from __future__ import annotations

import hashlib
import json
from typing import Any, TypeVar

from pydantic import ValidationError

from dbaas_backup.core.errors import DecodeError
from dbaas_backup.domain.models import WireModel


BODY_EXCERPT_LIMIT = 512

ModelT = TypeVar("ModelT", bound=WireModel)


def body_fingerprint(body: bytes) -> tuple[str, str]:
    # Keep enough of the raw body to debug contract drift without logging it whole.
    excerpt = body[:BODY_EXCERPT_LIMIT].decode("utf-8", errors="replace")
    return excerpt, hashlib.sha256(body).hexdigest()


def _overlay_mapping(base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    # JSON null means "not supplied"; it never clears a default.
    merged = dict(base)
    for key, value in update.items():
        if value is None:
            continue
        merged[key] = value
    return merged


def _overlay_databases(defaults: list[Any], supplied: list[Any]) -> list[Any]:
    # Entry i of the daemon list lands on default entry i; the daemon's length wins.
    merged: list[Any] = []
    for index, entry in enumerate(supplied):
        default = defaults[index] if index < len(defaults) else None
        if isinstance(entry, dict) and isinstance(default, dict):
            merged.append(_overlay_mapping(default, entry))
        else:
            merged.append(entry)
    return merged


def overlay_response(
    model: type[ModelT],
    default: dict[str, Any],
    body: bytes,
    *,
    operation: str | None = None,
    request_id: str | None = None,
) -> ModelT:
    """Decode a daemon body on top of a pre-built default payload.

    ``default`` is keyed by wire (camelCase) names. Keys the daemon supplies
    replace the defaults; ``databases`` merges entry by entry so per-database
    defaults survive when the daemon reports only job-level fields. The merged
    payload is validated against ``model``; any failure is a ``DecodeError``.
    """
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, ValueError) as exc:
        raise _decode_error("daemon body is not valid JSON", body, operation, request_id) from exc
    if not isinstance(payload, dict):
        raise _decode_error("daemon body is not a JSON object", body, operation, request_id)

    merged = _overlay_mapping(default, payload)
    supplied_databases = payload.get("databases")
    if isinstance(supplied_databases, list):
        merged["databases"] = _overlay_databases(list(default.get("databases") or []), supplied_databases)

    try:
        return model.model_validate(merged)
    except ValidationError as exc:
        raise _decode_error(
            f"daemon body does not match {model.__name__}: {exc.error_count()} error(s)",
            body,
            operation,
            request_id,
        ) from exc


def _decode_error(
    message: str,
    body: bytes,
    operation: str | None,
    request_id: str | None,
) -> DecodeError:
    excerpt, digest = body_fingerprint(body)
    return DecodeError(
        f"{message} (sha256={digest})",
        body_excerpt=excerpt,
        body_sha256=digest,
        operation=operation,
        request_id=request_id,
    )
