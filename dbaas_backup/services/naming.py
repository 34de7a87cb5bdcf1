from __future__ import annotations

from dataclasses import dataclass
import hashlib
import re

from dbaas_backup.core.config import DEFAULT_DB_NAME_MAX_LENGTH
from dbaas_backup.core.errors import NameGenerationError
from dbaas_backup.domain.models import RestoreMapping


DEFAULT_STEM = "dbaas"
SERVICE_MARKER = "svc"
DIGEST_LENGTH = 12

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
_PREFIX_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
# ASCII unit separator keeps digest inputs unambiguous across field boundaries.
_FIELD_SEPARATOR = "\x1f"


@dataclass(frozen=True)
class DbInfo:
    # Identity of a database as it existed in the backup plus its restore target.
    name: str
    microservice: str
    namespace: str
    prefix: str | None = None


def db_info_from_mapping(mapping: RestoreMapping) -> DbInfo:
    return DbInfo(
        name=mapping.database_name,
        microservice=mapping.microservice_name,
        namespace=mapping.namespace,
        prefix=mapping.prefix,
    )


def _normalize_token(value: str) -> str:
    return _NON_ALNUM_RE.sub("_", value.lower()).strip("_")


def _digest(info: DbInfo, prefix: str | None, is_service_db: bool) -> str:
    material = _FIELD_SEPARATOR.join(
        [
            info.namespace,
            info.microservice,
            info.name,
            prefix or "",
            "service" if is_service_db else "app",
        ]
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:DIGEST_LENGTH]


def _validate(info: DbInfo) -> tuple[str, str, str, str | None]:
    name = (info.name or "").strip()
    microservice = (info.microservice or "").strip()
    namespace = (info.namespace or "").strip()
    prefix = (info.prefix or "").strip() or None
    if not name:
        raise NameGenerationError("database name is required")
    if "\x00" in name:
        raise NameGenerationError("database name contains a NUL character")
    if not microservice or not _IDENTIFIER_RE.match(microservice):
        raise NameGenerationError(f"invalid microservice name: {info.microservice!r}")
    if not namespace or not _IDENTIFIER_RE.match(namespace):
        raise NameGenerationError(f"invalid namespace: {info.namespace!r}")
    if prefix is not None and not _PREFIX_RE.match(prefix):
        raise NameGenerationError(f"invalid prefix: {info.prefix!r}")
    return name, microservice, namespace, prefix


def generate_new_name(
    info: DbInfo,
    is_service_db: bool,
    *,
    max_length: int = DEFAULT_DB_NAME_MAX_LENGTH,
) -> str:
    """Derive the physical name a restored copy of ``info.name`` is created under.

    The result depends only on the arguments: the same mapping always yields
    the same name, so a retried restore submission targets the same database.
    Names have the shape ``<stem>_<digest>`` where the stem is the prefix when
    one is given and ``dbaas_<microservice>_<namespace>`` otherwise; service
    databases carry an extra ``svc`` token after the leading one. The stem is
    truncated so the whole name fits ``max_length``; the digest never is.
    """
    name, microservice, namespace, prefix = _validate(info)
    normalized = DbInfo(name=name, microservice=microservice, namespace=namespace, prefix=prefix)
    digest = _digest(normalized, prefix, is_service_db)

    if prefix is not None:
        head = [_normalize_token(prefix)]
    else:
        head = [DEFAULT_STEM]
    if is_service_db:
        head.append(SERVICE_MARKER)
    head_text = "_".join(head)

    budget = max_length - DIGEST_LENGTH - 1
    if len(head_text) > budget:
        raise NameGenerationError(
            f"prefix {prefix!r} leaves no room for a unique suffix within {max_length} characters"
        )

    tokens = [head_text]
    if prefix is None:
        for raw in (microservice, namespace):
            token = _normalize_token(raw)
            if not token:
                raise NameGenerationError(f"{raw!r} has no usable characters")
            tokens.append(token)
    stem = "_".join(tokens)[:budget].rstrip("_")

    new_name = f"{stem}_{digest}"
    if new_name.lower() == name.lower():
        raise NameGenerationError(f"generated name collides with the source database {name!r}")
    return new_name
