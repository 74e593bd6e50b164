"""Host record → OpsGenie alert document.

Oversized strings are cut to the Alert API's field limits (a plain
prefix, no ellipsis) instead of being rejected.
"""

from __future__ import annotations

from typing import Any

from pydantic_core import to_jsonable_python

from src.core.types import HostRecord, format_point_name
from src.opsgenie.types import AlertDocument, Priority, SinkConfig

MESSAGE_MAX = 130
ALIAS_MAX = 512
DESCRIPTION_MAX = 15000
SOURCE_MAX = 100
USER_MAX = 100
NOTE_MAX = 25000


def limit_to(max_len: int, s: str) -> str:
    return s[:max_len] if len(s) > max_len else s


def _optional(record: HostRecord, key: str, max_len: int | None = None) -> str | None:
    value = record.try_get_field(key)
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    return limit_to(max_len, text) if max_len is not None else text


def encode_details(fields: dict[str, Any]) -> dict[str, Any]:
    """Encode field values to JSON-compatible data; unknown types become str."""
    return {str(k): to_jsonable_python(v, fallback=str) for k, v in fields.items()}


def encode(config: SinkConfig, record: HostRecord) -> AlertDocument | None:
    """Build the alert for *record*, or None when it has no usable message."""
    if not record.value.strip():
        return None

    return AlertDocument(
        message=limit_to(MESSAGE_MAX, record.value),
        alias=limit_to(ALIAS_MAX, config.get_alias(record)),
        description=_optional(record, "description", DESCRIPTION_MAX),
        responders=list(config.get_responders(record)),
        tags=sorted(record.get_all_tags()),
        details=encode_details(record.get_all_fields()),
        entity=_optional(record, "entity"),
        source=limit_to(SOURCE_MAX, format_point_name(record.name)),
        priority=Priority.of_level(record.level),
        user=_optional(record, "user", USER_MAX),
        note=_optional(record, "note", NOTE_MAX),
    )
