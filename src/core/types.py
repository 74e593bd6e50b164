"""Host record model and intake-queue work items."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, Field

PointName = tuple[str, ...]


def format_point_name(name: PointName) -> str:
    """Render a point name as a dotted path, e.g. ``svc.disk``."""
    return ".".join(name)


def parse_point_name(path: str) -> PointName:
    return tuple(seg for seg in path.split(".") if seg)


class LogLevel(IntEnum):
    """Record severity, ordered from most verbose to most severe."""

    VERBOSE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    FATAL = 5


class HostRecord(BaseModel):
    """A structured event produced by the host logging pipeline.

    ``fields`` holds user-supplied values; ``context`` holds pipeline
    metadata that is never forwarded to an alert.
    """

    value: str = ""
    name: PointName = ()
    level: LogLevel = LogLevel.INFO
    tags: frozenset[str] = Field(default_factory=frozenset)
    fields: dict[str, Any] = Field(default_factory=dict)
    context: dict[str, Any] = Field(default_factory=dict)
    timestamp: float = Field(default_factory=time.time)

    def try_get_field(self, key: str) -> Any | None:
        return self.fields.get(key)

    def get_all_fields(self) -> dict[str, Any]:
        return dict(self.fields)

    def get_all_tags(self) -> frozenset[str]:
        return self.tags

    def with_field(self, key: str, value: Any) -> HostRecord:
        return self.model_copy(update={"fields": {**self.fields, key: value}})

    def with_tag(self, tag: str) -> HostRecord:
        return self.model_copy(update={"tags": self.tags | {tag}})


# ── Intake items ────────────────────────────────────────────────


@dataclass(frozen=True)
class LogItem:
    """Deliver *record*, then resolve *ack*."""

    record: HostRecord
    ack: asyncio.Future[None]


@dataclass(frozen=True)
class FlushItem:
    """Confirm there is no buffered work. *nack* is resolved by a requester
    that gave up waiting."""

    ack: asyncio.Future[None]
    nack: asyncio.Future[None]


IntakeItem = LogItem | FlushItem


@dataclass(frozen=True)
class ShutdownRequest:
    """Ask the sink loop to stop; *reply* is resolved once it has."""

    reply: asyncio.Future[None]
