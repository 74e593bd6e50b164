"""Domain types for the OpsGenie alert sink."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from src.core.config import DEFAULT_ENDPOINT, MISSING_API_KEY
from src.core.types import HostRecord, LogLevel


class ResponderType(StrEnum):
    """Kind of entity an alert is routed to."""

    TEAM = "team"
    USER = "user"
    ESCALATION = "escalation"
    SCHEDULE = "schedule"


class Responder(BaseModel):
    """A team, user, escalation or schedule that should own an alert."""

    type: ResponderType
    id: str

    @classmethod
    def team(cls, team_id: str) -> Responder:
        return cls(type=ResponderType.TEAM, id=team_id)

    @classmethod
    def user(cls, user_id: str) -> Responder:
        return cls(type=ResponderType.USER, id=user_id)

    @classmethod
    def escalation(cls, escalation_id: str) -> Responder:
        return cls(type=ResponderType.ESCALATION, id=escalation_id)

    @classmethod
    def schedule(cls, schedule_id: str) -> Responder:
        return cls(type=ResponderType.SCHEDULE, id=schedule_id)


class Priority(StrEnum):
    """OpsGenie alert priority, P1 (lowest) .. P5 (highest)."""

    P1 = "P1"
    P2 = "P2"
    P3 = "P3"
    P4 = "P4"
    P5 = "P5"

    @classmethod
    def of_level(cls, level: LogLevel) -> Priority:
        return _LEVEL_PRIORITY[level]


_LEVEL_PRIORITY: dict[LogLevel, Priority] = {
    LogLevel.VERBOSE: Priority.P1,
    LogLevel.DEBUG: Priority.P2,
    LogLevel.INFO: Priority.P2,
    LogLevel.WARN: Priority.P3,
    LogLevel.ERROR: Priority.P4,
    LogLevel.FATAL: Priority.P5,
}


class AlertDocument(BaseModel):
    """Body of a ``POST /alerts`` request."""

    message: str
    alias: str
    description: str | None = None
    responders: list[Responder] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)
    entity: str | None = None
    source: str
    priority: Priority
    user: str | None = None
    note: str | None = None

    def to_json(self) -> str:
        """Compact JSON with unset optional fields left out."""
        return self.model_dump_json(exclude_none=True)


AliasFn = Callable[[HostRecord], str]
RespondersFn = Callable[[HostRecord], Sequence[Responder]]


def _alias_from_value(record: HostRecord) -> str:
    return record.value


def _no_responders(record: HostRecord) -> Sequence[Responder]:
    return ()


@dataclass(frozen=True)
class SinkConfig:
    """Immutable sink configuration shared by every encode call.

    See https://docs.opsgenie.com/docs/authentication for the API key.
    """

    api_key: str
    endpoint: str = DEFAULT_ENDPOINT
    # Dedup alias; should be human readable.
    get_alias: AliasFn = _alias_from_value
    get_responders: RespondersFn = _no_responders

    @classmethod
    def create(
        cls,
        api_key: str,
        endpoint: str | None = None,
        get_alias: AliasFn | None = None,
        get_responders: RespondersFn | None = None,
    ) -> SinkConfig:
        return cls(
            api_key=api_key,
            endpoint=endpoint or DEFAULT_ENDPOINT,
            get_alias=get_alias or _alias_from_value,
            get_responders=get_responders or _no_responders,
        )


@dataclass(frozen=True)
class SinkConfigBuilder:
    """Fluent front-end over :class:`SinkConfig`.

    Usage::

        conf = (
            SinkConfigBuilder()
            .token("key")
            .write_endpoint("http://localhost:8080/v2")
            .responders(lambda r: [Responder.team("ops")])
            .done()
        )
    """

    conf: SinkConfig = field(default_factory=lambda: SinkConfig.create(MISSING_API_KEY))

    def token(self, api_key: str) -> SinkConfigBuilder:
        return SinkConfigBuilder(replace(self.conf, api_key=api_key))

    def write_endpoint(self, endpoint: str) -> SinkConfigBuilder:
        return SinkConfigBuilder(replace(self.conf, endpoint=endpoint))

    def alias(self, get_alias: AliasFn) -> SinkConfigBuilder:
        return SinkConfigBuilder(replace(self.conf, get_alias=get_alias))

    def responders(self, get_responders: RespondersFn) -> SinkConfigBuilder:
        return SinkConfigBuilder(replace(self.conf, get_responders=get_responders))

    def done(self) -> SinkConfig:
        return self.conf
