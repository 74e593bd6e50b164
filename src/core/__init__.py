"""Core module — config, host record types, logging."""

from src.core.config import Settings, get_settings, load_settings, reset_settings
from src.core.logging import setup_logging
from src.core.types import (
    FlushItem,
    HostRecord,
    IntakeItem,
    LogItem,
    LogLevel,
    PointName,
    ShutdownRequest,
    format_point_name,
    parse_point_name,
)

__all__ = [
    "FlushItem",
    "HostRecord",
    "IntakeItem",
    "LogItem",
    "LogLevel",
    "PointName",
    "Settings",
    "ShutdownRequest",
    "format_point_name",
    "get_settings",
    "load_settings",
    "parse_point_name",
    "reset_settings",
    "setup_logging",
]
