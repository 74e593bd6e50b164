"""Convenience factory for wiring an OpsGenie sink from settings."""

from __future__ import annotations

from src.core.config import Settings
from src.opsgenie.channel import SessionFactory
from src.opsgenie.sink import OpsGenieSink
from src.opsgenie.types import AliasFn, RespondersFn, SinkConfig


def sink_config_from_settings(
    settings: Settings,
    get_alias: AliasFn | None = None,
    get_responders: RespondersFn | None = None,
) -> SinkConfig:
    """Resolve loaded settings into an immutable SinkConfig."""
    return SinkConfig.create(
        api_key=settings.opsgenie.api_key.get_secret_value(),
        endpoint=settings.opsgenie.endpoint,
        get_alias=get_alias,
        get_responders=get_responders,
    )


def create_sink(
    settings: Settings,
    get_alias: AliasFn | None = None,
    get_responders: RespondersFn | None = None,
    session_factory: SessionFactory | None = None,
) -> OpsGenieSink:
    """Build an unstarted sink from settings.

    Returns:
        An OpsGenieSink; call ``start()`` or use it as an async context manager.
    """
    return OpsGenieSink(
        config=sink_config_from_settings(settings, get_alias, get_responders),
        queue_size=settings.sink.queue_size,
        stop_on_delivery_error=settings.sink.stop_on_delivery_error,
        session_factory=session_factory,
    )
