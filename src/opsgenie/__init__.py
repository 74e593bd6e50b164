"""OpsGenie alert sink — encoder, delivery channel and delivery loop."""

from src.opsgenie.channel import DeliveryChannel, DeliveryState, alerts_url
from src.opsgenie.encoder import encode
from src.opsgenie.exceptions import (
    DeliveryError,
    DeliveryRejectedError,
    SinkError,
    SinkShutdownError,
    TransportFaultError,
)
from src.opsgenie.factory import create_sink, sink_config_from_settings
from src.opsgenie.sink import OpsGenieSink, SinkState
from src.opsgenie.types import (
    AlertDocument,
    Priority,
    Responder,
    ResponderType,
    SinkConfig,
    SinkConfigBuilder,
)

__all__ = [
    "AlertDocument",
    "DeliveryChannel",
    "DeliveryError",
    "DeliveryRejectedError",
    "DeliveryState",
    "OpsGenieSink",
    "Priority",
    "Responder",
    "ResponderType",
    "SinkConfig",
    "SinkConfigBuilder",
    "SinkError",
    "SinkShutdownError",
    "SinkState",
    "TransportFaultError",
    "alerts_url",
    "create_sink",
    "encode",
    "sink_config_from_settings",
]
