"""Exception hierarchy for the OpsGenie alert sink."""

from __future__ import annotations


class SinkError(Exception):
    """Base exception for all sink errors."""


class DeliveryError(SinkError):
    """An alert could not be handed to OpsGenie."""


class DeliveryRejectedError(DeliveryError):
    """OpsGenie answered with something other than 202 Accepted."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"OpsGenie responded {status}: {body}")
        self.status = status
        self.body = body


class TransportFaultError(DeliveryError):
    """Connection-level failure (DNS, connect, TLS, timeout)."""


class SinkShutdownError(SinkError):
    """The item was dequeued but the sink shut down before handling it."""
