"""Delivery channel — POSTs alert documents to the OpsGenie Alert API."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from types import TracebackType

import aiohttp
import structlog

from src.opsgenie.exceptions import DeliveryRejectedError, TransportFaultError
from src.opsgenie.types import AlertDocument, SinkConfig

logger = structlog.get_logger(__name__)

# Create-alert requests are processed asynchronously; a valid request is
# answered with 202 Accepted, not with the created alert.
ACCEPTED = 202

SessionFactory = Callable[[], aiohttp.ClientSession]


def alerts_url(endpoint: str) -> str:
    return f"{endpoint.rstrip('/')}/alerts"


class DeliveryChannel:
    """Sends one alert per call over a shared aiohttp session.

    Holds no state besides the session, so it can be called any number of
    times in sequence. It never retries.
    """

    def __init__(self, session: aiohttp.ClientSession, config: SinkConfig) -> None:
        self._session = session
        self._url = alerts_url(config.endpoint)
        self._headers = {
            "Authorization": f"GenieKey {config.api_key}",
            "Content-Type": "application/json",
        }

    @property
    def url(self) -> str:
        return self._url

    async def send(self, document: AlertDocument) -> None:
        """POST *document*; raise DeliveryError unless it is accepted."""
        try:
            async with self._session.post(
                self._url, data=document.to_json(), headers=self._headers
            ) as resp:
                status = resp.status
                # Error pages from proxies are not always valid UTF-8.
                body = await resp.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error(
                "opsgenie_transport_fault",
                url=self._url,
                error=repr(exc),
            )
            raise TransportFaultError(str(exc) or type(exc).__name__) from exc

        if status == ACCEPTED:
            return

        logger.error(
            "opsgenie_delivery_rejected",
            status_code=status,
            body=body,
        )
        raise DeliveryRejectedError(status, body)


class DeliveryState:
    """An open session paired with the channel that sends over it.

    Usage::

        async with DeliveryState(config) as state:
            await state.send(document)

    The session is closed exactly once, on every exit path.
    """

    def __init__(
        self,
        config: SinkConfig,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self._config = config
        self._session_factory = session_factory or aiohttp.ClientSession
        self._session: aiohttp.ClientSession | None = None
        self._channel: DeliveryChannel | None = None

    @property
    def channel(self) -> DeliveryChannel:
        if self._channel is None:
            raise RuntimeError("DeliveryState is not open")
        return self._channel

    async def send(self, document: AlertDocument) -> None:
        await self.channel.send(document)

    async def open(self) -> None:
        if self._session is not None:
            return
        self._session = self._session_factory()
        self._channel = DeliveryChannel(self._session, self._config)

    async def close(self) -> None:
        session, self._session, self._channel = self._session, None, None
        if session is not None and not session.closed:
            await session.close()

    async def __aenter__(self) -> DeliveryState:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
