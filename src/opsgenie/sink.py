"""OpsGenie sink — the single-writer delivery loop.

One loop per sink instance owns the HTTP session. Each iteration services
exactly one event: a shutdown request or the next intake item. Records
are encoded and sent one at a time, so alerts reach OpsGenie in dequeue
order and every ack is resolved only after its own delivery attempt.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from types import TracebackType
from typing import Any

import structlog

from src.core.types import (
    FlushItem,
    HostRecord,
    IntakeItem,
    LogItem,
    ShutdownRequest,
    format_point_name,
)
from src.opsgenie.channel import DeliveryState, SessionFactory, alerts_url
from src.opsgenie.encoder import encode
from src.opsgenie.exceptions import DeliveryError, SinkShutdownError
from src.opsgenie.types import SinkConfig

logger = structlog.get_logger(__name__)


class SinkState(StrEnum):
    """Lifecycle of the delivery loop."""

    IDLE = "idle"
    PROCESSING = "processing"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"


def _resolve(fut: asyncio.Future[Any]) -> None:
    if not fut.done():
        fut.set_result(None)


def _fail(fut: asyncio.Future[Any], exc: BaseException) -> None:
    if not fut.done():
        fut.set_exception(exc)


class OpsGenieSink:
    """Delivers host records to OpsGenie as alerts.

    Usage::

        async with OpsGenieSink(config) as sink:
            ack = await sink.log(record)
            await ack

    A failed delivery is logged and set on that record's ack. With
    ``stop_on_delivery_error`` it also ends the loop and is re-raised from
    :meth:`run` (and from :meth:`shutdown`); otherwise the loop moves on to
    the next record. Failed sends are never retried here.
    """

    def __init__(
        self,
        config: SinkConfig,
        queue_size: int = 500,
        stop_on_delivery_error: bool = False,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self._config = config
        self._stop_on_delivery_error = stop_on_delivery_error
        self._session_factory = session_factory
        self._requests: asyncio.Queue[IntakeItem] = asyncio.Queue(maxsize=queue_size)
        self._shutdown_ch: asyncio.Queue[ShutdownRequest] = asyncio.Queue()
        self._state: SinkState | None = None
        self._closing = False
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> SinkState | None:
        """Current loop state; None until the session has been opened."""
        return self._state

    @property
    def requests(self) -> asyncio.Queue[IntakeItem]:
        return self._requests

    @property
    def shutdown_channel(self) -> asyncio.Queue[ShutdownRequest]:
        return self._shutdown_ch

    # ── Host-facing API ─────────────────────────────────────────

    async def start(self) -> None:
        """Run the loop in a background task."""
        if self._task is None:
            self._task = asyncio.create_task(self.run())

    async def log(self, record: HostRecord) -> asyncio.Future[None]:
        """Queue *record*; the returned future resolves once it is handled.

        Waits while the intake queue is full.
        """
        if self._closing:
            raise SinkShutdownError("sink is shutting down")
        ack: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        await self._enqueue(LogItem(record=record, ack=ack))
        return ack

    async def flush(self) -> None:
        """Wait until every record queued before this call has been handled."""
        loop = asyncio.get_running_loop()
        ack: asyncio.Future[None] = loop.create_future()
        nack: asyncio.Future[None] = loop.create_future()
        await self._enqueue(FlushItem(ack=ack, nack=nack))
        try:
            await ack
        finally:
            _resolve(nack)

    async def _enqueue(self, item: IntakeItem) -> None:
        await self._requests.put(item)
        if self._state is SinkState.TERMINATED:
            # A put blocked on a full queue can land after the final drain.
            self._reject_pending()

    async def shutdown(self) -> None:
        """Stop the loop and wait for the session to be released."""
        self._closing = True
        task, self._task = self._task, None
        if task is None:
            # Loop driven by the caller through run(), or never started.
            if self._state in (None, SinkState.TERMINATED):
                return
            reply = await self._request_shutdown()
            await reply
            return
        if not task.done():
            reply = await self._request_shutdown()
            await asyncio.wait({reply, task}, return_when=asyncio.FIRST_COMPLETED)
        await task

    async def _request_shutdown(self) -> asyncio.Future[None]:
        reply: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        await self._shutdown_ch.put(ShutdownRequest(reply=reply))
        return reply

    async def __aenter__(self) -> OpsGenieSink:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    # ── Loop ────────────────────────────────────────────────────

    async def run(self) -> None:
        """Serve the intake queue until a shutdown request arrives."""
        endpoint = alerts_url(self._config.endpoint)
        with structlog.contextvars.bound_contextvars(sink="opsgenie", endpoint=endpoint):
            await self._run_bound()

    async def _run_bound(self) -> None:
        logger.info("opsgenie_sink_started")
        request: ShutdownRequest | None = None
        try:
            async with DeliveryState(self._config, self._session_factory) as state:
                self._state = SinkState.IDLE
                request = await self._serve(state)
        except Exception:
            logger.exception("opsgenie_sink_failed")
            raise
        finally:
            self._state = SinkState.TERMINATED
            self._closing = True
            self._reject_pending()

        logger.info("opsgenie_sink_shutdown")
        _resolve(request.reply)

    async def _serve(self, state: DeliveryState) -> ShutdownRequest:
        shutdown = asyncio.ensure_future(self._shutdown_ch.get())
        intake: asyncio.Task[IntakeItem] | None = None
        try:
            while True:
                # A pending shutdown is honoured before another item is pulled.
                if not shutdown.done():
                    if intake is None:
                        intake = asyncio.create_task(self._requests.get())
                    await asyncio.wait(
                        {intake, shutdown}, return_when=asyncio.FIRST_COMPLETED
                    )

                # An item that was already dequeued is handled first, then the
                # shutdown on the next pass.
                if intake is not None and intake.done():
                    item, intake = intake.result(), None
                    await self._handle(state, item)
                    continue

                self._state = SinkState.SHUTTING_DOWN
                logger.debug("shutting_down_opsgenie_sink")
                return shutdown.result()
        finally:
            for task in (intake, shutdown):
                if task is not None and not task.done():
                    task.cancel()

    async def _handle(self, state: DeliveryState, item: IntakeItem) -> None:
        if isinstance(item, FlushItem):
            # Nothing is buffered, so a flush is acknowledged straight away.
            _resolve(item.ack)
            return

        self._state = SinkState.PROCESSING
        try:
            await self._write(state, item)
        finally:
            self._state = SinkState.IDLE

    async def _write(self, state: DeliveryState, item: LogItem) -> None:
        record = item.record
        logger.debug("writing_alert", source=format_point_name(record.name))
        try:
            document = encode(self._config, record)
            if document is not None:
                await state.send(document)
        except Exception as exc:
            _fail(item.ack, exc)
            if isinstance(exc, DeliveryError) and not self._stop_on_delivery_error:
                logger.warning(
                    "alert_not_delivered",
                    source=format_point_name(record.name),
                    error=str(exc),
                )
                return
            raise

        logger.debug("acking_message")
        _resolve(item.ack)

    def _reject_pending(self) -> None:
        # Late shutdown requests are answered: the loop is already down.
        while not self._shutdown_ch.empty():
            _resolve(self._shutdown_ch.get_nowait().reply)
        while True:
            try:
                item = self._requests.get_nowait()
            except asyncio.QueueEmpty:
                return
            if isinstance(item, LogItem):
                _fail(item.ack, SinkShutdownError("sink shut down before delivery"))
            else:
                _resolve(item.ack)
