"""Tests for DeliveryChannel / DeliveryState — HTTP mocking, status classification."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from src.opsgenie.channel import DeliveryChannel, DeliveryState, alerts_url
from src.opsgenie.exceptions import (
    DeliveryError,
    DeliveryRejectedError,
    TransportFaultError,
)
from src.opsgenie.types import AlertDocument, Priority, SinkConfig


# ── Helpers ─────────────────────────────────────────────────────


def _conf(**kw: object) -> SinkConfig:
    defaults: dict[str, object] = {
        "api_key": "fake-key",
        "endpoint": "https://api.opsgenie.com/v2",
    }
    defaults.update(kw)
    return SinkConfig.create(**defaults)  # type: ignore[arg-type]


def _doc(**kw: object) -> AlertDocument:
    defaults: dict[str, object] = {
        "message": "disk full",
        "alias": "disk full",
        "tags": ["host:db1"],
        "source": "svc.disk",
        "priority": Priority.P4,
    }
    defaults.update(kw)
    return AlertDocument(**defaults)  # type: ignore[arg-type]


def _mock_response(status: int = 202, text: str = "") -> AsyncMock:
    resp = AsyncMock()
    resp.status = status
    resp.text = AsyncMock(return_value=text)
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=False)
    return resp


def _mock_session(*responses: AsyncMock) -> MagicMock:
    session = MagicMock()
    session.post = MagicMock(side_effect=list(responses))
    session.closed = False
    session.close = AsyncMock()
    return session


# ── URL ─────────────────────────────────────────────────────────


class TestAlertsUrl:
    def test_appends_alerts(self) -> None:
        assert alerts_url("https://api.opsgenie.com/v2") == "https://api.opsgenie.com/v2/alerts"

    def test_trailing_slash(self) -> None:
        assert alerts_url("http://localhost:8080/v2/") == "http://localhost:8080/v2/alerts"


# ── DeliveryChannel ─────────────────────────────────────────────


class TestDeliveryChannel:
    async def test_accepted(self) -> None:
        session = _mock_session(_mock_response(202, '{"result":"Request will be processed"}'))
        ch = DeliveryChannel(session, _conf())

        with patch("src.opsgenie.channel.logger") as mock_logger:
            await ch.send(_doc())

        mock_logger.error.assert_not_called()
        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == "https://api.opsgenie.com/v2/alerts"
        assert kwargs["headers"]["Authorization"] == "GenieKey fake-key"
        assert kwargs["headers"]["Content-Type"] == "application/json"
        body = json.loads(kwargs["data"])
        assert body["message"] == "disk full"
        assert body["priority"] == "P4"

    async def test_accepted_regardless_of_body(self) -> None:
        session = _mock_session(_mock_response(202, "not even json"))
        ch = DeliveryChannel(session, _conf())
        await ch.send(_doc())

    @pytest.mark.parametrize("status", [200, 201, 400, 401, 422, 429, 500, 503])
    async def test_other_status_rejected(self, status: int) -> None:
        session = _mock_session(_mock_response(status, "{err}"))
        ch = DeliveryChannel(session, _conf())

        with pytest.raises(DeliveryRejectedError) as info:
            await ch.send(_doc())

        assert info.value.status == status
        assert info.value.body == "{err}"

    async def test_rejection_logged_before_raise(self) -> None:
        session = _mock_session(_mock_response(500, "{err}"))
        ch = DeliveryChannel(session, _conf())

        with patch("src.opsgenie.channel.logger") as mock_logger:
            with pytest.raises(DeliveryRejectedError):
                await ch.send(_doc())

        mock_logger.error.assert_called_once_with(
            "opsgenie_delivery_rejected",
            status_code=500,
            body="{err}",
        )

    async def test_undecodable_error_body_still_rejected(self) -> None:
        raw = b"\xff\xfe bad gateway"
        resp = _mock_response(502)
        resp.text = AsyncMock(
            side_effect=lambda encoding=None, errors="strict": raw.decode("utf-8", errors)
        )
        session = _mock_session(resp)
        ch = DeliveryChannel(session, _conf())

        with patch("src.opsgenie.channel.logger") as mock_logger:
            with pytest.raises(DeliveryRejectedError) as info:
                await ch.send(_doc())

        assert info.value.status == 502
        assert info.value.body == raw.decode("utf-8", "replace")
        assert "bad gateway" in info.value.body
        assert mock_logger.error.call_args[0][0] == "opsgenie_delivery_rejected"

    async def test_client_error_is_transport_fault(self) -> None:
        session = MagicMock()
        session.post = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))
        ch = DeliveryChannel(session, _conf())

        with patch("src.opsgenie.channel.logger") as mock_logger:
            with pytest.raises(TransportFaultError):
                await ch.send(_doc())

        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args[0][0] == "opsgenie_transport_fault"

    async def test_timeout_is_transport_fault(self) -> None:
        session = MagicMock()
        session.post = MagicMock(side_effect=asyncio.TimeoutError())
        ch = DeliveryChannel(session, _conf())

        with pytest.raises(TransportFaultError) as info:
            await ch.send(_doc())
        assert isinstance(info.value, DeliveryError)

    async def test_sequential_sends_reuse_session(self) -> None:
        session = _mock_session(_mock_response(202), _mock_response(202), _mock_response(202))
        ch = DeliveryChannel(session, _conf())
        for i in range(3):
            await ch.send(_doc(message=f"m{i}"))
        sent = [json.loads(c[1]["data"])["message"] for c in session.post.call_args_list]
        assert sent == ["m0", "m1", "m2"]


# ── DeliveryState ───────────────────────────────────────────────


class TestDeliveryState:
    async def test_context_closes_session_once(self) -> None:
        session = _mock_session(_mock_response(202))
        state = DeliveryState(_conf(), session_factory=lambda: session)

        async with state:
            await state.send(_doc())
        await state.close()

        session.close.assert_awaited_once()

    async def test_closes_on_error(self) -> None:
        session = _mock_session(_mock_response(500, "boom"))
        state = DeliveryState(_conf(), session_factory=lambda: session)

        with pytest.raises(DeliveryRejectedError):
            async with state:
                await state.send(_doc())

        session.close.assert_awaited_once()

    async def test_send_before_open_raises(self) -> None:
        state = DeliveryState(_conf(), session_factory=MagicMock())
        with pytest.raises(RuntimeError):
            await state.send(_doc())

    async def test_default_factory_is_aiohttp(self) -> None:
        state = DeliveryState(_conf())
        async with state:
            assert isinstance(state.channel, DeliveryChannel)
            assert state.channel.url == "https://api.opsgenie.com/v2/alerts"
