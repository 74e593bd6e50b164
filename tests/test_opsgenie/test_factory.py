"""Tests for the sink factory — settings → SinkConfig / OpsGenieSink."""

from __future__ import annotations

from pydantic import SecretStr

from src.core.config import OpsGenieConfig, Settings, SinkSettings
from src.core.types import HostRecord
from src.opsgenie.factory import create_sink, sink_config_from_settings
from src.opsgenie.sink import OpsGenieSink
from src.opsgenie.types import Responder


def _settings(**kw: object) -> Settings:
    defaults: dict[str, object] = {
        "opsgenie": OpsGenieConfig(
            endpoint="http://localhost:8080/v2",
            api_key=SecretStr("tok"),
        ),
    }
    defaults.update(kw)
    return Settings(**defaults)  # type: ignore[arg-type]


class TestSinkConfigFromSettings:
    def test_resolves_secret(self) -> None:
        conf = sink_config_from_settings(_settings())
        assert conf.api_key == "tok"
        assert conf.endpoint == "http://localhost:8080/v2"

    def test_passes_functions(self) -> None:
        conf = sink_config_from_settings(
            _settings(),
            get_responders=lambda r: [Responder.escalation("e")],
        )
        assert conf.get_responders(HostRecord(value="x")) == [Responder.escalation("e")]


class TestCreateSink:
    def test_wires_sink_settings(self) -> None:
        sink = create_sink(
            _settings(sink=SinkSettings(queue_size=7, stop_on_delivery_error=True))
        )
        assert isinstance(sink, OpsGenieSink)
        assert sink.requests.maxsize == 7
        assert sink._stop_on_delivery_error is True
        assert sink.state is None
