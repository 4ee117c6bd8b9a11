from __future__ import annotations

import asyncio
import socket
from typing import Any

import aiomqtt
import pytest
from conftest import ClientFactory, FakeMqttClient

from air1_monitor.config import MqttConfig
from air1_monitor.errors import ConnectionCheckError
from air1_monitor.mqtt.verify import probe_tcp, status_topic, verify_connection


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def run_against_listener(cfg_changes: dict[str, Any], factory: ClientFactory, **kwargs: Any) -> None:
    """Run verify_connection with a real TCP listener standing in for the broker port."""

    async def scenario() -> None:
        async def accept(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            writer.close()

        server = await asyncio.start_server(accept, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            cfg = MqttConfig(host="127.0.0.1", port=port, **cfg_changes)
            await verify_connection(cfg, None, client_factory=factory, **kwargs)
        finally:
            server.close()
            await server.wait_closed()

    asyncio.run(scenario())


@pytest.mark.parametrize(
    ("prefix", "topic"),
    [
        (None, "homeassistant/status"),
        ("home/#", "home/status"),
        ("apollo/", "apollo/status"),
        ("#", "status"),
        ("/", "status"),
    ],
)
def test_status_topic(prefix, topic: str) -> None:
    assert status_topic(prefix) == topic


def test_probe_reports_unreachable_port() -> None:
    port = _free_port()
    with pytest.raises(ConnectionCheckError, match=f"failed to reach 127.0.0.1:{port}"):
        asyncio.run(probe_tcp("127.0.0.1", port, timeout=2))


def test_unreachable_broker_never_builds_client() -> None:
    factory = ClientFactory(lambda i, **kw: FakeMqttClient(**kw))
    cfg = MqttConfig(host="127.0.0.1", port=_free_port())
    with pytest.raises(ConnectionCheckError):
        asyncio.run(verify_connection(cfg, None, client_factory=factory, probe_timeout=2))
    assert factory.clients == []


def test_successful_check_subscribes_to_status_topic() -> None:
    factory = ClientFactory(lambda i, **kw: FakeMqttClient(**kw))
    run_against_listener({"topic_prefix": "home", "username": "air1"}, factory)

    (client,) = factory.clients
    assert client.subscriptions == [("home/status", 0)]
    assert client.kwargs["clean_session"] is True
    assert client.kwargs["password"] == ""
    assert client.exited


def test_broker_rejection_is_reported() -> None:
    factory = ClientFactory(
        lambda i, **kw: FakeMqttClient(connect_error=aiomqtt.MqttError("Not authorized"), **kw)
    )
    with pytest.raises(ConnectionCheckError, match="MQTT error during test: Not authorized"):
        run_against_listener({}, factory)


def test_hanging_handshake_times_out() -> None:
    factory = ClientFactory(lambda i, **kw: FakeMqttClient(hang_on_connect=True, **kw))
    with pytest.raises(ConnectionCheckError, match="MQTT test timed out after 0.2s"):
        run_against_listener({}, factory, timeout=0.2)


def test_tls_problem_is_reported_verbatim(tmp_path) -> None:
    factory = ClientFactory(lambda i, **kw: FakeMqttClient(**kw))
    missing = tmp_path / "ca.pem"
    with pytest.raises(ConnectionCheckError, match="failed to read CA file"):
        run_against_listener({"tls": True, "ca_path": missing}, factory)
    assert factory.clients == []
