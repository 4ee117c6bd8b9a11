"""Shared fakes for the MQTT supervisor, keyring and controller tests."""
from __future__ import annotations

import asyncio
import time
from types import SimpleNamespace
from typing import Any, Callable, Iterable, Optional

import pytest

from air1_monitor.errors import SecretStoreError
from air1_monitor.mqtt.channel import EventChannel
from air1_monitor.mqtt.events import Disconnected, MetricEvent


class FakeMqttClient:
    """Stands in for aiomqtt.Client: connects, records subscriptions, replays messages."""

    def __init__(
        self,
        messages: Iterable[tuple[str, Any]] = (),
        *,
        connect_error: Optional[BaseException] = None,
        stream_error: Optional[BaseException] = None,
        hold_open: bool = True,
        hang_on_connect: bool = False,
        exit_delay: float = 0.0,
        **kwargs: Any,
    ) -> None:
        self.kwargs = kwargs
        self.subscriptions: list[tuple[str, int]] = []
        self._messages = [SimpleNamespace(topic=t, payload=p) for t, p in messages]
        self._connect_error = connect_error
        self._stream_error = stream_error
        self._hold_open = hold_open
        self._hang_on_connect = hang_on_connect
        self._exit_delay = exit_delay
        self.exited = False

    async def __aenter__(self) -> FakeMqttClient:
        if self._hang_on_connect:
            await asyncio.Event().wait()
        if self._connect_error is not None:
            raise self._connect_error
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.exited = True
        if self._exit_delay:
            # broker slow to acknowledge DISCONNECT
            await asyncio.sleep(self._exit_delay)

    async def subscribe(self, topic: str, qos: int = 0) -> None:
        self.subscriptions.append((topic, qos))

    @property
    def messages(self):
        return self._iterate()

    async def _iterate(self):
        for message in self._messages:
            yield message
        if self._stream_error is not None:
            raise self._stream_error
        if self._hold_open:
            await asyncio.Event().wait()


class ClientFactory:
    """Returns a new FakeMqttClient per connection attempt, built by ``make``."""

    def __init__(self, make: Callable[..., FakeMqttClient]) -> None:
        self._make = make
        self.clients: list[FakeMqttClient] = []

    def __call__(self, **kwargs: Any) -> FakeMqttClient:
        client = self._make(len(self.clients), **kwargs)
        self.clients.append(client)
        return client


class MemorySecretStore:
    def __init__(self, secret: Optional[str] = None, *, broken: bool = False) -> None:
        self.secret = secret
        self.broken = broken

    def get(self) -> Optional[str]:
        if self.broken:
            raise SecretStoreError("keyring unavailable")
        return self.secret

    def set(self, secret: str) -> None:
        if self.broken:
            raise SecretStoreError("keyring unavailable")
        self.secret = secret

    def delete(self) -> None:
        if self.broken:
            raise SecretStoreError("keyring unavailable")
        self.secret = None


class FakeSupervisor:
    """Records start/stop calls and emits the events a real supervisor would."""

    def __init__(self) -> None:
        self.started_with: Optional[tuple[Any, Optional[str]]] = None
        self.stopped = False
        self._channel: Optional[EventChannel] = None
        self.state = SimpleNamespace(value="receiving")

    @property
    def running(self) -> bool:
        return self.started_with is not None and not self.stopped

    def start(self, cfg: Any, password: Optional[str], channel: EventChannel) -> None:
        self.started_with = (cfg, password)
        self._channel = channel

    def stop(self, timeout: Optional[float] = None) -> bool:
        self.stopped = True
        if self._channel is not None:
            self._channel.send(Disconnected("stopped"))
        return True


def collect_until(
    channel: EventChannel,
    predicate: Callable[[list[MetricEvent]], bool],
    timeout: float = 5.0,
) -> list[MetricEvent]:
    """Poll ``channel`` like a UI tick would until ``predicate`` holds."""
    events: list[MetricEvent] = []
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        events.extend(channel.drain())
        if predicate(events):
            return events
        time.sleep(0.01)
    raise AssertionError(f"condition not met within {timeout}s, got {events!r}")


@pytest.fixture
def secret_store() -> MemorySecretStore:
    return MemorySecretStore()


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("AIR1_CONFIG_PATH", str(tmp_path / "config.yaml"))
