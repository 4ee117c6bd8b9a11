"""MQTT connection supervisor: one broker session at a time, reconnecting forever.

The supervisor runs its own asyncio loop on a dedicated thread and talks to
the consumer only through an EventChannel. Per attempt it emits::

    Connected, Status, Metric*, Disconnected(reason)

and before every reconnect wait a ``Status("Reconnecting in Ns")``. After
``stop()`` the only event still emitted is the terminal
``Disconnected("stopped")``.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Optional

import aiomqtt

from air1_monitor.config import DEFAULT_CLIENT_ID, DEFAULT_TOPIC_PREFIX, MqttConfig
from air1_monitor.errors import TlsSetupError
from air1_monitor.mqtt.backoff import ReconnectBackoff
from air1_monitor.mqtt.channel import EventChannel
from air1_monitor.mqtt.classifier import classify
from air1_monitor.mqtt.events import (
    CLOSED_REASON,
    STOPPED_REASON,
    Connected,
    Disconnected,
    Metric,
    Status,
)
from air1_monitor.mqtt.tls import build_tls_context

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (aiomqtt.MqttError, OSError, asyncio.TimeoutError, TlsSetupError)

# Upper bound on client teardown (broker DISCONNECT) once a session is cancelled
TEARDOWN_TIMEOUT_SEC = 1.0


class SupervisorState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    RECEIVING = "receiving"
    RECONNECT_WAIT = "reconnect_wait"
    STOPPED = "stopped"


def topic_base(prefix: Optional[str]) -> str:
    """Configured prefix without any trailing wildcard or slash."""
    raw = (prefix or "").strip() or DEFAULT_TOPIC_PREFIX
    base = raw
    while base.endswith("/#"):
        base = base[:-2]
    return base.rstrip("#").rstrip("/")


def subscription_topic(prefix: Optional[str]) -> str:
    base = topic_base(prefix)
    return f"{base}/#" if base else "#"


def build_client(
    cfg: MqttConfig,
    password: Optional[str],
    *,
    clean_session: bool,
    client_factory: Callable[..., Any] = aiomqtt.Client,
) -> Any:
    """Create (but do not connect) an aiomqtt client for ``cfg``."""
    return client_factory(
        hostname=cfg.host,
        port=cfg.port,
        identifier=cfg.client_id or DEFAULT_CLIENT_ID,
        username=cfg.username,
        password=(password or "") if cfg.username else None,
        keepalive=cfg.keepalive_secs,
        clean_session=clean_session,
        tls_context=build_tls_context(cfg),
    )


def _reason(exc: BaseException) -> str:
    text = str(exc)
    return text or exc.__class__.__name__


class ConnectionSupervisor:
    def __init__(
        self,
        *,
        client_factory: Callable[..., Any] = aiomqtt.Client,
        backoff_factory: Callable[[], ReconnectBackoff] = ReconnectBackoff,
        clock: Callable[[], float] = time.monotonic,
        teardown_timeout: float = TEARDOWN_TIMEOUT_SEC,
    ) -> None:
        self._client_factory = client_factory
        self._teardown_timeout = teardown_timeout
        self._backoff_factory = backoff_factory
        self._clock = clock
        self._state = SupervisorState.IDLE
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._stop_requested = threading.Event()
        # Owned by the supervisor thread; only touched from other threads via
        # loop.call_soon_threadsafe under self._lock.
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event: asyncio.Event | None = None
        self._connected_at: float | None = None

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(
        self,
        cfg: MqttConfig,
        password: Optional[str],
        channel: EventChannel,
    ) -> None:
        """Start the listener thread and return immediately."""
        if self.running:
            raise RuntimeError("MQTT supervisor already running")
        self._stop_requested.clear()
        self._state = SupervisorState.IDLE
        self._thread = threading.Thread(
            target=self._thread_main,
            args=(cfg, password, channel),
            name="air1-mqtt",
            daemon=True,
        )
        self._thread.start()
        logger.info("MQTT supervisor started for %s:%s", cfg.host, cfg.port)

    def stop(self, timeout: float | None = 5.0) -> bool:
        """Request cancellation; wait up to ``timeout`` seconds for the thread.

        Returns True when the thread has exited.
        """
        self._stop_requested.set()
        with self._lock:
            if self._loop is not None and self._stop_event is not None:
                self._loop.call_soon_threadsafe(self._stop_event.set)

        thread = self._thread
        if thread is None:
            return True
        if thread is not threading.current_thread():
            thread.join(timeout)
        return not thread.is_alive()

    # ------------------------------------------------------------------
    # Supervisor thread
    # ------------------------------------------------------------------

    def _thread_main(self, cfg: MqttConfig, password: Optional[str], channel: EventChannel) -> None:
        try:
            asyncio.run(self._supervise(cfg, password, channel))
        except Exception:
            logger.exception("MQTT supervisor thread crashed")
            self._state = SupervisorState.STOPPED

    def _set_state(self, state: SupervisorState) -> None:
        if state is not self._state:
            logger.debug("MQTT supervisor %s -> %s", self._state.value, state.value)
        self._state = state

    async def _supervise(self, cfg: MqttConfig, password: Optional[str], channel: EventChannel) -> None:
        stop_event = asyncio.Event()
        with self._lock:
            self._loop = asyncio.get_running_loop()
            self._stop_event = stop_event
        if self._stop_requested.is_set():
            stop_event.set()

        backoff = self._backoff_factory()
        topic = subscription_topic(cfg.topic_prefix)

        try:
            while not stop_event.is_set():
                self._connected_at = None
                self._set_state(SupervisorState.CONNECTING)
                session = asyncio.ensure_future(self._session(cfg, password, topic, channel, stop_event))
                waiter = asyncio.ensure_future(stop_event.wait())
                try:
                    await asyncio.wait({session, waiter}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    await self._cancel_and_wait((session, waiter))

                if stop_event.is_set():
                    break

                reason = self._outcome(session)
                channel.send(Disconnected(reason))
                connected_at = self._connected_at
                lifetime = self._clock() - connected_at if connected_at is not None else 0.0
                delay = backoff.next_delay(lifetime)
                logger.error("MQTT connection lost: %s; reconnecting in %gs", reason, delay)

                self._set_state(SupervisorState.RECONNECT_WAIT)
                channel.send(Status(f"Reconnecting in {delay:g}s"))
                if await self._wait_for_stop(stop_event, delay):
                    break
        finally:
            self._set_state(SupervisorState.STOPPED)
            channel.send(Disconnected(STOPPED_REASON))
            logger.info("MQTT supervisor stopped")
            with self._lock:
                self._loop = None
                self._stop_event = None

    async def _session(
        self,
        cfg: MqttConfig,
        password: Optional[str],
        topic: str,
        channel: EventChannel,
        stop_event: asyncio.Event,
    ) -> None:
        """Connect, subscribe and forward classified publishes until the stream ends."""
        async with build_client(
            cfg,
            password,
            clean_session=not cfg.persistent_session,
            client_factory=self._client_factory,
        ) as client:
            await client.subscribe(topic, qos=cfg.qos)
            self._connected_at = self._clock()
            self._set_state(SupervisorState.SUBSCRIBED)
            if stop_event.is_set():
                return
            logger.info("MQTT connected to %s:%s, subscribed to %s", cfg.host, cfg.port, topic)
            channel.send(Connected())
            channel.send(Status(f"MQTT connected; subs: {topic}"))

            self._set_state(SupervisorState.RECEIVING)
            async for message in client.messages:
                if stop_event.is_set():
                    return
                msg_topic = str(message.topic)
                reading = classify(msg_topic, message.payload)
                if reading is None:
                    continue
                channel.send(Metric(topic=msg_topic, kind=reading.kind, value=reading.value))

    async def _cancel_and_wait(self, tasks: tuple[asyncio.Future, ...]) -> None:
        """Cancel ``tasks`` and wait for them, but no longer than the teardown timeout.

        aiomqtt waits for the broker to acknowledge the disconnect without a
        timeout of its own; a task still pending afterwards is cancelled once
        more and abandoned so the supervisor thread can exit.
        """
        pending = {task for task in tasks if not task.done()}
        for task in pending:
            task.cancel()
        if pending:
            _, pending = await asyncio.wait(pending, timeout=self._teardown_timeout)
        for task in pending:
            logger.warning("MQTT client teardown exceeded %gs, abandoning it", self._teardown_timeout)
            task.cancel()
        for task in tasks:
            if task.done() and not task.cancelled():
                task.exception()  # mark retrieved

    @staticmethod
    def _outcome(session: asyncio.Future) -> str:
        """Disconnect reason for a finished session task."""
        exc = session.exception()
        if exc is None:
            return CLOSED_REASON
        if not isinstance(exc, TRANSPORT_ERRORS):
            logger.error("Unexpected error in MQTT supervisor", exc_info=exc)
        return _reason(exc)

    @staticmethod
    async def _wait_for_stop(stop_event: asyncio.Event, delay: float) -> bool:
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True
