"""Consumer-side reducer: MQTT events → current metrics snapshot.

Owned by a single consumer context (the drain task); the supervisor only
reaches it through the EventChannel. Values survive disconnects, staleness
is reported through ``availability`` instead.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from air1_monitor.mqtt.channel import EventChannel
from air1_monitor.mqtt.events import Connected, Disconnected, Metric, MetricEvent, MetricKind, Status

OFFLINE = "offline"
NO_DATA = "no data"
FRESH = "fresh"
STALE = "stale"
STALLED = "stalled"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def derive_availability(
    connected: bool,
    last_update: Optional[datetime],
    now: Optional[datetime] = None,
    fresh_after_sec: float = 15,
    stale_after_sec: float = 60,
) -> str:
    """Data availability from connection state and age of the last reading.

    offline  — not connected
    no data  — connected, nothing received yet
    fresh    — last reading at most ``fresh_after_sec`` old
    stale    — at most ``stale_after_sec`` old
    stalled  — older than that
    """
    if not connected:
        return OFFLINE
    if last_update is None:
        return NO_DATA

    now = now or _utcnow()
    if last_update.tzinfo is None:
        last_update = last_update.replace(tzinfo=timezone.utc)

    age = (now - last_update).total_seconds()
    if age <= fresh_after_sec:
        return FRESH
    if age <= stale_after_sec:
        return STALE
    return STALLED


@dataclass(frozen=True)
class MetricsSnapshot:
    values: Mapping[MetricKind, float] = field(default_factory=lambda: MappingProxyType({}))
    connected: bool = False
    last_topic: Optional[str] = None
    last_update: Optional[datetime] = None
    status: str = ""

    def get(self, kind: MetricKind) -> Optional[float]:
        return self.values.get(kind)


class MetricsStore:
    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._values: dict[MetricKind, float] = {}
        self._connected = False
        self._last_topic: Optional[str] = None
        self._last_update: Optional[datetime] = None
        self._status = ""

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def status(self) -> str:
        return self._status

    @property
    def last_update(self) -> Optional[datetime]:
        return self._last_update

    def apply(self, event: MetricEvent) -> None:
        if isinstance(event, Metric):
            self._values[event.kind] = event.value
            self._last_topic = event.topic
            self._last_update = self._clock()
        elif isinstance(event, Connected):
            self._connected = True
            self._status = "MQTT connected"
        elif isinstance(event, Disconnected):
            self._connected = False
            self._status = f"MQTT disconnected: {event.reason}"
        elif isinstance(event, Status):
            self._status = event.message
        else:
            raise TypeError(f"unexpected MQTT event {event!r}")

    def drain(self, channel: EventChannel) -> int:
        """Apply every queued event in delivery order; return how many."""
        count = 0
        for event in channel.drain():
            self.apply(event)
            count += 1
        return count

    def snapshot(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            values=MappingProxyType(dict(self._values)),
            connected=self._connected,
            last_topic=self._last_topic,
            last_update=self._last_update,
            status=self._status,
        )

    def availability(
        self,
        now: Optional[datetime] = None,
        fresh_after_sec: float = 15,
        stale_after_sec: float = 60,
    ) -> str:
        return derive_availability(
            self._connected, self._last_update, now, fresh_after_sec, stale_after_sec,
        )
