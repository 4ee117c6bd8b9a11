"""Lifecycle and metric events emitted by the connection supervisor."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class MetricKind(str, Enum):
    PM1 = "pm1"
    PM25 = "pm25"
    PM10 = "pm10"
    TVOC = "tvoc"
    CO2 = "co2"
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"


@dataclass(frozen=True)
class Connected:
    pass


@dataclass(frozen=True)
class Disconnected:
    reason: str


@dataclass(frozen=True)
class Status:
    message: str


@dataclass(frozen=True)
class Metric:
    topic: str
    kind: MetricKind
    value: float


MetricEvent = Union[Connected, Disconnected, Status, Metric]

STOPPED_REASON = "stopped"
CLOSED_REASON = "connection closed"
