"""Topic/payload → typed sensor reading.

The sensor name is the last path segment of the topic, e.g.
``homeassistant/sensor/apollo_air1/pm_2_5mm_weight_concentration``.
Rules are checked in order, most specific first: the SEN55 size-bin
topics (``pm_1_to_2_5`` …) must be matched before the generic substrings.
"""
from __future__ import annotations

import logging
import math
from typing import Any, NamedTuple, Optional

from air1_monitor.mqtt.events import MetricKind

logger = logging.getLogger(__name__)


class Reading(NamedTuple):
    kind: MetricKind
    value: float


# (match, needle, kind); match is "suffix" or "contains"
_RULES: tuple[tuple[str, str, MetricKind], ...] = (
    ("suffix", "pm_1mm_weight_concentration", MetricKind.PM1),
    ("suffix", "pm_2_5mm_weight_concentration", MetricKind.PM25),
    ("suffix", "pm_10mm_weight_concentration", MetricKind.PM10),
    ("contains", "pm_1_to_2_5", MetricKind.PM25),
    ("contains", "pm_0_3_to_1", MetricKind.PM1),
    ("contains", "pm_2_5_to_4", MetricKind.PM25),
    ("contains", "pm_4_to_10", MetricKind.PM10),
    ("contains", "voc", MetricKind.TVOC),
    ("contains", "co2", MetricKind.CO2),
    ("contains", "temp", MetricKind.TEMPERATURE),
    ("contains", "hum", MetricKind.HUMIDITY),
)


def sensor_kind(name: str) -> Optional[MetricKind]:
    """Map a sensor name (last topic segment) to a metric kind."""
    n = name.lower()
    for match, needle, kind in _RULES:
        if match == "suffix" and n.endswith(needle):
            return kind
        if match == "contains" and needle in n:
            return kind
    return None


def parse_value(payload: Any) -> Optional[float]:
    if payload is None:
        return None
    if isinstance(payload, (bytes, bytearray)):
        text = bytes(payload).decode("utf-8", errors="replace")
    else:
        text = str(payload)
    try:
        value = float(text.strip())
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def classify(topic: str, payload: Any) -> Optional[Reading]:
    """Return the reading carried by a publish, or None if unrecognized.

    Never raises: unknown sensors and non-numeric payloads are expected
    noise on a shared broker.
    """
    name = topic.rsplit("/", 1)[-1]
    if not name:
        return None
    kind = sensor_kind(name)
    if kind is None:
        return None
    value = parse_value(payload)
    if value is None:
        logger.debug("Dropping non-numeric payload on %s", topic)
        return None
    return Reading(kind, value)
