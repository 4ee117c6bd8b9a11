"""Unit conversions and the metrics payload served to dashboards."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from air1_monitor.config import TelemetryConfig
from air1_monitor.mqtt.events import MetricKind
from air1_monitor.schemas.metrics import MetricReading, MetricsOut
from air1_monitor.services.air_quality import GAUGES, band_index, overall_quality, warnings_for
from air1_monitor.services.metrics_store import MetricsStore


def celsius_to_fahrenheit(c: float) -> float:
    return round(c * 9 / 5 + 32, 1)


def _reading(kind: MetricKind, value: Optional[float], temperature_unit: str) -> MetricReading:
    spec = GAUGES[kind]
    unit = spec.unit
    if kind is MetricKind.TEMPERATURE:
        unit = f"°{temperature_unit}"
    if value is None:
        return MetricReading(kind=kind.value, title=spec.title, unit=unit)

    banded = value
    if kind is MetricKind.TEMPERATURE and temperature_unit == "C":
        banded = celsius_to_fahrenheit(value)
    level = band_index(banded, spec.bands)
    return MetricReading(
        kind=kind.value,
        title=spec.title,
        unit=unit,
        value=value,
        quality=spec.bands[level].label,
        level=level,
    )


def build_metrics(
    store: MetricsStore,
    cfg: TelemetryConfig,
    now: Optional[datetime] = None,
) -> MetricsOut:
    now = now or datetime.now(timezone.utc)
    snap = store.snapshot()
    age = (now - snap.last_update).total_seconds() if snap.last_update else None
    return MetricsOut(
        connected=snap.connected,
        availability=store.availability(now, cfg.fresh_after_sec, cfg.stale_after_sec),
        status=snap.status,
        last_topic=snap.last_topic,
        last_update=snap.last_update,
        age_sec=round(age, 1) if age is not None else None,
        overall=overall_quality(snap.get(MetricKind.PM25)),
        warnings=warnings_for(snap.values),
        metrics=[_reading(kind, snap.get(kind), cfg.temperature_unit) for kind in MetricKind],
    )
