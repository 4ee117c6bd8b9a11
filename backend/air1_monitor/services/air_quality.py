"""Air-quality bands, labels and warnings for the dashboard gauges."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from air1_monitor.mqtt.events import MetricKind


@dataclass(frozen=True)
class Band:
    low: float
    high: float
    label: str


@dataclass(frozen=True)
class GaugeSpec:
    title: str
    unit: str
    max_value: float
    bands: tuple[Band, ...]


def _bands(*items: tuple[float, float, str]) -> tuple[Band, ...]:
    return tuple(Band(low, high, label) for low, high, label in items)


# Temperature bands are in °F; readings in °C are converted before lookup.
GAUGES: dict[MetricKind, GaugeSpec] = {
    MetricKind.PM25: GaugeSpec("PM2.5", "μg/m³", 250.0, _bands(
        (0.0, 12.0, "Good"),
        (12.0, 35.0, "Moderate"),
        (35.0, 55.0, "Unhealthy (Sensitive)"),
        (55.0, 150.0, "Unhealthy"),
        (150.0, 250.0, "Very Unhealthy"),
    )),
    MetricKind.PM10: GaugeSpec("PM10", "μg/m³", 424.0, _bands(
        (0.0, 54.0, "Good"),
        (54.0, 154.0, "Moderate"),
        (154.0, 254.0, "Unhealthy (Sensitive)"),
        (254.0, 354.0, "Unhealthy"),
        (354.0, 424.0, "Very Unhealthy"),
    )),
    MetricKind.PM1: GaugeSpec("PM1", "μg/m³", 50.0, _bands(
        (0.0, 10.0, "Good"),
        (10.0, 25.0, "Moderate"),
        (25.0, 50.0, "Unhealthy"),
    )),
    MetricKind.CO2: GaugeSpec("CO₂", "ppm", 5000.0, _bands(
        (0.0, 800.0, "Excellent"),
        (800.0, 1000.0, "Good"),
        (1000.0, 1500.0, "Acceptable"),
        (1500.0, 2000.0, "Poor"),
        (2000.0, 5000.0, "Bad"),
    )),
    MetricKind.TVOC: GaugeSpec("TVOC", "ppb", 5500.0, _bands(
        (0.0, 220.0, "Excellent"),
        (220.0, 660.0, "Good"),
        (660.0, 1430.0, "Moderate"),
        (1430.0, 2200.0, "Poor"),
        (2200.0, 5500.0, "Unhealthy"),
    )),
    MetricKind.TEMPERATURE: GaugeSpec("Temperature", "°F", 104.0, _bands(
        (32.0, 64.0, "Cool"),
        (64.0, 75.0, "Comfortable"),
        (75.0, 82.0, "Warm"),
        (82.0, 104.0, "Hot"),
    )),
    MetricKind.HUMIDITY: GaugeSpec("Humidity", "%", 100.0, _bands(
        (0.0, 30.0, "Dry"),
        (30.0, 60.0, "Comfortable"),
        (60.0, 80.0, "Humid"),
        (80.0, 100.0, "Very Humid"),
    )),
}

CO2_WARNING_PPM = 2000.0
TVOC_WARNING_PPB = 2200.0


def band_index(value: float, bands: tuple[Band, ...]) -> int:
    """Index of the band containing ``value``; out-of-range values clamp to the ends."""
    for i, band in enumerate(bands):
        if band.low <= value < band.high:
            return i
    if bands and value < bands[0].low:
        return 0
    return len(bands) - 1


def quality_label(kind: MetricKind, value: float) -> str:
    bands = GAUGES[kind].bands
    return bands[band_index(value, bands)].label


def overall_quality(pm25: Optional[float]) -> str:
    """Overall air quality, driven by PM2.5."""
    if pm25 is None:
        return "Unknown"
    if pm25 < 12.0:
        return "Excellent"
    if pm25 < 35.0:
        return "Good"
    if pm25 < 55.0:
        return "Moderate"
    if pm25 < 150.0:
        return "Poor"
    if pm25 < 250.0:
        return "Unhealthy"
    return "Hazardous"


def warnings_for(values: Mapping[MetricKind, float]) -> list[str]:
    warnings: list[str] = []
    co2 = values.get(MetricKind.CO2)
    if co2 is not None and co2 > CO2_WARNING_PPM:
        warnings.append(f"High CO₂: {co2:.0f} ppm")
    tvoc = values.get(MetricKind.TVOC)
    if tvoc is not None and tvoc > TVOC_WARNING_PPB:
        warnings.append(f"High VOC: {tvoc:.0f} ppb")
    return warnings
