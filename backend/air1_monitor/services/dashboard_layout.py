"""Dashboard layout models and their normalization.

``normalize_dashboard`` repairs whatever the config file holds:
duplicate section/gauge ids are dropped (first occurrence wins), built-in
sections and gauges that are missing are appended, and unknown ids are
kept verbatim without invented defaults. Applying it twice gives the same
result as applying it once.
"""
from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_SECTION_IDS: tuple[str, ...] = ("overview", "air_quality", "gas", "environment")

DEFAULT_GAUGE_IDS: dict[str, tuple[str, ...]] = {
    "air_quality": ("pm25", "pm10", "pm1"),
    "gas": ("co2", "tvoc"),
    "environment": ("temperature", "humidity"),
}


class GaugeConfig(BaseModel):
    id: str
    enabled: bool = True


class DashboardSectionConfig(BaseModel):
    id: str
    enabled: bool = True
    gauges: list[GaugeConfig] = Field(default_factory=list)


def default_gauges(section_id: str) -> list[GaugeConfig]:
    return [GaugeConfig(id=gauge_id) for gauge_id in DEFAULT_GAUGE_IDS.get(section_id, ())]


def default_section(section_id: str) -> DashboardSectionConfig:
    return DashboardSectionConfig(id=section_id, gauges=default_gauges(section_id))


def default_sections() -> list[DashboardSectionConfig]:
    return [default_section(section_id) for section_id in DEFAULT_SECTION_IDS]


class DashboardConfig(BaseModel):
    sections: list[DashboardSectionConfig] = Field(default_factory=default_sections)


def normalize_gauges(section_id: str, gauges: list[GaugeConfig]) -> list[GaugeConfig]:
    defaults = default_gauges(section_id)
    if not gauges:
        return defaults

    seen: set[str] = set()
    result: list[GaugeConfig] = []
    for gauge in gauges:
        if gauge.id in seen:
            continue
        seen.add(gauge.id)
        result.append(gauge.model_copy())

    result.extend(g for g in defaults if g.id not in seen)
    return result


def normalize_section(section: DashboardSectionConfig) -> DashboardSectionConfig:
    return DashboardSectionConfig(
        id=section.id,
        enabled=section.enabled,
        gauges=normalize_gauges(section.id, section.gauges),
    )


def normalize_dashboard(dashboard: DashboardConfig) -> DashboardConfig:
    if not dashboard.sections:
        return DashboardConfig(sections=default_sections())

    seen: set[str] = set()
    sections: list[DashboardSectionConfig] = []
    for section in dashboard.sections:
        if section.id in seen:
            continue
        seen.add(section.id)
        sections.append(normalize_section(section))

    sections.extend(default_section(sid) for sid in DEFAULT_SECTION_IDS if sid not in seen)
    return DashboardConfig(sections=sections)
