from __future__ import annotations

from air1_monitor.services.dashboard_layout import (
    DEFAULT_SECTION_IDS,
    DashboardConfig,
    DashboardSectionConfig,
    GaugeConfig,
    default_gauges,
    normalize_dashboard,
    normalize_section,
)


def gauge_ids(section: DashboardSectionConfig) -> list[str]:
    return [g.id for g in section.gauges]


def section(dashboard: DashboardConfig, section_id: str) -> DashboardSectionConfig:
    return next(s for s in dashboard.sections if s.id == section_id)


def messy_dashboard() -> DashboardConfig:
    return DashboardConfig(
        sections=[
            DashboardSectionConfig(
                id="air_quality",
                gauges=[GaugeConfig(id="pm25"), GaugeConfig(id="pm25", enabled=False)],
            ),
            DashboardSectionConfig(id="air_quality", enabled=False, gauges=[GaugeConfig(id="pm10")]),
            DashboardSectionConfig(id="gas", gauges=[]),
            DashboardSectionConfig(id="custom", gauges=[GaugeConfig(id="x"), GaugeConfig(id="x")]),
        ]
    )


def test_empty_section_list_becomes_defaults() -> None:
    result = normalize_dashboard(DashboardConfig(sections=[]))
    assert [s.id for s in result.sections] == list(DEFAULT_SECTION_IDS)
    assert gauge_ids(section(result, "environment")) == ["temperature", "humidity"]
    assert section(result, "overview").gauges == []


def test_known_section_without_gauges_gets_defaults() -> None:
    result = normalize_section(DashboardSectionConfig(id="gas", gauges=[]))
    assert gauge_ids(result) == ["co2", "tvoc"]


def test_gauges_deduplicated_and_missing_defaults_appended() -> None:
    result = normalize_section(
        DashboardSectionConfig(
            id="air_quality",
            gauges=[GaugeConfig(id="pm10"), GaugeConfig(id="pm10"), GaugeConfig(id="pm25")],
        )
    )
    assert gauge_ids(result) == ["pm10", "pm25", "pm1"]


def test_unknown_section_gets_no_invented_gauges() -> None:
    assert default_gauges("custom") == []
    assert normalize_section(DashboardSectionConfig(id="custom")).gauges == []


def test_dashboard_dedupes_sections_and_recurses() -> None:
    result = normalize_dashboard(messy_dashboard())

    ids = [s.id for s in result.sections]
    assert ids == ["air_quality", "gas", "custom", "overview", "environment"]

    air = section(result, "air_quality")
    assert air.enabled is True  # first occurrence wins
    assert gauge_ids(air) == ["pm25", "pm10", "pm1"]
    assert air.gauges[0].enabled is True

    assert gauge_ids(section(result, "gas")) == ["co2", "tvoc"]
    assert gauge_ids(section(result, "custom")) == ["x"]
    assert gauge_ids(section(result, "environment")) == ["temperature", "humidity"]


def test_normalize_is_idempotent() -> None:
    for dashboard in (messy_dashboard(), DashboardConfig(sections=[]), DashboardConfig()):
        once = normalize_dashboard(dashboard)
        assert normalize_dashboard(once) == once


def test_normalize_does_not_mutate_input() -> None:
    dashboard = messy_dashboard()
    before = dashboard.model_dump()
    normalize_dashboard(dashboard)
    assert dashboard.model_dump() == before


def test_custom_order_and_disabled_flags_are_preserved() -> None:
    dashboard = DashboardConfig(
        sections=[
            DashboardSectionConfig(id="environment", enabled=False, gauges=[GaugeConfig(id="humidity", enabled=False)]),
            DashboardSectionConfig(id="overview"),
        ]
    )
    result = normalize_dashboard(dashboard)

    env = section(result, "environment")
    assert [s.id for s in result.sections][:2] == ["environment", "overview"]
    assert env.enabled is False
    assert [(g.id, g.enabled) for g in env.gauges] == [("humidity", False), ("temperature", True)]
