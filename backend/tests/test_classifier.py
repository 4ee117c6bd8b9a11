from __future__ import annotations

import pytest

from air1_monitor.mqtt.classifier import Reading, classify, parse_value, sensor_kind
from air1_monitor.mqtt.events import MetricKind


@pytest.mark.parametrize(
    ("name", "kind"),
    [
        ("pm_1mm_weight_concentration", MetricKind.PM1),
        ("pm_2_5mm_weight_concentration", MetricKind.PM25),
        ("pm_10mm_weight_concentration", MetricKind.PM10),
        ("sen55_pm_1_to_2_5", MetricKind.PM25),
        ("pm_0_3_to_1", MetricKind.PM1),
        ("pm_2_5_to_4", MetricKind.PM25),
        ("pm_4_to_10", MetricKind.PM10),
        ("sen55_voc", MetricKind.TVOC),
        ("co2", MetricKind.CO2),
        ("sen55_temperature", MetricKind.TEMPERATURE),
        ("dps310_temp", MetricKind.TEMPERATURE),
        ("sen55_humidity", MetricKind.HUMIDITY),
    ],
)
def test_sensor_kind_known_names_any_case(name: str, kind: MetricKind) -> None:
    assert sensor_kind(name) is kind
    assert sensor_kind(name.upper()) is kind


def test_first_matching_rule_wins() -> None:
    assert sensor_kind("pm_1_to_2_5um") is MetricKind.PM25
    assert sensor_kind("co2_temperature_compensated") is MetricKind.CO2
    assert sensor_kind("sen55_voc_humidity") is MetricKind.TVOC


def test_unknown_sensor_is_unrecognized() -> None:
    assert sensor_kind("uptime") is None
    assert classify("homeassistant/sensor/air1/uptime", b"123") is None


@pytest.mark.parametrize(
    "topic",
    [
        "home/sensor/pm_2_5mm_weight_concentration",
        "home/sensor/co2",
        "home/sensor/uptime",
        "",
    ],
)
def test_non_numeric_payload_is_unrecognized(topic: str) -> None:
    assert classify(topic, b"not-a-number") is None


def test_classify_uses_last_topic_segment() -> None:
    reading = classify("homeassistant/sensor/apollo_air1/pm_2_5mm_weight_concentration", b" 12.3\n")
    assert reading == Reading(MetricKind.PM25, 12.3)


def test_classify_accepts_str_and_numeric_payloads() -> None:
    assert classify("a/co2", "415") == Reading(MetricKind.CO2, 415.0)
    assert classify("a/co2", 415) == Reading(MetricKind.CO2, 415.0)


def test_classify_trailing_slash_has_no_sensor_name() -> None:
    assert classify("a/co2/", b"415") is None


@pytest.mark.parametrize("payload", [None, b"", b"nan", b"inf", b"\xff\xfe", b"12,5"])
def test_parse_value_rejects_garbage(payload) -> None:
    assert parse_value(payload) is None
