"""Background task: drain supervisor events on a fixed tick and notify dashboards.

A payload is pushed when events were applied or when availability changed
(fresh → stale → stalled happens with no event at all).
"""
from __future__ import annotations

import asyncio
import logging

from air1_monitor.services.controller import ListenerController
from air1_monitor.services.hub import SnapshotHub
from air1_monitor.services.telemetry import build_metrics

logger = logging.getLogger(__name__)


def pump_once(controller: ListenerController, hub: SnapshotHub, last_availability: str | None) -> str:
    applied = controller.poll()
    payload = build_metrics(controller.store, controller.settings.telemetry)
    if applied or payload.availability != last_availability:
        hub.publish({"type": "metrics", **payload.model_dump(mode="json")})
        if payload.availability != last_availability:
            logger.info("Availability: %s", payload.availability)
    return payload.availability


async def event_pump(controller: ListenerController, hub: SnapshotHub) -> None:
    availability: str | None = None
    while True:
        availability = pump_once(controller, hub, availability)
        await asyncio.sleep(controller.settings.telemetry.poll_interval_ms / 1000)
