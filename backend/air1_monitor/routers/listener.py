"""Start/stop the MQTT listener and run the one-shot connection check."""
from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from air1_monitor.deps import get_controller
from air1_monitor.errors import ConfigError, ConnectionCheckError
from air1_monitor.services.controller import ListenerController

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["listener"])


@router.post("/listener/start")
async def start_listener(controller: ListenerController = Depends(get_controller)):
    try:
        # Restarting joins the previous supervisor thread
        await asyncio.to_thread(controller.start_listener)
    except ConfigError as exc:
        raise HTTPException(422, str(exc))
    return {"running": controller.running, "notice": controller.notice}


@router.post("/listener/stop")
async def stop_listener(controller: ListenerController = Depends(get_controller)):
    await asyncio.to_thread(controller.stop_listener)
    controller.poll()
    return {"running": controller.running, "notice": controller.notice}


@router.post("/connection/verify")
async def verify_connection(controller: ListenerController = Depends(get_controller)):
    try:
        await controller.verify()
    except ConnectionCheckError as exc:
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, str(exc))
    return {"ok": True, "notice": controller.notice}
