from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, status

from air1_monitor.deps import get_controller
from air1_monitor.errors import ConfigError, SecretStoreError
from air1_monitor.schemas.settings import MqttSettingsIn, PasswordIn
from air1_monitor.services.controller import ListenerController

router = APIRouter(prefix="/api/settings", tags=["settings"])

# Keyring and config writes may block; they go through asyncio.to_thread.


def _mqtt_view(controller: ListenerController) -> dict:
    # The password itself never leaves the controller
    return {
        **controller.settings.mqtt.model_dump(mode="json"),
        "password_set": controller.password is not None,
    }


@router.get("/mqtt")
async def get_mqtt(controller: ListenerController = Depends(get_controller)):
    return _mqtt_view(controller)


@router.put("/mqtt")
async def put_mqtt(body: MqttSettingsIn, controller: ListenerController = Depends(get_controller)):
    """Update MQTT settings; applied on the next listener start."""
    try:
        controller.update_mqtt(body.model_dump(exclude_unset=True))
    except ConfigError as exc:
        raise HTTPException(422, str(exc))
    return _mqtt_view(controller)


@router.put("/password")
async def put_password(body: PasswordIn, controller: ListenerController = Depends(get_controller)):
    try:
        await asyncio.to_thread(controller.set_password, body.password)
    except ConfigError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
    except SecretStoreError as exc:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))
    return {"password_set": controller.password is not None, "notice": controller.notice}


@router.delete("/password")
async def forget_password(controller: ListenerController = Depends(get_controller)):
    try:
        await asyncio.to_thread(controller.forget_password)
    except SecretStoreError as exc:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))
    return {"password_set": False, "notice": controller.notice}


@router.post("/save")
async def save(controller: ListenerController = Depends(get_controller)):
    try:
        await asyncio.to_thread(controller.save)
    except ConfigError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
    except SecretStoreError as exc:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))
    return {"notice": controller.notice}
