from __future__ import annotations

from fastapi import APIRouter, Depends

from air1_monitor.deps import get_controller
from air1_monitor.schemas.metrics import MetricsOut, StatusOut
from air1_monitor.services.controller import ListenerController
from air1_monitor.services.dashboard_layout import DashboardConfig
from air1_monitor.services.telemetry import build_metrics

router = APIRouter(prefix="/api", tags=["metrics"])


@router.get("/metrics", response_model=MetricsOut)
async def metrics(controller: ListenerController = Depends(get_controller)):
    """Latest value per metric with quality labels and availability."""
    return build_metrics(controller.store, controller.settings.telemetry)


@router.get("/status", response_model=StatusOut)
async def status(controller: ListenerController = Depends(get_controller)):
    return StatusOut(
        connected=controller.store.connected,
        listener=controller.listener_state.value,
        running=controller.running,
        status=controller.store.status,
        notice=controller.notice,
        keyring_unavailable=controller.keyring_unavailable,
    )


@router.get("/dashboard", response_model=DashboardConfig)
async def dashboard(controller: ListenerController = Depends(get_controller)):
    """Normalized dashboard layout."""
    return controller.settings.dashboard
