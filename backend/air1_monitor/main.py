"""Air1 Monitor — dashboard backend."""
from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from air1_monitor.config import APP_VERSION, Settings, get_settings
from air1_monitor.errors import ConfigError
from air1_monitor.mqtt.supervisor import ConnectionSupervisor
from air1_monitor.routers import listener, metrics, settings as settings_router, ws
from air1_monitor.services.controller import ListenerController
from air1_monitor.services.event_pump import event_pump
from air1_monitor.services.hub import SnapshotHub
from air1_monitor.services.secrets import KeyringSecretStore, SecretStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _load_settings() -> Settings:
    try:
        return get_settings()
    except ConfigError as exc:
        logger.error("Config load error: %s (using defaults)", exc)
        return Settings()


def create_app(
    *,
    settings: Optional[Settings] = None,
    secret_store: Optional[SecretStore] = None,
    config_path: Optional[Path] = None,
    supervisor_factory: Callable[[], ConnectionSupervisor] = ConnectionSupervisor,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or _load_settings()
        logging.getLogger().setLevel(cfg.app.log_level.upper())
        logger.info("Starting %s v%s", cfg.app.name, cfg.app.version)

        # 1. Controller: keyring password, event channel, metrics store
        controller = ListenerController(
            cfg,
            secret_store or KeyringSecretStore(),
            config_path=config_path,
            supervisor_factory=supervisor_factory,
        )
        if controller.keyring_unavailable:
            logger.warning("System keyring unavailable; password is kept for this session only")
        app.state.controller = controller

        # 2. Snapshot hub for WebSocket clients
        hub = SnapshotHub()
        app.state.hub = hub

        # 3. Drain supervisor events on a fixed tick
        pump_task = asyncio.create_task(event_pump(controller, hub))

        # 4. Start MQTT listener if configured to
        if cfg.mqtt.autostart:
            try:
                controller.start_listener()
            except ConfigError as exc:
                logger.error("MQTT autostart skipped: %s", exc)

        logger.info("Backend ready on %s:%s", cfg.backend.host, cfg.backend.port)
        yield

        # Cleanup
        pump_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await pump_task
        await asyncio.to_thread(controller.shutdown)
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Air1 Monitor",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(metrics.router)
    app.include_router(listener.router)
    app.include_router(settings_router.router)
    app.include_router(ws.router)

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    cfg = _load_settings()
    uvicorn.run(app, host=cfg.backend.host, port=cfg.backend.port)


if __name__ == "__main__":
    run()
