"""ListenerController — owns settings, password, supervisor and metrics store.

This is the caller side of the MQTT supervisor: it validates what the
supervisor cannot (a username needs a password), persists settings and
the keyring password, and drains supervisor events into the MetricsStore.
Everything here runs on the consumer's context; only the supervisor has
its own thread.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from air1_monitor import config
from air1_monitor.config import MqttConfig, Settings
from air1_monitor.errors import ConfigError, SecretStoreError
from air1_monitor.mqtt.channel import EventChannel
from air1_monitor.mqtt.events import STOPPED_REASON, Disconnected
from air1_monitor.mqtt.supervisor import ConnectionSupervisor, SupervisorState
from air1_monitor.mqtt.verify import verify_connection
from air1_monitor.services.metrics_store import MetricsStore
from air1_monitor.services.secrets import SecretStore

logger = logging.getLogger(__name__)

STOP_TIMEOUT_SEC = 5.0


class ListenerController:
    def __init__(
        self,
        settings: Settings,
        secret_store: SecretStore,
        *,
        config_path: Optional[Path] = None,
        supervisor_factory: Callable[[], ConnectionSupervisor] = ConnectionSupervisor,
        verifier: Callable[..., Any] = verify_connection,
    ) -> None:
        self.settings = settings
        self.config_path = config_path
        self.secret_store = secret_store
        self.channel = EventChannel()
        self.store = MetricsStore()
        self.password: Optional[str] = None
        self.keyring_unavailable = False
        self.notice = ""
        self._supervisor_factory = supervisor_factory
        self._verifier = verifier
        self._supervisor: Optional[ConnectionSupervisor] = None

        if settings.mqtt.remember_password:
            try:
                self.password = secret_store.get()
            except SecretStoreError as exc:
                logger.warning("keyring load error: %s", exc)
                self.keyring_unavailable = True

    # ------------------------------------------------------------------
    # Listener lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._supervisor is not None and self._supervisor.running

    @property
    def listener_state(self) -> SupervisorState:
        if self._supervisor is None:
            return SupervisorState.IDLE
        return self._supervisor.state

    def start_listener(self) -> None:
        cfg = self.settings.mqtt
        if cfg.username and not self.password:
            raise ConfigError("Password required when username is set")
        if self._supervisor is not None:
            self.stop_listener()

        supervisor = self._supervisor_factory()
        supervisor.start(cfg, self.password, self.channel)
        self._supervisor = supervisor
        self.notice = "Starting MQTT listener..."

    def stop_listener(self, timeout: float = STOP_TIMEOUT_SEC) -> None:
        supervisor, self._supervisor = self._supervisor, None
        if supervisor is None:
            return
        if not supervisor.stop(timeout):
            logger.warning("MQTT supervisor did not exit within %.1fs", timeout)
            self._retire_channel()
        self.notice = "MQTT stopped"

    def _retire_channel(self) -> None:
        """Detach a supervisor that is still shutting down.

        Whatever it already sent is applied; anything it sends later lands on
        the closed channel and is dropped, so it cannot interleave with the
        next supervisor's events.
        """
        self.poll()
        self.channel.close()
        self.channel = EventChannel()
        self.store.apply(Disconnected(STOPPED_REASON))

    def poll(self) -> int:
        """Apply pending supervisor events to the store."""
        return self.store.drain(self.channel)

    def shutdown(self) -> None:
        self.stop_listener()
        self.poll()
        self.channel.close()

    # ------------------------------------------------------------------
    # Settings and password
    # ------------------------------------------------------------------

    def update_mqtt(self, changes: dict[str, Any]) -> MqttConfig:
        """Apply field changes; takes effect on the next listener start."""
        data = {**self.settings.mqtt.model_dump(), **changes}
        try:
            mqtt_cfg = MqttConfig(**data)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc
        self.settings = self.settings.model_copy(update={"mqtt": mqtt_cfg})
        return mqtt_cfg

    def set_password(self, password: Optional[str]) -> None:
        self.password = password or None
        if self.settings.mqtt.remember_password:
            self.save()

    def save(self) -> None:
        try:
            config.save(self.settings, self.config_path)
            if self.settings.mqtt.remember_password:
                if self.password:
                    self.secret_store.set(self.password)
            else:
                self.secret_store.delete()
        except ConfigError as exc:
            self.notice = f"Save failed: {exc}"
            raise
        except SecretStoreError as exc:
            self.keyring_unavailable = True
            self.notice = f"Save failed: {exc}"
            raise
        self.keyring_unavailable = False
        self.notice = "Saved settings"

    def forget_password(self) -> None:
        try:
            self.secret_store.delete()
        except SecretStoreError as exc:
            self.notice = f"Could not remove password: {exc}"
            raise
        self.password = None
        self.update_mqtt({"remember_password": False})
        self.notice = "Removed saved password"

    async def verify(self) -> None:
        """One-shot connection check with the current settings."""
        self.notice = "Testing connection..."
        try:
            await self._verifier(self.settings.mqtt, self.password)
        except Exception as exc:
            self.notice = f"MQTT test failed: {exc}"
            raise
        self.notice = "MQTT test succeeded"
