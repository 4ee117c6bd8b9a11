from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from air1_monitor.errors import ConfigError
from air1_monitor.services.dashboard_layout import DashboardConfig, normalize_dashboard

logger = logging.getLogger(__name__)

APP_VERSION = "0.4.0"

DEFAULT_CLIENT_ID = "air1-monitor"
DEFAULT_TOPIC_PREFIX = "homeassistant"


class AppConfig(BaseModel):
    name: str = "Air1 Monitor"
    version: str = APP_VERSION
    log_level: str = "INFO"


class MqttConfig(BaseModel):
    """Broker connection parameters.

    Frozen: the supervisor keeps the instance it was started with, edits
    produce a new object. The password is never part of this model.
    """

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = Field(1883, ge=1, le=65535)
    tls: bool = False
    ca_path: Optional[Path] = None
    client_id: Optional[str] = DEFAULT_CLIENT_ID
    username: Optional[str] = None
    topic_prefix: Optional[str] = None
    qos: int = Field(0, ge=0, le=2)
    keepalive_secs: int = Field(30, ge=1, le=65535)
    persistent_session: bool = True
    remember_password: bool = False
    autostart: bool = False

    @field_validator("host")
    @classmethod
    def _host_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("MQTT host must be non-empty")
        return value

    @field_validator("client_id", "username", "topic_prefix", mode="before")
    @classmethod
    def _blank_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("ca_path", mode="before")
    @classmethod
    def _blank_path_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class TelemetryConfig(BaseModel):
    poll_interval_ms: int = Field(250, ge=10)
    fresh_after_sec: int = 15
    stale_after_sec: int = 60
    temperature_unit: Literal["C", "F"] = "C"


class BackendConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8765


class Settings(BaseModel):
    app: AppConfig = AppConfig()
    mqtt: MqttConfig = MqttConfig()
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)
    telemetry: TelemetryConfig = TelemetryConfig()
    backend: BackendConfig = BackendConfig()


def find_config_path() -> Path:
    env = os.environ.get("AIR1_CONFIG_PATH")
    if env:
        return Path(env)
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "air1-monitor" / "config.yaml"


def load_or_default(path: Path | None = None) -> Settings:
    """Load settings from YAML, or defaults when the file does not exist.

    Invalid values are a load error, they are not corrected. The dashboard
    layout is normalized after every load.
    """
    path = path or find_config_path()
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.info("No config at %s, using defaults", path)
        return Settings()
    except OSError as exc:
        raise ConfigError(f"failed to read config at {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse config at {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"failed to parse config at {path}: expected a mapping")

    try:
        settings = Settings(**data)
    except ValidationError as exc:
        raise ConfigError(f"invalid config at {path}: {exc}") from exc

    return settings.model_copy(update={"dashboard": normalize_dashboard(settings.dashboard)})


def save(settings: Settings, path: Path | None = None) -> Path:
    """Write settings as YAML, readable by the owner only."""
    path = path or find_config_path()
    data = settings.model_dump(mode="json", exclude={"app": {"version"}})
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
        os.chmod(path, 0o600)
    except OSError as exc:
        raise ConfigError(f"failed to write config at {path}: {exc}") from exc
    logger.info("Saved config to %s", path)
    return path


@lru_cache
def get_settings() -> Settings:
    return load_or_default()
