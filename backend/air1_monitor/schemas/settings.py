from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel


class MqttSettingsIn(BaseModel):
    """Partial update of the MQTT block: only fields present in the body are applied."""

    host: Optional[str] = None
    port: Optional[int] = None
    tls: Optional[bool] = None
    ca_path: Optional[Path] = None
    client_id: Optional[str] = None
    username: Optional[str] = None
    topic_prefix: Optional[str] = None
    qos: Optional[int] = None
    keepalive_secs: Optional[int] = None
    persistent_session: Optional[bool] = None
    remember_password: Optional[bool] = None
    autostart: Optional[bool] = None


class PasswordIn(BaseModel):
    password: Optional[str] = None
