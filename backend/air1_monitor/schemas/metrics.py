from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class MetricReading(BaseModel):
    kind: str
    title: str
    unit: str
    value: Optional[float] = None
    quality: Optional[str] = None
    level: Optional[int] = None


class MetricsOut(BaseModel):
    connected: bool
    availability: str
    status: str
    last_topic: Optional[str] = None
    last_update: Optional[datetime] = None
    age_sec: Optional[float] = None
    overall: str
    warnings: list[str] = []
    metrics: list[MetricReading] = []


class StatusOut(BaseModel):
    connected: bool
    listener: str
    running: bool
    status: str
    notice: str
    keyring_unavailable: bool
