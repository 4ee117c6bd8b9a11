"""One-shot broker check for the "Test connection" action.

Unlike the supervisor this makes exactly one attempt and raises
ConnectionCheckError on failure instead of reconnecting.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Callable, Optional

import aiomqtt

from air1_monitor.config import MqttConfig
from air1_monitor.errors import ConnectionCheckError, TlsSetupError
from air1_monitor.mqtt.supervisor import build_client, topic_base

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SEC = 3.0
VERIFY_TIMEOUT_SEC = 5.0


def status_topic(prefix: Optional[str]) -> str:
    base = topic_base(prefix)
    return f"{base}/status" if base else "status"


async def probe_tcp(host: str, port: int, timeout: float = PROBE_TIMEOUT_SEC) -> None:
    """Open and close a plain TCP connection so a bad host/port fails fast."""
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except asyncio.TimeoutError as exc:
        raise ConnectionCheckError(f"failed to reach {host}:{port}: timed out after {timeout:g}s") from exc
    except OSError as exc:
        raise ConnectionCheckError(f"failed to reach {host}:{port}: {exc}") from exc
    writer.close()
    with contextlib.suppress(OSError):
        await writer.wait_closed()


async def _handshake(cfg: MqttConfig, password: Optional[str], client_factory: Callable[..., Any]) -> None:
    async with build_client(cfg, password, clean_session=True, client_factory=client_factory) as client:
        await client.subscribe(status_topic(cfg.topic_prefix), qos=0)


async def verify_connection(
    cfg: MqttConfig,
    password: Optional[str],
    *,
    client_factory: Callable[..., Any] = aiomqtt.Client,
    probe_timeout: float = PROBE_TIMEOUT_SEC,
    timeout: float = VERIFY_TIMEOUT_SEC,
) -> None:
    await probe_tcp(cfg.host, cfg.port, probe_timeout)
    try:
        await asyncio.wait_for(_handshake(cfg, password, client_factory), timeout)
    except asyncio.TimeoutError as exc:
        raise ConnectionCheckError(f"MQTT test timed out after {timeout:g}s") from exc
    except TlsSetupError as exc:
        raise ConnectionCheckError(str(exc)) from exc
    except (aiomqtt.MqttError, OSError) as exc:
        raise ConnectionCheckError(f"MQTT error during test: {exc}") from exc
    logger.info("MQTT test against %s:%s succeeded", cfg.host, cfg.port)
