"""TLS context for broker connections."""
from __future__ import annotations

import logging
import ssl
from typing import Optional

from air1_monitor.config import MqttConfig
from air1_monitor.errors import TlsSetupError

logger = logging.getLogger(__name__)


def build_tls_context(cfg: MqttConfig) -> Optional[ssl.SSLContext]:
    """Return an SSLContext for ``cfg`` or None when TLS is disabled.

    With ``ca_path`` set only that bundle is trusted and it must contain at
    least one certificate; otherwise the platform trust store is used.
    """
    if not cfg.tls:
        return None

    if cfg.ca_path is None:
        try:
            return ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
        except (OSError, ssl.SSLError) as exc:
            raise TlsSetupError(f"failed to load native certs: {exc}") from exc

    path = cfg.ca_path
    if not path.is_file():
        raise TlsSetupError(f"failed to read CA file at {path}")

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    try:
        context.load_verify_locations(cafile=str(path))
    except (OSError, ssl.SSLError) as exc:
        raise TlsSetupError(f"failed to parse CA certs from {path}: {exc}") from exc

    stats = context.cert_store_stats()
    if stats.get("x509", 0) == 0:
        raise TlsSetupError(f"no CA certs added from {path}")

    logger.debug("Loaded %d CA certs from %s", stats["x509"], path)
    return context
