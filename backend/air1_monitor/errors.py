"""Exception hierarchy shared by the listener, config and secret store."""
from __future__ import annotations


class Air1Error(Exception):
    """Base class for errors raised to callers of air1_monitor."""


class ConfigError(Air1Error):
    """Invalid or unreadable configuration. Never retried."""


class TlsSetupError(Air1Error):
    """TLS context could not be built (missing or empty CA bundle)."""


class ConnectionCheckError(Air1Error):
    """One-shot broker verification failed."""


class SecretStoreError(Air1Error):
    """System keyring unavailable or refused the operation."""
