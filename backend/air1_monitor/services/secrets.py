"""MQTT password storage in the system keyring.

"No entry" is not an error: ``get`` returns None and ``delete`` is a
no-op. Any other keyring failure raises SecretStoreError so the caller can
fall back to a session-only password.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from air1_monitor.errors import SecretStoreError

logger = logging.getLogger(__name__)

SERVICE_NAME = "com.air1.monitor"
ACCOUNT_NAME = "air1-mqtt"


class SecretStore(Protocol):
    def get(self) -> Optional[str]: ...

    def set(self, secret: str) -> None: ...

    def delete(self) -> None: ...


class KeyringSecretStore:
    def __init__(self, service: str = SERVICE_NAME, account: str = ACCOUNT_NAME) -> None:
        self.service = service
        self.account = account

    def get(self) -> Optional[str]:
        try:
            secret = keyring.get_password(self.service, self.account)
        except KeyringError as exc:
            logger.warning("failed to read password from keyring: %s", exc)
            raise SecretStoreError(f"failed to read password from keyring: {exc}") from exc
        if secret is None:
            logger.debug("no password stored in keyring")
        return secret

    def set(self, secret: str) -> None:
        try:
            keyring.set_password(self.service, self.account, secret)
        except KeyringError as exc:
            raise SecretStoreError(f"failed to write password to keyring: {exc}") from exc

    def delete(self) -> None:
        try:
            keyring.delete_password(self.service, self.account)
        except PasswordDeleteError:
            logger.debug("no keyring entry to delete")
        except KeyringError as exc:
            logger.warning("failed to delete password from keyring: %s", exc)
            raise SecretStoreError(f"failed to delete password from keyring: {exc}") from exc
