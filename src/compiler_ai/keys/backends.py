"""System credential store access via keyring."""

from __future__ import annotations

import sys
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ..errors import SecretStoreError


def _credential_store_name() -> str:
    """Return a human-readable name for the platform's credential store."""
    if sys.platform == "darwin":
        return "macOS Keychain"
    elif sys.platform == "win32":
        return "Windows Credential Manager"
    else:
        return "system credential store"


def read_from_keyring(service: str, account: str) -> Optional[str]:
    """Read a secret; a missing or empty entry reads as ``None``."""
    try:
        value = keyring.get_password(service, account)
    except KeyringError as e:
        raise SecretStoreError(
            f"Failed to access {_credential_store_name()}: {e}\n"
            f"Service: {service}, Account: {account}"
        ) from e

    if not isinstance(value, str) or not value:
        return None
    return value


def store_in_keyring(service: str, account: str, value: str) -> None:
    """Store a secret, replacing any existing entry."""
    try:
        keyring.set_password(service, account, value)
    except KeyringError as e:
        raise SecretStoreError(
            f"Failed to store secret in {_credential_store_name()}: {e}"
        ) from e


def delete_from_keyring(service: str, account: str) -> None:
    """Remove a secret; deleting a missing entry is not an error."""
    try:
        keyring.delete_password(service, account)
    except PasswordDeleteError:
        return
    except KeyringError as e:
        raise SecretStoreError(
            f"Failed to delete secret from {_credential_store_name()}: {e}"
        ) from e
