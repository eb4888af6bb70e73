"""Async secret store interface and implementations.

Secrets are named by ``(service, account)``. The token manager reads and
writes them on every call and never caches a value itself.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol

from . import backends


class SecretStore(Protocol):
    """Named string secrets keyed by ``(service, account)``."""

    async def save(self, value: str, service: str, account: str) -> None: ...

    async def read(self, service: str, account: str) -> Optional[str]: ...

    async def delete(self, service: str, account: str) -> None: ...


class KeyringSecretStore:
    """Secret store backed by the system credential store.

    keyring calls block, so each one runs in a worker thread.
    """

    async def save(self, value: str, service: str, account: str) -> None:
        await asyncio.to_thread(backends.store_in_keyring, service, account, value)

    async def read(self, service: str, account: str) -> Optional[str]:
        return await asyncio.to_thread(backends.read_from_keyring, service, account)

    async def delete(self, service: str, account: str) -> None:
        await asyncio.to_thread(backends.delete_from_keyring, service, account)


class MemorySecretStore:
    """In-process secret store for tests and embedding."""

    def __init__(self, initial: Optional[dict[tuple[str, str], str]] = None) -> None:
        self._values: dict[tuple[str, str], str] = dict(initial or {})

    async def save(self, value: str, service: str, account: str) -> None:
        self._values[(service, account)] = value

    async def read(self, service: str, account: str) -> Optional[str]:
        return self._values.get((service, account))

    async def delete(self, service: str, account: str) -> None:
        self._values.pop((service, account), None)

    def get(self, service: str, account: str) -> Optional[str]:
        """Synchronous lookup, handy in assertions."""
        return self._values.get((service, account))
