"""Credential storage for identity and access tokens."""

from .store import KeyringSecretStore, MemorySecretStore, SecretStore

__all__ = ["KeyringSecretStore", "MemorySecretStore", "SecretStore"]
