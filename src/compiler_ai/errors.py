"""Custom exception hierarchy for compiler-ai."""

from __future__ import annotations


class CompilerAIError(Exception):
    """Base class for all compiler-ai errors."""


class NotAuthenticatedError(CompilerAIError):
    """No identity token is stored; a fresh sign-in is required."""

    def __init__(self, message: str = "No identity token stored; sign in first.") -> None:
        super().__init__(message)


class InvalidCredentialError(CompilerAIError):
    """The backend rejected the credential (HTTP 401)."""

    def __init__(self, message: str = "Invalid or expired identity token.") -> None:
        super().__init__(message)


class NetworkError(CompilerAIError):
    """Transport-level failure: timeout, DNS, connection reset.

    The only error class that is safe to retry.
    """


class InvalidResponseError(CompilerAIError):
    """The backend payload was malformed or unexpected."""


class DecodingError(InvalidResponseError):
    """The backend payload did not match the expected schema."""


class ServerError(CompilerAIError):
    """Non-2xx backend response other than 401."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnsupportedProviderError(ValueError, CompilerAIError):
    """The configured provider cannot serve the requested call."""

    def __init__(self, provider: str, supported: list[str]) -> None:
        super().__init__(
            f"Provider '{provider}' does not support streaming. "
            f"Only {', '.join(supported)} support streaming."
        )
        self.provider = provider


class SecretStoreError(CompilerAIError):
    """The credential backend failed to read or write a secret."""
