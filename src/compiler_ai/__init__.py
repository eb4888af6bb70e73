"""Async client SDK for the Compiler LLM gateway."""

from .auth import TokenManager
from .chat import ChatHistory, ChatSession, SendResult
from .domain import (
    ClientConfig,
    CompletionChunk,
    CompletionResult,
    FunctionCall,
    ImagePart,
    Message,
    ModelMetadata,
    TextPart,
    TokenUsage,
)
from .errors import (
    CompilerAIError,
    DecodingError,
    InvalidCredentialError,
    InvalidResponseError,
    NetworkError,
    NotAuthenticatedError,
    SecretStoreError,
    ServerError,
    UnsupportedProviderError,
)
from .gateway import GatewayClient
from .keys import KeyringSecretStore, MemorySecretStore, SecretStore
from .logging import setup_logging

__version__ = "0.1.0"

__all__ = [
    "ChatHistory",
    "ChatSession",
    "ClientConfig",
    "CompilerAIError",
    "CompletionChunk",
    "CompletionResult",
    "DecodingError",
    "FunctionCall",
    "GatewayClient",
    "ImagePart",
    "InvalidCredentialError",
    "InvalidResponseError",
    "KeyringSecretStore",
    "MemorySecretStore",
    "Message",
    "ModelMetadata",
    "NetworkError",
    "NotAuthenticatedError",
    "SecretStore",
    "SecretStoreError",
    "SendResult",
    "ServerError",
    "TextPart",
    "TokenUsage",
    "TokenManager",
    "UnsupportedProviderError",
    "setup_logging",
]
