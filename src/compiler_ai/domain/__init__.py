"""Typed domain models for messages, model selection and responses."""

from .config import (
    MODEL_REGISTRY,
    STREAMING_PROVIDERS,
    ClientConfig,
    ModelCapability,
    ModelMetadata,
    ModelProvider,
    get_models_for_provider,
    get_provider_for_model,
    supports_streaming,
)
from .message import ContentPart, ImagePart, Message, MessageState, Role, TextPart, append_app_state
from .responses import (
    ChatLogprobs,
    ChunkChoice,
    ChunkDelta,
    CompletionChunk,
    CompletionResult,
    FunctionCall,
    LogprobEntry,
    TokenUsage,
    TopLogprob,
    decode_function_calls,
)

__all__ = [
    "ChatLogprobs",
    "ChunkChoice",
    "ChunkDelta",
    "ClientConfig",
    "CompletionChunk",
    "CompletionResult",
    "ContentPart",
    "FunctionCall",
    "ImagePart",
    "LogprobEntry",
    "MODEL_REGISTRY",
    "Message",
    "MessageState",
    "ModelCapability",
    "ModelMetadata",
    "ModelProvider",
    "Role",
    "STREAMING_PROVIDERS",
    "TextPart",
    "TokenUsage",
    "TopLogprob",
    "append_app_state",
    "decode_function_calls",
    "get_models_for_provider",
    "get_provider_for_model",
    "supports_streaming",
]
