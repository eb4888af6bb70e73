"""Model selection value objects and the known-model registry."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Literal, Optional

from ..constants import DEFAULT_BASE_URL
from ..timeouts import DEFAULT_TIMEOUT_SEC

ModelProvider = Literal["openai", "anthropic", "perplexity", "deepseek", "google"]
ModelCapability = Literal["chat", "audio", "image", "video"]

PROVIDERS: tuple[ModelProvider, ...] = (
    "openai",
    "anthropic",
    "perplexity",
    "deepseek",
    "google",
)

# Providers the gateway can stream for
STREAMING_PROVIDERS: frozenset[str] = frozenset({"openai", "anthropic", "google"})

# Model registry: provider -> known model ids
MODEL_REGISTRY: dict[str, list[str]] = {
    "openai": [
        "chatgpt-4o-latest",
        "gpt-4o-mini",
    ],
    "anthropic": [
        "claude-3-5-sonnet-latest",
        "claude-3-5-haiku-latest",
        "claude-3-5-opus-latest",
    ],
    "perplexity": [
        "sonar-reasoning",
        "sonar-pro",
        "sonar",
    ],
    "deepseek": [
        "deepseek-chat",
        "deepseek-reasoner",
    ],
    "google": [
        "gemini-2.0-flash",
    ],
}

# Reverse mapping: model -> provider
MODEL_TO_PROVIDER: dict[str, str] = {}
for _provider, _models in MODEL_REGISTRY.items():
    for _model in _models:
        MODEL_TO_PROVIDER[_model] = _provider


def get_provider_for_model(model: str) -> Optional[str]:
    """Get the provider for a known model id."""
    return MODEL_TO_PROVIDER.get(model)


def get_models_for_provider(provider: str) -> list[str]:
    return MODEL_REGISTRY.get(provider, [])


def supports_streaming(provider: str) -> bool:
    return provider in STREAMING_PROVIDERS


@dataclass(frozen=True, slots=True)
class ModelMetadata:
    """Provider, model id and sampling settings for one completion call.

    Values are never mutated; use :meth:`with_changes` to derive a new one.
    """

    provider: ModelProvider
    model: str
    capabilities: tuple[ModelCapability, ...] = ("chat",)
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    def __post_init__(self) -> None:
        if self.provider not in PROVIDERS:
            raise ValueError(f"Unknown model provider: {self.provider!r}")
        if not self.model:
            raise ValueError("Model id must not be empty")

    @classmethod
    def openai(
        cls,
        model: str = "chatgpt-4o-latest",
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> ModelMetadata:
        return cls("openai", model, temperature=temperature, max_tokens=max_tokens)

    @classmethod
    def anthropic(
        cls,
        model: str = "claude-3-5-sonnet-latest",
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> ModelMetadata:
        return cls("anthropic", model, temperature=temperature, max_tokens=max_tokens)

    @classmethod
    def perplexity(
        cls,
        model: str = "sonar",
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> ModelMetadata:
        return cls("perplexity", model, temperature=temperature, max_tokens=max_tokens)

    @classmethod
    def deepseek(
        cls,
        model: str = "deepseek-chat",
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> ModelMetadata:
        return cls("deepseek", model, temperature=temperature, max_tokens=max_tokens)

    @classmethod
    def google(
        cls,
        model: str = "gemini-2.0-flash",
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> ModelMetadata:
        return cls("google", model, temperature=temperature, max_tokens=max_tokens)

    @property
    def supports_streaming(self) -> bool:
        return supports_streaming(self.provider)

    def with_changes(self, **changes: Any) -> ModelMetadata:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def display(self) -> str:
        """Format for user-facing output, e.g. ``'openai | chatgpt-4o-latest'``."""
        return f"{self.provider} | {self.model}"


def _default_streaming_chat() -> ModelMetadata:
    return ModelMetadata.openai()


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Everything the gateway client needs to talk to the backend."""

    app_id: str
    base_url: str = DEFAULT_BASE_URL
    streaming_chat: ModelMetadata = field(default_factory=_default_streaming_chat)
    timeout_sec: float = DEFAULT_TIMEOUT_SEC
    enable_debug_logging: bool = False

    def __post_init__(self) -> None:
        if not self.app_id:
            raise ValueError("app_id must not be empty")

    @property
    def path_app_id(self) -> str:
        """App id as it appears in endpoint paths (lower-cased)."""
        return self.app_id.lower()
