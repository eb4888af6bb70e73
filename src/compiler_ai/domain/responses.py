"""Decoded backend response payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import DecodingError

P = TypeVar("P")
M = TypeVar("M", bound=BaseModel)


def _validate(model: type[M], raw: Any, what: str) -> M:
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise DecodingError(f"Invalid {what} payload: {e}") from e


class _FunctionCallPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    function: str = Field(min_length=1)
    parameters: Any = None
    colloquial_response: Optional[str] = None


@dataclass(slots=True, frozen=True)
class FunctionCall(Generic[P]):
    """One function the backend extracted from a natural-language prompt."""

    name: str
    parameters: Optional[P] = None
    colloquial_response: Optional[str] = None

    @classmethod
    def from_raw(
        cls,
        raw: Any,
        parameters_model: type[BaseModel] | None = None,
    ) -> FunctionCall[Any]:
        """Decode ``{function, parameters, colloquial_response?}``.

        With ``parameters_model`` the ``parameters`` object is validated
        into that pydantic model; otherwise it is kept as decoded JSON.
        """
        payload = _validate(_FunctionCallPayload, raw, "function call")

        parameters: Any = payload.parameters
        if parameters is not None and parameters_model is not None:
            try:
                parameters = parameters_model.model_validate(parameters)
            except ValidationError as e:
                raise DecodingError(
                    f"Parameters for '{payload.function}' do not match {parameters_model.__name__}: {e}"
                ) from e

        return cls(
            name=payload.function,
            parameters=parameters,
            colloquial_response=payload.colloquial_response,
        )


def decode_function_calls(
    raw: Any,
    parameters_model: type[BaseModel] | None = None,
) -> list[FunctionCall[Any]]:
    """Decode the function-call endpoint's JSON array."""
    if not isinstance(raw, list):
        raise DecodingError(f"Expected function call array, got {type(raw).__name__}")
    return [FunctionCall.from_raw(item, parameters_model) for item in raw]


class TokenUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class TopLogprob(BaseModel):
    """An alternative token candidate."""

    model_config = ConfigDict(frozen=True)

    token: str
    logprob: float
    bytes: Optional[list[int]] = None


class LogprobEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    logprob: float
    bytes: Optional[list[int]] = None
    top_logprobs: Optional[list[TopLogprob]] = None


class ChatLogprobs(BaseModel):
    """Per-token log probabilities for one choice."""

    model_config = ConfigDict(frozen=True)

    content: list[LogprobEntry] = Field(default_factory=list)

    @field_validator("content", mode="before")
    @classmethod
    def _null_content(cls, value: Any) -> Any:
        return [] if value is None else value


class CompletionResult(BaseModel):
    """One-shot model call result: ``{role, content, usage?}``."""

    model_config = ConfigDict(frozen=True)

    role: str
    content: str
    usage: Optional[TokenUsage] = None

    @classmethod
    def from_raw(cls, raw: Any) -> CompletionResult:
        return _validate(cls, raw, "completion")


class ChunkDelta(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Optional[str] = None
    content: Optional[str] = None


class ChunkChoice(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = 0
    delta: ChunkDelta = Field(default_factory=ChunkDelta)
    finish_reason: Optional[str] = None
    logprobs: Optional[ChatLogprobs] = None

    @field_validator("delta", mode="before")
    @classmethod
    def _null_delta(cls, value: Any) -> Any:
        return {} if value is None else value


class CompletionChunk(BaseModel):
    """One ``chat.completion.chunk`` frame of a streamed response.

    ``content``, ``role``, ``finish_reason`` and ``logprobs`` read the
    first choice; ``content`` is empty when the frame carries only a
    role or finish reason.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    model: str
    choices: list[ChunkChoice] = Field(default_factory=list)
    usage: Optional[TokenUsage] = None

    @field_validator("choices", mode="before")
    @classmethod
    def _null_choices(cls, value: Any) -> Any:
        return [] if value is None else value

    @classmethod
    def from_raw(cls, raw: Any) -> CompletionChunk:
        return _validate(cls, raw, "completion chunk")

    @property
    def content(self) -> str:
        choice = self.choices[0] if self.choices else None
        return (choice.delta.content or "") if choice else ""

    @property
    def role(self) -> Optional[str]:
        choice = self.choices[0] if self.choices else None
        return choice.delta.role if choice else None

    @property
    def finish_reason(self) -> Optional[str]:
        choice = self.choices[0] if self.choices else None
        return choice.finish_reason if choice else None

    @property
    def logprobs(self) -> Optional[ChatLogprobs]:
        choice = self.choices[0] if self.choices else None
        return choice.logprobs if choice else None
