"""Request body builders for the gateway endpoints."""

from __future__ import annotations

import json
from typing import Any, Sequence

from pydantic import BaseModel

from ..constants import APP_STATE_SUFFIX
from ..domain.config import ModelMetadata
from ..domain.message import Message, append_app_state


def to_json_state(state: Any) -> Any:
    """Convert pydantic models to plain JSON data; other values pass through."""
    if isinstance(state, BaseModel):
        return state.model_dump(mode="json")
    return state


def render_app_state(state: Any) -> str:
    """Render app state for prompt injection; strings pass through as-is."""
    if isinstance(state, str):
        return state
    return json.dumps(to_json_state(state), ensure_ascii=False, default=str)


def inject_app_state(messages: Sequence[Message], state: Any = None) -> list[Message]:
    """Return a copy of ``messages`` with the app state appended to the last user turn.

    ``None`` state returns a plain copy. Caller messages are never mutated.
    """
    if state is None:
        return list(messages)
    return append_app_state(list(messages), APP_STATE_SUFFIX.format(state=render_app_state(state)))


def build_function_call_body(app_id: str, prompt: str, app_state: Any) -> dict[str, Any]:
    return {"id": app_id, "prompt": prompt, "state": to_json_state(app_state)}


def build_model_call_body(
    metadata: ModelMetadata,
    messages: Sequence[Message],
    state: Any = None,
) -> dict[str, Any]:
    """Build the model-call body shared by the one-shot and streaming endpoints.

    ``temperature`` and ``maxTokens`` are omitted when unset.
    """
    body: dict[str, Any] = {
        "provider": metadata.provider,
        "model": metadata.model,
        "messages": [message.to_payload() for message in inject_app_state(messages, state)],
    }
    if metadata.temperature is not None:
        body["temperature"] = metadata.temperature
    if metadata.max_tokens is not None:
        body["maxTokens"] = metadata.max_tokens
    return body
