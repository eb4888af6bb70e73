"""Typed chat message models and wire serialization helpers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Literal, TypeAlias

from ..time_utils import utc_now_iso

Role = Literal["system", "user", "assistant"]
MessageState = Literal["complete", "streaming"]

ROLES: tuple[Role, ...] = ("system", "user", "assistant")


@dataclass(slots=True, frozen=True)
class TextPart:
    """Plain text content part."""

    text: str

    def to_payload(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(slots=True, frozen=True)
class ImagePart:
    """Image reference content part (URL or data URI)."""

    url: str

    def to_payload(self) -> dict[str, Any]:
        return {"type": "image_url", "image_url": {"url": self.url}}


ContentPart: TypeAlias = TextPart | ImagePart


def _new_message_id() -> str:
    return str(uuid.uuid4())


@dataclass(slots=True, frozen=True)
class Message:
    """One conversational turn.

    Messages are immutable; the chat history replaces a message with an
    updated copy (same ``id`` and ``role``) while its text streams in.
    """

    role: Role
    content: tuple[ContentPart, ...] = ()
    state: MessageState = "complete"
    id: str = field(default_factory=_new_message_id)
    created_utc: str = field(default_factory=utc_now_iso)

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Invalid message role: {self.role!r}")

    @classmethod
    def system(cls, text: str) -> Message:
        return cls(role="system", content=(TextPart(text),))

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(role="user", content=(TextPart(text),))

    @classmethod
    def assistant(cls, text: str, *, state: MessageState = "complete") -> Message:
        return cls(role="assistant", content=(TextPart(text),), state=state)

    @classmethod
    def user_image(cls, url: str, *, caption: str | None = None) -> Message:
        """User message carrying an image, optionally with caption text."""
        parts: tuple[ContentPart, ...] = (ImagePart(url),)
        if caption:
            parts = (TextPart(caption),) + parts
        return cls(role="user", content=parts)

    @property
    def text(self) -> str:
        """All text parts joined; image parts contribute nothing."""
        return "".join(part.text for part in self.content if isinstance(part, TextPart))

    @property
    def is_streaming(self) -> bool:
        return self.state == "streaming"

    def with_text(self, text: str, *, state: MessageState | None = None) -> Message:
        """Return a copy whose text parts are replaced by ``text``.

        Image parts are kept in place after the text.
        """
        images = tuple(part for part in self.content if isinstance(part, ImagePart))
        return replace(
            self,
            content=(TextPart(text),) + images,
            state=self.state if state is None else state,
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the backend message shape (the id is not sent)."""
        return {
            "role": self.role,
            "content": [part.to_payload() for part in self.content],
        }


def append_app_state(messages: list[Message], state_text: str) -> list[Message]:
    """Return a copy of ``messages`` with ``state_text`` appended to the last user turn.

    The input list and its messages are left untouched. Without a user
    message the copy is returned unchanged.
    """
    result = list(messages)
    for index in range(len(result) - 1, -1, -1):
        if result[index].role == "user":
            original = result[index]
            result[index] = original.with_text(original.text + state_text)
            break
    return result
