"""Canonical chat message log with streaming support and snapshot multicast."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Optional

from ..domain.message import Message
from .broadcast import SnapshotBroadcaster


class ChatHistory:
    """In-memory conversation log driven by a single writer.

    Mutating commands are serialized by one lock and each publishes a
    snapshot before releasing it, so subscribers observe snapshots in
    command order.

    At most one message is streaming at a time and it is always the
    last one. Appending any message first seals a streaming message as
    complete with its current text.
    """

    def __init__(self, system_prompt: Optional[str] = None) -> None:
        self._messages: list[Message] = []
        if system_prompt is not None:
            self._messages.append(Message.system(system_prompt))
        self._streaming_id: Optional[str] = None
        self._lock = asyncio.Lock()
        self._broadcaster: SnapshotBroadcaster[list[Message]] = SnapshotBroadcaster(
            list(self._messages)
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def messages(self) -> list[Message]:
        """Complete messages only; a streaming message is excluded."""
        return [m for m in self._messages if not m.is_streaming]

    async def get_messages(self) -> list[Message]:
        async with self._lock:
            return self.messages

    def snapshot(self) -> list[Message]:
        """Every message, including one still streaming."""
        return list(self._messages)

    @property
    def is_streaming(self) -> bool:
        return self._streaming_id is not None

    @property
    def streaming_message_id(self) -> Optional[str]:
        return self._streaming_id

    @property
    def system_prompt(self) -> Optional[str]:
        if self._messages and self._messages[0].role == "system":
            return self._messages[0].text
        return None

    def messages_stream(self) -> AsyncIterator[list[Message]]:
        """Subscribe to full snapshots, starting with the current one.

        The iterator ends once :meth:`close` is called.
        """
        return self._broadcaster.subscribe()

    async def close(self) -> None:
        await self._broadcaster.close()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _publish(self) -> None:
        await self._broadcaster.publish(list(self._messages))

    def _streaming_index(self) -> Optional[int]:
        if self._streaming_id is None:
            return None
        for index in range(len(self._messages) - 1, -1, -1):
            if self._messages[index].id == self._streaming_id:
                return index
        return None

    def _seal_streaming(self) -> None:
        index = self._streaming_index()
        if index is not None:
            current = self._messages[index]
            self._messages[index] = current.with_text(current.text, state="complete")
        self._streaming_id = None

    async def _append(self, message: Message) -> Message:
        async with self._lock:
            if self.is_streaming:
                self._seal_streaming()
            self._messages.append(message)
            await self._publish()
        return message

    async def add_user_message(self, text: str) -> Message:
        return await self._append(Message.user(text))

    async def add_assistant_message(self, text: str) -> Message:
        return await self._append(Message.assistant(text))

    async def begin_streaming_response(self) -> str:
        """Append an empty streaming assistant message and return its id.

        A message still streaming from an earlier call is sealed as
        complete with its current text first.
        """
        message = Message.assistant("", state="streaming")
        async with self._lock:
            if self.is_streaming:
                self._seal_streaming()
            self._messages.append(message)
            self._streaming_id = message.id
            await self._publish()
        return message.id

    async def update_streaming_message(self, partial: str) -> None:
        """Replace the streaming message's text; no-op when idle."""
        async with self._lock:
            index = self._streaming_index()
            if index is None:
                return
            self._messages[index] = self._messages[index].with_text(partial)
            await self._publish()

    async def complete_streaming_message(self, final: str) -> None:
        """Set the final text and mark the message complete; no-op when idle."""
        async with self._lock:
            index = self._streaming_index()
            if index is None:
                return
            self._messages[index] = self._messages[index].with_text(final, state="complete")
            self._streaming_id = None
            await self._publish()

    async def clear_history(self, keep_system_prompt: bool = True) -> None:
        async with self._lock:
            self._streaming_id = None
            if keep_system_prompt and self._messages and self._messages[0].role == "system":
                self._messages = [self._messages[0]]
            else:
                self._messages = []
            await self._publish()
