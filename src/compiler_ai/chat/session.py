"""Send-message orchestration between the gateway and the chat history."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..domain.config import ModelMetadata
from ..gateway import GatewayClient
from ..logging import estimate_message_chars, log_event
from .history import ChatHistory


@dataclass(slots=True, frozen=True)
class SendResult:
    """Outcome of one ``send_message`` call.

    ``text`` is whatever assistant text was committed to the history,
    which may be partial when ``error`` is set or ``cancelled`` is true.
    """

    text: str = ""
    error: Optional[Exception] = None
    cancelled: bool = False
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled and not self.skipped


class ChatSession:
    """Streams assistant replies into a :class:`ChatHistory`.

    Only one send runs at a time. Whatever text arrived before a failure
    or cancellation is committed as the assistant message.
    """

    def __init__(
        self,
        client: GatewayClient,
        *,
        history: Optional[ChatHistory] = None,
        system_prompt: Optional[str] = None,
        model: Optional[ModelMetadata] = None,
    ) -> None:
        self.client = client
        self.history = history if history is not None else ChatHistory(system_prompt)
        self._model = model if model is not None else client.make_streaming_session()
        self._task: Optional[asyncio.Task[str]] = None
        self._partial = ""
        self.last_error: Optional[Exception] = None

    @property
    def model(self) -> ModelMetadata:
        return self._model

    @model.setter
    def model(self, value: ModelMetadata) -> None:
        # A send already in flight keeps the value it captured.
        self._model = value

    @property
    def is_busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> bool:
        """Cancel the in-flight send, if any. Returns True if one was running."""
        task = self._task
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def clear(self, keep_system_prompt: bool = True) -> None:
        await self.history.clear_history(keep_system_prompt=keep_system_prompt)
        self.last_error = None

    async def send_message(self, text: str, *, state: Any = None) -> SendResult:
        """Send a user message and stream the reply into the history.

        Returns immediately with ``skipped=True`` while another send is
        in flight. A failure is returned in ``SendResult.error`` after the
        partial reply is committed. If the calling task is cancelled the
        partial reply is committed and the cancellation re-raised; a
        :meth:`cancel` call instead returns ``cancelled=True``.
        """
        if self.is_busy:
            log_event("chat_send_skipped", reason="send already in flight")
            return SendResult(skipped=True)

        model = self._model
        self._partial = ""
        task = asyncio.create_task(self._stream_reply(text, model, state))
        self._task = task
        try:
            reply = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                # The caller was cancelled; wait for the reply to be committed.
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
                self._log_cancelled(model)
                raise
            self._log_cancelled(model)
            return SendResult(text=self._partial, cancelled=True)
        except Exception as e:
            self.last_error = e
            log_event(
                "chat_send_error",
                level=logging.ERROR,
                provider=model.provider,
                model=model.model,
                output_chars=len(self._partial),
                error_type=type(e).__name__,
                error=str(e),
            )
            return SendResult(text=self._partial, error=e)
        finally:
            if self._task is task:
                self._task = None

        self.last_error = None
        return SendResult(text=reply)

    def _log_cancelled(self, model: ModelMetadata) -> None:
        log_event(
            "chat_send_cancelled",
            level=logging.WARNING,
            provider=model.provider,
            model=model.model,
            output_chars=len(self._partial),
        )

    async def _stream_reply(self, text: str, model: ModelMetadata, state: Any) -> str:
        await self.history.add_user_message(text)
        await self.history.begin_streaming_response()
        context = await self.history.get_messages()

        accumulated = ""
        try:
            async for content in self.client.stream_model_response(model, context, state=state):
                accumulated = content
                self._partial = content
                await self.history.update_streaming_message(content)
        except (Exception, asyncio.CancelledError):
            await self.history.complete_streaming_message(accumulated)
            raise

        await self.history.complete_streaming_message(accumulated)
        payloads = [message.to_payload() for message in context]
        log_event(
            "chat_send",
            provider=model.provider,
            model=model.model,
            message_count=len(context),
            input_chars=estimate_message_chars(payloads),
            output_chars=len(accumulated),
        )
        return accumulated
