"""Backend gateway client: function calling, one-shot and streaming completions.

Every operation derives a fresh access token from the token manager right
before its network call. Transport failures surface as ``NetworkError``;
httpx exceptions never escape this module.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Any, AsyncIterator, Callable, Optional, Sequence, TypeVar

import httpx
from pydantic import BaseModel

from ..auth import TokenManager
from ..constants import (
    CONTENT_TYPE_EVENT_STREAM,
    FUNCTION_CALL_ENDPOINT,
    MODEL_CALL_ENDPOINT,
    MODEL_CALL_STREAM_ENDPOINT,
)
from ..domain.config import STREAMING_PROVIDERS, ClientConfig, ModelMetadata
from ..domain.message import Message
from ..domain.responses import (
    CompletionChunk,
    CompletionResult,
    FunctionCall,
    decode_function_calls,
)
from ..errors import UnsupportedProviderError
from ..keys import KeyringSecretStore, SecretStore
from ..logging import estimate_message_chars, extract_http_error_context, log_event
from ..time_utils import elapsed_ms
from ..timeouts import build_httpx_timeout, resolve_read_timeout
from ..transport import (
    error_for_status,
    json_headers,
    network_retry,
    post_json,
    translate_transport_error,
)
from .payloads import build_function_call_body, build_model_call_body
from .sse import iter_sse_chunks, iter_sse_deltas

T = TypeVar("T")


def ensure_streaming_provider(metadata: ModelMetadata) -> None:
    """Raise UnsupportedProviderError unless the provider can stream."""
    if metadata.provider not in STREAMING_PROVIDERS:
        raise UnsupportedProviderError(metadata.provider, sorted(STREAMING_PROVIDERS))


async def _iter_response_lines(response: httpx.Response) -> AsyncIterator[str]:
    try:
        async for line in response.aiter_lines():
            yield line
    except httpx.TransportError as e:
        raise translate_transport_error(e) from e


class GatewayClient:
    """Async client for the hosted gateway.

    Owns an ``httpx.AsyncClient`` unless one is injected; use as an async
    context manager or call :meth:`aclose` when done.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        store: Optional[SecretStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        token_manager: Optional[TokenManager] = None,
    ) -> None:
        self._config = config
        self._owns_http = http_client is None
        self._http = http_client if http_client is not None else httpx.AsyncClient()
        self.store: SecretStore = store if store is not None else KeyringSecretStore()
        self.tokens = token_manager or TokenManager(
            config.app_id,
            config.base_url,
            self.store,
            self._http,
            timeout_sec=config.timeout_sec,
        )
        self._timeout = build_httpx_timeout(resolve_read_timeout(config.timeout_sec))
        self._stream_timeout = build_httpx_timeout(
            resolve_read_timeout(config.timeout_sec, stream=True)
        )

    async def __aenter__(self) -> GatewayClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def configuration(self) -> ClientConfig:
        return self._config

    def update_streaming_chat(
        self,
        metadata: Optional[ModelMetadata] = None,
        **changes: Any,
    ) -> ModelMetadata:
        """Replace the streaming model value and return the new one.

        Pass a whole ``metadata`` value, field ``changes`` applied to the
        current value, or both (changes applied on top of ``metadata``).
        """
        updated = metadata if metadata is not None else self._config.streaming_chat
        if changes:
            updated = updated.with_changes(**changes)
        self._config = replace(self._config, streaming_chat=updated)
        return updated

    def make_streaming_session(self) -> ModelMetadata:
        """Capture the current streaming model value."""
        return self._config.streaming_chat

    def _url(self, template: str) -> str:
        return self._config.base_url.rstrip("/") + template.format(
            app_id=self._config.path_app_id
        )

    # ------------------------------------------------------------------
    # One-shot calls
    # ------------------------------------------------------------------

    @network_retry("gateway_post")
    async def _post_with_retry(self, url: str, body: dict[str, Any], token: str) -> Any:
        return await post_json(
            self._http,
            url,
            body=body,
            headers=json_headers(token),
            timeout=self._timeout,
        )

    async def _call(
        self,
        operation: str,
        url: str,
        body: dict[str, Any],
        decode: Callable[[Any], T],
        *,
        metadata: Optional[ModelMetadata] = None,
        has_state: bool = False,
    ) -> T:
        token = await self.tokens.get_valid_token()
        model_fields: dict[str, Any] = {}
        if metadata is not None:
            model_fields = {"provider": metadata.provider, "model": metadata.model}
        messages = body.get("messages") or []

        log_event(
            "gateway_request",
            operation=operation,
            message_count=len(messages),
            input_chars=estimate_message_chars(messages),
            has_state=has_state,
            **model_fields,
        )
        started = time.perf_counter()
        try:
            result = decode(await self._post_with_retry(url, body, token))
        except Exception as e:
            log_event(
                "gateway_error",
                level=logging.ERROR,
                operation=operation,
                latency_ms=elapsed_ms(started),
                error_type=type(e).__name__,
                error=str(e),
                **model_fields,
                **extract_http_error_context(e),
            )
            raise

        log_event(
            "gateway_response",
            operation=operation,
            latency_ms=elapsed_ms(started),
            **model_fields,
        )
        return result

    async def process_function_call(
        self,
        prompt: str,
        app_state: Any,
        *,
        parameters_model: type[BaseModel] | None = None,
    ) -> list[FunctionCall[Any]]:
        """Extract function calls from a natural-language prompt.

        Args:
            prompt: User utterance to interpret
            app_state: JSON-encodable (or pydantic) snapshot of the app state
            parameters_model: Optional pydantic model each call's
                ``parameters`` object is validated against

        Raises:
            DecodingError: the reply is not an array of function calls,
                or parameters fail validation
        """
        return await self._call(
            "process_function_call",
            self._url(FUNCTION_CALL_ENDPOINT),
            build_function_call_body(self._config.app_id, prompt, app_state),
            lambda raw: decode_function_calls(raw, parameters_model),
            has_state=app_state is not None,
        )

    async def complete_chat(
        self,
        metadata: ModelMetadata,
        messages: Sequence[Message],
        *,
        state: Any = None,
    ) -> CompletionResult:
        """Run a single non-streaming completion."""
        return await self._call(
            "complete_chat",
            self._url(MODEL_CALL_ENDPOINT),
            build_model_call_body(metadata, messages, state),
            CompletionResult.from_raw,
            metadata=metadata,
            has_state=state is not None,
        )

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    @network_retry("open_stream")
    async def _send_stream_request(self, body: dict[str, Any], token: str) -> httpx.Response:
        request = self._http.build_request(
            "POST",
            self._url(MODEL_CALL_STREAM_ENDPOINT),
            json=body,
            headers=json_headers(token, accept=CONTENT_TYPE_EVENT_STREAM),
            timeout=self._stream_timeout,
        )
        try:
            response = await self._http.send(request, stream=True)
        except httpx.TransportError as e:
            raise translate_transport_error(e) from e

        error = error_for_status(response.status_code)
        if error is not None:
            await response.aclose()
            raise error
        return response

    @asynccontextmanager
    async def _open_stream(self, body: dict[str, Any]) -> AsyncIterator[httpx.Response]:
        token = await self.tokens.get_valid_token()
        response = await self._send_stream_request(body, token)
        try:
            yield response
        finally:
            await response.aclose()

    def stream_chat(
        self,
        metadata: ModelMetadata,
        messages: Sequence[Message],
        *,
        state: Any = None,
    ) -> AsyncIterator[str]:
        """Stream raw content deltas for a completion.

        Raises UnsupportedProviderError immediately, before any token
        exchange or network I/O, for providers that cannot stream.
        """
        ensure_streaming_provider(metadata)
        body = build_model_call_body(metadata, messages, state)
        return self._stream_deltas(metadata, body)

    async def _stream_deltas(
        self,
        metadata: ModelMetadata,
        body: dict[str, Any],
    ) -> AsyncIterator[str]:
        started = time.perf_counter()
        ttft_ms: Optional[float] = None
        delta_count = 0
        output_chars = 0
        log_event(
            "stream_start",
            provider=metadata.provider,
            model=metadata.model,
            message_count=len(body["messages"]),
        )
        try:
            async with self._open_stream(body) as response:
                lines = _iter_response_lines(response)
                async for delta in iter_sse_deltas(
                    lines, debug=self._config.enable_debug_logging
                ):
                    if ttft_ms is None:
                        ttft_ms = elapsed_ms(started)
                    delta_count += 1
                    output_chars += len(delta)
                    yield delta
        except Exception as e:
            log_event(
                "stream_error",
                level=logging.ERROR,
                provider=metadata.provider,
                model=metadata.model,
                delta_count=delta_count,
                error_type=type(e).__name__,
                error=str(e),
                **extract_http_error_context(e),
            )
            raise

        log_event(
            "stream_complete",
            provider=metadata.provider,
            model=metadata.model,
            latency_ms=elapsed_ms(started),
            ttft_ms=ttft_ms,
            delta_count=delta_count,
            output_chars=output_chars,
        )

    def stream_model_response(
        self,
        metadata: ModelMetadata,
        messages: Sequence[Message],
        *,
        state: Any = None,
    ) -> AsyncIterator[str]:
        """Stream the cumulative assistant text after every delta."""
        deltas = self.stream_chat(metadata, messages, state=state)
        return self._accumulate(deltas)

    @staticmethod
    async def _accumulate(deltas: AsyncIterator[str]) -> AsyncIterator[str]:
        content = ""
        async for delta in deltas:
            content += delta
            yield content

    def stream_completion_chunks(
        self,
        metadata: ModelMetadata,
        messages: Sequence[Message],
        *,
        state: Any = None,
    ) -> AsyncIterator[CompletionChunk]:
        """Stream typed ``chat.completion.chunk`` frames until ``[DONE]``."""
        ensure_streaming_provider(metadata)
        body = build_model_call_body(metadata, messages, state)
        return self._stream_chunks(body)

    async def _stream_chunks(self, body: dict[str, Any]) -> AsyncIterator[CompletionChunk]:
        async with self._open_stream(body) as response:
            lines = _iter_response_lines(response)
            async for chunk in iter_sse_chunks(lines, debug=self._config.enable_debug_logging):
                yield chunk
