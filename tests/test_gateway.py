"""Tests for the gateway client: one-shot calls, streaming and configuration."""

from __future__ import annotations

import json

import httpx
import pytest
from pydantic import BaseModel

from compiler_ai.domain import Message, ModelMetadata
from compiler_ai.errors import (
    DecodingError,
    InvalidCredentialError,
    InvalidResponseError,
    NetworkError,
    NotAuthenticatedError,
    ServerError,
    UnsupportedProviderError,
)
from compiler_ai.gateway import inject_app_state, render_app_state
from test_helpers import (
    AUTH_PATH,
    FUNCTION_CALL_PATH,
    MODEL_CALL_PATH,
    STREAM_PATH,
    collect,
    failing_sse_response,
    make_client,
    make_store,
    openai_model,
    request_json,
    routed_handler,
    sse_response,
)


class AddTodo(BaseModel):
    title: str
    due: str | None = None


# ----------------------------------------------------------------------
# State injection
# ----------------------------------------------------------------------


def test_inject_app_state_works_on_a_copy():
    messages = [Message.system("S"), Message.user("first"), Message.assistant("ok"), Message.user("second")]
    original = list(messages)

    injected = inject_app_state(messages, {"count": 2})

    assert messages == original
    assert messages[3].text == "second"
    assert injected[3].text == 'second\n\nThe current app state is: {"count": 2}'
    assert injected[3].id == messages[3].id
    assert injected[1].text == "first"


def test_inject_app_state_without_user_message_is_plain_copy():
    messages = [Message.system("S")]

    injected = inject_app_state(messages, {"x": 1})

    assert injected == messages
    assert injected is not messages


def test_inject_app_state_none_leaves_text_untouched():
    messages = [Message.user("hi")]
    assert inject_app_state(messages, None)[0].text == "hi"


def test_render_app_state_keeps_strings_verbatim():
    assert render_app_state("screen=home") == "screen=home"
    assert render_app_state({"a": [1, 2]}) == '{"a": [1, 2]}'
    assert render_app_state(AddTodo(title="milk")) == '{"title": "milk", "due": null}'


# ----------------------------------------------------------------------
# Function calling
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_process_function_call_sends_bearer_token_and_decodes(store):
    calls: list[httpx.Request] = []

    def _function_route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[
            {"function": "addTodo", "parameters": {"title": "milk"}, "colloquial_response": "Adding milk"},
            {"function": "clearDone"},
        ])

    client = make_client(
        routed_handler({FUNCTION_CALL_PATH: _function_route}, access_token="tok-1", calls=calls),
        store=store,
    )

    result = await client.process_function_call("add milk", {"todos": []}, parameters_model=AddTodo)

    assert [call.name for call in result] == ["addTodo", "clearDone"]
    assert result[0].parameters == AddTodo(title="milk")
    assert result[0].colloquial_response == "Adding milk"
    assert result[1].parameters is None

    assert [r.url.path for r in calls] == [AUTH_PATH, FUNCTION_CALL_PATH]
    function_request = calls[1]
    assert function_request.headers["Authorization"] == "Bearer tok-1"
    assert request_json(function_request) == {
        "id": "A1B2-App",
        "prompt": "add milk",
        "state": {"todos": []},
    }


@pytest.mark.asyncio
async def test_process_function_call_without_model_keeps_raw_parameters(store):
    def _function_route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"function": "zoom", "parameters": {"level": 3}}])

    client = make_client(routed_handler({FUNCTION_CALL_PATH: _function_route}), store=store)

    result = await client.process_function_call("zoom in", None)

    assert result[0].parameters == {"level": 3}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"function": "not-a-list"},
        [{"parameters": {}}],
        [{"function": "addTodo", "parameters": {"due": "today"}}],
    ],
)
async def test_process_function_call_shape_mismatch_raises_decoding_error(store, payload):
    def _function_route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    client = make_client(routed_handler({FUNCTION_CALL_PATH: _function_route}), store=store)

    with pytest.raises(DecodingError):
        await client.process_function_call("x", {}, parameters_model=AddTodo)


@pytest.mark.asyncio
async def test_calls_without_identity_token_raise_before_network(empty_store):
    calls: list[httpx.Request] = []
    client = make_client(routed_handler({}, calls=calls), store=empty_store)

    with pytest.raises(NotAuthenticatedError):
        await client.process_function_call("x", {})
    assert calls == []


# ----------------------------------------------------------------------
# One-shot completion
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_complete_chat_builds_body_and_decodes(store):
    calls: list[httpx.Request] = []

    def _model_route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={
            "role": "assistant",
            "content": "Paris",
            "usage": {"prompt_tokens": 5, "completion_tokens": 1, "total_tokens": 6},
        })

    client = make_client(routed_handler({MODEL_CALL_PATH: _model_route}, calls=calls), store=store)
    metadata = ModelMetadata.perplexity("sonar", temperature=0.2, max_tokens=64)
    messages = [Message.system("Be brief."), Message.user("Capital of France?")]

    result = await client.complete_chat(metadata, messages, state={"screen": "quiz"})

    assert result.role == "assistant"
    assert result.content == "Paris"
    assert result.usage is not None and result.usage.total_tokens == 6

    body = request_json(calls[-1])
    assert body["provider"] == "perplexity"
    assert body["model"] == "sonar"
    assert body["temperature"] == 0.2
    assert body["maxTokens"] == 64
    assert body["messages"] == [
        {"role": "system", "content": [{"type": "text", "text": "Be brief."}]},
        {
            "role": "user",
            "content": [{
                "type": "text",
                "text": 'Capital of France?\n\nThe current app state is: {"screen": "quiz"}',
            }],
        },
    ]
    # Caller messages were not touched.
    assert messages[1].text == "Capital of France?"


@pytest.mark.asyncio
async def test_complete_chat_omits_unset_sampling_fields(store):
    calls: list[httpx.Request] = []

    def _model_route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"role": "assistant", "content": "ok"})

    client = make_client(routed_handler({MODEL_CALL_PATH: _model_route}, calls=calls), store=store)

    result = await client.complete_chat(openai_model(), [Message.user("hi")])

    body = request_json(calls[-1])
    assert "temperature" not in body
    assert "maxTokens" not in body
    assert result.usage is None


@pytest.mark.asyncio
async def test_complete_chat_serializes_image_parts(store):
    calls: list[httpx.Request] = []

    def _model_route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"role": "assistant", "content": "a cat"})

    client = make_client(routed_handler({MODEL_CALL_PATH: _model_route}, calls=calls), store=store)

    await client.complete_chat(
        openai_model(),
        [Message.user_image("https://img.test/cat.png", caption="What is this?")],
    )

    assert request_json(calls[-1])["messages"][0]["content"] == [
        {"type": "text", "text": "What is this?"},
        {"type": "image_url", "image_url": {"url": "https://img.test/cat.png"}},
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error_type", "message"),
    [
        (400, ServerError, "config mismatch"),
        (401, InvalidCredentialError, None),
        (500, ServerError, "server fault"),
        (418, ServerError, "status 418"),
    ],
)
async def test_complete_chat_status_mapping(store, status, error_type, message):
    def _model_route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"error": "x"})

    client = make_client(routed_handler({MODEL_CALL_PATH: _model_route}), store=store)

    with pytest.raises(error_type) as exc_info:
        await client.complete_chat(openai_model(), [Message.user("hi")])

    if message is not None:
        assert str(exc_info.value) == message
        assert exc_info.value.status_code == status


@pytest.mark.asyncio
async def test_complete_chat_unparseable_body_raises_invalid_response(store):
    def _model_route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"not json at all")

    client = make_client(routed_handler({MODEL_CALL_PATH: _model_route}), store=store)

    with pytest.raises(InvalidResponseError):
        await client.complete_chat(openai_model(), [Message.user("hi")])


@pytest.mark.asyncio
async def test_server_errors_are_not_retried(store):
    calls: list[httpx.Request] = []

    def _model_route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    client = make_client(routed_handler({MODEL_CALL_PATH: _model_route}, calls=calls), store=store)

    with pytest.raises(ServerError):
        await client.complete_chat(openai_model(), [Message.user("hi")])

    assert [r.url.path for r in calls].count(MODEL_CALL_PATH) == 1


@pytest.mark.asyncio
async def test_network_errors_are_retried(store):
    model_attempts: list[httpx.Request] = []

    def _model_route(request: httpx.Request) -> httpx.Response:
        model_attempts.append(request)
        if len(model_attempts) < 2:
            raise httpx.ConnectError("reset", request=request)
        return httpx.Response(200, json={"role": "assistant", "content": "recovered"})

    client = make_client(routed_handler({MODEL_CALL_PATH: _model_route}), store=store)

    result = await client.complete_chat(openai_model(), [Message.user("hi")])

    assert result.content == "recovered"
    assert len(model_attempts) == 2


@pytest.mark.asyncio
async def test_gateway_errors_are_logged_without_tokens(store, caplog):
    caplog.set_level("INFO", logger="compiler_ai")

    def _model_route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400)

    client = make_client(
        routed_handler({MODEL_CALL_PATH: _model_route}, access_token="very-secret"),
        store=store,
    )

    with pytest.raises(ServerError):
        await client.complete_chat(openai_model(), [Message.user("hi")])

    assert '"event":"gateway_error"' in caplog.text
    assert '"http_status":400' in caplog.text
    assert "very-secret" not in caplog.text


# ----------------------------------------------------------------------
# Streaming
# ----------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize("provider", ["perplexity", "deepseek"])
async def test_stream_chat_rejects_non_streaming_provider_before_io(provider):
    calls: list[httpx.Request] = []
    client = make_client(routed_handler({}, calls=calls), store=make_store())
    metadata = ModelMetadata(provider=provider, model="m")

    with pytest.raises(UnsupportedProviderError) as exc_info:
        client.stream_chat(metadata, [Message.user("hi")])

    assert calls == []
    assert isinstance(exc_info.value, ValueError)
    assert provider in str(exc_info.value)


@pytest.mark.asyncio
async def test_stream_chat_yields_deltas(store):
    calls: list[httpx.Request] = []

    def _stream_route(request: httpx.Request) -> httpx.Response:
        return sse_response(["data: Hi", "", "data:", "data:  there", ": comment", "id: 5"])

    client = make_client(routed_handler({STREAM_PATH: _stream_route}, calls=calls), store=store)

    deltas = await collect(client.stream_chat(openai_model(), [Message.user("hi")]))

    assert deltas == ["Hi", "\n", " there"]
    stream_request = calls[-1]
    assert stream_request.headers["Accept"] == "text/event-stream"
    assert stream_request.headers["Authorization"] == "Bearer access-1"


@pytest.mark.asyncio
async def test_stream_model_response_yields_cumulative_text(store):
    def _stream_route(request: httpx.Request) -> httpx.Response:
        return sse_response(["data: Hel", "data: lo", "data:", "data: world"])

    client = make_client(routed_handler({STREAM_PATH: _stream_route}), store=store)

    values = await collect(client.stream_model_response(ModelMetadata.anthropic(), [Message.user("hi")]))

    assert values == ["Hel", "Hello", "Hello\n", "Hello\nworld"]


@pytest.mark.asyncio
async def test_stream_open_status_errors_are_mapped(store):
    def _stream_route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401)

    client = make_client(routed_handler({STREAM_PATH: _stream_route}), store=store)

    with pytest.raises(InvalidCredentialError):
        await collect(client.stream_chat(openai_model(), [Message.user("hi")]))


@pytest.mark.asyncio
async def test_stream_read_failure_surfaces_network_error_after_partial_output(store):
    attempts: list[httpx.Request] = []

    def _stream_route(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return failing_sse_response(["data: part"], httpx.ReadError("connection reset"))

    client = make_client(routed_handler({STREAM_PATH: _stream_route}), store=store)

    received: list[str] = []
    with pytest.raises(NetworkError):
        async for delta in client.stream_chat(openai_model(), [Message.user("hi")]):
            received.append(delta)

    assert received == ["part"]
    # In-flight streams are never retried.
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_stream_completion_chunks_decodes_until_done(store):
    chunk = {
        "id": "c1",
        "object": "chat.completion.chunk",
        "created": 1,
        "model": "gemini-2.0-flash",
        "choices": [{"index": 0, "delta": {"role": "assistant", "content": "Hi"}, "finish_reason": None}],
    }

    def _stream_route(request: httpx.Request) -> httpx.Response:
        return sse_response([
            "data: " + json.dumps(chunk),
            "data: {broken",
            "data: [DONE]",
        ])

    client = make_client(routed_handler({STREAM_PATH: _stream_route}), store=store)

    chunks = await collect(client.stream_completion_chunks(ModelMetadata.google(), [Message.user("hi")]))

    assert len(chunks) == 1
    assert chunks[0].content == "Hi"
    assert chunks[0].role == "assistant"


# ----------------------------------------------------------------------
# Configuration and lifecycle
# ----------------------------------------------------------------------


def test_update_streaming_chat_replaces_value_wholesale(store):
    client = make_client(routed_handler({}), store=store)
    captured = client.make_streaming_session()

    updated = client.update_streaming_chat(temperature=0.5)

    assert captured.temperature is None
    assert updated.temperature == 0.5
    assert client.configuration.streaming_chat is updated
    assert client.make_streaming_session() is updated

    switched = client.update_streaming_chat(ModelMetadata.anthropic("claude-3-5-haiku-latest"))
    assert switched.provider == "anthropic"
    assert client.configuration.streaming_chat == switched


def test_default_streaming_chat_is_openai(store):
    client = make_client(routed_handler({}), store=store)

    metadata = client.make_streaming_session()

    assert metadata.provider == "openai"
    assert metadata.model == "chatgpt-4o-latest"


@pytest.mark.asyncio
async def test_client_closes_owned_http_client():
    from compiler_ai.domain import ClientConfig
    from compiler_ai.gateway import GatewayClient

    async with GatewayClient(ClientConfig(app_id="x"), store=make_store()) as client:
        http = client._http
        assert not http.is_closed

    assert http.is_closed


@pytest.mark.asyncio
async def test_client_leaves_injected_http_client_open(store):
    client = make_client(routed_handler({}), store=store)

    await client.aclose()

    assert not client._http.is_closed
