"""Preferred key order for structured log events."""

from __future__ import annotations

DEFAULT_EVENT_KEY_ORDER: list[str] = [
    "ts",
    "level",
    "operation",
    "provider",
    "model",
    "message",
]

EVENT_KEY_ORDER: dict[str, list[str]] = {
    # Authentication events
    "auth_exchange": [
        "ts",
        "level",
        "app_id",
        "trigger",
        "latency_ms",
    ],
    "auth_error": [
        "ts",
        "level",
        "app_id",
        "trigger",
        "error_type",
        "error",
        "http_status",
    ],
    # Gateway request/response events
    "gateway_request": [
        "ts",
        "level",
        "operation",
        "provider",
        "model",
        "message_count",
        "input_chars",
        "has_state",
    ],
    "gateway_response": [
        "ts",
        "level",
        "operation",
        "provider",
        "model",
        "latency_ms",
        "http_status",
        "output_chars",
        "total_tokens",
    ],
    "gateway_error": [
        "ts",
        "level",
        "operation",
        "provider",
        "model",
        "latency_ms",
        "error_type",
        "error",
        "http_method",
        "http_url",
        "http_status",
    ],
    "gateway_retry": [
        "ts",
        "level",
        "operation",
        "attempt",
        "sleep_sec",
        "function",
        "result",
        "error_type",
        "error",
    ],
    # Streaming events
    "stream_start": [
        "ts",
        "level",
        "provider",
        "model",
        "message_count",
    ],
    "stream_complete": [
        "ts",
        "level",
        "provider",
        "model",
        "latency_ms",
        "ttft_ms",
        "delta_count",
        "output_chars",
    ],
    "stream_error": [
        "ts",
        "level",
        "provider",
        "model",
        "delta_count",
        "error_type",
        "error",
    ],
    "sse_skip": [
        "ts",
        "level",
        "reason",
        "line",
    ],
    "sse_line": [
        "ts",
        "level",
        "line",
    ],
    # Chat session events
    "chat_send": [
        "ts",
        "level",
        "provider",
        "model",
        "message_count",
        "input_chars",
        "output_chars",
    ],
    "chat_send_error": [
        "ts",
        "level",
        "provider",
        "model",
        "output_chars",
        "error_type",
        "error",
    ],
    "chat_send_cancelled": [
        "ts",
        "level",
        "provider",
        "model",
        "output_chars",
    ],
    "chat_send_skipped": [
        "ts",
        "level",
        "reason",
    ],
}
