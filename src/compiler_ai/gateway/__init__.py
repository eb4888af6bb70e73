"""Backend gateway client and wire helpers."""

from .client import GatewayClient, ensure_streaming_provider
from .payloads import build_model_call_body, inject_app_state, render_app_state
from .sse import iter_sse_chunks, iter_sse_deltas, parse_sse_line

__all__ = [
    "GatewayClient",
    "build_model_call_body",
    "ensure_streaming_provider",
    "inject_app_state",
    "iter_sse_chunks",
    "iter_sse_deltas",
    "parse_sse_line",
    "render_app_state",
]
