"""Structured logging primitives for compiler-ai."""

from .events import (
    before_sleep_log_event,
    estimate_message_chars,
    extract_http_error_context,
    log_event,
    logger,
    setup_logging,
)
from .formatter import StructuredTextFormatter
from .sanitization import sanitize_error_message
from .schema import DEFAULT_EVENT_KEY_ORDER, EVENT_KEY_ORDER

__all__ = [
    "DEFAULT_EVENT_KEY_ORDER",
    "EVENT_KEY_ORDER",
    "StructuredTextFormatter",
    "before_sleep_log_event",
    "estimate_message_chars",
    "extract_http_error_context",
    "log_event",
    "logger",
    "sanitize_error_message",
    "setup_logging",
]
