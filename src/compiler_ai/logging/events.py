"""Structured event emission and logging helpers."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..constants import APP_NAME
from .formatter import StructuredTextFormatter
from .sanitization import sanitize_error_message

logger = logging.getLogger(APP_NAME)

# Fields that may carry credentials and are never written to logs.
_SECRET_FIELDS = {"token", "access_token", "id_token", "authorization"}


def _to_log_safe(value: Any) -> Any:
    """Convert values to JSON-serializable, log-safe representations."""
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return sanitize_error_message(value)
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _to_log_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_to_log_safe(v) for v in value]
    return sanitize_error_message(str(value))


def extract_http_error_context(error: Exception) -> dict[str, Any]:
    """Extract safe HTTP context from an exception when available."""
    context: dict[str, Any] = {}

    response = getattr(error, "response", None)
    request = getattr(error, "request", None)
    if request is None and response is not None:
        request = getattr(response, "request", None)

    if request is not None:
        method = getattr(request, "method", None)
        if method:
            context["http_method"] = str(method)
        url = getattr(request, "url", None)
        if url:
            context["http_url"] = str(url)

    status = getattr(response, "status_code", None) if response is not None else None
    if status is None:
        status = getattr(error, "status_code", None)
    if status is not None:
        context["http_status"] = status

    return context


def estimate_message_chars(messages: list[dict[str, Any]]) -> int:
    """Estimate total text length across serialized message payloads."""
    total = 0
    for msg in messages:
        content = msg.get("content", "")
        if isinstance(content, list):
            for part in content:
                if isinstance(part, dict):
                    total += len(str(part.get("text") or ""))
                else:
                    total += len(str(part))
        else:
            total += len(str(content))
    return total


def log_event(event: str, level: int = logging.INFO, **fields: Any) -> None:
    """Emit a structured log event as one JSON line on the package logger."""
    if not logger.isEnabledFor(level):
        return
    payload: dict[str, Any] = {
        "ts": datetime.now().astimezone().isoformat(),
        "event": event,
    }
    for key, value in fields.items():
        if key in _SECRET_FIELDS:
            continue
        payload[key] = _to_log_safe(value)
    logger.log(level, json.dumps(payload, ensure_ascii=False, separators=(",", ":")))


def before_sleep_log_event(
    *,
    operation: str,
    level: int = logging.WARNING,
):
    """Build a tenacity before_sleep callback that emits structured retry logs."""

    def _callback(retry_state: Any) -> None:
        try:
            outcome = getattr(retry_state, "outcome", None)
            next_action = getattr(retry_state, "next_action", None)
            if outcome is None or next_action is None:
                return

            payload: dict[str, Any] = {
                "operation": operation,
                "attempt": getattr(retry_state, "attempt_number", None),
                "sleep_sec": getattr(next_action, "sleep", None),
            }

            fn = getattr(retry_state, "fn", None)
            if fn is not None:
                payload["function"] = getattr(fn, "__name__", str(fn))

            if getattr(outcome, "failed", False):
                error = outcome.exception()
                payload["result"] = "raised"
                if error is not None:
                    payload["error_type"] = type(error).__name__
                    payload["error"] = str(error)
            else:
                payload["result"] = "returned"

            log_event("gateway_retry", level=level, **payload)
        except Exception:
            # Retry logging must never break request flow.
            return

    return _callback


def setup_logging(log_file: Optional[str] = None, *, debug: bool = False) -> None:
    """Route package and httpx logs to a structured log file.

    Without a file the package logger is silenced.
    """
    level = logging.DEBUG if debug else logging.INFO
    if not log_file:
        logger.handlers.clear()
        logger.addHandler(logging.NullHandler())
        logger.propagate = False
        return

    log_path = Path(log_file).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(str(log_path), encoding="utf-8")
    handler.setFormatter(StructuredTextFormatter())

    for name in (APP_NAME, "httpx"):
        target = logging.getLogger(name)
        target.handlers.clear()
        target.addHandler(handler)
        target.setLevel(level)
        target.propagate = False
