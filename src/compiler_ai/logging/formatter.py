"""Structured plaintext log formatter."""

from __future__ import annotations

import json
import logging
from typing import Any

from ..time_utils import utc_now_iso
from .sanitization import sanitize_error_message
from .schema import DEFAULT_EVENT_KEY_ORDER, EVENT_KEY_ORDER

_HTTPX_REQUEST_MSG = 'HTTP Request: %s %s "%s %d %s"'


def _decode_httpx_record(record: logging.LogRecord) -> dict[str, Any] | None:
    """Return structured fields for an httpx request log, else None."""
    if record.name != "httpx" or str(record.msg) != _HTTPX_REQUEST_MSG:
        return None
    if not isinstance(record.args, tuple) or len(record.args) != 5:
        return None
    method, url, version, status, reason = record.args
    return {
        "event": "httpx_request",
        "http_method": str(method),
        "http_url": str(url),
        "http_version": str(version),
        "http_status": int(status) if isinstance(status, int) else str(status),
        "http_reason": str(reason),
    }


class StructuredTextFormatter(logging.Formatter):
    """Render JSON log events as ``=== event ===`` blocks of ``key: value`` lines.

    Plain-text records become an event named after their logger. Every
    value is passed through ``sanitize_error_message`` so a bearer token
    that slipped into a message never reaches the log file.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._first_entry = True

    @staticmethod
    def _format_value(value: Any) -> str:
        return sanitize_error_message(str(value)).replace("\n", "\\n")

    @staticmethod
    def _ordered_keys(event_name: str, data: dict[str, Any]) -> list[str]:
        preferred = EVENT_KEY_ORDER.get(event_name, DEFAULT_EVENT_KEY_ORDER)
        present = [k for k in preferred if data.get(k) is not None]
        rest = sorted(k for k, v in data.items() if k not in preferred and v is not None)
        return present + rest

    def _record_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        message = record.getMessage()
        if message.startswith("{") and message.endswith("}"):
            try:
                parsed = json.loads(message)
            except ValueError:
                parsed = None
            if isinstance(parsed, dict):
                return parsed
        httpx_fields = _decode_httpx_record(record)
        if httpx_fields is not None:
            return httpx_fields
        return {"event": record.name, "message": message}

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {
            "ts_utc": utc_now_iso(),
            "level": record.levelname,
            "logger": record.name,
        }
        fields.update(self._record_fields(record))

        event_name = str(fields.pop("event", record.name))
        lines = [f"=== {event_name} ==="]
        lines.extend(
            f"{key}: {self._format_value(fields[key])}"
            for key in self._ordered_keys(event_name, fields)
        )
        if record.exc_info:
            lines.append("traceback:")
            lines.append(self.formatException(record.exc_info))

        body = "\n".join(lines)
        if self._first_entry:
            self._first_entry = False
            return body
        return "\n" + body
