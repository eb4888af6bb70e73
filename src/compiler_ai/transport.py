"""HTTP plumbing shared by the token manager and the gateway client."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from .constants import CONTENT_TYPE_JSON
from .errors import InvalidCredentialError, InvalidResponseError, NetworkError, ServerError
from .logging import before_sleep_log_event
from .timeouts import (
    RETRY_BACKOFF_INITIAL_SEC,
    RETRY_BACKOFF_MAX_SEC,
    STANDARD_RETRY_ATTEMPTS,
)

_STATUS_MESSAGES = {
    400: "config mismatch",
    500: "server fault",
}


def error_for_status(status_code: int) -> Optional[Exception]:
    """Map a response status to the error it represents, or None for 2xx."""
    if 200 <= status_code < 300:
        return None
    if status_code == 401:
        return InvalidCredentialError()
    message = _STATUS_MESSAGES.get(status_code, f"status {status_code}")
    return ServerError(status_code, message)


def raise_for_status(response: httpx.Response) -> None:
    error = error_for_status(response.status_code)
    if error is not None:
        raise error


def translate_transport_error(error: httpx.HTTPError) -> NetworkError:
    """Wrap an httpx transport failure as a NetworkError."""
    detail = str(error) or type(error).__name__
    return NetworkError(f"{type(error).__name__}: {detail}")


def decode_json_body(response: httpx.Response) -> Any:
    """Decode a response body as JSON, raising InvalidResponseError otherwise."""
    try:
        return response.json()
    except ValueError as e:
        raise InvalidResponseError(
            f"Backend returned a non-JSON body (status {response.status_code})"
        ) from e


def json_headers(token: Optional[str] = None, *, accept: str = CONTENT_TYPE_JSON) -> dict[str, str]:
    headers = {"Content-Type": CONTENT_TYPE_JSON, "Accept": accept}
    if token is not None:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def network_retry(operation: str):
    """Retry decorator for calls that may fail with a NetworkError.

    Auth, decode and server errors pass straight through.
    """
    return retry(
        retry=retry_if_exception_type(NetworkError),
        wait=wait_exponential_jitter(
            initial=RETRY_BACKOFF_INITIAL_SEC,
            max=RETRY_BACKOFF_MAX_SEC,
        ),
        stop=stop_after_attempt(STANDARD_RETRY_ATTEMPTS),
        before_sleep=before_sleep_log_event(
            operation=operation,
            level=logging.WARNING,
        ),
        reraise=True,
    )


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    body: dict[str, Any],
    headers: dict[str, str],
    timeout: Optional[httpx.Timeout],
) -> Any:
    """POST a JSON body and return the decoded JSON response.

    Raises NetworkError on transport failure and the mapped status error
    on any non-2xx response.
    """
    try:
        response = await client.post(url, json=body, headers=headers, timeout=timeout)
    except httpx.TransportError as e:
        raise translate_transport_error(e) from e
    raise_for_status(response)
    return decode_json_body(response)
