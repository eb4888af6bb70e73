"""Identity-token to access-token exchange.

The identity token obtained from the platform sign-in flow acts as a
long-lived refresh credential. Every call re-derives a short-lived access
token from it; nothing is cached in memory.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import httpx

from ..constants import ACCESS_TOKEN_SERVICE, AUTH_ENDPOINT, IDENTITY_TOKEN_SERVICE, TOKEN_ACCOUNT
from ..errors import InvalidCredentialError, InvalidResponseError, NotAuthenticatedError
from ..keys import SecretStore
from ..logging import extract_http_error_context, log_event
from ..time_utils import elapsed_ms
from ..timeouts import DEFAULT_TIMEOUT_SEC, build_httpx_timeout, resolve_read_timeout
from ..transport import json_headers, network_retry, post_json


class TokenManager:
    """Exchanges the stored identity token for fresh access tokens."""

    def __init__(
        self,
        app_id: str,
        base_url: str,
        store: SecretStore,
        http_client: httpx.AsyncClient,
        *,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
    ) -> None:
        self.app_id = app_id
        self.base_url = base_url.rstrip("/")
        self.store = store
        self._http = http_client
        self._timeout = build_httpx_timeout(resolve_read_timeout(timeout_sec))

    @property
    def auth_url(self) -> str:
        return self.base_url + AUTH_ENDPOINT.format(app_id=self.app_id.lower())

    async def _read_identity_token(self) -> Optional[str]:
        return await self.store.read(IDENTITY_TOKEN_SERVICE, TOKEN_ACCOUNT)

    async def _exchange_and_save(self, id_token: str, *, trigger: str) -> str:
        access_token = await self.authenticate_with_server(id_token, trigger=trigger)
        await self.store.save(access_token, ACCESS_TOKEN_SERVICE, TOKEN_ACCOUNT)
        return access_token

    async def get_valid_token(self) -> str:
        """Return a freshly exchanged access token.

        Raises:
            NotAuthenticatedError: no identity token is stored
            InvalidCredentialError: the backend rejected the identity token
        """
        id_token = await self._read_identity_token()
        if id_token is None:
            raise NotAuthenticatedError()
        return await self._exchange_and_save(id_token, trigger="get_valid_token")

    async def attempt_auto_login(self) -> bool:
        """Try to sign in silently with the stored identity token.

        Returns False when no token is stored or the backend rejects it;
        any other failure propagates.
        """
        id_token = await self._read_identity_token()
        if id_token is None:
            return False
        try:
            await self._exchange_and_save(id_token, trigger="auto_login")
        except InvalidCredentialError:
            return False
        return True

    async def sign_in(self, id_token: str) -> bool:
        """Store an identity token from an external sign-in flow and exchange it."""
        if not id_token:
            raise InvalidCredentialError("Sign-in returned an empty identity token.")
        await self.store.save(id_token, IDENTITY_TOKEN_SERVICE, TOKEN_ACCOUNT)
        await self._exchange_and_save(id_token, trigger="sign_in")
        return True

    async def sign_out(self) -> None:
        """Forget both stored tokens."""
        await self.store.delete(IDENTITY_TOKEN_SERVICE, TOKEN_ACCOUNT)
        await self.store.delete(ACCESS_TOKEN_SERVICE, TOKEN_ACCOUNT)

    async def authenticate_with_server(self, id_token: str, *, trigger: str = "explicit") -> str:
        """POST the identity token and return the access token from the reply."""
        started = time.perf_counter()
        try:
            data = await self._post_identity_token(id_token)
            access_token = data.get("access_token") if isinstance(data, dict) else None
            if not isinstance(access_token, str) or not access_token:
                raise InvalidResponseError("Auth response is missing 'access_token'")
        except Exception as e:
            log_event(
                "auth_error",
                level=logging.ERROR,
                app_id=self.app_id,
                trigger=trigger,
                error_type=type(e).__name__,
                error=str(e),
                **extract_http_error_context(e),
            )
            raise

        log_event(
            "auth_exchange",
            app_id=self.app_id,
            trigger=trigger,
            latency_ms=elapsed_ms(started),
        )
        return access_token

    @network_retry("authenticate_with_server")
    async def _post_identity_token(self, id_token: str):
        return await post_json(
            self._http,
            self.auth_url,
            body={"id_token": id_token},
            headers=json_headers(),
            timeout=self._timeout,
        )
