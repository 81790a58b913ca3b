"""Lookout OAuth2 client-credentials token cache with single-flight refresh."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import httpx

from lookout_ssf.errors import AuthConfigError, UpstreamAuthError
from lookout_ssf.utils.http import truncate_body
from lookout_ssf.utils.time import utc_now

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

DEFAULT_REFRESH_MARGIN_SECONDS = 60


@dataclass(frozen=True)
class AccessToken:
    """Immutable upstream access token."""

    value: str = field(repr=False)
    expires_at: datetime

    def is_fresh(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) < self.expires_at


def sanitize_app_key(raw: str | None) -> str:
    """Strip every whitespace character (newlines from secret managers included)."""
    return _WHITESPACE.sub("", raw or "")


class TokenCache:
    """Caches one Lookout access token for the whole process.

    ``expires_at`` is stored already reduced by the refresh margin, so a token
    is handed out only while it has at least that much lifetime left.
    """

    def __init__(
        self,
        app_key: str | None,
        token_url: str,
        *,
        timeout_seconds: float = 15.0,
        refresh_margin_seconds: int = DEFAULT_REFRESH_MARGIN_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._raw_app_key = app_key or ""
        self._app_key = sanitize_app_key(app_key)
        self._token_url = token_url
        self._timeout_seconds = timeout_seconds
        self._refresh_margin = timedelta(seconds=refresh_margin_seconds)
        self._transport = transport
        self._token: AccessToken | None = None
        self._in_flight: asyncio.Future[AccessToken] | None = None
        self._lock = asyncio.Lock()
        self._warned_whitespace = False

    @property
    def configured(self) -> bool:
        return bool(self._app_key)

    @property
    def cached_token(self) -> AccessToken | None:
        return self._token

    def invalidate(self) -> None:
        """Forget the cached token; the next call performs a fresh exchange."""
        self._token = None

    async def get_token(self) -> str:
        """Return a valid access token, exchanging the app key when needed."""
        if not self._app_key:
            raise AuthConfigError("Missing LOOKOUT_APP_KEY (empty after trimming)")

        async with self._lock:
            token = self._token
            if token is not None and token.is_fresh():
                return token.value

            in_flight = self._in_flight
            if in_flight is None:
                in_flight = asyncio.get_running_loop().create_future()
                self._in_flight = in_flight
                should_exchange = True
            else:
                should_exchange = False

        if not should_exchange:
            return (await asyncio.shield(in_flight)).value

        try:
            token = await self._exchange()
        except BaseException as exc:
            async with self._lock:
                if self._in_flight is in_flight:
                    self._in_flight = None
                if not in_flight.done():
                    in_flight.set_exception(exc)
                    # Waiters re-raise it; nobody else needs to retrieve it.
                    in_flight.exception()
            raise

        async with self._lock:
            self._token = token
            if self._in_flight is in_flight:
                self._in_flight = None
            if not in_flight.done():
                in_flight.set_result(token)

        return token.value

    async def _exchange(self) -> AccessToken:
        if self._raw_app_key != self._app_key and not self._warned_whitespace:
            logger.warning("LOOKOUT_APP_KEY contained whitespace; sanitized for header use")
            self._warned_whitespace = True

        started = utc_now()
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout_seconds
            ) as client:
                resp = await client.post(
                    self._token_url,
                    headers={
                        "Accept": "application/json",
                        "Authorization": f"Bearer {self._app_key}",
                    },
                    data={"grant_type": "client_credentials"},
                )
        except httpx.HTTPError as exc:
            raise UpstreamAuthError(f"Lookout token request failed: {exc}") from exc

        if not resp.is_success:
            raise UpstreamAuthError(
                f"Lookout token request failed: {resp.status_code} {truncate_body(resp.text)}",
                status_code=resp.status_code,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise UpstreamAuthError(
                "Lookout token response is not JSON", status_code=resp.status_code
            ) from exc

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token or not isinstance(access_token, str):
            raise UpstreamAuthError(
                "Lookout token response has no access_token", status_code=resp.status_code
            )

        try:
            expires_in = int(payload.get("expires_in", 0))
        except (TypeError, ValueError):
            expires_in = 0

        expires_at = started + timedelta(seconds=expires_in) - self._refresh_margin
        logger.info("Obtained Lookout access token (expires_in=%ss)", expires_in)
        return AccessToken(value=access_token, expires_at=expires_at)
