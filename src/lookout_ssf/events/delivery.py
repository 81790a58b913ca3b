"""Push delivery of signed SETs to the receiver's security events endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from lookout_ssf.errors import DeliveryError
from lookout_ssf.utils.http import truncate_body

logger = logging.getLogger(__name__)

SET_CONTENT_TYPE = "application/secevent+jwt"


@dataclass(frozen=True)
class DeliveryResult:
    status_code: int


class DeliveryClient:
    """Posts one SET per call. Retrying is left to the caller."""

    def __init__(
        self,
        endpoint: str,
        *,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def deliver(self, token: str) -> DeliveryResult:
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout_seconds
            ) as client:
                resp = await client.post(
                    self._endpoint,
                    content=token.encode("ascii"),
                    headers={
                        "Content-Type": SET_CONTENT_TYPE,
                        "Accept": "application/json",
                    },
                )
        except httpx.HTTPError as exc:
            raise DeliveryError(f"SET delivery to {self._endpoint} failed: {exc}") from exc

        if not resp.is_success:
            body = truncate_body(resp.text)
            logger.error("SSF receiver rejected SET: status=%s body=%s", resp.status_code, body)
            raise DeliveryError(
                f"SSF receiver returned {resp.status_code}: {body}",
                status_code=resp.status_code,
                body=body,
            )

        logger.info("SSF receiver accepted SET: %s", resp.status_code)
        return DeliveryResult(status_code=resp.status_code)
