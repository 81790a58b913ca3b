"""Client for the Lookout ``/mra/api/v2/devices`` listing."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx

from lookout_ssf.errors import UpstreamApiError
from lookout_ssf.risk.models import DeviceObservation
from lookout_ssf.utils.http import truncate_body
from lookout_ssf.utils.time import isoformat_z

logger = logging.getLogger(__name__)

DEVICES_PATH = "/mra/api/v2/devices"


@dataclass(frozen=True)
class DeviceListing:
    devices: tuple[DeviceObservation, ...]
    count: int | None


class LookoutDeviceClient:
    """Fetches devices changed since a point in time, one page per call."""

    def __init__(
        self,
        base_url: str,
        *,
        page_limit: int = 200,
        enterprise_guid: str | None = None,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._page_limit = page_limit
        self._enterprise_guid = enterprise_guid
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self._base_url}{DEVICES_PATH}"

    def build_params(self, since: datetime) -> dict[str, str]:
        params = {
            "limit": str(self._page_limit),
            "updated_since": isoformat_z(since),
        }
        if self._enterprise_guid:
            params["enterprise_guid"] = self._enterprise_guid
        return params

    async def list_changed_devices(self, token: str, since: datetime) -> DeviceListing:
        params = self.build_params(since)
        logger.info(
            "Fetching devices updated since %s from %s", params["updated_since"], self.url
        )
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout_seconds
            ) as client:
                resp = await client.get(
                    self.url,
                    params=params,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Accept": "application/json",
                    },
                )
        except httpx.HTTPError as exc:
            raise UpstreamApiError(f"Error calling Lookout API: {exc}") from exc

        if not resp.is_success:
            raise UpstreamApiError(
                f"Lookout API error {resp.status_code}: {truncate_body(resp.text)}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamApiError(
                "Lookout API returned a non-JSON body", status_code=resp.status_code
            ) from exc

        return self._parse_listing(data)

    @staticmethod
    def _parse_listing(data: Any) -> DeviceListing:
        if not isinstance(data, dict):
            return DeviceListing(devices=(), count=None)

        raw_devices = data.get("devices")
        records = raw_devices if isinstance(raw_devices, list) else []
        devices = tuple(
            DeviceObservation.from_record(record) for record in records if isinstance(record, dict)
        )

        count = data.get("count")
        return DeviceListing(devices=devices, count=count if isinstance(count, int) else None)
