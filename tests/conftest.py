from __future__ import annotations

import asyncio
import contextlib
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from lookout_ssf.config import HTTPSettings, LookoutSettings, Settings, SSFSettings

ISSUER = "https://ssf.example.test"
OKTA_ORG = "https://example.okta.test"
LOOKOUT_BASE = "https://api.lookout.test"
TOKEN_URL = f"{LOOKOUT_BASE}/oauth2/token"
DELIVERY_URL = f"{OKTA_ORG}/security/api/v1/security-events"


@pytest.fixture(autouse=True)
def _close_default_event_loop() -> None:
    yield
    policy = asyncio.get_event_loop_policy()
    local = getattr(policy, "_local", None)
    loop = getattr(local, "_loop", None) if local is not None else None
    if loop is not None and not loop.is_running() and not loop.is_closed():
        with contextlib.suppress(Exception):
            loop.close()
    if loop is not None:
        with contextlib.suppress(Exception):
            policy.set_event_loop(None)


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def private_pem_path(tmp_path: Path, rsa_private_key: rsa.RSAPrivateKey) -> Path:
    path = tmp_path / "private.pem"
    path.write_bytes(
        rsa_private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return path


@pytest.fixture
def public_pem_path(tmp_path: Path, rsa_private_key: rsa.RSAPrivateKey) -> Path:
    path = tmp_path / "public.pem"
    path.write_bytes(
        rsa_private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )
    return path


@pytest.fixture
def make_settings(private_pem_path: Path, tmp_path: Path) -> Callable[..., Settings]:
    def _make(app_key: str | None = "app-key", **lookout_overrides: Any) -> Settings:
        lookout_data: dict[str, Any] = {
            "app_key": app_key,
            "base_url": LOOKOUT_BASE,
            "token_url": TOKEN_URL,
        }
        lookout_data.update(lookout_overrides)
        return Settings(
            ssf=SSFSettings(
                issuer=ISSUER,
                okta_org=OKTA_ORG,
                private_key_path=str(private_pem_path),
                jwks_path=str(tmp_path / "jwks.json"),
            ),
            lookout=LookoutSettings(**lookout_data),
            http=HTTPSettings(timeout_seconds=5),
        )

    return _make


class FakeLookout:
    """Scripted Lookout API: token endpoint plus a queue of device listings."""

    def __init__(self, listings: list[httpx.Response] | None = None) -> None:
        self.listings = list(listings or [])
        self.token_requests: list[httpx.Request] = []
        self.device_requests: list[httpx.Request] = []
        self.token_response: httpx.Response = httpx.Response(
            200, json={"access_token": "lookout-token", "expires_in": 3600}
        )

    def queue_devices(self, *devices: dict[str, Any]) -> None:
        self.listings.append(
            httpx.Response(200, json={"devices": list(devices), "count": len(devices)})
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth2/token":
            self.token_requests.append(request)
            return self.token_response
        if request.url.path == "/mra/api/v2/devices":
            self.device_requests.append(request)
            if self.listings:
                return self.listings.pop(0)
            return httpx.Response(200, json={"devices": [], "count": 0})
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class FakeReceiver:
    """Scripted SSF receiver capturing delivered SETs."""

    def __init__(self, status_code: int = 202, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, text=self.body)

    @property
    def tokens(self) -> list[str]:
        return [request.content.decode("ascii") for request in self.requests]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_lookout() -> FakeLookout:
    return FakeLookout()


@pytest.fixture
def fake_receiver() -> FakeReceiver:
    return FakeReceiver()
