"""Tests for the Starlette application."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import pytest
from starlette.testclient import TestClient

from lookout_ssf.app import build_app_context
from lookout_ssf.config import Settings
from lookout_ssf.errors import KeyLoadError
from lookout_ssf.events.forge import DEVICE_RISK_CHANGE, USER_RISK_CHANGE
from lookout_ssf.keys.jwks_tool import build_jwks
from lookout_ssf.transport.http_server import INTAKE_PATH, create_http_app

from conftest import ISSUER, FakeReceiver


def _client(settings: Settings, receiver: FakeReceiver, *, start_poller: bool = False) -> TestClient:
    ctx = build_app_context(settings, delivery_transport=receiver.transport)
    return TestClient(create_http_app(ctx, start_poller=start_poller))


def test_health_endpoints(make_settings: Callable[..., Settings], fake_receiver: FakeReceiver) -> None:
    with _client(make_settings(), fake_receiver) as client:
        assert client.get("/").text == "ok"
        assert client.get("/status").text == "ok"
        assert client.head("/status").status_code == 200
        assert client.get("/health").json() == {"status": "healthy"}
        assert client.get("/nope").status_code == 404


def test_discovery_document(make_settings: Callable[..., Settings], fake_receiver: FakeReceiver) -> None:
    with _client(make_settings(), fake_receiver) as client:
        response = client.get("/.well-known/ssf-configuration")

    assert response.status_code == 200
    assert response.json() == {
        "issuer": ISSUER,
        "jwks_uri": f"{ISSUER}/jwks.json",
        "delivery_methods_supported": ["push"],
        "events_supported": {DEVICE_RISK_CHANGE: {}, USER_RISK_CHANGE: {}},
    }


def test_jwks_served_verbatim(
    make_settings: Callable[..., Settings],
    fake_receiver: FakeReceiver,
    public_pem_path: Path,
) -> None:
    settings = make_settings()
    jwks = build_jwks(public_pem_path, "lookout-ssf-key-1")
    Path(settings.ssf.jwks_path).write_text(json.dumps(jwks))

    with _client(settings, fake_receiver) as client:
        response = client.get("/jwks.json")

    assert response.status_code == 200
    assert response.json() == jwks


def test_missing_jwks_is_500(make_settings: Callable[..., Settings], fake_receiver: FakeReceiver) -> None:
    with _client(make_settings(), fake_receiver) as client:
        response = client.get("/jwks.json")

    assert response.status_code == 500
    assert response.json()["error"] == "jwks_unavailable"


def test_intake_accepts_and_delivers(
    make_settings: Callable[..., Settings], fake_receiver: FakeReceiver
) -> None:
    with _client(make_settings(), fake_receiver) as client:
        response = client.post(
            INTAKE_PATH,
            json={"user": {"email": "a@x.com"}, "risk": {"current_level": "high"}},
        )

    assert response.status_code == 202
    assert response.json() == {"status": "accepted"}
    assert len(fake_receiver.requests) == 1


def test_intake_missing_email_is_400(
    make_settings: Callable[..., Settings], fake_receiver: FakeReceiver
) -> None:
    with _client(make_settings(), fake_receiver) as client:
        response = client.post(INTAKE_PATH, json={"user": {}, "risk": {"current_level": "high"}})

    assert response.status_code == 400
    assert response.json()["error"] == "missing_fields"
    assert fake_receiver.requests == []


def test_intake_invalid_json_is_400(
    make_settings: Callable[..., Settings], fake_receiver: FakeReceiver
) -> None:
    with _client(make_settings(), fake_receiver) as client:
        response = client.post(
            INTAKE_PATH, content=b"{oops", headers={"Content-Type": "application/json"}
        )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_json"


def test_intake_delivery_failure_is_500(make_settings: Callable[..., Settings]) -> None:
    receiver = FakeReceiver(status_code=500, body="down")
    with _client(make_settings(), receiver) as client:
        response = client.post(
            INTAKE_PATH,
            json={"user": {"email": "a@x.com"}, "risk": {"current_level": "medium"}},
        )

    assert response.status_code == 500
    assert response.json()["error"] == "internal_error"


def test_intake_only_accepts_post(
    make_settings: Callable[..., Settings], fake_receiver: FakeReceiver
) -> None:
    with _client(make_settings(), fake_receiver) as client:
        assert client.get(INTAKE_PATH).status_code == 405


def test_poller_status_reports_disabled(
    make_settings: Callable[..., Settings], fake_receiver: FakeReceiver
) -> None:
    with _client(make_settings(app_key=None), fake_receiver, start_poller=True) as client:
        data = client.get("/status/poller").json()

    assert data["last_result"] == "disabled"
    assert data["running"] is False
    assert data["total_polls"] == 0
    assert data["since_minutes"] == 5
    assert data["interval_seconds"] == 60
    assert data["tracked_subjects"] == 0


def test_unusable_signing_key_aborts_startup(
    make_settings: Callable[..., Settings], fake_receiver: FakeReceiver
) -> None:
    settings = make_settings()
    Path(settings.ssf.private_key_path).write_text("not a key")

    with pytest.raises(KeyLoadError, match="signing key"):
        with _client(settings, fake_receiver):
            pass
