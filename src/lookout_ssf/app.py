"""Application context assembly."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

import httpx

from lookout_ssf.config import Settings, load_settings
from lookout_ssf.discovery import JWKSDocument, build_discovery_document
from lookout_ssf.events.delivery import DeliveryClient
from lookout_ssf.events.forge import EventForge
from lookout_ssf.events.signing_key import SigningKeyProvider
from lookout_ssf.intake.service import IntakeService
from lookout_ssf.lookout.devices import LookoutDeviceClient
from lookout_ssf.lookout.heartbeat import PollHeartbeat
from lookout_ssf.lookout.poller import DevicePoller
from lookout_ssf.lookout.token_cache import TokenCache
from lookout_ssf.risk.state import RiskStateStore


@dataclass
class AppContext:
    """Application-wide dependency container.

    Every stateful collaborator (token slot, risk state, heartbeat, signing
    key) is created here exactly once and handed to whoever needs it.
    """

    settings: Settings
    discovery_document: dict
    jwks: JWKSDocument
    token_cache: TokenCache
    state_store: RiskStateStore
    heartbeat: PollHeartbeat
    forge: EventForge
    delivery: DeliveryClient
    intake: IntakeService
    poller: DevicePoller


def build_app_context(
    settings: Settings,
    *,
    lookout_transport: httpx.AsyncBaseTransport | None = None,
    delivery_transport: httpx.AsyncBaseTransport | None = None,
    state_store: RiskStateStore | None = None,
) -> AppContext:
    """Wire the relay from settings. Transports are injectable for tests."""
    ssf = settings.ssf
    lookout = settings.lookout
    timeout = settings.http.timeout_seconds

    key_provider = SigningKeyProvider(pem=ssf.private_key_pem, key_path=ssf.private_key_path)
    forge = EventForge(
        key_provider,
        issuer=ssf.issuer,
        audience=ssf.resolved_audience,
        key_id=ssf.key_id,
        algorithm=ssf.algorithm,
    )
    delivery = DeliveryClient(
        ssf.resolved_delivery_url,
        timeout_seconds=timeout,
        transport=delivery_transport,
    )
    intake = IntakeService(forge, delivery)

    token_cache = TokenCache(
        lookout.app_key,
        lookout.token_url,
        timeout_seconds=timeout,
        transport=lookout_transport,
    )
    device_client = LookoutDeviceClient(
        lookout.base_url,
        page_limit=lookout.page_limit,
        enterprise_guid=lookout.enterprise_guid,
        timeout_seconds=timeout,
        transport=lookout_transport,
    )
    state_store = state_store or RiskStateStore()
    heartbeat = PollHeartbeat(
        since_minutes=lookout.since_minutes,
        interval_seconds=lookout.poll_interval_seconds,
    )
    poller = DevicePoller(
        token_cache,
        device_client,
        state_store,
        intake,
        heartbeat,
        since_minutes=lookout.since_minutes,
        interval_seconds=lookout.poll_interval_seconds,
    )

    return AppContext(
        settings=settings,
        discovery_document=build_discovery_document(ssf.issuer, ssf.jwks_uri),
        jwks=JWKSDocument(ssf.jwks_path),
        token_cache=token_cache,
        state_store=state_store,
        heartbeat=heartbeat,
        forge=forge,
        delivery=delivery,
        intake=intake,
        poller=poller,
    )


@lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    """Get or create the process-wide application context."""
    return build_app_context(load_settings())
