"""Builds and signs device/user risk change Security Event Tokens."""

from __future__ import annotations

import logging
import uuid
from typing import Any

import jwt

from lookout_ssf.errors import KeyLoadError, RelayError
from lookout_ssf.events.signing_key import SigningKeyProvider
from lookout_ssf.risk.models import RiskTransition
from lookout_ssf.utils.time import epoch_seconds, utc_now

logger = logging.getLogger(__name__)

DEVICE_RISK_CHANGE = "https://schemas.okta.com/secevent/okta/event-type/device-risk-change"
USER_RISK_CHANGE = "https://schemas.okta.com/secevent/okta/event-type/user-risk-change"
SUPPORTED_EVENT_TYPES = (DEVICE_RISK_CHANGE, USER_RISK_CHANGE)

SET_TYPE = "secevent+jwt"
INITIATING_ENTITY = "system"


class EventForge:
    """Turns a ``RiskTransition`` into a compact, signed SET."""

    def __init__(
        self,
        key_provider: SigningKeyProvider,
        *,
        issuer: str,
        audience: str,
        key_id: str,
        algorithm: str = "RS256",
        event_type: str = DEVICE_RISK_CHANGE,
    ) -> None:
        if event_type not in SUPPORTED_EVENT_TYPES:
            raise ValueError(f"Unsupported event type: {event_type}")
        self._key_provider = key_provider
        self._issuer = issuer
        self._audience = audience
        self._key_id = key_id
        self._algorithm = algorithm
        self._event_type = event_type

    @property
    def event_type(self) -> str:
        return self._event_type

    def build_payload(self, transition: RiskTransition) -> dict[str, Any]:
        return {
            "iss": self._issuer,
            "aud": self._audience,
            "iat": epoch_seconds(utc_now()),
            "jti": str(uuid.uuid4()),
            "events": {
                self._event_type: {
                    "event_timestamp": epoch_seconds(transition.occurred_at),
                    "current_level": transition.current_level.value,
                    "previous_level": transition.previous_level.value,
                    "initiating_entity": INITIATING_ENTITY,
                    "reason_admin": {"en": transition.reason},
                    "subject": {
                        "user": {
                            "format": "email",
                            "email": transition.subject,
                        }
                    },
                }
            },
        }

    def headers(self) -> dict[str, str]:
        return {"typ": SET_TYPE, "kid": self._key_id}

    def sign(self, transition: RiskTransition) -> str:
        payload = self.build_payload(transition)
        key = self._key_provider.get_key()
        try:
            token = jwt.encode(payload, key, algorithm=self._algorithm, headers=self.headers())
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            raise RelayError(f"Failed to sign SET: {exc}", code="signing_failed") from exc

        logger.debug(
            "Signed SET jti=%s for %s (%s -> %s)",
            payload["jti"],
            transition.subject,
            transition.previous_level.value,
            transition.current_level.value,
        )
        return token

    def warm_up(self) -> None:
        """Load the signing key now so an unusable key fails at boot."""
        try:
            self._key_provider.get_key()
        except KeyLoadError:
            logger.critical("Signing key could not be loaded; refusing to start")
            raise
