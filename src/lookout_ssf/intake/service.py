"""Intake of risk change notifications.

Accepts the relay's internal "Lookout event" shape, either as a raw webhook
body or as an already-built ``RiskTransition`` from the poller, and turns it
into a delivered device risk change SET::

    {
      "user": {"email": "a@example.com"},
      "risk": {"current_level": "high", "previous_level": "low", "reason": "..."},
      "event_timestamp": "2024-05-01T12:00:00Z"
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from lookout_ssf.errors import DeliveryError, RelayError, ValidationError
from lookout_ssf.events.delivery import DeliveryClient
from lookout_ssf.events.forge import EventForge
from lookout_ssf.risk.levels import normalize_risk_level
from lookout_ssf.risk.models import RiskTransition
from lookout_ssf.utils.time import parse_timestamp, utc_now

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Lookout updated device/user risk"


@dataclass(frozen=True)
class IntakeResult:
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def accepted(self) -> bool:
        return self.status_code == 202

    @classmethod
    def accepted_result(cls) -> "IntakeResult":
        return cls(202, {"status": "accepted"})

    @classmethod
    def rejected(cls, error: ValidationError) -> "IntakeResult":
        return cls(400, {"error": error.code, "detail": str(error)})

    @classmethod
    def failed(cls, message: str) -> "IntakeResult":
        return cls(500, {"error": "internal_error", "message": message})


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def parse_intake_body(raw: bytes | str) -> RiskTransition:
    """Validate an intake body and build the transition it describes."""
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    try:
        body = json.loads(text or "{}")
    except json.JSONDecodeError as exc:
        raise ValidationError(str(exc), code="invalid_json") from exc
    if not isinstance(body, dict):
        raise ValidationError("request body must be a JSON object", code="invalid_json")

    user = _as_dict(body.get("user"))
    risk = _as_dict(body.get("risk"))
    email = user.get("email")
    email = email.strip() if isinstance(email, str) else ""
    raw_current = risk.get("current_level")
    if not email or not raw_current:
        raise ValidationError(
            "user.email and risk.current_level are required", code="missing_fields"
        )

    current = normalize_risk_level(raw_current)
    previous = normalize_risk_level(risk.get("previous_level") or "low")
    if current == previous:
        raise ValidationError(
            f"risk level did not change (both normalize to {current.value})",
            code="no_transition",
        )

    raw_timestamp = body.get("event_timestamp")
    if raw_timestamp in (None, ""):
        occurred_at = utc_now()
    else:
        try:
            occurred_at = parse_timestamp(raw_timestamp)
        except (ValueError, OverflowError, OSError) as exc:
            raise ValidationError(
                f"event_timestamp is not a valid timestamp: {raw_timestamp!r}",
                code="invalid_event_timestamp",
            ) from exc

    reason = risk.get("reason")
    try:
        return RiskTransition(
            subject=email,
            previous_level=previous,
            current_level=current,
            reason=str(reason) if reason else DEFAULT_REASON,
            occurred_at=occurred_at,
        )
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


class IntakeService:
    """Forges, signs and delivers one SET per accepted transition.

    Safe to call concurrently: it holds no mutable state of its own.
    """

    def __init__(self, forge: EventForge, delivery: DeliveryClient) -> None:
        self._forge = forge
        self._delivery = delivery

    async def handle_body(self, raw: bytes | str) -> IntakeResult:
        try:
            transition = parse_intake_body(raw)
        except ValidationError as exc:
            logger.info("Rejected intake request: %s (%s)", exc, exc.code)
            return IntakeResult.rejected(exc)
        return await self.submit(transition)

    async def submit(self, transition: RiskTransition) -> IntakeResult:
        logger.info(
            "Building SET for %s (%s -> %s)",
            transition.subject,
            transition.previous_level.value,
            transition.current_level.value,
        )
        try:
            token = self._forge.sign(transition)
            await self._delivery.deliver(token)
        except DeliveryError as exc:
            logger.error(
                "SET delivery failed for %s: status=%s %s",
                transition.subject,
                exc.status_code,
                exc,
            )
            return IntakeResult.failed(str(exc))
        except RelayError as exc:
            logger.error("Failed to build SET for %s: %s (%s)", transition.subject, exc, exc.code)
            return IntakeResult.failed(str(exc))
        except Exception as exc:
            logger.exception("Unexpected intake failure for %s", transition.subject)
            return IntakeResult.failed(str(exc))

        return IntakeResult.accepted_result()
