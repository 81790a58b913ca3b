"""Value objects flowing through the relay pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from lookout_ssf.risk.levels import RiskLevel
from lookout_ssf.utils.time import parse_timestamp, utc_now


@dataclass(frozen=True)
class DeviceObservation:
    """One device record from the Lookout device listing."""

    subject: str | None
    vendor_status: str | None
    observed_at: datetime | None
    record_id: str | None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "DeviceObservation":
        observed_at: datetime | None = None
        raw_time = record.get("updated_time")
        if raw_time:
            try:
                observed_at = parse_timestamp(raw_time)
            except (ValueError, OverflowError, OSError):
                observed_at = None

        email = record.get("email")
        status = record.get("security_status")
        guid = record.get("guid")
        return cls(
            subject=str(email).strip() if email else None,
            vendor_status=str(status).strip() if status else None,
            observed_at=observed_at,
            record_id=str(guid) if guid else None,
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.subject and self.vendor_status)


@dataclass(frozen=True)
class RiskTransition:
    """A change of a subject's risk level that is worth reporting."""

    subject: str
    previous_level: RiskLevel
    current_level: RiskLevel
    reason: str
    occurred_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.subject:
            raise ValueError("RiskTransition requires a subject")
        if self.previous_level == self.current_level:
            raise ValueError(
                f"RiskTransition requires a level change (both are {self.current_level.value})"
            )
