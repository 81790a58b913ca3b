"""Three-level risk scale and the normalizers that feed it."""

from __future__ import annotations

from enum import Enum


class RiskLevel(str, Enum):
    """Risk level as understood by the SSF receiver, ordered by severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.severity >= other.severity

    def __str__(self) -> str:
        return self.value


_SEVERITY = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}

# Lookout security_status values. SECURE and THREATS_LOW fall through to low.
_SECURITY_STATUS_LEVELS = {
    "THREATS_CRITICAL": RiskLevel.HIGH,
    "THREATS_HIGH": RiskLevel.HIGH,
    "THREATS_MEDIUM": RiskLevel.MEDIUM,
}

_LEVEL_WORDS = {
    "critical": RiskLevel.HIGH,
    "severe": RiskLevel.HIGH,
    "high": RiskLevel.HIGH,
    "medium": RiskLevel.MEDIUM,
    "moderate": RiskLevel.MEDIUM,
}


def risk_from_security_status(security_status: object) -> RiskLevel:
    """Map a Lookout device ``security_status`` onto the risk scale."""
    if not security_status:
        return RiskLevel.LOW
    return _SECURITY_STATUS_LEVELS.get(str(security_status).strip().upper(), RiskLevel.LOW)


def normalize_risk_level(raw: object) -> RiskLevel:
    """Normalize a free-form risk level string (``"High"``, ``"severe"``, ...)."""
    if isinstance(raw, RiskLevel):
        return raw
    if not raw:
        return RiskLevel.LOW
    return _LEVEL_WORDS.get(str(raw).strip().lower(), RiskLevel.LOW)
