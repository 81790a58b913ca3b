"""Risk levels, transitions and per-subject risk state."""

from lookout_ssf.risk.levels import (
    RiskLevel,
    normalize_risk_level,
    risk_from_security_status,
)
from lookout_ssf.risk.models import DeviceObservation, RiskTransition
from lookout_ssf.risk.state import InMemoryRiskStateBackend, RiskStateBackend, RiskStateStore

__all__ = [
    "DeviceObservation",
    "InMemoryRiskStateBackend",
    "RiskLevel",
    "RiskStateBackend",
    "RiskStateStore",
    "RiskTransition",
    "normalize_risk_level",
    "risk_from_security_status",
]
