"""Security Event Token construction, signing and delivery."""

from lookout_ssf.events.delivery import DeliveryClient, DeliveryResult
from lookout_ssf.events.forge import (
    DEVICE_RISK_CHANGE,
    SUPPORTED_EVENT_TYPES,
    USER_RISK_CHANGE,
    EventForge,
)
from lookout_ssf.events.signing_key import SigningKeyProvider

__all__ = [
    "DEVICE_RISK_CHANGE",
    "DeliveryClient",
    "DeliveryResult",
    "EventForge",
    "SUPPORTED_EVENT_TYPES",
    "SigningKeyProvider",
    "USER_RISK_CHANGE",
]
