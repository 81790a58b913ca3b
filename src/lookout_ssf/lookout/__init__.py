"""Lookout Mobile Risk API integration: auth, device listing and polling."""

from lookout_ssf.lookout.devices import DeviceListing, LookoutDeviceClient
from lookout_ssf.lookout.heartbeat import HeartbeatSnapshot, PollHeartbeat, PollResult
from lookout_ssf.lookout.poller import DevicePoller
from lookout_ssf.lookout.token_cache import AccessToken, TokenCache

__all__ = [
    "AccessToken",
    "DeviceListing",
    "DevicePoller",
    "HeartbeatSnapshot",
    "LookoutDeviceClient",
    "PollHeartbeat",
    "PollResult",
    "TokenCache",
]
