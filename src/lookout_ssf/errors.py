"""Error taxonomy for the relay.

Every error carries a short machine-readable ``code``. The poller and the
intake endpoint catch these at their boundaries; nothing above them sees an
unhandled failure.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for relay failures."""

    code = "relay_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class AuthConfigError(RelayError):
    """The upstream credential is absent or empty."""

    code = "auth_config"


class UpstreamAuthError(RelayError):
    """The upstream token endpoint rejected the exchange or was unreachable."""

    code = "upstream_auth"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamApiError(RelayError):
    """The upstream device listing failed."""

    code = "upstream_api"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ValidationError(RelayError):
    """A caller supplied an unusable intake request."""

    code = "invalid_request"


class KeyLoadError(RelayError):
    """The signing key could not be read or parsed."""

    code = "key_load"


class DeliveryError(RelayError):
    """The downstream receiver did not accept a security event."""

    code = "delivery_failed"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
