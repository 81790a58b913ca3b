"""Configuration management for the Lookout SSF relay."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from lookout_ssf.utils.http import normalize_base_url

_config_logger = logging.getLogger(__name__)

DEFAULT_KEY_ID = "lookout-ssf-key-1"
# The device listing silently caps results at 20 when no limit is sent.
LOOKOUT_DEFAULT_PAGE_CAP = 20


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class HTTPSettings(BaseModel):
    timeout_seconds: float = Field(default=15.0, gt=0, le=300)


class ServerSettings(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)


class SSFSettings(BaseModel):
    """Issuer side of the relay: who we are and where events go."""

    issuer: str
    okta_org: str
    audience: str | None = Field(
        default=None,
        description="SET audience; defaults to the Okta org URL.",
    )
    delivery_url: str | None = Field(
        default=None,
        description="Security events intake URL; derived from okta_org when unset.",
    )
    key_id: str = Field(default=DEFAULT_KEY_ID)
    algorithm: str = Field(default="RS256")
    private_key_pem: str | None = Field(default=None, repr=False)
    private_key_path: str = Field(default="./private.pem")
    jwks_path: str = Field(default="./jwks.json")

    @field_validator("issuer", "okta_org")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        return normalize_base_url(value)

    @property
    def resolved_audience(self) -> str:
        return self.audience or self.okta_org

    @property
    def resolved_delivery_url(self) -> str:
        return self.delivery_url or f"{self.okta_org}/security/api/v1/security-events"

    @property
    def jwks_uri(self) -> str:
        return f"{self.issuer}/jwks.json"

    def has_key_material(self) -> bool:
        if self.private_key_pem and self.private_key_pem.strip():
            return True
        return Path(self.private_key_path).is_file()


class LookoutSettings(BaseModel):
    app_key: str | None = Field(default=None, repr=False)
    base_url: str = Field(default="https://api.lookout.com")
    token_url: str = Field(default="https://api.lookout.com/oauth2/token")
    since_minutes: int = Field(default=5, ge=1, le=1440)
    poll_interval_seconds: int = Field(default=60, ge=1, le=86400)
    page_limit: int = Field(default=200, gt=LOOKOUT_DEFAULT_PAGE_CAP, le=1000)
    enterprise_guid: str | None = Field(default=None)

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        return normalize_base_url(value)

    @property
    def polling_enabled(self) -> bool:
        return bool(self.app_key and self.app_key.strip())


class Settings(BaseModel):
    ssf: SSFSettings
    lookout: LookoutSettings = Field(default_factory=LookoutSettings)
    http: HTTPSettings = Field(default_factory=HTTPSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="after")
    def _timeout_below_interval(self) -> "Settings":
        # A stuck cycle must finish before the next tick is due.
        if self.http.timeout_seconds >= self.lookout.poll_interval_seconds:
            raise ValueError(
                "HTTP_TIMEOUT_SECONDS must be lower than LOOKOUT_POLL_INTERVAL_SECONDS"
            )
        return self


ENV_KEYS = {
    "issuer": "SSF_ISSUER",
    "okta_org": "OKTA_ORG",
    "audience": "SSF_AUDIENCE",
    "delivery_url": "SSF_DELIVERY_URL",
    "key_id": "SSF_JWK_KID",
    "private_key": "SSF_PRIVATE_KEY",
    "private_key_path": "SSF_PRIVATE_KEY_PATH",
    "jwks_path": "SSF_JWKS_PATH",
    "app_key": "LOOKOUT_APP_KEY",
    "base_url": "LOOKOUT_BASE_URL",
    "token_url": "LOOKOUT_TOKEN_URL",
    "since_minutes": "LOOKOUT_SINCE_MINUTES",
    "poll_interval": "LOOKOUT_POLL_INTERVAL_SECONDS",
    "page_limit": "LOOKOUT_PAGE_LIMIT",
    "enterprise_guid": "LOOKOUT_ENTERPRISE_GUID",
    "http_timeout": "HTTP_TIMEOUT_SECONDS",
    "host": "HOST",
    "port": "PORT",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
}


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _env_str(key: str) -> str | None:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")

    issuer = _env_str(ENV_KEYS["issuer"])
    okta_org = _env_str(ENV_KEYS["okta_org"])
    if not issuer:
        raise RuntimeError(f"Missing {ENV_KEYS['issuer']} environment variable")
    if not okta_org:
        raise RuntimeError(f"Missing {ENV_KEYS['okta_org']} environment variable")

    defaults = LookoutSettings()
    settings_data: dict[str, object] = {
        "ssf": {
            "issuer": issuer,
            "okta_org": okta_org,
            "audience": _env_str(ENV_KEYS["audience"]),
            "delivery_url": _env_str(ENV_KEYS["delivery_url"]),
            "key_id": _env_str(ENV_KEYS["key_id"]) or DEFAULT_KEY_ID,
            "private_key_pem": os.getenv(ENV_KEYS["private_key"]) or None,
            "private_key_path": os.getenv(ENV_KEYS["private_key_path"], "./private.pem"),
            "jwks_path": os.getenv(ENV_KEYS["jwks_path"], "./jwks.json"),
        },
        "lookout": {
            # Whitespace is stripped by the token cache, which also warns about it.
            "app_key": os.getenv(ENV_KEYS["app_key"]) or None,
            "base_url": os.getenv(ENV_KEYS["base_url"], defaults.base_url),
            "token_url": os.getenv(ENV_KEYS["token_url"], defaults.token_url),
            "since_minutes": _env_int(ENV_KEYS["since_minutes"], defaults.since_minutes),
            "poll_interval_seconds": _env_int(
                ENV_KEYS["poll_interval"], defaults.poll_interval_seconds
            ),
            "page_limit": _env_int(ENV_KEYS["page_limit"], defaults.page_limit),
            "enterprise_guid": _env_str(ENV_KEYS["enterprise_guid"]),
        },
        "http": {
            "timeout_seconds": _env_float(
                ENV_KEYS["http_timeout"], HTTPSettings().timeout_seconds
            ),
        },
        "server": {
            "host": os.getenv(ENV_KEYS["host"], ServerSettings().host),
            "port": _env_int(ENV_KEYS["port"], ServerSettings().port),
        },
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _env_str(ENV_KEYS["log_file"]),
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    if not settings.ssf.has_key_material():
        raise RuntimeError(
            "Invalid configuration: signing key not found. Set SSF_PRIVATE_KEY or "
            f"point SSF_PRIVATE_KEY_PATH at a PEM file (looked for {settings.ssf.private_key_path})"
        )

    return settings
