"""Shared HTTP utilities."""

from __future__ import annotations

from urllib.parse import urlparse

_BASE_URL_ALLOWED_SCHEMES = frozenset({"http", "https"})

DIAGNOSTIC_BODY_LIMIT = 500


def normalize_base_url(value: str) -> str:
    """Normalize and validate an absolute base URL (issuer, org, API host)."""
    candidate = value.strip()
    if not candidate:
        raise ValueError("base URL must not be empty")

    parsed = urlparse(candidate)
    if parsed.scheme.lower() not in _BASE_URL_ALLOWED_SCHEMES:
        raise ValueError("base URL must use http or https")
    if not parsed.netloc:
        raise ValueError("base URL must include host")
    if parsed.query or parsed.fragment:
        raise ValueError("base URL must not include query or fragment")
    if parsed.username or parsed.password:
        raise ValueError("base URL must not include userinfo")

    normalized_path = parsed.path.rstrip("/")
    return f"{parsed.scheme.lower()}://{parsed.netloc}{normalized_path}"


def truncate_body(text: str | None, limit: int = DIAGNOSTIC_BODY_LIMIT) -> str:
    """Trim a response body for logs and error messages."""
    if not text:
        return ""
    return text[:limit]
