"""SSF transmitter metadata: discovery document and published key set."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

from lookout_ssf.events.forge import SUPPORTED_EVENT_TYPES

logger = logging.getLogger(__name__)


def build_discovery_document(issuer: str, jwks_uri: str) -> dict[str, Any]:
    """Body of ``/.well-known/ssf-configuration``."""
    return {
        "issuer": issuer,
        "jwks_uri": jwks_uri,
        "delivery_methods_supported": ["push"],
        "events_supported": {event_type: {} for event_type in SUPPORTED_EVENT_TYPES},
    }


class JWKSDocument:
    """The published key set, read from disk once and served verbatim."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._document: dict[str, Any] | None = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> dict[str, Any]:
        """Return the key set. Raises ``OSError``/``ValueError`` when unusable."""
        if self._document is not None:
            return self._document

        with self._lock:
            if self._document is None:
                document = json.loads(self._path.read_text(encoding="utf-8"))
                if not isinstance(document, dict) or not isinstance(document.get("keys"), list):
                    raise ValueError(f"{self._path} is not a JWK set")
                logger.info("Loaded JWKS with %d key(s) from %s", len(document["keys"]), self._path)
                self._document = document
            return self._document
