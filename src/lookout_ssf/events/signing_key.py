"""Load-once access to the SET signing key."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from lookout_ssf.errors import KeyLoadError

logger = logging.getLogger(__name__)


class SigningKeyProvider:
    """Parses the RSA private key on first use and keeps it for the process.

    The key comes from an inline PEM when one is configured, otherwise from
    ``key_path``. Failures are not cached, so a fixed file can be picked up by
    the next call.
    """

    def __init__(self, *, pem: str | None = None, key_path: str | Path | None = None) -> None:
        if not pem and key_path is None:
            raise KeyLoadError("No signing key configured")
        self._pem = pem
        self._key_path = Path(key_path) if key_path is not None else None
        self._key: RSAPrivateKey | None = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._key is not None

    def get_key(self) -> RSAPrivateKey:
        if self._key is not None:
            return self._key

        with self._lock:
            if self._key is None:
                self._key = self._load()
            return self._key

    def _read_pem(self) -> bytes:
        if self._pem:
            return self._pem.encode("utf-8")
        assert self._key_path is not None
        try:
            return self._key_path.read_bytes()
        except OSError as exc:
            raise KeyLoadError(f"Cannot read signing key {self._key_path}: {exc}") from exc

    def _load(self) -> RSAPrivateKey:
        source = "SSF_PRIVATE_KEY" if self._pem else str(self._key_path)
        data = self._read_pem()
        try:
            key = serialization.load_pem_private_key(data, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise KeyLoadError(f"Failed to parse signing key from {source}: {exc}") from exc

        if not isinstance(key, RSAPrivateKey):
            raise KeyLoadError(f"Signing key from {source} is not an RSA private key")

        logger.info("Loaded %d-bit RSA signing key from %s", key.key_size, source)
        return key
