"""Per-subject risk state.

State lives for the lifetime of the process. A cold restart treats every
subject as ``low`` again, so the first poll after a deploy may re-report a
level the receiver already knows. Plug a persistent ``RiskStateBackend`` into
``RiskStateStore`` to avoid that.
"""

from __future__ import annotations

import threading
from typing import Protocol

from lookout_ssf.risk.levels import RiskLevel


class RiskStateBackend(Protocol):
    """Key-value storage for last reported risk levels."""

    def get(self, subject: str) -> RiskLevel | None: ...

    def put(self, subject: str, level: RiskLevel) -> None: ...

    def items(self) -> list[tuple[str, RiskLevel]]: ...


class InMemoryRiskStateBackend:
    """Lock-guarded dict backend."""

    def __init__(self) -> None:
        self._levels: dict[str, RiskLevel] = {}
        self._lock = threading.Lock()

    def get(self, subject: str) -> RiskLevel | None:
        with self._lock:
            return self._levels.get(subject)

    def put(self, subject: str, level: RiskLevel) -> None:
        with self._lock:
            self._levels[subject] = level

    def items(self) -> list[tuple[str, RiskLevel]]:
        with self._lock:
            return list(self._levels.items())


class RiskStateStore:
    """Last reported risk level per subject, ``low`` for unseen subjects."""

    DEFAULT_LEVEL = RiskLevel.LOW

    def __init__(self, backend: RiskStateBackend | None = None) -> None:
        self._backend: RiskStateBackend = backend or InMemoryRiskStateBackend()

    @staticmethod
    def _key(subject: str) -> str:
        return subject.strip().lower()

    def get(self, subject: str) -> RiskLevel:
        level = self._backend.get(self._key(subject))
        return level if level is not None else self.DEFAULT_LEVEL

    def set(self, subject: str, level: RiskLevel) -> None:
        self._backend.put(self._key(subject), level)

    def snapshot(self) -> dict[str, RiskLevel]:
        return dict(self._backend.items())

    def __len__(self) -> int:
        return len(self._backend.items())

    def __contains__(self, subject: object) -> bool:
        if not isinstance(subject, str):
            return False
        return self._backend.get(self._key(subject)) is not None
