"""Process-wide record of how the device poller is doing."""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any

from lookout_ssf.utils.time import utc_now


class PollResult(str, Enum):
    OK = "ok"
    ERROR = "error"
    DISABLED = "disabled"


@dataclass(frozen=True)
class HeartbeatSnapshot:
    since_minutes: int
    interval_seconds: int
    last_poll_at: datetime | None = None
    last_result: PollResult | None = None
    last_error: str | None = None
    total_polls: int = 0
    total_errors: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["last_poll_at"] = self.last_poll_at.isoformat() if self.last_poll_at else None
        data["last_result"] = self.last_result.value if self.last_result else None
        return data


class PollHeartbeat:
    """Single-writer heartbeat; readers get immutable snapshots."""

    def __init__(self, since_minutes: int, interval_seconds: int) -> None:
        self._snapshot = HeartbeatSnapshot(
            since_minutes=since_minutes,
            interval_seconds=interval_seconds,
        )
        self._lock = threading.Lock()

    def snapshot(self) -> HeartbeatSnapshot:
        with self._lock:
            return self._snapshot

    def record_ok(self) -> None:
        with self._lock:
            current = self._snapshot
            self._snapshot = replace(
                current,
                last_poll_at=utc_now(),
                last_result=PollResult.OK,
                last_error=None,
                total_polls=current.total_polls + 1,
            )

    def record_error(self, error: str) -> None:
        with self._lock:
            current = self._snapshot
            self._snapshot = replace(
                current,
                last_poll_at=utc_now(),
                last_result=PollResult.ERROR,
                last_error=error,
                total_polls=current.total_polls + 1,
                total_errors=current.total_errors + 1,
            )

    def record_disabled(self, reason: str) -> None:
        with self._lock:
            self._snapshot = replace(
                self._snapshot,
                last_result=PollResult.DISABLED,
                last_error=reason,
            )
