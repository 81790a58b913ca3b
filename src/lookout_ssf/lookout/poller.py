"""Device poller: turns Lookout device changes into risk transitions."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from lookout_ssf.errors import RelayError, UpstreamApiError
from lookout_ssf.lookout.devices import DeviceListing, LookoutDeviceClient
from lookout_ssf.lookout.heartbeat import PollHeartbeat, PollResult
from lookout_ssf.lookout.token_cache import TokenCache
from lookout_ssf.risk.levels import risk_from_security_status
from lookout_ssf.risk.models import DeviceObservation, RiskTransition
from lookout_ssf.risk.state import RiskStateStore
from lookout_ssf.utils.time import minutes_ago, utc_now

if TYPE_CHECKING:
    from lookout_ssf.intake.service import IntakeResult

logger = logging.getLogger(__name__)


class TransitionSink(Protocol):
    async def submit(self, transition: RiskTransition) -> "IntakeResult": ...


@dataclass(frozen=True)
class PollCycleSummary:
    result: PollResult
    received: int = 0
    skipped: int = 0
    transitions: int = 0
    delivered: int = 0
    failed: int = 0
    error: str | None = None


class DevicePoller:
    """Polls Lookout for changed devices and reports risk level changes.

    The store is updated before the transition is handed to the intake, and
    is not rolled back when delivery fails. A failed delivery is only visible
    through the logs until Lookout reports a further change for that subject.
    """

    def __init__(
        self,
        token_cache: TokenCache,
        device_client: LookoutDeviceClient,
        state_store: RiskStateStore,
        sink: TransitionSink,
        heartbeat: PollHeartbeat,
        *,
        since_minutes: int,
        interval_seconds: int,
    ) -> None:
        self._token_cache = token_cache
        self._device_client = device_client
        self._state_store = state_store
        self._sink = sink
        self._heartbeat = heartbeat
        self._since_minutes = since_minutes
        self._interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def heartbeat(self) -> PollHeartbeat:
        return self._heartbeat

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Arm the polling loop. Returns False when polling is disabled."""
        if not self._token_cache.configured:
            reason = "LOOKOUT_APP_KEY not set; polling is disabled"
            logger.warning(reason)
            self._heartbeat.record_disabled(reason)
            return False

        if self.running:
            return True

        logger.info(
            "Starting Lookout polling every %ss (window=%sm)",
            self._interval_seconds,
            self._since_minutes,
        )
        self._task = asyncio.create_task(self._run(), name="lookout-device-poller")
        return True

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Lookout polling stopped")

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self._interval_seconds)

    async def poll_once(self) -> PollCycleSummary:
        """Run one full poll cycle. Never raises (except on cancellation)."""
        try:
            return await self._poll_cycle()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error during Lookout poll cycle")
            return self._fail(f"unexpected: {exc}")

    async def _poll_cycle(self) -> PollCycleSummary:
        since = minutes_ago(self._since_minutes)

        try:
            token = await self._token_cache.get_token()
        except RelayError as exc:
            logger.error("Failed to get Lookout token: %s", exc)
            return self._fail(f"{exc.code}: {exc}")

        try:
            listing = await self._device_client.list_changed_devices(token, since)
        except UpstreamApiError as exc:
            if exc.status_code == 401:
                self._token_cache.invalidate()
            logger.error("Lookout device listing failed: %s", exc)
            return self._fail(f"{exc.code}: {exc}")

        logger.info(
            "Received %d devices from Lookout (count=%s)",
            len(listing.devices),
            listing.count if listing.count is not None else "?",
        )
        summary = await self._process_listing(listing)
        self._heartbeat.record_ok()
        return summary

    async def _process_listing(self, listing: DeviceListing) -> PollCycleSummary:
        skipped = transitions = delivered = failed = 0

        for observation in listing.devices:
            transition = self._detect_transition(observation)
            if transition is None:
                skipped += 1
                continue

            transitions += 1
            result = await self._sink.submit(transition)
            if result.accepted:
                delivered += 1
                logger.info(
                    "Sent risk event for %s (%s -> %s)",
                    transition.subject,
                    transition.previous_level.value,
                    transition.current_level.value,
                )
            else:
                failed += 1
                logger.error(
                    "Risk event for %s was not delivered (status=%s, error=%s); "
                    "state already advanced to %s",
                    transition.subject,
                    result.status_code,
                    result.body.get("error"),
                    transition.current_level.value,
                )

        return PollCycleSummary(
            result=PollResult.OK,
            received=len(listing.devices),
            skipped=skipped,
            transitions=transitions,
            delivered=delivered,
            failed=failed,
        )

    def _detect_transition(self, observation: DeviceObservation) -> RiskTransition | None:
        if not observation.is_complete:
            logger.info(
                "Skipping device with missing email or security_status "
                "(guid=%s, email=%s, security_status=%s)",
                observation.record_id,
                observation.subject,
                observation.vendor_status,
            )
            return None

        subject = observation.subject or ""
        current = risk_from_security_status(observation.vendor_status)
        previous = self._state_store.get(subject)
        if previous == current:
            logger.debug(
                "No risk change for %s (level=%s, security_status=%s)",
                subject,
                current.value,
                observation.vendor_status,
            )
            return None

        self._state_store.set(subject, current)
        return RiskTransition(
            subject=subject,
            previous_level=previous,
            current_level=current,
            reason=(
                f"Lookout security_status={observation.vendor_status} "
                f"for {subject}"
            ),
            occurred_at=observation.observed_at or utc_now(),
        )

    def _fail(self, error: str) -> PollCycleSummary:
        self._heartbeat.record_error(error)
        return PollCycleSummary(result=PollResult.ERROR, error=error)

