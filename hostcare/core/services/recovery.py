"""
Recovery controller — bounded, backed-off restarts of failed services.

Per service:

    Pending → Attempting → Verifying → Verified      (terminal, recovered)
                              └──────→ Attempting   (while attempt < max)
                        → Exhausted                  (terminal, max reached)

Each attempt issues a restart, waits a short settle interval, and
re-queries the service. Attempts for one service are strictly
sequential; different services are unrelated and may run on a thread
pool. Waits go through an injected Sleeper and stop early when the
cancellation event is set. An attempt that has already issued its
restart is always completed and recorded.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from hostcare.adapters.base import AdapterUnavailable, ControlPlane
from hostcare.core.models.recovery import (
    AttemptOutcome,
    RecoveryOutcome,
    RecoveryReport,
    RestartAttempt,
    ServiceRecovery,
)
from hostcare.core.models.service import HealthStatus, unique_names
from hostcare.core.reliability.backoff import BackoffPolicy, Sleeper, event_sleep

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_SECONDS = 5.0


class RecoveryController:
    """Restart failed services and classify how each episode ended.

    Args:
        control_plane: Service manager adapter.
        policy: Default attempt budget and backoff.
        settle_seconds: Wait between a restart and its verification.
        sleeper: Interruptible wait (default: threading.Event based).
        concurrent: Run different services' episodes in parallel.
        max_workers: Thread pool size when ``concurrent`` is set.
        log: Logger for attempt outcomes (default: module logger).
    """

    def __init__(
        self,
        control_plane: ControlPlane,
        policy: BackoffPolicy | None = None,
        settle_seconds: float = DEFAULT_SETTLE_SECONDS,
        sleeper: Sleeper = event_sleep,
        concurrent: bool = False,
        max_workers: int | None = None,
        log: logging.Logger | None = None,
    ):
        self._control_plane = control_plane
        self._policy = policy or BackoffPolicy()
        self._settle_seconds = settle_seconds
        self._sleeper = sleeper
        self._concurrent = concurrent
        self._max_workers = max_workers
        self._log = log or logger
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def policy(self) -> BackoffPolicy:
        return self._policy

    def recover(
        self,
        failed_names: list[str],
        max_attempts: int | None = None,
        base_delay_seconds: float | None = None,
        enabled: bool = True,
        cancel: threading.Event | None = None,
    ) -> RecoveryReport:
        """Attempt recovery of every named service.

        Args:
            failed_names: Services to restart. Duplicates are collapsed.
            max_attempts: Override the policy's attempt budget.
            base_delay_seconds: Override the policy's base delay.
            enabled: When False nothing is restarted and every service
                is reported NOT_ATTEMPTED.
            cancel: Set to stop starting new attempts and waits.

        Returns:
            RecoveryReport keyed by service, in input order.
        """
        names = unique_names(failed_names)

        if not enabled:
            self._log.warning("Auto-restart is disabled; %d services not attempted", len(names))
            return RecoveryReport(
                services={
                    n: ServiceRecovery(service=n, outcome=RecoveryOutcome.NOT_ATTEMPTED)
                    for n in names
                },
                enabled=False,
            )

        policy = BackoffPolicy(
            max_attempts=max_attempts if max_attempts is not None else self._policy.max_attempts,
            base_delay=(
                base_delay_seconds if base_delay_seconds is not None else self._policy.base_delay
            ),
        )
        cancel = cancel or threading.Event()

        if names:
            self._log.info("Services to restart: %s", " ".join(names))

        if self._concurrent and len(names) > 1:
            results = self._recover_concurrently(names, policy, cancel)
        else:
            results = {name: self.recover_service(name, policy, cancel) for name in names}

        report = RecoveryReport(services=results, enabled=True, cancelled=cancel.is_set())

        if report.recovered:
            self._log.info("Successfully restarted services: %s", " ".join(report.recovered))
        if report.needs_escalation:
            self._log.error("Failed to restart services: %s", " ".join(report.needs_escalation))
        if report.cancelled_services:
            self._log.warning(
                "Recovery cancelled before finishing: %s", " ".join(report.cancelled_services)
            )
        return report

    def recover_service(
        self,
        name: str,
        policy: BackoffPolicy | None = None,
        cancel: threading.Event | None = None,
    ) -> ServiceRecovery:
        """Run one service's restart → verify → backoff loop to completion."""
        policy = policy or self._policy
        cancel = cancel or threading.Event()

        with self._lock_for(name):
            attempts: list[RestartAttempt] = []

            for index in range(1, policy.max_attempts + 1):
                if cancel.is_set():
                    return ServiceRecovery.from_attempts(name, attempts, cancelled=True)

                self._log.debug("Restart attempt %d/%d for %s", index, policy.max_attempts, name)
                outcome, detail, unavailable = self._attempt(name, index, cancel)
                delay = 0.0 if outcome == AttemptOutcome.VERIFIED else policy.delay_after(index)

                attempts.append(
                    RestartAttempt(
                        service=name,
                        attempt=index,
                        outcome=outcome,
                        delay_before_next=delay,
                        detail=detail,
                        adapter_unavailable=unavailable,
                    )
                )

                if outcome == AttemptOutcome.VERIFIED:
                    break

                if delay > 0:
                    self._log.debug("Waiting %.0fs before next restart attempt for %s", delay, name)
                    if not self._sleeper(delay, cancel):
                        return ServiceRecovery.from_attempts(name, attempts, cancelled=True)

            recovery = ServiceRecovery.from_attempts(name, attempts)

        if recovery.outcome == RecoveryOutcome.EXHAUSTED:
            self._log.error("Failed to restart %s after %d attempts", name, recovery.attempt_count)
        elif recovery.outcome == RecoveryOutcome.UNAVAILABLE:
            self._log.error("Could not reach the service manager to restart %s", name)
        return recovery

    # ── Internals ────────────────────────────────────────────────

    def _attempt(
        self,
        name: str,
        index: int,
        cancel: threading.Event,
    ) -> tuple[AttemptOutcome, str, bool]:
        """One restart plus verification. Returns (outcome, detail, adapter_unavailable)."""
        try:
            accepted = self._control_plane.restart(name)
        except AdapterUnavailable as e:
            self._log.error("Restart of %s on attempt %d could not be issued: %s", name, index, e)
            return AttemptOutcome.COMMAND_FAILED, str(e), True

        if not accepted:
            self._log.warning("Failed to restart %s on attempt %d", name, index)
            return AttemptOutcome.COMMAND_FAILED, "restart command was rejected", False

        # The restart is issued; a cancel only shortens the settle wait
        self._sleeper(self._settle_seconds, cancel)

        try:
            status = self._control_plane.query_status(name)
        except AdapterUnavailable as e:
            self._log.error("Cannot verify %s after restart: %s", name, e)
            return AttemptOutcome.COMMAND_FAILED, f"verification failed: {e}", True

        if status == HealthStatus.RUNNING:
            self._log.info("Service %s restarted successfully on attempt %d", name, index)
            return AttemptOutcome.VERIFIED, "", False

        self._log.warning("Service %s restart command succeeded but service not running", name)
        return AttemptOutcome.COMMAND_SUCCEEDED_BUT_INACTIVE, f"status after restart: {status}", False

    def _recover_concurrently(
        self,
        names: list[str],
        policy: BackoffPolicy,
        cancel: threading.Event,
    ) -> dict[str, ServiceRecovery]:
        workers = self._max_workers or len(names)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="recover") as pool:
            futures = {
                name: pool.submit(self.recover_service, name, policy, cancel) for name in names
            }
            return {name: futures[name].result() for name in names}

    def _lock_for(self, name: str) -> threading.Lock:
        with self._locks_guard:
            if name not in self._locks:
                self._locks[name] = threading.Lock()
            return self._locks[name]
