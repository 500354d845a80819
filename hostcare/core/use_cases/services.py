"""
Service management use case — check, restart, dependencies, full.

Wires configuration, the control plane, the controller components and
the notifier together for one invocation, and returns a plain result
object for the CLI (or any other caller) to render.

Flow for ``full``:
    snapshot → recover failed subset → re-snapshot → dependencies → notify → ledger
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from hostcare.adapters.base import ControlPlane
from hostcare.adapters.mock import MockControlPlane
from hostcare.adapters.systemd.systemctl import SystemdControlPlane
from hostcare.core.config.loader import HostcareConfig
from hostcare.core.models.dependency import DependencyReport
from hostcare.core.models.recovery import RecoveryReport
from hostcare.core.models.service import HealthSnapshot, HealthStatus
from hostcare.core.persistence.ledger import RunEntry, RunLedger
from hostcare.core.reliability.backoff import BackoffPolicy, Sleeper, event_sleep
from hostcare.core.services.dependencies import analyze_dependencies
from hostcare.core.services.notifications import (
    CommandNotifier,
    CompositeNotifier,
    EmailNotifier,
    LogNotifier,
    Notifier,
    notify_recovery_failures,
    notify_snapshot_failures,
)
from hostcare.core.services.recovery import RecoveryController
from hostcare.core.services.snapshot import build_snapshot

logger = logging.getLogger(__name__)

MODES = ("check", "restart", "dependencies", "full")
MODE_ALIASES = {"monitor": "check", "deps": "dependencies", "all": "full"}

# Process exit statuses are a single byte
MAX_EXIT_CODE = 255


class ControlPlaneUnavailable(Exception):
    """Every service query failed: the service manager itself is down.

    Carries the partial result so callers can still render it.
    """

    def __init__(self, message: str, result: ServiceRunResult):
        super().__init__(message)
        self.result = result


def resolve_mode(mode: str) -> str:
    """Map a mode or alias to its canonical name."""
    canonical = MODE_ALIASES.get(mode, mode)
    if canonical not in MODES:
        raise ValueError(f"Unknown mode '{mode}'. Valid: {', '.join(MODES)}")
    return canonical


@dataclass
class ServiceRunResult:
    """Everything one invocation produced."""

    mode: str = "check"
    services: list[str] = field(default_factory=list)
    snapshot: HealthSnapshot | None = None
    recovery: RecoveryReport | None = None
    verification: HealthSnapshot | None = None
    dependencies: DependencyReport | None = None
    notifications: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def final_snapshot(self) -> HealthSnapshot | None:
        """The most recent health picture (post-recovery when there was one)."""
        return self.verification or self.snapshot

    @property
    def unresolved(self) -> list[str]:
        """Services still failed or that could not be checked."""
        if self.mode == "dependencies":
            return self.dependencies.errors if self.dependencies else []
        final = self.final_snapshot
        if final is None:
            return []
        return final.failed + final.unavailable

    @property
    def exit_code(self) -> int:
        return min(len(self.unresolved), MAX_EXIT_CODE)

    def outcomes(self) -> dict[str, str]:
        """Final word per service: a recovery outcome if one ran, else the status."""
        result: dict[str, str] = {}
        final = self.final_snapshot
        if final is not None:
            for entry in final.entries:
                result[entry.name] = entry.status.value
        if self.recovery is not None:
            for name, rec in self.recovery.services.items():
                result[name] = rec.outcome.value
        return result

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "mode": self.mode,
            "services": self.services,
            "unresolved": self.unresolved,
            "exit_code": self.exit_code,
        }
        if self.error:
            data["error"] = self.error
        if self.snapshot is not None:
            data["snapshot"] = self.snapshot.to_dict()
        if self.recovery is not None:
            data["recovery"] = self.recovery.to_dict()
        if self.verification is not None:
            data["verification"] = self.verification.to_dict()
        if self.dependencies is not None:
            data["dependencies"] = self.dependencies.to_dict()
        if self.notifications:
            data["notifications"] = self.notifications
        return data

    def to_run_entry(self) -> RunEntry:
        final = self.final_snapshot
        return RunEntry(
            mode=self.mode,
            services_total=len(self.services),
            running=len(final.running) if final else 0,
            failed=len(final.failed) if final else 0,
            not_found=len(final.not_found) if final else 0,
            unavailable=len(final.unavailable) if final else 0,
            recovered=self.recovery.recovered if self.recovery else [],
            exhausted=self.recovery.exhausted if self.recovery else [],
            unresolved=self.unresolved,
            outcomes=self.outcomes(),
            error=self.error,
        )


# ── Wiring ───────────────────────────────────────────────────────


def build_control_plane(config: HostcareConfig, mock: bool = False) -> ControlPlane:
    """Pick the control plane for this run."""
    if mock:
        return MockControlPlane(default_status=HealthStatus.RUNNING)
    plane = SystemdControlPlane(timeout=config.services.command_timeout_seconds)
    if not plane.is_available():
        logger.warning(
            "systemd does not appear to be running here; service queries will likely be unavailable"
        )
    return plane


def build_notifier(config: HostcareConfig) -> Notifier:
    """Log notifier plus whatever channels are configured."""
    notifiers: list[Notifier] = [LogNotifier()]
    settings = config.notifications
    if settings.command:
        notifiers.append(CommandNotifier(settings.command))
    if settings.email_enabled:
        assert settings.smtp_server is not None and settings.email_from is not None
        notifiers.append(
            EmailNotifier(
                smtp_server=settings.smtp_server,
                sender=settings.email_from,
                recipients=settings.email_to,
                port=settings.smtp_port,
            )
        )
    if len(notifiers) == 1:
        return notifiers[0]
    return CompositeNotifier(notifiers)


def build_recovery_controller(
    config: HostcareConfig,
    control_plane: ControlPlane,
    sleeper: Sleeper = event_sleep,
) -> RecoveryController:
    settings = config.services
    return RecoveryController(
        control_plane,
        policy=BackoffPolicy(
            max_attempts=settings.max_restart_attempts,
            base_delay=settings.restart_delay_seconds,
        ),
        settle_seconds=settings.settle_seconds,
        sleeper=sleeper,
        concurrent=settings.concurrent_recovery,
    )


# ── Entry point ──────────────────────────────────────────────────


def run_services(
    mode: str,
    config: HostcareConfig,
    control_plane: ControlPlane,
    targets: list[str] | None = None,
    notifier: Notifier | None = None,
    cancel: threading.Event | None = None,
    sleeper: Sleeper = event_sleep,
) -> ServiceRunResult:
    """Run one service-management mode.

    Args:
        mode: check, restart, dependencies or full (aliases accepted).
        config: Loaded configuration.
        control_plane: Service manager adapter.
        targets: Explicit service names; default is the configured list.
        notifier: Escalation channel; None disables notifications.
        cancel: Event that stops recovery from starting new attempts.
        sleeper: Interruptible wait used for settle and backoff delays.

    Returns:
        ServiceRunResult with every structure the run produced.

    Raises:
        ControlPlaneUnavailable: If no service could be queried at all.
    """
    mode = resolve_mode(mode)
    names = list(targets) if targets else list(config.services.critical_services)
    result = ServiceRunResult(mode=mode, services=names)
    audience = config.notifications.audience

    logger.info("Running service management (%s) for %d services", mode, len(names))

    if mode in ("check", "restart", "full"):
        result.snapshot = build_snapshot(control_plane, names)

        if result.snapshot.all_unavailable:
            result.error = "Service manager unavailable: no service could be checked"
            _finish(result, config)
            raise ControlPlaneUnavailable(result.error, result)

        if notifier is not None and notify_snapshot_failures(notifier, result.snapshot, audience):
            result.notifications.append("Service Failures Detected")

    if mode in ("restart", "full") and result.snapshot is not None and result.snapshot.failed:
        controller = build_recovery_controller(config, control_plane, sleeper)
        result.recovery = controller.recover(
            result.snapshot.failed,
            enabled=config.services.auto_restart,
            cancel=cancel,
        )
        if result.recovery.enabled:
            result.verification = build_snapshot(control_plane, names)
        if notifier is not None and notify_recovery_failures(notifier, result.recovery, audience):
            result.notifications.append("Service Restart Failures")

    if mode in ("dependencies", "full"):
        result.dependencies = analyze_dependencies(control_plane, names)
        analyzed = result.dependencies.services
        if mode == "dependencies" and analyzed and len(result.dependencies.errors) == len(analyzed):
            result.error = "Service manager unavailable: no dependencies could be read"
            _finish(result, config)
            raise ControlPlaneUnavailable(result.error, result)

    _finish(result, config)
    return result


def _finish(result: ServiceRunResult, config: HostcareConfig) -> None:
    if result.error:
        logger.error(result.error)
    else:
        logger.info(
            "Service management (%s) completed with %d issues",
            result.mode,
            len(result.unresolved),
        )
    if config.data_directory is not None:
        RunLedger(data_directory=config.data_directory).write(result.to_run_entry())
