"""
Health snapshot builder — poll a list of services once.

Every distinct input name ends up in the snapshot exactly once, in
first-seen order, whatever the control plane says about it. A control
plane failure for one service becomes an UNAVAILABLE entry and the
remaining services are still polled.
"""

from __future__ import annotations

import logging

from hostcare.adapters.base import AdapterUnavailable, ControlPlane
from hostcare.core.models.service import (
    HealthSnapshot,
    HealthStatus,
    ServiceHealth,
    unique_names,
)

logger = logging.getLogger(__name__)


def _diagnose(control_plane: ControlPlane, name: str, log: logging.Logger) -> str:
    """Best-effort status detail for a failed service."""
    try:
        return control_plane.describe(name)
    except Exception as e:
        log.debug("No diagnostic for %s: %s", name, e)
        return ""


def check_service(
    control_plane: ControlPlane,
    name: str,
    log: logging.Logger | None = None,
) -> ServiceHealth:
    """Classify a single service."""
    log = log or logger
    log.debug("Checking service: %s", name)

    try:
        status = control_plane.query_status(name)
    except AdapterUnavailable as e:
        log.error("Cannot check %s: %s", name, e)
        return ServiceHealth(name=name, status=HealthStatus.UNAVAILABLE, diagnostic=str(e))

    if status == HealthStatus.RUNNING:
        log.info("Service %s is running", name)
        return ServiceHealth(name=name, status=status)

    if status == HealthStatus.NOT_FOUND:
        log.warning("Service %s not found", name)
        return ServiceHealth(name=name, status=status)

    log.error("Service %s is not running", name)
    diagnostic = _diagnose(control_plane, name, log)
    if diagnostic:
        log.debug("Service %s status:\n%s", name, diagnostic)
    return ServiceHealth(name=name, status=status, diagnostic=diagnostic)


def build_snapshot(
    control_plane: ControlPlane,
    names: list[str],
    log: logging.Logger | None = None,
) -> HealthSnapshot:
    """Poll every named service and capture the result.

    Args:
        control_plane: Service manager adapter.
        names: Services to check. Duplicates are collapsed.
        log: Logger for status transitions (default: module logger).

    Returns:
        A frozen HealthSnapshot. An empty input gives an empty snapshot.
    """
    log = log or logger
    targets = unique_names(names)
    log.info("Monitoring %d services", len(targets))

    entries = tuple(check_service(control_plane, name, log) for name in targets)
    snapshot = HealthSnapshot(entries=entries)

    log.info(
        "Snapshot: %d running, %d failed, %d not found, %d unavailable",
        len(snapshot.running),
        len(snapshot.failed),
        len(snapshot.not_found),
        len(snapshot.unavailable),
    )
    return snapshot
