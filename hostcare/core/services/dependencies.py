"""
Dependency graph analyzer — declared relationships for a list of services.

Reports raw requires / required-by / wants edges only. No cycle
detection or restart ordering is derived here.
"""

from __future__ import annotations

import logging

from hostcare.adapters.base import AdapterUnavailable, ControlPlane
from hostcare.core.models.dependency import (
    DependencyEdge,
    DependencyReport,
    EdgeKind,
    ServiceDependencies,
)
from hostcare.core.models.service import HealthStatus, unique_names

logger = logging.getLogger(__name__)


def analyze_service(
    control_plane: ControlPlane,
    name: str,
    log: logging.Logger | None = None,
) -> ServiceDependencies:
    """Collect the outgoing edges of one service, plus whether it is active."""
    log = log or logger

    try:
        if not control_plane.unit_exists(name):
            log.warning("Service %s not found; skipping dependency analysis", name)
            return ServiceDependencies(service=name, found=False)
        active = control_plane.query_status(name) == HealthStatus.RUNNING
        rels = control_plane.list_relationships(name)
    except AdapterUnavailable as e:
        log.error("Cannot analyze dependencies of %s: %s", name, e)
        return ServiceDependencies(service=name, found=False, error=str(e))

    edges = (
        [DependencyEdge(source=name, target=t, kind=EdgeKind.REQUIRES) for t in rels.requires]
        + [DependencyEdge(source=name, target=t, kind=EdgeKind.REQUIRED_BY) for t in rels.required_by]
        + [DependencyEdge(source=name, target=t, kind=EdgeKind.WANTS) for t in rels.wants]
    )
    log.debug(
        "Service %s (%s): requires %d, required by %d, wants %d",
        name,
        "active" if active else "inactive",
        len(rels.requires),
        len(rels.required_by),
        len(rels.wants),
    )
    return ServiceDependencies(service=name, found=True, active=active, edges=tuple(edges))


def analyze_dependencies(
    control_plane: ControlPlane,
    names: list[str],
    log: logging.Logger | None = None,
) -> DependencyReport:
    """Build a DependencyReport for every named service.

    Unknown units get an empty edge set and ``found=False`` rather
    than an error. A control-plane failure for one service is recorded
    on that entry; the others are still analyzed.
    """
    log = log or logger
    targets = unique_names(names)
    log.info("Analyzing service dependencies for %d services", len(targets))

    report = DependencyReport(
        services={name: analyze_service(control_plane, name, log) for name in targets}
    )
    log.info(
        "Dependency analysis: %d edges, %d not found, %d errors",
        len(report.edges),
        len(report.not_found),
        len(report.errors),
    )
    return report
