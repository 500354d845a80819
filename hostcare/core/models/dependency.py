"""
Dependency models — declared relationships between units.

Edges are recomputed on every analysis run; nothing here is persisted.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EdgeKind(StrEnum):
    """Relationship kinds read from the service manager."""

    REQUIRES = "requires"
    REQUIRED_BY = "required_by"
    WANTS = "wants"


class DependencyEdge(BaseModel):
    """Directed relation: ``source`` <kind> ``target``."""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    kind: EdgeKind


class ServiceDependencies(BaseModel):
    """Outgoing edges for one analyzed service."""

    model_config = ConfigDict(frozen=True)

    service: str
    found: bool = True
    active: bool | None = None        # None when the unit was never queried
    edges: tuple[DependencyEdge, ...] = ()
    error: str | None = None

    def targets(self, kind: EdgeKind) -> list[str]:
        return [e.target for e in self.edges if e.kind == kind]

    @property
    def requires(self) -> list[str]:
        return self.targets(EdgeKind.REQUIRES)

    @property
    def required_by(self) -> list[str]:
        return self.targets(EdgeKind.REQUIRED_BY)

    @property
    def wants(self) -> list[str]:
        return self.targets(EdgeKind.WANTS)

    def to_dict(self) -> dict[str, Any]:
        return {
            "service": self.service,
            "found": self.found,
            "active": self.active,
            "error": self.error,
            "requires": self.requires,
            "required_by": self.required_by,
            "wants": self.wants,
        }


class DependencyReport(BaseModel):
    """Service → declared relationships, in analysis order."""

    model_config = ConfigDict(frozen=True)

    services: dict[str, ServiceDependencies] = Field(default_factory=dict)

    def get(self, name: str) -> ServiceDependencies | None:
        return self.services.get(name)

    @property
    def edges(self) -> list[DependencyEdge]:
        return [e for deps in self.services.values() for e in deps.edges]

    @property
    def not_found(self) -> list[str]:
        return [n for n, d in self.services.items() if not d.found and d.error is None]

    @property
    def errors(self) -> list[str]:
        return [n for n, d in self.services.items() if d.error is not None]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": len(self.services),
            "not_found": self.not_found,
            "errors": self.errors,
            "services": {n: d.to_dict() for n, d in self.services.items()},
        }
