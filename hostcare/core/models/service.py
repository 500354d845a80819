"""
Service health models — names, statuses, and point-in-time snapshots.

A HealthSnapshot is the output of one monitoring pass. It is frozen
once built: a new poll produces a new snapshot, never mutates an old one.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Unit names as systemd accepts them, plus the '@' instance separator.
# No whitespace, no shell metacharacters, no leading dash.
_SERVICE_NAME_RE = re.compile(r"^[A-Za-z0-9_@.:\\][A-Za-z0-9_@.:\\-]*$")

# systemd's UNIT_NAME_MAX
MAX_SERVICE_NAME_LENGTH = 256


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class InvalidServiceName(ValueError):
    """Raised when a service name cannot be used as a unit identifier."""


def validate_service_name(raw: str) -> str:
    """Normalize and validate a single service name.

    Returns:
        The stripped name.

    Raises:
        InvalidServiceName: If the name is empty or malformed.
    """
    name = raw.strip() if isinstance(raw, str) else ""
    if not name:
        raise InvalidServiceName("Service name is empty")
    if len(name) > MAX_SERVICE_NAME_LENGTH:
        raise InvalidServiceName(
            f"Service name longer than {MAX_SERVICE_NAME_LENGTH} characters: {name[:32]!r}..."
        )
    if (
        not _SERVICE_NAME_RE.match(name)
        or name.endswith("@")
        or not any(c.isalnum() for c in name)
    ):
        raise InvalidServiceName(f"Invalid service name: {raw!r}")
    return name


def unique_names(names: list[str] | tuple[str, ...]) -> list[str]:
    """Collapse duplicates, keeping first-seen order."""
    return list(dict.fromkeys(names))


class HealthStatus(StrEnum):
    """Classification of a service at a point in time."""

    RUNNING = "running"
    FAILED = "failed"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"   # control plane could not be asked


class ServiceHealth(BaseModel):
    """One service's status within a snapshot."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: HealthStatus
    diagnostic: str = ""
    checked_at: str = Field(default_factory=_now_iso)

    @property
    def ok(self) -> bool:
        return self.status == HealthStatus.RUNNING


class HealthSnapshot(BaseModel):
    """Ordered, immutable health record for a set of services."""

    model_config = ConfigDict(frozen=True)

    entries: tuple[ServiceHealth, ...] = ()
    captured_at: str = Field(default_factory=_now_iso)

    def get(self, name: str) -> ServiceHealth | None:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def names_with(self, status: HealthStatus) -> list[str]:
        return [e.name for e in self.entries if e.status == status]

    @property
    def names(self) -> list[str]:
        return [e.name for e in self.entries]

    @property
    def running(self) -> list[str]:
        return self.names_with(HealthStatus.RUNNING)

    @property
    def failed(self) -> list[str]:
        """The subset handed to the recovery controller."""
        return self.names_with(HealthStatus.FAILED)

    @property
    def not_found(self) -> list[str]:
        return self.names_with(HealthStatus.NOT_FOUND)

    @property
    def unavailable(self) -> list[str]:
        return self.names_with(HealthStatus.UNAVAILABLE)

    @property
    def total(self) -> int:
        return len(self.entries)

    @property
    def all_unavailable(self) -> bool:
        """True when every entry failed at the control-plane level."""
        return bool(self.entries) and all(
            e.status == HealthStatus.UNAVAILABLE for e in self.entries
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "captured_at": self.captured_at,
            "total": self.total,
            "running": len(self.running),
            "failed": len(self.failed),
            "not_found": len(self.not_found),
            "unavailable": len(self.unavailable),
            "services": [e.model_dump(mode="json") for e in self.entries],
        }
