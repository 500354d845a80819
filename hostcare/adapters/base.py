"""
Control plane base — the contract between the core and the service manager.

Every component in the core talks to the host's service manager only
through this interface, never by running tools directly.

Unknown units are a classification (HealthStatus.NOT_FOUND), not an
error. Only a failure to reach the service manager itself raises, and
it raises AdapterUnavailable so callers can tell "the service is down"
apart from "we could not ask".
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict

from hostcare.core.models.service import HealthStatus


class AdapterUnavailable(Exception):
    """The control plane was unreachable or a call timed out."""

    def __init__(self, message: str, operation: str = "", service: str = ""):
        super().__init__(message)
        self.operation = operation
        self.service = service


class Relationships(BaseModel):
    """Declared relationships of one unit, as the service manager reports them."""

    model_config = ConfigDict(frozen=True)

    requires: tuple[str, ...] = ()
    required_by: tuple[str, ...] = ()
    wants: tuple[str, ...] = ()


class ControlPlane(ABC):
    """Abstract base class for service-manager adapters.

    To add a new service manager:
        1. Subclass ControlPlane
        2. Implement the query and command methods
        3. Wire it up in ``hostcare.core.use_cases.services.build_control_plane``
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'systemd', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether the service manager can be reached.

        Should be fast and never raise.
        """

    @abstractmethod
    def query_status(self, name: str) -> HealthStatus:
        """Classify a unit as running, failed or not found.

        Raises:
            AdapterUnavailable: If the service manager cannot be queried.
        """

    @abstractmethod
    def restart(self, name: str) -> bool:
        """Issue a restart command.

        Returns:
            Whether the command was accepted. This says nothing about
            whether the unit is running afterwards.

        Raises:
            AdapterUnavailable: If the service manager cannot be reached.
        """

    @abstractmethod
    def list_relationships(self, name: str) -> Relationships:
        """Read requires / required-by / wants for a unit.

        Raises:
            AdapterUnavailable: If the service manager cannot be queried.
        """

    @abstractmethod
    def unit_exists(self, name: str) -> bool:
        """Whether the service manager knows the unit at all.

        Raises:
            AdapterUnavailable: If the service manager cannot be queried.
        """

    def describe(self, name: str) -> str:
        """Short human-readable status detail for diagnostics.

        Best-effort; the default has nothing to say.
        """
        return ""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
