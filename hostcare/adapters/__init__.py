"""Adapters — bindings to the host service manager.

Public re-exports for convenient access.
"""

from hostcare.adapters.base import AdapterUnavailable, ControlPlane, Relationships
from hostcare.adapters.mock import MockControlPlane
from hostcare.adapters.systemd.systemctl import SystemdControlPlane

__all__ = [
    "AdapterUnavailable",
    "ControlPlane",
    "MockControlPlane",
    "Relationships",
    "SystemdControlPlane",
]
