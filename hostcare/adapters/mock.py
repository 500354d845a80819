"""
Mock control plane — scriptable stand-in for the host service manager.

Used by ``--mock`` mode and the test suite to simulate service states,
restart results and control-plane outages without touching systemd.
"""

from __future__ import annotations

import threading

from hostcare.adapters.base import AdapterUnavailable, ControlPlane, Relationships
from hostcare.core.models.service import HealthStatus


class MockControlPlane(ControlPlane):
    """In-memory control plane.

    By default every unit is reported with ``default_status`` and a
    restart brings a known unit back to RUNNING. Per-unit behaviour can
    be scripted with the ``set_*`` methods.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_status: HealthStatus = HealthStatus.NOT_FOUND,
        statuses: dict[str, HealthStatus] | None = None,
    ):
        self._name = adapter_name
        self._available = available
        self._default_status = default_status
        self._statuses: dict[str, HealthStatus] = dict(statuses or {})
        self._restart_scripts: dict[str, list[tuple[bool, HealthStatus]]] = {}
        self._relationships: dict[str, Relationships] = {}
        self._diagnostics: dict[str, str] = {}
        self._unavailable: dict[str, set[str] | None] = {}
        self._call_log: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[tuple[str, str]]:
        """All (operation, service) calls this mock has received."""
        return list(self._call_log)

    def call_count(self, operation: str | None = None, service: str | None = None) -> int:
        return sum(
            1 for op, svc in self._call_log
            if (operation is None or op == operation) and (service is None or svc == service)
        )

    def is_available(self) -> bool:
        return self._available

    # ── Scripting ────────────────────────────────────────────────

    def set_status(self, name: str, status: HealthStatus) -> None:
        self._statuses[name] = status

    def set_restart_script(self, name: str, results: list[tuple[bool, HealthStatus]]) -> None:
        """Script successive restarts as (command accepted, status afterwards)."""
        self._restart_scripts[name] = list(results)

    def set_relationships(
        self,
        name: str,
        requires: list[str] | None = None,
        required_by: list[str] | None = None,
        wants: list[str] | None = None,
    ) -> None:
        self._relationships[name] = Relationships(
            requires=tuple(requires or ()),
            required_by=tuple(required_by or ()),
            wants=tuple(wants or ()),
        )

    def set_diagnostic(self, name: str, text: str) -> None:
        self._diagnostics[name] = text

    def set_unavailable(self, name: str, operations: list[str] | None = None) -> None:
        """Make calls for ``name`` raise AdapterUnavailable.

        Args:
            operations: Restrict the outage to these operations
                (e.g. ``["describe"]``). None means every operation.
        """
        self._unavailable[name] = set(operations) if operations else None

    def reset(self) -> None:
        """Clear the call log and all scripted behaviour."""
        self._call_log.clear()
        self._statuses.clear()
        self._restart_scripts.clear()
        self._relationships.clear()
        self._diagnostics.clear()
        self._unavailable.clear()

    # ── ControlPlane ─────────────────────────────────────────────

    def query_status(self, name: str) -> HealthStatus:
        self._record("status", name)
        return self._statuses.get(name, self._default_status)

    def restart(self, name: str) -> bool:
        self._record("restart", name)
        script = self._restart_scripts.get(name)
        if script:
            accepted, after = script.pop(0)
            if accepted:
                self._statuses[name] = after
            return accepted
        if self._statuses.get(name, self._default_status) == HealthStatus.NOT_FOUND:
            return False
        self._statuses[name] = HealthStatus.RUNNING
        return True

    def list_relationships(self, name: str) -> Relationships:
        self._record("relationships", name)
        return self._relationships.get(name, Relationships())

    def unit_exists(self, name: str) -> bool:
        self._record("exists", name)
        return self._statuses.get(name, self._default_status) != HealthStatus.NOT_FOUND

    def describe(self, name: str) -> str:
        self._record("describe", name)
        status = self._statuses.get(name, self._default_status)
        return self._diagnostics.get(name, f"[mock] {name}: {status}")

    def _record(self, operation: str, name: str) -> None:
        with self._lock:
            self._call_log.append((operation, name))
        if not self._available:
            raise AdapterUnavailable("Mock control plane is offline", operation, name)
        if name in self._unavailable:
            ops = self._unavailable[name]
            if ops is None or operation in ops:
                raise AdapterUnavailable(
                    f"Mock outage for {name} ({operation})", operation, name
                )
