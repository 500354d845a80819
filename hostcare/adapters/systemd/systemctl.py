"""
systemd adapter — service queries and commands through ``systemctl``.

Every call runs ``systemctl`` with a bounded timeout. A timeout, a
missing binary, or a D-Bus connection error means the service manager
could not be asked, and raises AdapterUnavailable. Anything systemctl
answers is a classification, including a unit name systemd refuses to
parse, which is reported as not found.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from pathlib import Path

from hostcare.adapters.base import AdapterUnavailable, ControlPlane, Relationships
from hostcare.core.models.service import HealthStatus

logger = logging.getLogger(__name__)

# stderr fragments that mean systemctl never reached the manager
_TRANSPORT_ERRORS = (
    "Failed to connect to bus",
    "System has not been booted with systemd",
    "Transport endpoint is not connected",
    "Connection timed out",
)

# stderr fragments for a name systemd refuses to parse; nothing by that name can exist
_INVALID_NAME_ERRORS = (
    "is not valid",
    "neither a valid invocation ID nor unit name",
)

_UNIT_SUFFIXES = (
    ".service", ".socket", ".target", ".timer", ".mount", ".automount",
    ".path", ".slice", ".scope", ".device", ".swap",
)

_ACTIVE_STATES = frozenset({"active", "reloading"})

_DESCRIBE_LINES = 10


def unit_file_name(name: str) -> str:
    """Append '.service' unless the name already carries a unit suffix."""
    if name.endswith(_UNIT_SUFFIXES):
        return name
    return f"{name}.service"


def parse_properties(output: str) -> dict[str, str]:
    """Parse ``systemctl show`` Key=Value lines into a dict."""
    props: dict[str, str] = {}
    for line in output.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            props[key.strip()] = value.strip()
    return props


class SystemdControlPlane(ControlPlane):
    """Query and restart units through the local systemd instance.

    Args:
        timeout: Seconds allowed per systemctl call.
        systemctl: Path or name of the systemctl binary.
        user: Talk to the per-user manager (``--user``) instead of the system one.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        systemctl: str = "systemctl",
        user: bool = False,
    ):
        self._timeout = timeout
        self._systemctl = systemctl
        self._user = user

    @property
    def name(self) -> str:
        return "systemd"

    @property
    def timeout(self) -> float:
        return self._timeout

    def is_available(self) -> bool:
        if shutil.which(self._systemctl) is None:
            return False
        return Path("/run/systemd/system").exists()

    # ── Queries ──────────────────────────────────────────────────

    def query_status(self, name: str) -> HealthStatus:
        props = self._show(name, "LoadState", "ActiveState", operation="status")
        if props.get("ActiveState", "") in _ACTIVE_STATES:
            return HealthStatus.RUNNING
        if props.get("LoadState", "") == "not-found":
            return HealthStatus.NOT_FOUND
        return HealthStatus.FAILED

    def list_relationships(self, name: str) -> Relationships:
        props = self._show(name, "Requires", "RequiredBy", "Wants", operation="relationships")
        return Relationships(
            requires=tuple(props.get("Requires", "").split()),
            required_by=tuple(props.get("RequiredBy", "").split()),
            wants=tuple(props.get("Wants", "").split()),
        )

    def unit_exists(self, name: str) -> bool:
        result = self._run(
            ["list-unit-files", "--no-legend", "--no-pager", unit_file_name(name)],
            operation="list-unit-files",
            service=name,
        )
        if result.returncode == 0 and result.stdout.strip():
            return True
        # Generated and transient units have no unit file but are still loaded
        props = self._show(name, "LoadState", operation="exists")
        return props.get("LoadState", "not-found") != "not-found"

    def describe(self, name: str) -> str:
        # `systemctl status` exits non-zero for inactive units; the text is still useful
        result = self._run(
            ["status", name, "--no-pager", "-l", f"--lines={_DESCRIBE_LINES}"],
            operation="describe",
            service=name,
        )
        lines = result.stdout.strip().splitlines()
        return "\n".join(lines[:_DESCRIBE_LINES])

    # ── Commands ─────────────────────────────────────────────────

    def restart(self, name: str) -> bool:
        result = self._run(["restart", name], operation="restart", service=name)
        if result.returncode != 0:
            logger.warning(
                "systemctl restart %s exited %d: %s",
                name,
                result.returncode,
                result.stderr.strip() or "(no output)",
            )
            return False
        return True

    # ── Internals ────────────────────────────────────────────────

    def _show(self, name: str, *properties: str, operation: str) -> dict[str, str]:
        args = ["show", name, "--no-pager"]
        args.extend(f"--property={p}" for p in properties)
        result = self._run(args, operation=operation, service=name)
        if result.returncode != 0:
            stderr = result.stderr.strip()
            if any(marker in stderr for marker in _INVALID_NAME_ERRORS):
                logger.warning("systemd rejected unit name %s: %s", name, stderr)
                return {"LoadState": "not-found"}
            raise AdapterUnavailable(
                f"systemctl show {name} exited {result.returncode}: "
                f"{result.stderr.strip() or 'no output'}",
                operation=operation,
                service=name,
            )
        return parse_properties(result.stdout)

    def _run(
        self,
        args: list[str],
        operation: str,
        service: str = "",
    ) -> subprocess.CompletedProcess[str]:
        command = [self._systemctl]
        if self._user:
            command.append("--user")
        command.extend(args)

        logger.debug("Executing: %s", " ".join(command))
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired:
            raise AdapterUnavailable(
                f"systemctl {operation} timed out after {self._timeout}s",
                operation=operation,
                service=service,
            ) from None
        except OSError as e:
            raise AdapterUnavailable(
                f"Cannot run {self._systemctl}: {e}",
                operation=operation,
                service=service,
            ) from e

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug("systemctl %s → %d (%dms)", operation, result.returncode, elapsed_ms)

        stderr = result.stderr.strip()
        if any(marker in stderr for marker in _TRANSPORT_ERRORS):
            raise AdapterUnavailable(
                f"systemctl {operation} could not reach the service manager: {stderr}",
                operation=operation,
                service=service,
            )

        return result
