"""
Shared test fixtures and configuration.
"""

import logging
import threading
from pathlib import Path

import pytest

from hostcare.adapters.mock import MockControlPlane
from hostcare.core.models.service import HealthStatus


class RecordingSleeper:
    """Sleeper that never blocks; records every requested delay.

    ``cancel_after`` sets the cancel event once that many waits have
    been requested, to simulate a shutdown arriving mid-recovery.
    """

    def __init__(self, cancel_after: int | None = None):
        self.delays: list[float] = []
        self._cancel_after = cancel_after
        self._lock = threading.Lock()

    def __call__(self, seconds: float, cancel: threading.Event | None = None) -> bool:
        with self._lock:
            self.delays.append(seconds)
            if (
                self._cancel_after is not None
                and cancel is not None
                and len(self.delays) >= self._cancel_after
            ):
                cancel.set()
        return not (cancel is not None and cancel.is_set())


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def control_plane() -> MockControlPlane:
    """Mock control plane where unknown units are NOT_FOUND."""
    return MockControlPlane()


@pytest.fixture
def running_plane() -> MockControlPlane:
    """Mock control plane where every unit is RUNNING."""
    return MockControlPlane(default_status=HealthStatus.RUNNING)


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture
def make_sleeper():
    """Factory for sleepers that cancel after N waits."""
    return RecordingSleeper


@pytest.fixture
def write_config(tmp_path: Path):
    """Write a hostcare.yml into tmp_path and return its path."""

    def _write(content: str) -> Path:
        path = tmp_path / "hostcare.yml"
        path.write_text(content)
        return path

    return _write


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch):
    """Keep host config and CLI logging setup from leaking into tests."""
    for var in ("HOSTCARE_CONFIG", "HOSTCARE_LOG_LEVEL", "HOSTCARE_LOG_FILE",
                "HOSTCARE_LOG_FILE_LEVEL", "HOSTCARE_LOG_DIR"):
        monkeypatch.delenv(var, raising=False)

    root = logging.getLogger()
    level = root.level
    yield
    # setup_logging installs plain stream/file handlers; pytest's own are subclasses
    for handler in list(root.handlers):
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
