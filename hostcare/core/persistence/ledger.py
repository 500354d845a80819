"""
Run ledger — append-only history of service-management runs.

Each ``services`` invocation adds one JSON line to
``<data_directory>/service_runs.ndjson``. Lines are never rewritten.
The controller never reads the ledger back; it exists for reporting
and for operators tailing it.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_FILE = "service_runs.ndjson"


class RunEntry(BaseModel):
    """Summary of one monitoring / recovery run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    mode: str = ""                     # check, restart, dependencies, full

    services_total: int = 0
    running: int = 0
    failed: int = 0
    not_found: int = 0
    unavailable: int = 0

    recovered: list[str] = Field(default_factory=list)
    exhausted: list[str] = Field(default_factory=list)
    unresolved: list[str] = Field(default_factory=list)

    # Per-service final word: running / recovered / exhausted / ...
    outcomes: dict[str, str] = Field(default_factory=dict)
    error: str | None = None


class RunLedger:
    """NDJSON file of RunEntry records.

    Args:
        path: Ledger file. Takes precedence over ``data_directory``.
        data_directory: Directory holding ``service_runs.ndjson``.
    """

    def __init__(self, path: Path | None = None, data_directory: Path | None = None):
        if path is None and data_directory is None:
            raise ValueError("RunLedger needs a path or a data_directory")
        self._path = path if path is not None else data_directory / DEFAULT_LEDGER_FILE

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: RunEntry) -> bool:
        """Append ``entry``. A failed write is logged and reported as False."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as ledger:
                ledger.write(entry.model_dump_json() + "\n")
        except OSError as e:
            logger.error("Cannot append to run ledger %s: %s", self._path, e)
            return False
        logger.debug("Recorded %s run in %s", entry.mode, self._path)
        return True

    def read_all(self) -> list[RunEntry]:
        """Every readable entry, oldest first. Corrupt lines are skipped."""
        return list(self._iter_entries())

    def read_recent(self, n: int = 20) -> list[RunEntry]:
        """The last ``n`` entries, oldest first."""
        return list(deque(self._iter_entries(), maxlen=n))

    def _iter_entries(self):
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error("Cannot read run ledger %s: %s", self._path, e)
            return

        for number, raw in enumerate(lines, start=1):
            if not raw.strip():
                continue
            try:
                yield RunEntry.model_validate_json(raw)
            except ValidationError as e:
                logger.warning("Skipping unreadable ledger line %d: %s", number, e.errors()[0]["msg"])
