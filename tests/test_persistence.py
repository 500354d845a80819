"""
Tests for persistence — the append-only run ledger.
"""

import json
from pathlib import Path

import pytest

from hostcare.core.persistence.ledger import DEFAULT_LEDGER_FILE, RunEntry, RunLedger


class TestRunEntry:
    def test_defaults(self):
        entry = RunEntry(mode="check")
        assert entry.timestamp
        assert entry.recovered == []
        assert entry.error is None

    def test_json_round_trip(self):
        entry = RunEntry(mode="full", failed=1, exhausted=["cron"], outcomes={"cron": "exhausted"})
        loaded = RunEntry.model_validate(entry.model_dump(mode="json"))
        assert loaded == entry


class TestRunLedger:
    def test_needs_a_location(self):
        with pytest.raises(ValueError):
            RunLedger()

    def test_data_directory_path(self, tmp_path: Path):
        ledger = RunLedger(data_directory=tmp_path)
        assert ledger.path == tmp_path / DEFAULT_LEDGER_FILE

    def test_append_and_read(self, tmp_path: Path):
        ledger = RunLedger(data_directory=tmp_path / "data")
        assert ledger.write(RunEntry(mode="check", running=3))
        assert ledger.write(RunEntry(mode="restart", recovered=["cron"]))

        entries = ledger.read_all()
        assert [e.mode for e in entries] == ["check", "restart"]
        assert entries[1].recovered == ["cron"]

        lines = ledger.path.read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["running"] == 3

    def test_read_missing_file(self, tmp_path: Path):
        assert RunLedger(path=tmp_path / "none.ndjson").read_all() == []

    def test_corrupt_lines_skipped(self, tmp_path: Path):
        path = tmp_path / DEFAULT_LEDGER_FILE
        good = RunEntry(mode="check").model_dump_json()
        path.write_text(f"{good}\nnot json\n\n{{\"running\": \"x\"}}\n{good}\n")
        assert len(RunLedger(path=path).read_all()) == 2

    def test_read_recent(self, tmp_path: Path):
        ledger = RunLedger(data_directory=tmp_path)
        for i in range(5):
            ledger.write(RunEntry(mode="check", running=i))
        assert [e.running for e in ledger.read_recent(2)] == [3, 4]

    def test_write_failure_returns_false(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        ledger = RunLedger(data_directory=blocker / "sub")
        assert ledger.write(RunEntry(mode="check")) is False
