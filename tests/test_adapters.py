"""
Tests for control plane adapters — systemd (subprocess faked) and mock.
"""

import subprocess

import pytest

from hostcare.adapters import (
    AdapterUnavailable,
    ControlPlane,
    MockControlPlane,
    Relationships,
    SystemdControlPlane,
)
from hostcare.adapters.systemd.systemctl import parse_properties, unit_file_name
from hostcare.core.models.service import HealthStatus
from hostcare.core.services.snapshot import build_snapshot


class FakeSystemctl:
    """Stand-in for subprocess.run that answers by systemctl verb."""

    def __init__(self):
        self.calls: list[list[str]] = []
        self.responses: dict[str, tuple[int, str, str]] = {}
        self.raise_on: dict[str, Exception] = {}

    def respond(self, verb: str, returncode: int = 0, stdout: str = "", stderr: str = ""):
        self.responses[verb] = (returncode, stdout, stderr)

    def __call__(self, command, **kwargs):
        self.calls.append(command)
        verb = next(a for a in command[1:] if not a.startswith("--"))
        if verb in self.raise_on:
            raise self.raise_on[verb]
        returncode, stdout, stderr = self.responses.get(verb, (0, "", ""))
        return subprocess.CompletedProcess(command, returncode, stdout, stderr)


@pytest.fixture
def fake_systemctl(monkeypatch):
    fake = FakeSystemctl()
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


# ── Helpers ──────────────────────────────────────────────────────────


class TestSystemctlHelpers:
    def test_unit_file_name(self):
        assert unit_file_name("sshd") == "sshd.service"
        assert unit_file_name("sshd.service") == "sshd.service"
        assert unit_file_name("multi-user.target") == "multi-user.target"

    def test_parse_properties(self):
        props = parse_properties("LoadState=loaded\nActiveState=active\nnoise\nWants=\n")
        assert props == {"LoadState": "loaded", "ActiveState": "active", "Wants": ""}


# ── systemd ──────────────────────────────────────────────────────────


class TestSystemdControlPlane:
    def test_is_control_plane(self):
        plane = SystemdControlPlane()
        assert isinstance(plane, ControlPlane)
        assert plane.name == "systemd"
        assert "systemd" in repr(plane)

    def test_running(self, fake_systemctl):
        fake_systemctl.respond("show", stdout="LoadState=loaded\nActiveState=active\n")
        assert SystemdControlPlane().query_status("sshd") == HealthStatus.RUNNING

    def test_reloading_counts_as_running(self, fake_systemctl):
        fake_systemctl.respond("show", stdout="LoadState=loaded\nActiveState=reloading\n")
        assert SystemdControlPlane().query_status("sshd") == HealthStatus.RUNNING

    def test_failed(self, fake_systemctl):
        fake_systemctl.respond("show", stdout="LoadState=loaded\nActiveState=failed\n")
        assert SystemdControlPlane().query_status("cron") == HealthStatus.FAILED

    def test_inactive_is_failed(self, fake_systemctl):
        fake_systemctl.respond("show", stdout="LoadState=loaded\nActiveState=inactive\n")
        assert SystemdControlPlane().query_status("cron") == HealthStatus.FAILED

    def test_not_found(self, fake_systemctl):
        fake_systemctl.respond("show", stdout="LoadState=not-found\nActiveState=inactive\n")
        assert SystemdControlPlane().query_status("bogus-unit") == HealthStatus.NOT_FOUND

    def test_show_command_line(self, fake_systemctl):
        fake_systemctl.respond("show", stdout="ActiveState=active\n")
        SystemdControlPlane(systemctl="/usr/bin/systemctl").query_status("sshd")
        command = fake_systemctl.calls[0]
        assert command[:3] == ["/usr/bin/systemctl", "show", "sshd"]
        assert "--property=ActiveState" in command

    def test_user_manager(self, fake_systemctl):
        fake_systemctl.respond("show", stdout="ActiveState=active\n")
        SystemdControlPlane(user=True).query_status("pipewire")
        assert fake_systemctl.calls[0][:2] == ["systemctl", "--user"]

    def test_timeout_is_unavailable(self, fake_systemctl):
        fake_systemctl.raise_on["show"] = subprocess.TimeoutExpired(cmd="systemctl", timeout=1)
        with pytest.raises(AdapterUnavailable) as exc:
            SystemdControlPlane(timeout=1).query_status("sshd")
        assert exc.value.service == "sshd"
        assert exc.value.operation == "status"

    def test_missing_binary_is_unavailable(self, fake_systemctl):
        fake_systemctl.raise_on["show"] = FileNotFoundError("systemctl")
        with pytest.raises(AdapterUnavailable):
            SystemdControlPlane().query_status("sshd")

    def test_bus_error_is_unavailable(self, fake_systemctl):
        fake_systemctl.respond(
            "show", returncode=1, stderr="Failed to connect to bus: No such file or directory"
        )
        with pytest.raises(AdapterUnavailable):
            SystemdControlPlane().query_status("sshd")

    def test_rejected_unit_name_is_not_found(self, fake_systemctl):
        fake_systemctl.respond(
            "show",
            returncode=1,
            stderr="Unit name foo@.service is neither a valid invocation ID nor unit name.",
        )
        plane = SystemdControlPlane()
        assert plane.query_status("foo@") == HealthStatus.NOT_FOUND
        assert plane.list_relationships("foo@") == Relationships()

    def test_rejected_unit_name_is_not_an_outage(self, fake_systemctl):
        fake_systemctl.respond(
            "show",
            returncode=1,
            stderr="Unit name foo@.service is neither a valid invocation ID nor unit name.",
        )
        snapshot = build_snapshot(SystemdControlPlane(), ["foo@"])
        assert snapshot.get("foo@").status == HealthStatus.NOT_FOUND
        assert not snapshot.all_unavailable

    def test_other_show_errors_are_unavailable(self, fake_systemctl):
        fake_systemctl.respond("show", returncode=1, stderr="Access denied")
        with pytest.raises(AdapterUnavailable):
            SystemdControlPlane().query_status("sshd")

    def test_restart_accepted(self, fake_systemctl):
        fake_systemctl.respond("restart", returncode=0)
        assert SystemdControlPlane().restart("cron") is True
        assert fake_systemctl.calls[0] == ["systemctl", "restart", "cron"]

    def test_restart_rejected(self, fake_systemctl):
        fake_systemctl.respond("restart", returncode=5, stderr="Unit cron.service not found.")
        assert SystemdControlPlane().restart("cron") is False

    def test_restart_bus_error_raises(self, fake_systemctl):
        fake_systemctl.respond("restart", returncode=1, stderr="Failed to connect to bus")
        with pytest.raises(AdapterUnavailable):
            SystemdControlPlane().restart("cron")

    def test_relationships(self, fake_systemctl):
        fake_systemctl.respond(
            "show",
            stdout=(
                "Requires=system.slice sysinit.target\n"
                "RequiredBy=\n"
                "Wants=sshd-keygen.target\n"
            ),
        )
        rels = SystemdControlPlane().list_relationships("sshd")
        assert rels.requires == ("system.slice", "sysinit.target")
        assert rels.required_by == ()
        assert rels.wants == ("sshd-keygen.target",)

    def test_unit_exists_from_unit_files(self, fake_systemctl):
        fake_systemctl.respond("list-unit-files", stdout="sshd.service enabled enabled\n")
        assert SystemdControlPlane().unit_exists("sshd")
        assert fake_systemctl.calls[0][-1] == "sshd.service"

    def test_unit_exists_falls_back_to_load_state(self, fake_systemctl):
        fake_systemctl.respond("list-unit-files", returncode=1)
        fake_systemctl.respond("show", stdout="LoadState=loaded\n")
        assert SystemdControlPlane().unit_exists("run-u1.service")

    def test_unit_does_not_exist(self, fake_systemctl):
        fake_systemctl.respond("list-unit-files", returncode=1)
        fake_systemctl.respond("show", stdout="LoadState=not-found\n")
        assert not SystemdControlPlane().unit_exists("bogus-unit")

    def test_describe_truncates(self, fake_systemctl):
        text = "\n".join(f"line {i}" for i in range(30))
        fake_systemctl.respond("status", returncode=3, stdout=text)
        detail = SystemdControlPlane().describe("cron")
        assert detail.splitlines() == [f"line {i}" for i in range(10)]

    def test_is_available_without_binary(self, monkeypatch):
        monkeypatch.setattr("shutil.which", lambda _name: None)
        assert not SystemdControlPlane().is_available()


# ── Mock ─────────────────────────────────────────────────────────────


class TestMockControlPlane:
    def test_defaults(self):
        mock = MockControlPlane()
        assert mock.name == "mock"
        assert mock.is_available()
        assert mock.query_status("anything") == HealthStatus.NOT_FOUND

    def test_set_status_and_restart(self):
        mock = MockControlPlane()
        mock.set_status("cron", HealthStatus.FAILED)
        assert mock.restart("cron")
        assert mock.query_status("cron") == HealthStatus.RUNNING

    def test_restart_unknown_unit_rejected(self):
        mock = MockControlPlane()
        assert not mock.restart("bogus-unit")

    def test_restart_script(self):
        mock = MockControlPlane(statuses={"cron": HealthStatus.FAILED})
        mock.set_restart_script("cron", [(False, HealthStatus.FAILED), (True, HealthStatus.FAILED)])
        assert not mock.restart("cron")
        assert mock.restart("cron")
        assert mock.query_status("cron") == HealthStatus.FAILED
        # Script used up: default behaviour
        assert mock.restart("cron")
        assert mock.query_status("cron") == HealthStatus.RUNNING

    def test_relationships(self):
        mock = MockControlPlane()
        mock.set_relationships("sshd", requires=["sysinit.target"])
        assert mock.list_relationships("sshd").requires == ("sysinit.target",)
        assert mock.list_relationships("other") == Relationships()

    def test_unit_exists(self):
        mock = MockControlPlane(statuses={"sshd": HealthStatus.RUNNING})
        assert mock.unit_exists("sshd")
        assert not mock.unit_exists("bogus-unit")

    def test_offline(self):
        mock = MockControlPlane(available=False)
        assert not mock.is_available()
        with pytest.raises(AdapterUnavailable):
            mock.query_status("sshd")

    def test_per_service_outage(self):
        mock = MockControlPlane(default_status=HealthStatus.RUNNING)
        mock.set_unavailable("cron", operations=["restart"])
        assert mock.query_status("cron") == HealthStatus.RUNNING
        with pytest.raises(AdapterUnavailable):
            mock.restart("cron")

    def test_call_log(self):
        mock = MockControlPlane()
        mock.query_status("a")
        mock.restart("a")
        mock.query_status("b")
        assert mock.call_log == [("status", "a"), ("restart", "a"), ("status", "b")]
        assert mock.call_count("status") == 2
        assert mock.call_count(service="a") == 2

    def test_reset(self):
        mock = MockControlPlane(statuses={"a": HealthStatus.RUNNING})
        mock.query_status("a")
        mock.reset()
        assert mock.call_log == []
        assert mock.query_status("a") == HealthStatus.NOT_FOUND
