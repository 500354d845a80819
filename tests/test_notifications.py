"""
Tests for notifiers and escalation rules.
"""

import logging
import smtplib
import subprocess

from hostcare.core.models.recovery import RecoveryOutcome, RecoveryReport, ServiceRecovery
from hostcare.core.models.service import HealthSnapshot, HealthStatus, ServiceHealth
from hostcare.core.services.notifications import (
    CommandNotifier,
    CompositeNotifier,
    EmailNotifier,
    LogNotifier,
    Notifier,
    notify_recovery_failures,
    notify_snapshot_failures,
)


class RecordingNotifier(Notifier):
    def __init__(self, result: bool = True):
        self.messages: list[tuple[str, str, str]] = []
        self._result = result

    def notify(self, audience, subject, body):
        self.messages.append((audience, subject, body))
        return self._result


def _snapshot(**statuses: HealthStatus) -> HealthSnapshot:
    return HealthSnapshot(
        entries=tuple(ServiceHealth(name=n, status=s) for n, s in statuses.items())
    )


# ── Notifiers ────────────────────────────────────────────────────────


class TestLogNotifier:
    def test_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="hostcare"):
            assert LogNotifier().notify("admin", "Subject", "Body")
        assert "ALERT [admin] Subject: Body" in caplog.text


class TestCommandNotifier:
    def test_passes_audience_subject_body(self, monkeypatch):
        calls = []

        def fake_run(argv, **kwargs):
            calls.append(argv)
            return subprocess.CompletedProcess(argv, 0, "", "")

        monkeypatch.setattr(subprocess, "run", fake_run)
        notifier = CommandNotifier("/usr/local/bin/alert --channel ops")
        assert notifier.notify("admin", "Service Failures Detected", "cron")
        assert calls == [
            ["/usr/local/bin/alert", "--channel", "ops", "admin", "Service Failures Detected", "cron"]
        ]

    def test_failure_is_reported_not_raised(self, monkeypatch):
        def fake_run(argv, **kwargs):
            raise subprocess.CalledProcessError(1, argv)

        monkeypatch.setattr(subprocess, "run", fake_run)
        assert CommandNotifier("alert").notify("admin", "s", "b") is False

    def test_missing_command(self, monkeypatch):
        def fake_run(argv, **kwargs):
            raise FileNotFoundError(argv[0])

        monkeypatch.setattr(subprocess, "run", fake_run)
        assert CommandNotifier("no-such-alert").notify("admin", "s", "b") is False


class FakeSMTP:
    sent: list = []
    fail = False

    def __init__(self, host, port, timeout=None):
        if FakeSMTP.fail:
            raise ConnectionRefusedError("refused")
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def send_message(self, msg):
        FakeSMTP.sent.append((self.host, self.port, msg))


class TestEmailNotifier:
    def test_sends_message(self, monkeypatch):
        monkeypatch.setattr(FakeSMTP, "sent", [])
        monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)

        notifier = EmailNotifier("mail.local", "host@example.com", ["ops@example.com"], port=2525)
        assert notifier.notify("admin", "Service Restart Failures", "cron")

        host, port, msg = FakeSMTP.sent[0]
        assert (host, port) == ("mail.local", 2525)
        assert msg["Subject"] == "[admin] Service Restart Failures"
        assert msg["To"] == "ops@example.com"

    def test_connection_error(self, monkeypatch):
        monkeypatch.setattr(FakeSMTP, "fail", True)
        monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
        notifier = EmailNotifier("mail.local", "host@example.com", ["ops@example.com"])
        assert notifier.notify("admin", "s", "b") is False


class TestCompositeNotifier:
    def test_fans_out(self):
        a, b = RecordingNotifier(), RecordingNotifier(result=False)
        composite = CompositeNotifier([a, b])
        assert composite.notify("admin", "s", "b")
        assert len(a.messages) == len(b.messages) == 1
        assert composite.notifiers == [a, b]

    def test_all_failed(self):
        composite = CompositeNotifier([RecordingNotifier(result=False)])
        assert composite.notify("admin", "s", "b") is False


# ── Escalation rules ─────────────────────────────────────────────────


class TestEscalation:
    def test_snapshot_failures(self):
        notifier = RecordingNotifier()
        snap = _snapshot(sshd=HealthStatus.RUNNING, cron=HealthStatus.FAILED)
        assert notify_snapshot_failures(notifier, snap, "ops")
        audience, subject, body = notifier.messages[0]
        assert audience == "ops"
        assert subject == "Service Failures Detected"
        assert body == "Found 1 failed services: cron."

    def test_no_failures_no_message(self):
        notifier = RecordingNotifier()
        snap = _snapshot(sshd=HealthStatus.RUNNING, bogus=HealthStatus.NOT_FOUND)
        assert not notify_snapshot_failures(notifier, snap)
        assert notifier.messages == []

    def test_recovery_failures(self):
        notifier = RecordingNotifier()
        report = RecoveryReport(
            services={
                "cron": ServiceRecovery(service="cron", outcome=RecoveryOutcome.EXHAUSTED),
                "dbus": ServiceRecovery(service="dbus", outcome=RecoveryOutcome.RECOVERED),
            }
        )
        assert notify_recovery_failures(notifier, report)
        audience, subject, body = notifier.messages[0]
        assert audience == "admin"
        assert subject == "Service Restart Failures"
        assert "cron" in body and "dbus" not in body

    def test_cancelled_recovery_not_escalated(self):
        notifier = RecordingNotifier()
        report = RecoveryReport(
            services={"cron": ServiceRecovery(service="cron", outcome=RecoveryOutcome.CANCELLED)}
        )
        assert not notify_recovery_failures(notifier, report)
