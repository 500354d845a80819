"""
Notifications — escalate service failures to an audience.

The core only ever calls ``notify(audience, subject, body)``. How the
message travels (log line, alert command, email) is the notifier's
business, and a delivery problem is logged, never raised back into a
monitoring run.
"""

from __future__ import annotations

import logging
import shlex
import smtplib
import subprocess
from abc import ABC, abstractmethod
from email.mime.text import MIMEText

from hostcare.core.models.recovery import RecoveryReport
from hostcare.core.models.service import HealthSnapshot

logger = logging.getLogger(__name__)

DEFAULT_AUDIENCE = "admin"


class Notifier(ABC):
    """Delivery channel for alerts."""

    @abstractmethod
    def notify(self, audience: str, subject: str, body: str) -> bool:
        """Deliver one message. Returns whether delivery succeeded."""


class LogNotifier(Notifier):
    """Write alerts to the log. Always available."""

    def __init__(self, log: logging.Logger | None = None):
        self._log = log or logger

    def notify(self, audience: str, subject: str, body: str) -> bool:
        self._log.warning("ALERT [%s] %s: %s", audience, subject, body)
        return True


class CommandNotifier(Notifier):
    """Run an alert command with audience, subject and body as arguments."""

    def __init__(self, command: str, timeout: float = 30.0):
        self._command = shlex.split(command)
        self._timeout = timeout

    def notify(self, audience: str, subject: str, body: str) -> bool:
        argv = [*self._command, audience, subject, body]
        logger.info("Executing alert command: %s", self._command[0])
        try:
            subprocess.run(argv, check=True, capture_output=True, text=True, timeout=self._timeout)
            return True
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("Failed to send alert using command '%s': %s", self._command[0], e)
            return False


class EmailNotifier(Notifier):
    """Send alerts through an SMTP relay."""

    def __init__(
        self,
        smtp_server: str,
        sender: str,
        recipients: list[str],
        port: int = 25,
        timeout: float = 30.0,
    ):
        self._smtp_server = smtp_server
        self._sender = sender
        self._recipients = recipients
        self._port = port
        self._timeout = timeout

    def notify(self, audience: str, subject: str, body: str) -> bool:
        msg = MIMEText(body)
        msg["Subject"] = f"[{audience}] {subject}"
        msg["From"] = self._sender
        msg["To"] = ", ".join(self._recipients)

        try:
            with smtplib.SMTP(self._smtp_server, self._port, timeout=self._timeout) as smtp:
                smtp.send_message(msg)
            return True
        except (OSError, smtplib.SMTPException) as e:
            logger.error("Error sending email alert via %s: %s", self._smtp_server, e)
            return False


class CompositeNotifier(Notifier):
    """Fan a message out to several notifiers."""

    def __init__(self, notifiers: list[Notifier]):
        self._notifiers = list(notifiers)

    @property
    def notifiers(self) -> list[Notifier]:
        return list(self._notifiers)

    def notify(self, audience: str, subject: str, body: str) -> bool:
        results = [n.notify(audience, subject, body) for n in self._notifiers]
        return any(results)


# ── Escalation rules ─────────────────────────────────────────────


def notify_snapshot_failures(
    notifier: Notifier,
    snapshot: HealthSnapshot,
    audience: str = DEFAULT_AUDIENCE,
) -> bool:
    """Alert when a snapshot contains failed services. Returns whether a message was sent."""
    failed = snapshot.failed
    if not failed:
        return False
    notifier.notify(
        audience,
        "Service Failures Detected",
        f"Found {len(failed)} failed services: {' '.join(failed)}.",
    )
    return True


def notify_recovery_failures(
    notifier: Notifier,
    report: RecoveryReport,
    audience: str = DEFAULT_AUDIENCE,
) -> bool:
    """Alert when recovery left services exhausted or unreachable."""
    broken = report.needs_escalation
    if not broken:
        return False
    notifier.notify(
        audience,
        "Service Restart Failures",
        f"Failed to restart {len(broken)} services: {' '.join(broken)}. "
        "Manual intervention required.",
    )
    return True
