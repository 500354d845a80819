"""
Recovery models — restart attempts and their per-service outcomes.

A ServiceRecovery's outcome is derived from its attempt sequence and
never changes after the recovery episode ends.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AttemptOutcome(StrEnum):
    """Result of a single restart attempt."""

    COMMAND_FAILED = "command_failed"
    COMMAND_SUCCEEDED_BUT_INACTIVE = "command_succeeded_but_inactive"
    VERIFIED = "verified"


class RecoveryOutcome(StrEnum):
    """Terminal state of a service's recovery episode."""

    RECOVERED = "recovered"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"
    NOT_ATTEMPTED = "not_attempted"   # auto-restart disabled
    UNAVAILABLE = "unavailable"       # every attempt hit a dead control plane


class RestartAttempt(BaseModel):
    """One restart → verify cycle."""

    model_config = ConfigDict(frozen=True)

    service: str
    attempt: int = Field(ge=1)
    outcome: AttemptOutcome
    delay_before_next: float = 0.0
    detail: str = ""
    adapter_unavailable: bool = False


class ServiceRecovery(BaseModel):
    """The full recovery episode for one service."""

    model_config = ConfigDict(frozen=True)

    service: str
    outcome: RecoveryOutcome
    attempts: tuple[RestartAttempt, ...] = ()

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def resolved(self) -> bool:
        return self.outcome == RecoveryOutcome.RECOVERED

    @classmethod
    def from_attempts(
        cls,
        service: str,
        attempts: list[RestartAttempt],
        cancelled: bool = False,
    ) -> ServiceRecovery:
        """Derive the outcome from a finished attempt sequence."""
        if attempts and attempts[-1].outcome == AttemptOutcome.VERIFIED:
            outcome = RecoveryOutcome.RECOVERED
        elif cancelled:
            outcome = RecoveryOutcome.CANCELLED
        elif attempts and all(a.adapter_unavailable for a in attempts):
            outcome = RecoveryOutcome.UNAVAILABLE
        else:
            outcome = RecoveryOutcome.EXHAUSTED
        return cls(service=service, outcome=outcome, attempts=tuple(attempts))

    def to_dict(self) -> dict[str, Any]:
        return {
            "service": self.service,
            "outcome": self.outcome.value,
            "attempts": [a.model_dump(mode="json") for a in self.attempts],
        }


class RecoveryReport(BaseModel):
    """Outcomes for every service handed to the recovery controller."""

    model_config = ConfigDict(frozen=True)

    services: dict[str, ServiceRecovery] = Field(default_factory=dict)
    enabled: bool = True
    cancelled: bool = False

    def outcome(self, name: str) -> RecoveryOutcome | None:
        rec = self.services.get(name)
        return rec.outcome if rec else None

    def names_with(self, outcome: RecoveryOutcome) -> list[str]:
        return [n for n, r in self.services.items() if r.outcome == outcome]

    @property
    def recovered(self) -> list[str]:
        return self.names_with(RecoveryOutcome.RECOVERED)

    @property
    def exhausted(self) -> list[str]:
        return self.names_with(RecoveryOutcome.EXHAUSTED)

    @property
    def cancelled_services(self) -> list[str]:
        return self.names_with(RecoveryOutcome.CANCELLED)

    @property
    def unresolved(self) -> list[str]:
        """Every service the episode did not bring back."""
        return [n for n, r in self.services.items() if not r.resolved]

    @property
    def needs_escalation(self) -> list[str]:
        """Services that were tried and are still broken."""
        return [
            n for n, r in self.services.items()
            if r.outcome in (RecoveryOutcome.EXHAUSTED, RecoveryOutcome.UNAVAILABLE)
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "cancelled": self.cancelled,
            "recovered": self.recovered,
            "exhausted": self.exhausted,
            "services": {n: r.to_dict() for n, r in self.services.items()},
        }
