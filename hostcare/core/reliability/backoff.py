"""
Backoff policy — how long to wait between restart attempts.

The delay before attempt k+1 is ``base_delay * k * k``: slow escalation
for flapping services without hammering the service manager. Nothing
is waited before the first attempt or after the last one.

Sleeping is kept out of the policy. Callers get a Sleeper, a callable
that waits and can be interrupted by a cancellation event, so the
controller can be tested without real delays.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

# (seconds, cancel_event) -> True if the full delay elapsed, False if cancelled
Sleeper = Callable[[float, threading.Event | None], bool]


def quadratic_delay(attempt: int, base_delay: float) -> float:
    """Delay to insert after ``attempt`` (1-based) before the next one."""
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return base_delay * attempt * attempt


@dataclass(frozen=True)
class BackoffPolicy:
    """Bounded retry schedule.

    Args:
        max_attempts: Total restart attempts allowed per service.
        base_delay: Seconds multiplied by attempt² for the next wait.
    """

    max_attempts: int = 3
    base_delay: float = 30.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {self.base_delay}")

    def delay_after(self, attempt: int) -> float:
        """Seconds to wait after ``attempt``; 0 once attempts are used up."""
        if attempt >= self.max_attempts:
            return 0.0
        return quadratic_delay(attempt, self.base_delay)

    def schedule(self) -> list[float]:
        """Every inter-attempt delay, in order."""
        return [self.delay_after(k) for k in range(1, self.max_attempts)]


def event_sleep(seconds: float, cancel: threading.Event | None = None) -> bool:
    """Default Sleeper: block for ``seconds`` unless ``cancel`` is set first."""
    if seconds <= 0:
        return not (cancel is not None and cancel.is_set())
    if cancel is None:
        time.sleep(seconds)
        return True
    return not cancel.wait(seconds)
