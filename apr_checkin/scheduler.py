"""Run/wait loop that spaces check-in attempts by the 24 hour window."""

from __future__ import annotations

import enum
import logging
import sys
import time
from dataclasses import dataclass
from typing import Callable, Optional

CHECKIN_WINDOW_MS = 24 * 60 * 60 * 1000
SAFETY_WAIT_MS = 60 * 1000
PROGRESS_INTERVAL_MS = 5 * 1000

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckInOutcome:
    succeeded: bool
    last_checkin_time_ms: Optional[int] = None
    fatal: bool = False


class SchedulerState(enum.Enum):
    IDLE = "idle"
    RUNNING_ATTEMPT = "running_attempt"
    WAITING = "waiting"
    STOPPED = "stopped"


def now_ms() -> int:
    return int(time.time() * 1000)


def next_eligible_at(outcome: CheckInOutcome, now: int) -> int:
    """Earliest time the next check-in is allowed, from the server's last check-in if known."""
    if outcome.last_checkin_time_ms is not None:
        return outcome.last_checkin_time_ms + CHECKIN_WINDOW_MS
    return now + CHECKIN_WINDOW_MS


def compute_wait_ms(candidate_next: int, now: int, safety_wait_ms: int = SAFETY_WAIT_MS) -> int:
    """Milliseconds to wait until ``candidate_next``, never less than the safety wait."""
    wait = candidate_next - now
    if wait <= 0:
        return safety_wait_ms
    return wait


def format_remaining(remaining_ms: int) -> str:
    hours, rest = divmod(max(remaining_ms, 0) // 1000, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours}h {minutes}m {seconds}s"


def console_progress(remaining_ms: int) -> None:
    """Overwrite a single countdown line on an interactive terminal; 0 clears it.

    Without a terminal the countdown is logged about once a minute.
    """
    if sys.stdout.isatty():
        if remaining_ms <= 0:
            sys.stdout.write("\r" + " " * 50 + "\r")
        else:
            sys.stdout.write(f"\r[~] Next run in: {format_remaining(remaining_ms)} ")
        sys.stdout.flush()
    elif remaining_ms > 0 and remaining_ms % 60_000 < PROGRESS_INTERVAL_MS:
        logger.debug("Next run in: %s", format_remaining(remaining_ms))


class CheckInScheduler:
    """Drive ``attempt`` forever, one attempt or one wait at a time.

    ``attempt`` takes no arguments and returns a CheckInOutcome. A fatal
    outcome stops the loop; anything else schedules the next attempt from
    the outcome's last check-in time (or 24 hours from now).

    ``clock`` returns epoch milliseconds and ``sleep`` takes seconds, so a
    test can substitute a fake pair for both.
    """

    def __init__(
        self,
        attempt: Callable[[], CheckInOutcome],
        clock: Callable[[], int] = now_ms,
        sleep: Callable[[float], None] = time.sleep,
        progress: Optional[Callable[[int], None]] = console_progress,
        progress_interval_ms: int = PROGRESS_INTERVAL_MS,
        safety_wait_ms: int = SAFETY_WAIT_MS,
    ) -> None:
        self.attempt = attempt
        self.clock = clock
        self.sleep = sleep
        self.progress = progress
        self.progress_interval_ms = progress_interval_ms
        self.safety_wait_ms = safety_wait_ms
        self.state = SchedulerState.IDLE
        self.next_eligible_at_ms = clock()
        self.attempts = 0
        self.last_outcome: Optional[CheckInOutcome] = None

    def run_attempt(self) -> CheckInOutcome:
        """Run one attempt and move to WAITING or STOPPED; returns its outcome."""
        self.state = SchedulerState.RUNNING_ATTEMPT
        self.attempts += 1
        outcome = self.attempt()
        self.last_outcome = outcome

        if outcome.fatal:
            logger.critical("Check-in attempt failed fatally; stopping the loop")
            self.state = SchedulerState.STOPPED
            return outcome

        self.next_eligible_at_ms = next_eligible_at(outcome, self.clock())
        self.state = SchedulerState.WAITING
        return outcome

    def wait(self) -> int:
        """Block until the next attempt is due; returns the milliseconds waited."""
        now = self.clock()
        wait_ms = compute_wait_ms(self.next_eligible_at_ms, now, self.safety_wait_ms)
        if self.next_eligible_at_ms <= now:
            logger.warning(
                "Next check-in time is already past; waiting %ss before retrying",
                self.safety_wait_ms // 1000,
            )
            self.next_eligible_at_ms = now + wait_ms
        logger.info("Next run in %s", format_remaining(wait_ms))

        remaining = wait_ms
        while remaining > 0:
            if self.progress is not None:
                self.progress(remaining)
            step = min(remaining, self.progress_interval_ms)
            self.sleep(step / 1000)
            remaining -= step
        if self.progress is not None:
            self.progress(0)
        return wait_ms

    def run(self, max_attempts: Optional[int] = None) -> SchedulerState:
        """Loop until a fatal outcome (or ``max_attempts``) and return the final state."""
        while True:
            outcome = self.run_attempt()
            if self.state is SchedulerState.STOPPED:
                return self.state
            logger.debug("Attempt %d outcome: %s", self.attempts, outcome)
            if max_attempts is not None and self.attempts >= max_attempts:
                return self.state
            self.wait()
            logger.info("Wait complete, starting next check-in run")
