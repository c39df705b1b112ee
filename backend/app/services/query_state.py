"""
Query execution state machine.

A submitted query moves QUEUED -> RUNNING -> {SUCCEEDED, FAILED, CANCELLED}.
Polling is bounded: a query still non-terminal after the last allowed poll
becomes TIMED_OUT. `advance` is pure so polling can be tested without timers.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class QueryState(str, Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    TIMED_OUT = "TIMED_OUT"

    @classmethod
    def parse(cls, value: Optional[str]) -> "QueryState":
        """Unknown or missing states from the backend count as FAILED."""
        try:
            return cls((value or "").upper())
        except ValueError:
            return cls.FAILED


TERMINAL_STATES = frozenset({QueryState.SUCCEEDED, QueryState.FAILED, QueryState.CANCELLED})

_RANK = {
    QueryState.QUEUED: 0,
    QueryState.RUNNING: 1,
    QueryState.SUCCEEDED: 2,
    QueryState.FAILED: 2,
    QueryState.CANCELLED: 2,
    QueryState.TIMED_OUT: 2,
}


@dataclass(frozen=True)
class PollState:
    state: QueryState = QueryState.QUEUED
    attempts: int = 0
    reason: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES or self.state == QueryState.TIMED_OUT

    @property
    def succeeded(self) -> bool:
        return self.state == QueryState.SUCCEEDED


def advance(
    current: PollState,
    observed: Optional[QueryState],
    max_attempts: int,
    reason: Optional[str] = None,
) -> PollState:
    """
    Fold one poll observation into the current state.

    `observed` is None when the status call itself failed; the attempt still
    counts. Backward observations are ignored.
    """
    if current.finished:
        return current

    attempts = current.attempts + 1
    state = current.state
    if observed is not None and _RANK[observed] >= _RANK[state]:
        state = observed

    if state not in TERMINAL_STATES and attempts >= max_attempts:
        return PollState(state=QueryState.TIMED_OUT, attempts=attempts, reason=reason)

    return PollState(state=state, attempts=attempts, reason=reason or current.reason)


@dataclass(frozen=True)
class BackoffPolicy:
    """Delays in seconds for submit retries and status polling."""

    submit_delay: float = 1.0
    throttle_delay: float = 2.0
    poll_base: float = 1.0
    poll_cap: float = 10.0

    def submit_retry_delay(self, attempt: int, throttled: bool) -> float:
        """Linear backoff; `attempt` is the 1-based number of the failed attempt."""
        return (self.throttle_delay if throttled else self.submit_delay) * attempt

    def poll_delay(self, attempt: int) -> float:
        """Exponential backoff capped at `poll_cap`; `attempt` is 0-based."""
        return min(self.poll_base * (2 ** attempt), self.poll_cap)

    @classmethod
    def from_settings(cls, settings) -> "BackoffPolicy":
        return cls(
            submit_delay=settings.QUERY_SUBMIT_RETRY_DELAY_MS / 1000,
            throttle_delay=settings.QUERY_THROTTLE_RETRY_DELAY_MS / 1000,
            poll_base=settings.QUERY_POLL_BASE_DELAY_MS / 1000,
            poll_cap=settings.QUERY_POLL_MAX_DELAY_MS / 1000,
        )
