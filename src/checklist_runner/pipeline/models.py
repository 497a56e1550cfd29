"""Domain models for checklist task execution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FailureClass(str, Enum):
    """Normalized failure classes used by retry policy."""

    RETRYABLE = "retryable"
    NON_RETRYABLE = "non_retryable"


@dataclass(frozen=True, slots=True)
class Task:
    """One pending checklist entry.

    ``position`` is the 1-based line number of the entry's first line.  It is
    assigned once at extraction time; marking completion rewrites the line in
    place, so later positions stay valid for the whole run.
    """

    description: str
    position: int


@dataclass(slots=True)
class RetryOutcome:
    """Result of one attempt, or of a full retry sequence."""

    succeeded: bool
    output: str = ""
    failure: Exception | None = None


@dataclass(slots=True)
class RetryPolicy:
    """Bounded exponential backoff settings."""

    max_attempts: int = 3
    base_delay_seconds: float = 5.0
    max_jitter_percent: int = 25

    def normalized(self) -> RetryPolicy:
        """Return a copy with illegal values replaced by defaults."""

        defaults = RetryPolicy()
        max_attempts = self.max_attempts if self.max_attempts > 0 else defaults.max_attempts
        base_delay = (
            self.base_delay_seconds
            if self.base_delay_seconds > 0
            else defaults.base_delay_seconds
        )
        jitter = (
            self.max_jitter_percent
            if 0 <= self.max_jitter_percent <= 100  # noqa: PLR2004
            else defaults.max_jitter_percent
        )
        return RetryPolicy(
            max_attempts=max_attempts,
            base_delay_seconds=base_delay,
            max_jitter_percent=jitter,
        )


@dataclass(slots=True)
class RunResult:
    """Aggregate outcome of one orchestration pass."""

    total_tasks: int = 0
    completed_tasks: int = 0
    succeeded: bool = False
    failure: Exception | None = None


@dataclass(slots=True)
class CommitOutcome:
    """Outcome of an auto-commit; ``committed=False`` means nothing to commit."""

    committed: bool
    revision_id: str = ""
    message: str = ""
