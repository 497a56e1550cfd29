"""Typed failures raised inside the task pipeline."""

from __future__ import annotations


class ChecklistRunnerError(RuntimeError):
    """Base class for pipeline failures."""


class ChecklistLoadError(ChecklistRunnerError):
    """Checklist document is missing or unreadable."""


class MarkerError(ChecklistRunnerError):
    """Completion marker rejected a position."""


class CommitError(ChecklistRunnerError):
    """Version-control commit failed."""


class AgentExecutionError(ChecklistRunnerError):
    """External agent reported a failure."""


class RunCancelledError(ChecklistRunnerError):
    """Run was cancelled while waiting to retry."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"run cancelled: {reason}")
        self.reason = reason


class BackendRunError(ChecklistRunnerError):
    """Agent process could not be launched; ``transient`` marks retryable causes."""

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient
