"""Deterministic agent failure classification for retry policy."""

from __future__ import annotations

from dataclasses import dataclass

from checklist_runner.pipeline.errors import BackendRunError, RunCancelledError
from checklist_runner.pipeline.models import FailureClass

_NON_RETRYABLE_PATTERNS: tuple[str, ...] = (
    "syntax error",
    "invalid",
    "not found",
    "unauthorized",
    "forbidden",
    "authentication",
    "permission denied",
    "bad request",
    "400",
    "401",
    "403",
    "404",
)
_RETRYABLE_PATTERNS: tuple[str, ...] = (
    "rate limit",
    "rate_limit",
    "timeout",
    "timed out",
    "deadline exceeded",
    "network",
    "connection refused",
    "connection reset",
    "temporary failure",
    "service unavailable",
    "503",
    "502",
    "429",
    "overloaded",
    "too many requests",
)


@dataclass(slots=True)
class FailureClassification:
    """Normalized failure classification result."""

    failure_class: FailureClass
    matched_rule: str
    matched_pattern: str | None

    @property
    def retryable(self) -> bool:
        return self.failure_class is FailureClass.RETRYABLE


def classify_failure(failure: BaseException | str | None) -> FailureClassification:
    """Classify an agent failure as retryable or not.

    Non-retryable patterns are checked first, so a message matching both sets
    is never retried.  Launch failures carry their own retryability flag.
    Unknown failures are not assumed transient.
    """

    if failure is None:
        return FailureClassification(
            failure_class=FailureClass.NON_RETRYABLE,
            matched_rule="no_failure",
            matched_pattern=None,
        )
    if isinstance(failure, RunCancelledError):
        return FailureClassification(
            failure_class=FailureClass.NON_RETRYABLE,
            matched_rule="cancelled",
            matched_pattern=None,
        )
    if isinstance(failure, BackendRunError):
        return FailureClassification(
            failure_class=(
                FailureClass.RETRYABLE if failure.transient else FailureClass.NON_RETRYABLE
            ),
            matched_rule="launch_transient" if failure.transient else "launch_permanent",
            matched_pattern=None,
        )

    haystack = str(failure).lower()

    pattern = _first_match(haystack, _NON_RETRYABLE_PATTERNS)
    if pattern is not None:
        return FailureClassification(
            failure_class=FailureClass.NON_RETRYABLE,
            matched_rule="non_retryable",
            matched_pattern=pattern,
        )

    pattern = _first_match(haystack, _RETRYABLE_PATTERNS)
    if pattern is not None:
        return FailureClassification(
            failure_class=FailureClass.RETRYABLE,
            matched_rule="retryable",
            matched_pattern=pattern,
        )

    return FailureClassification(
        failure_class=FailureClass.NON_RETRYABLE,
        matched_rule="fallback_non_retryable",
        matched_pattern=None,
    )


def is_retryable(failure: BaseException | str | None) -> bool:
    """Return True when ``failure`` is worth another attempt."""

    return classify_failure(failure).retryable


def _first_match(haystack: str, patterns: tuple[str, ...]) -> str | None:
    for pattern in patterns:
        if pattern in haystack:
            return pattern
    return None
