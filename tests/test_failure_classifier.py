from __future__ import annotations

import allure
import pytest

from checklist_runner.pipeline.errors import (
    AgentExecutionError,
    BackendRunError,
    RunCancelledError,
)
from checklist_runner.pipeline.failure_classifier import classify_failure, is_retryable
from checklist_runner.pipeline.models import FailureClass

pytestmark = [
    allure.epic("Task Pipeline"),
    allure.feature("Retry Policy"),
]


@pytest.mark.parametrize(
    "message",
    [
        "Rate limit reached",
        "rate_limit_error",
        "request timeout",
        "execution timed out after 600s",
        "context deadline exceeded",
        "network is unreachable",
        "dial tcp: connection refused",
        "read: connection reset by peer",
        "Temporary failure in name resolution",
        "Service Unavailable",
        "HTTP 503",
        "502 from upstream",
        "status 429",
        "API Overloaded",
        "Too Many Requests",
    ],
)
def test_transient_messages_are_retryable(message: str) -> None:
    assert is_retryable(AgentExecutionError(message))


@pytest.mark.parametrize(
    "message",
    [
        "SyntaxError: syntax error near line 3",
        "invalid configuration",
        "command not found",
        "401 Unauthorized",
        "Forbidden",
        "authentication required",
        "permission denied",
        "Bad Request",
        "HTTP 400",
        "HTTP 403",
        "HTTP 404",
    ],
)
def test_permanent_messages_are_not_retryable(message: str) -> None:
    assert not is_retryable(AgentExecutionError(message))


def test_non_retryable_patterns_take_precedence() -> None:
    classified = classify_failure("rate limit hit while validating: invalid api key")

    assert classified.failure_class == FailureClass.NON_RETRYABLE
    assert classified.matched_rule == "non_retryable"
    assert classified.matched_pattern == "invalid"


def test_unknown_failure_falls_back_to_non_retryable() -> None:
    classified = classify_failure(RuntimeError("something odd happened"))

    assert classified.failure_class == FailureClass.NON_RETRYABLE
    assert classified.matched_rule == "fallback_non_retryable"
    assert classified.matched_pattern is None


def test_absent_failure_is_not_retryable() -> None:
    assert not is_retryable(None)
    assert classify_failure(None).matched_rule == "no_failure"


def test_cancellation_is_not_retryable_even_with_transient_reason() -> None:
    assert not is_retryable(RunCancelledError("timeout waiting for user"))


def test_retryable_match_reports_pattern() -> None:
    classified = classify_failure("Error: 529 Overloaded")

    assert classified.retryable
    assert classified.matched_pattern == "overloaded"


def test_launch_failures_use_their_transient_flag_over_wording() -> None:
    transient = classify_failure(BackendRunError("agent binary not found yet", transient=True))
    permanent = classify_failure(BackendRunError("temporary failure", transient=False))

    assert transient.retryable
    assert transient.matched_rule == "launch_transient"
    assert not permanent.retryable
    assert permanent.matched_rule == "launch_permanent"
