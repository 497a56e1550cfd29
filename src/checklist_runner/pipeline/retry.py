"""Bounded retry with exponential backoff, jitter and cancellation."""

from __future__ import annotations

import logging
import math
import random
import threading
from collections.abc import Callable

from checklist_runner.pipeline.errors import RunCancelledError
from checklist_runner.pipeline.failure_classifier import classify_failure
from checklist_runner.pipeline.models import RetryOutcome, RetryPolicy

logger = logging.getLogger(__name__)

Operation = Callable[[], RetryOutcome]
RetryNotice = Callable[[int, int, int], None]


class CancellationToken:
    """Thread-safe, one-shot cancellation flag with a reason."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        """Request cancellation; the first reason wins."""

        with self._lock:
            if self._reason is None:
                self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def wait(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds; True when cancelled first."""

        return self._event.wait(max(0.0, timeout))

    def error(self) -> RunCancelledError:
        return RunCancelledError(self._reason or "cancelled")


def compute_backoff_delay(
    base_delay_seconds: float,
    attempt: int,
    max_jitter_percent: int,
    *,
    rng: random.Random | None = None,
) -> float:
    """Return ``base * 2**attempt`` plus up to ``max_jitter_percent`` on top.

    Jitter is additive only, so the result never drops below the plain
    exponential delay.
    """

    delay = base_delay_seconds * (2**attempt)
    if max_jitter_percent > 0:
        jitter_range = delay * max_jitter_percent / 100.0
        delay += (rng or random).uniform(0, jitter_range)  # noqa: S311
    return delay


def execute_with_retry(
    token: CancellationToken,
    policy: RetryPolicy,
    operation: Operation,
    *,
    on_retry: RetryNotice | None = None,
    rng: random.Random | None = None,
) -> RetryOutcome:
    """Run ``operation`` until it succeeds, fails permanently, or retries run out.

    The operation runs at most ``max_attempts + 1`` times.  Between attempts the
    engine waits for the backoff delay; cancelling ``token`` during that wait
    ends the sequence with a :class:`RunCancelledError` failure.
    """

    policy = policy.normalized()
    last = RetryOutcome(succeeded=False)

    for attempt in range(policy.max_attempts + 1):
        last = operation()
        if last.succeeded:
            return last

        classification = classify_failure(last.failure)
        if not classification.retryable:
            logger.info(
                "Non-retryable failure (rule=%s pattern=%s), stopping: %s",
                classification.matched_rule,
                classification.matched_pattern,
                last.failure,
            )
            return last

        if attempt >= policy.max_attempts:
            logger.warning("All %d retry attempts exhausted: %s", policy.max_attempts, last.failure)
            return last

        delay = compute_backoff_delay(
            policy.base_delay_seconds,
            attempt,
            policy.max_jitter_percent,
            rng=rng,
        )
        delay_seconds = max(1, math.ceil(delay))
        logger.info(
            "Retrying in %.2fs (attempt %d/%d, pattern=%s)",
            delay,
            attempt + 1,
            policy.max_attempts,
            classification.matched_pattern,
        )
        _notify(on_retry, attempt + 1, policy.max_attempts - attempt, delay_seconds)

        if token.wait(delay):
            logger.warning("Retry schedule abandoned: %s", token.reason)
            return RetryOutcome(succeeded=False, output=last.output, failure=token.error())

    return last


def _notify(
    on_retry: RetryNotice | None,
    attempt_number: int,
    remaining: int,
    delay_seconds: int,
) -> None:
    if on_retry is None:
        return
    try:
        on_retry(attempt_number, remaining, delay_seconds)
    except Exception:  # noqa: BLE001
        logger.warning("Retry notification hook failed", exc_info=True)
