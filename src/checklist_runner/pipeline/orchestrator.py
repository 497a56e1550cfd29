"""Sequential checklist orchestrator: agent -> mark complete -> commit."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from checklist_runner.pipeline.backend.base import AgentBackend
from checklist_runner.pipeline.errors import CommitError, MarkerError, RunCancelledError
from checklist_runner.pipeline.extractor import load_tasks
from checklist_runner.pipeline.marker import mark_complete
from checklist_runner.pipeline.models import RetryOutcome, RetryPolicy, RunResult, Task
from checklist_runner.pipeline.prompts import build_task_prompt
from checklist_runner.pipeline.retry import CancellationToken, execute_with_retry
from checklist_runner.pipeline.text import summarize
from checklist_runner.pipeline.vcs import GitCommitter

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_SUMMARY_MAX_CHARS = 50
_PROGRESS_SUMMARY_MAX_CHARS = 60


class ChecklistOrchestrator:
    """Runs every pending checklist task in order, stopping at the first failure.

    The orchestrator keeps no state between runs.  Positions come from a single
    parse at the start of :meth:`run`; the checklist is never re-read mid-run.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        checklist_path: Path,
        repository_path: Path,
        backend: AgentBackend,
        retry_policy: RetryPolicy | None = None,
        committer: GitCommitter | None = None,
        mark: Callable[[Path, int], None] = mark_complete,
        commit_summary_max_chars: int = DEFAULT_COMMIT_SUMMARY_MAX_CHARS,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        self.checklist_path = checklist_path
        self.repository_path = repository_path
        self.backend = backend
        self.retry_policy = (retry_policy or RetryPolicy()).normalized()
        self.committer = committer or GitCommitter()
        self.mark = mark
        self.commit_summary_max_chars = commit_summary_max_chars
        self._on_progress = on_progress or (lambda _msg: None)

    def run(self, token: CancellationToken) -> RunResult:
        """Process all pending tasks; always returns a complete :class:`RunResult`."""

        try:
            tasks = load_tasks(self.checklist_path)
        except Exception as error:  # noqa: BLE001
            self._emit(f"Failed to load tasks: {error}")
            return RunResult(succeeded=False, failure=error)

        result = RunResult(total_tasks=len(tasks))
        self._emit(_task_count_line(len(tasks)))
        if not tasks:
            result.succeeded = True
            return result

        for index, task in enumerate(tasks, start=1):
            self._emit(
                f"Task {index}/{len(tasks)}: "
                f"{summarize(task.description, _PROGRESS_SUMMARY_MAX_CHARS)}",
            )
            try:
                self._complete_task(task, token)
            except Exception as error:  # noqa: BLE001
                self._emit(f"✗ Task failed: {error}")
                self._emit(f"Completed {result.completed_tasks}/{result.total_tasks} tasks")
                result.failure = error
                return result

            result.completed_tasks += 1
            self._emit("✓ Task completed")

        result.succeeded = True
        self._emit(f"Completed {result.completed_tasks}/{result.total_tasks} tasks")
        return result

    def _complete_task(self, task: Task, token: CancellationToken) -> None:
        outcome = self._execute_with_retry(task, token)
        if not outcome.succeeded:
            if token.cancelled and not isinstance(outcome.failure, RunCancelledError):
                # agent stopped by the shutdown request; report the cancellation
                raise token.error() from outcome.failure
            raise outcome.failure or RuntimeError("agent reported failure without details")

        try:
            self.mark(self.checklist_path, task.position)
        except MarkerError as error:
            raise MarkerError(f"failed to mark task complete: {error}") from error

        summary = summarize(task.description, self.commit_summary_max_chars)
        try:
            commit = self.committer.auto_commit(self.repository_path, summary)
        except CommitError as error:
            raise CommitError(f"failed to commit: {error}") from error

        if commit.committed:
            self._emit(f"Committed: {commit.message} ({commit.revision_id[:7]})")
        else:
            self._emit("No changes to commit")

    def _execute_with_retry(self, task: Task, token: CancellationToken) -> RetryOutcome:
        request = build_task_prompt(task.description, self.checklist_path.name)

        def _operation() -> RetryOutcome:
            result = self.backend.execute(request)
            return RetryOutcome(
                succeeded=result.succeeded,
                output=result.output,
                failure=result.failure,
            )

        def _on_retry(attempt: int, remaining: int, delay_seconds: int) -> None:
            del remaining
            self._emit(
                f"Retrying in {delay_seconds}s... "
                f"(attempt {attempt}/{self.retry_policy.max_attempts})",
            )

        return execute_with_retry(token, self.retry_policy, _operation, on_retry=_on_retry)

    def _emit(self, msg: str) -> None:
        """Log and notify progress callback."""
        logger.info(msg)
        self._on_progress(msg)


def run_checklist(  # noqa: PLR0913
    checklist_path: Path,
    repository_path: Path,
    max_attempts: int,
    token: CancellationToken,
    *,
    backend: AgentBackend,
    retry_policy: RetryPolicy | None = None,
    committer: GitCommitter | None = None,
    on_progress: Callable[[str], None] | None = None,
) -> RunResult:
    """Run the pipeline once against ``checklist_path`` inside ``repository_path``."""

    policy = retry_policy or RetryPolicy()
    orchestrator = ChecklistOrchestrator(
        checklist_path=checklist_path,
        repository_path=repository_path,
        backend=backend,
        retry_policy=RetryPolicy(
            max_attempts=max_attempts,
            base_delay_seconds=policy.base_delay_seconds,
            max_jitter_percent=policy.max_jitter_percent,
        ),
        committer=committer,
        on_progress=on_progress,
    )
    return orchestrator.run(token)


def describe_task(task: Task, max_chars: int = _PROGRESS_SUMMARY_MAX_CHARS) -> str:
    """One-line label for listings: ``L<position>: <summary>``."""

    return f"L{task.position}: {summarize(task.description, max_chars)}"


def _task_count_line(count: int) -> str:
    if count == 1:
        return "Found 1 pending task"
    return f"Found {count} pending tasks"
