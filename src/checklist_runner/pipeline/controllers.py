"""Controllers for checklist CLI commands."""

from __future__ import annotations

import logging
import queue
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from checklist_runner.config import Settings
from checklist_runner.pipeline.backend import CliAgentBackend
from checklist_runner.pipeline.errors import ChecklistLoadError
from checklist_runner.pipeline.extractor import load_tasks
from checklist_runner.pipeline.models import RunResult
from checklist_runner.pipeline.orchestrator import ChecklistOrchestrator, describe_task
from checklist_runner.pipeline.prompts import build_task_prompt
from checklist_runner.pipeline.retry import CancellationToken
from checklist_runner.pipeline.vcs import GitCommitter

logger = logging.getLogger(__name__)

_SENTINEL = object()


@dataclass(slots=True)
class TasksCommand:
    """CLI input for pending task listing."""

    checklist_path: Path | None = None


@dataclass(slots=True)
class RunCommand:
    """CLI input for a pipeline run."""

    checklist_path: Path | None = None
    repository_path: Path | None = None
    agent: str | None = None
    model: str | None = None
    max_attempts: int | None = None
    retry_delay_seconds: float | None = None
    timeout_seconds: int | None = None
    dry_run: bool = False


@dataclass(slots=True)
class RunReport:
    """Filled in by :meth:`ChecklistCliController.run` once the run finishes."""

    result: RunResult = field(default_factory=RunResult)


class ChecklistCliController:
    """Coordinates task listing and pipeline runs for the CLI."""

    def list_tasks(self, command: TasksCommand) -> list[str]:
        settings = Settings.from_env()
        checklist_path = command.checklist_path or settings.pipeline.checklist_path
        tasks = load_tasks(checklist_path)
        if not tasks:
            return [f"No pending tasks in {checklist_path}"]
        return [f"{len(tasks)} pending task(s) in {checklist_path}:"] + [
            f"  {describe_task(task)}" for task in tasks
        ]

    def run(self, command: RunCommand, report: RunReport) -> Iterator[str]:
        """Execute the pipeline, yielding real-time progress lines."""

        settings = _apply_overrides(Settings.from_env(), command)
        settings.validate()

        if command.dry_run:
            yield from self._dry_run(settings, report)
            return

        token = CancellationToken()
        progress_q: queue.Queue[str | object] = queue.Queue()
        backend = CliAgentBackend(
            agent=settings.agent.agent,
            command_template=settings.agent.command_template(),
            model=settings.agent.model,
            timeout_seconds=settings.agent.timeout_seconds,
            graceful_shutdown_seconds=settings.agent.graceful_shutdown_seconds,
            shutdown_requested=lambda: token.cancelled,
            workdir=settings.pipeline.repository_path,
        )
        orchestrator = ChecklistOrchestrator(
            checklist_path=settings.pipeline.checklist_path,
            repository_path=settings.pipeline.repository_path,
            backend=backend,
            retry_policy=settings.retry.to_policy(),
            committer=GitCommitter(
                author_name=settings.pipeline.git_author_name,
                author_email=settings.pipeline.git_author_email,
                prefix=settings.pipeline.commit_prefix,
            ),
            commit_summary_max_chars=settings.pipeline.commit_summary_max_chars,
            on_progress=progress_q.put,
        )

        def _run() -> None:
            try:
                report.result = orchestrator.run(token)
            finally:
                progress_q.put(_SENTINEL)

        yield f"Running {settings.pipeline.checklist_path} with agent {backend.name}"
        with _signal_handlers(token):
            worker_thread = threading.Thread(target=_run, daemon=True, name="checklist-run")
            worker_thread.start()
            while True:
                try:
                    item = progress_q.get(timeout=0.5)
                except queue.Empty:
                    continue
                if item is _SENTINEL:
                    break
                yield str(item)
            worker_thread.join(timeout=10)

        if report.result.failure is not None:
            yield f"Run halted: {report.result.failure}"

    def _dry_run(self, settings: Settings, report: RunReport) -> Iterator[str]:
        checklist_path = settings.pipeline.checklist_path
        yield "Dry-run mode: showing what would execute"
        try:
            tasks = load_tasks(checklist_path)
        except ChecklistLoadError as error:
            report.result = RunResult(succeeded=False, failure=error)
            yield str(error)
            return

        report.result = RunResult(total_tasks=len(tasks), succeeded=True)
        if not tasks:
            yield "All tasks are complete!"
            return

        yield f"Agent: {settings.agent.agent}"
        yield f"Pending tasks ({len(tasks)}):"
        for task in tasks:
            yield f"  {describe_task(task)}"
        yield ""
        yield "Request for the next task:"
        yield build_task_prompt(tasks[0].description, checklist_path.name)


def _apply_overrides(settings: Settings, command: RunCommand) -> Settings:
    if command.checklist_path is not None:
        settings.pipeline.checklist_path = command.checklist_path
    if command.repository_path is not None:
        settings.pipeline.repository_path = command.repository_path
    if command.agent is not None:
        settings.agent.agent = command.agent.lower()
    if command.model is not None:
        settings.agent.model = command.model
    if command.max_attempts is not None:
        settings.retry.max_attempts = command.max_attempts
    if command.retry_delay_seconds is not None:
        settings.retry.base_delay_seconds = command.retry_delay_seconds
    if command.timeout_seconds is not None:
        settings.agent.timeout_seconds = command.timeout_seconds
    return settings


@contextmanager
def _signal_handlers(token: CancellationToken) -> Iterator[None]:
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    original_sigint = signal.getsignal(signal.SIGINT)
    original_sigterm = signal.getsignal(signal.SIGTERM)

    def _handler(signum: int, _: object | None) -> None:
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = str(signum)
        logger.warning("Received %s, cancelling run", name)
        token.cancel(f"received {name}")

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, original_sigint)
        signal.signal(signal.SIGTERM, original_sigterm)
