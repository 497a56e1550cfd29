"""CLI entrypoint for checklist-runner."""

import logging
from pathlib import Path

import rich_click as click

from checklist_runner import __version__
from checklist_runner.config import Settings
from checklist_runner.pipeline.backend import SUPPORTED_AGENTS
from checklist_runner.pipeline.controllers import (
    ChecklistCliController,
    RunCommand,
    RunReport,
    TasksCommand,
)
from checklist_runner.pipeline.errors import ChecklistRunnerError

click.rich_click.USE_MARKDOWN = True
CHECKLIST_CONTROLLER = ChecklistCliController()
_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


@click.group()
@click.version_option(version=__version__, prog_name="checklist-runner")
@click.option(
    "--log-level",
    default=None,
    help="Logging level. Defaults to CHECKLIST_RUNNER_LOG_LEVEL or WARNING.",
)
def checklist_runner(log_level: str | None) -> None:
    """Complete a markdown checklist one task at a time with a coding agent."""

    _configure_logging(log_level)


@checklist_runner.command("tasks")
@click.argument("checklist", type=click.Path(path_type=Path), required=False)
def tasks(checklist: Path | None) -> None:
    """List pending `- [ ]` tasks with their line numbers."""

    try:
        _emit_lines(CHECKLIST_CONTROLLER.list_tasks(TasksCommand(checklist_path=checklist)))
    except ChecklistRunnerError as error:
        raise click.ClickException(str(error)) from error


@checklist_runner.command("run")
@click.argument("checklist", type=click.Path(path_type=Path), required=False)
@click.option(
    "--repo",
    "repository_path",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Git repository to commit into. Defaults to CHECKLIST_RUNNER_REPOSITORY or `.`.",
)
@click.option(
    "--agent",
    "-e",
    type=click.Choice(list(SUPPORTED_AGENTS), case_sensitive=False),
    default=None,
    help="Agent CLI to run. Defaults to CHECKLIST_RUNNER_AGENT or claude.",
)
@click.option("--model", default=None, help="Optional explicit model id for the agent.")
@click.option(
    "--retries",
    "max_attempts",
    type=click.IntRange(min=1),
    default=None,
    help="Retries per task after the first attempt (default 3).",
)
@click.option(
    "--retry-delay",
    "retry_delay_seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Base backoff delay in seconds (default 5).",
)
@click.option(
    "--timeout",
    "timeout_seconds",
    type=click.IntRange(min=1),
    default=None,
    help="Per-call agent timeout in seconds (default 600).",
)
@click.option(
    "--dry-run/--no-dry-run",
    default=False,
    show_default=True,
    help="Show pending tasks and the next request without running anything.",
)
def run(  # noqa: PLR0913
    checklist: Path | None,
    repository_path: Path | None,
    agent: str | None,
    model: str | None,
    max_attempts: int | None,
    retry_delay_seconds: float | None,
    timeout_seconds: int | None,
    dry_run: bool,
) -> None:
    """Run every pending task: agent call, mark complete, commit.

    Stops at the first task that cannot be completed. Re-running resumes at
    the first task that is still pending.
    """

    report = RunReport()
    try:
        _emit_lines(
            CHECKLIST_CONTROLLER.run(
                RunCommand(
                    checklist_path=checklist,
                    repository_path=repository_path,
                    agent=agent,
                    model=model,
                    max_attempts=max_attempts,
                    retry_delay_seconds=retry_delay_seconds,
                    timeout_seconds=timeout_seconds,
                    dry_run=dry_run,
                ),
                report,
            ),
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error

    result = report.result
    if not result.succeeded:
        raise click.ClickException(
            f"{result.completed_tasks} of {result.total_tasks} tasks completed: {result.failure}",
        )


def _configure_logging(level: str | None) -> None:
    if level is None:
        try:
            level = Settings.from_env().log_level
        except ValueError as error:
            raise click.ClickException(str(error)) from error
    requested = level.strip().upper()
    numeric_level = getattr(logging, requested, None)
    if not isinstance(numeric_level, int):
        raise click.BadParameter(f"Unknown log level: {requested!r}", param_hint="--log-level")
    logging.basicConfig(level=numeric_level, format=_LOG_FORMAT, datefmt=_LOG_DATEFMT)
    logging.getLogger("checklist_runner").setLevel(numeric_level)


def _emit_lines(lines) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    checklist_runner()
