"""Auto-commit working-tree changes with the git CLI."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from checklist_runner.pipeline.errors import CommitError
from checklist_runner.pipeline.models import CommitOutcome

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR_NAME = "checklist-runner"
DEFAULT_AUTHOR_EMAIL = "checklist-runner@localhost"
DEFAULT_COMMIT_PREFIX = "checklist-runner"


class GitCommitter:
    """Stage everything and commit only when something is staged."""

    def __init__(
        self,
        *,
        author_name: str = DEFAULT_AUTHOR_NAME,
        author_email: str = DEFAULT_AUTHOR_EMAIL,
        prefix: str = DEFAULT_COMMIT_PREFIX,
        git_executable: str = "git",
    ) -> None:
        self.author_name = author_name
        self.author_email = author_email
        self.prefix = prefix
        self.git_executable = git_executable

    def auto_commit(self, repository_path: Path, summary: str) -> CommitOutcome:
        """Commit all changes in ``repository_path`` with ``summary`` as subject."""

        self._ensure_work_tree(repository_path)
        self._git(repository_path, "add", "-A", action="stage changes")

        if not self._has_staged_changes(repository_path):
            logger.info("Nothing to commit in %s", repository_path)
            return CommitOutcome(committed=False)

        message = self.format_message(summary)
        self._git(
            repository_path,
            "-c",
            f"user.name={self.author_name}",
            "-c",
            f"user.email={self.author_email}",
            "commit",
            "--no-verify",
            "-m",
            message,
            action="commit",
        )
        revision = self._git(repository_path, "rev-parse", "HEAD", action="resolve HEAD")
        revision_id = revision.stdout.strip()
        logger.info("Committed %s: %s", revision_id[:7], message)
        return CommitOutcome(committed=True, revision_id=revision_id, message=message)

    def has_changes(self, repository_path: Path) -> bool:
        """Return True when the work tree has uncommitted or untracked changes."""

        self._ensure_work_tree(repository_path)
        status = self._git(repository_path, "status", "--porcelain", action="read status")
        return bool(status.stdout.strip())

    def format_message(self, summary: str) -> str:
        if not self.prefix:
            return summary
        return f"{self.prefix}: {summary}"

    def _ensure_work_tree(self, repository_path: Path) -> None:
        completed = self._git(
            repository_path,
            "rev-parse",
            "--is-inside-work-tree",
            action="open repository",
        )
        if completed.stdout.strip() != "true":
            raise CommitError(f"failed to open repository: {repository_path} is not a work tree")

    def _has_staged_changes(self, repository_path: Path) -> bool:
        completed = self._run(repository_path, "diff", "--cached", "--quiet")
        if completed.returncode == 0:
            return False
        if completed.returncode == 1:
            return True
        raise CommitError(f"failed to get status: {_stderr_text(completed)}")

    def _git(
        self,
        repository_path: Path,
        *args: str,
        action: str,
    ) -> subprocess.CompletedProcess[str]:
        completed = self._run(repository_path, *args)
        if completed.returncode != 0:
            raise CommitError(f"failed to {action}: {_stderr_text(completed)}")
        return completed

    def _run(self, repository_path: Path, *args: str) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(  # noqa: S603
                [self.git_executable, "-C", str(repository_path), *args],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as error:
            raise CommitError(f"failed to run {self.git_executable}: {error}") from error


def _stderr_text(completed: subprocess.CompletedProcess[str]) -> str:
    text = (completed.stderr or completed.stdout or "").strip()
    return text or f"exit code {completed.returncode}"
