from __future__ import annotations

import shutil
from collections.abc import Callable
from pathlib import Path

import allure
import pytest

from checklist_runner.pipeline.errors import CommitError
from checklist_runner.pipeline.vcs import GitCommitter

pytestmark = [
    allure.epic("Task Pipeline"),
    allure.feature("Auto Commit"),
    pytest.mark.skipif(shutil.which("git") is None, reason="git executable not found"),
]


def test_auto_commit_stages_everything_and_commits(
    git_repo: Path,
    commit_count: Callable[[Path], int],
    run_git: Callable[..., str],
) -> None:
    (git_repo / "src").mkdir()
    (git_repo / "src" / "app.py").write_text("print('hi')\n", "utf-8")
    (git_repo / "README.md").write_text("# demo\nupdated\n", "utf-8")

    outcome = GitCommitter().auto_commit(git_repo, "Add app entrypoint")

    assert outcome.committed
    assert outcome.message == "checklist-runner: Add app entrypoint"
    assert outcome.revision_id == run_git(git_repo, "rev-parse", "HEAD")
    assert commit_count(git_repo) == 2
    assert run_git(git_repo, "status", "--porcelain") == ""
    assert run_git(git_repo, "log", "-1", "--format=%an <%ae>") == (
        "checklist-runner <checklist-runner@localhost>"
    )


def test_auto_commit_with_clean_tree_is_not_an_error(
    git_repo: Path,
    commit_count: Callable[[Path], int],
) -> None:
    outcome = GitCommitter().auto_commit(git_repo, "Nothing changed")

    assert not outcome.committed
    assert outcome.revision_id == ""
    assert outcome.message == ""
    assert commit_count(git_repo) == 1


def test_auto_commit_includes_deletions(git_repo: Path) -> None:
    (git_repo / "README.md").unlink()

    outcome = GitCommitter(prefix="").auto_commit(git_repo, "Remove readme")

    assert outcome.committed
    assert outcome.message == "Remove readme"
    assert not (git_repo / "README.md").exists()


def test_has_changes_tracks_untracked_files(git_repo: Path) -> None:
    committer = GitCommitter()
    assert not committer.has_changes(git_repo)

    (git_repo / "new.txt").write_text("x", "utf-8")

    assert committer.has_changes(git_repo)


def test_auto_commit_outside_repository_fails(tmp_path: Path) -> None:
    plain_dir = tmp_path / "plain"
    plain_dir.mkdir()

    with pytest.raises(CommitError, match="failed to open repository"):
        GitCommitter().auto_commit(plain_dir, "anything")
