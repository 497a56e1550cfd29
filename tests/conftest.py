"""Shared test fixtures."""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from checklist_runner.pipeline.backend import AgentResult

ECHO_AGENT_COMMAND = f"{shlex.quote(sys.executable)} -m checklist_runner.pipeline.backend.echo_agent"


class ScriptedBackend:
    """In-process agent that replays a list of results and records requests."""

    name = "scripted"

    def __init__(
        self,
        results: list[AgentResult] | None = None,
        *,
        on_execute: Callable[[str], None] | None = None,
    ) -> None:
        self._results = list(results or [])
        self._on_execute = on_execute
        self.requests: list[str] = []

    def execute(self, request: str) -> AgentResult:
        self.requests.append(request)
        if self._on_execute is not None:
            self._on_execute(request)
        if self._results:
            return self._results.pop(0)
        return AgentResult(succeeded=True, output="ok")


def _git(repo: Path, *args: str) -> str:
    completed = subprocess.run(
        ["git", "-C", str(repo), *args],
        capture_output=True,
        text=True,
        check=True,
    )
    return completed.stdout.strip()


@pytest.fixture()
def git_repo(tmp_path: Path) -> Path:
    """Initialized git repository with one commit."""

    if shutil.which("git") is None:
        pytest.skip("git executable not found")
    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "-q")
    _git(repo, "config", "user.name", "Test User")
    _git(repo, "config", "user.email", "test@example.com")
    _git(repo, "config", "commit.gpgsign", "false")
    (repo / "README.md").write_text("# demo\n", "utf-8")
    _git(repo, "add", "-A")
    _git(repo, "commit", "-q", "-m", "initial")
    return repo


@pytest.fixture()
def commit_count() -> Callable[[Path], int]:
    def _count(repo: Path) -> int:
        return int(_git(repo, "rev-list", "--count", "HEAD"))

    return _count


@pytest.fixture()
def run_git() -> Callable[..., str]:
    return _git


@pytest.fixture()
def scripted_backend() -> type[ScriptedBackend]:
    return ScriptedBackend


@pytest.fixture()
def echo_agent_command() -> str:
    """Command prefix that runs the bundled echo agent with the current interpreter."""

    return ECHO_AGENT_COMMAND


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep CHECKLIST_RUNNER_* variables from the developer shell out of tests."""

    for name in list(os.environ):
        if name.startswith("CHECKLIST_RUNNER_"):
            monkeypatch.delenv(name, raising=False)
