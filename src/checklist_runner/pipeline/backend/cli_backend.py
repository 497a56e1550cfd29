"""Subprocess-based backend runner for CLI coding agents."""

from __future__ import annotations

import json
import logging
import os
import shlex
import subprocess
import time
from collections.abc import Callable
from pathlib import Path
from tempfile import TemporaryDirectory

from checklist_runner.pipeline.backend.base import AgentResult
from checklist_runner.pipeline.errors import AgentExecutionError, BackendRunError

logger = logging.getLogger(__name__)

SUPPORTED_AGENTS = ("claude", "codex", "pi")
DEFAULT_COMMAND_TEMPLATES = {
    "claude": "claude -p --output-format json --dangerously-skip-permissions {model} {prompt}",
    "codex": "codex exec --dangerously-bypass-approvals-and-sandbox {model} {prompt}",
    "pi": "pi -p --no-session {model} {prompt}",
}
TIMEOUT_EXIT_CODE = 124
_PREVIEW_LIMIT = 2000


class CliAgentBackend:
    """Execute a task request through a rendered CLI command template."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        agent: str,
        command_template: str | None = None,
        model: str | None = None,
        timeout_seconds: int = 600,
        graceful_shutdown_seconds: int = 10,
        shutdown_requested: Callable[[], bool] | None = None,
        parse_json_output: bool | None = None,
        workdir: Path | None = None,
    ) -> None:
        self.name = agent
        self.command_template = command_template or DEFAULT_COMMAND_TEMPLATES.get(agent, "")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.graceful_shutdown_seconds = graceful_shutdown_seconds
        self.shutdown_requested = shutdown_requested
        self.parse_json_output = agent == "claude" if parse_json_output is None else parse_json_output
        self.workdir = workdir

    def execute(self, request: str) -> AgentResult:
        if self.shutdown_requested is not None and self.shutdown_requested():
            logger.info("Shutdown requested, not launching %s", self.name)
            return AgentResult(
                succeeded=False,
                failure=AgentExecutionError(f"{self.name} not started after shutdown request"),
            )

        with TemporaryDirectory(prefix="checklist-runner-") as scratch:
            scratch_dir = Path(scratch)
            prompt_file = scratch_dir / "task_prompt.txt"
            prompt_file.write_text(request, "utf-8")
            stdout_path = scratch_dir / "stdout.txt"
            stderr_path = scratch_dir / "stderr.txt"

            try:
                run_args, command_head = _build_run_args(
                    command_template=self.command_template,
                    model=self.model,
                    prompt=request,
                    prompt_file=prompt_file,
                )
                exit_code, timed_out = self._run(run_args, command_head, stdout_path, stderr_path)
            except BackendRunError as error:
                logger.warning("Agent %s could not run: %s", self.name, error)
                return AgentResult(succeeded=False, failure=error)

            stdout = _read_text(stdout_path)
            stderr = _read_text(stderr_path)

        return self._interpret(exit_code=exit_code, timed_out=timed_out, stdout=stdout, stderr=stderr)

    def _run(
        self,
        run_args: list[str],
        command_head: str,
        stdout_path: Path,
        stderr_path: Path,
    ) -> tuple[int, bool]:
        env = os.environ.copy()
        env["CHECKLIST_RUNNER_AGENT"] = self.name
        try:
            with (
                stdout_path.open("w", encoding="utf-8") as stdout_handle,
                stderr_path.open("w", encoding="utf-8") as stderr_handle,
            ):
                return _run_subprocess_with_shutdown(
                    run_args=run_args,
                    env=env,
                    cwd=self.workdir,
                    timeout_seconds=self.timeout_seconds,
                    stdout_handle=stdout_handle,
                    stderr_handle=stderr_handle,
                    shutdown_requested=self.shutdown_requested,
                    graceful_shutdown_seconds=self.graceful_shutdown_seconds,
                )
        except FileNotFoundError as error:
            raise BackendRunError(
                f"agent command not found: {command_head}",
                transient=False,
            ) from error
        except OSError as error:
            raise BackendRunError(
                f"agent failed to start, temporary failure: {error}",
                transient=True,
            ) from error

    def _interpret(self, *, exit_code: int, timed_out: bool, stdout: str, stderr: str) -> AgentResult:
        if timed_out:
            if self.shutdown_requested is not None and self.shutdown_requested():
                message = f"{self.name} execution stopped after shutdown request"
            else:
                message = f"{self.name} execution timed out after {self.timeout_seconds}s"
            return AgentResult(
                succeeded=False,
                output=stdout,
                failure=AgentExecutionError(message),
            )

        if exit_code != 0:
            details = _preview(stderr) or _preview(stdout)
            message = f"{self.name} command failed with exit code {exit_code}"
            if details:
                message = f"{message}: {details}"
            return AgentResult(
                succeeded=False,
                output=stdout,
                failure=AgentExecutionError(message),
            )

        if self.parse_json_output:
            return _parse_json_response(self.name, stdout)
        return AgentResult(succeeded=True, output=stdout)


def _parse_json_response(agent: str, stdout: str) -> AgentResult:
    try:
        payload = json.loads(stdout)
    except json.JSONDecodeError as error:
        return AgentResult(
            succeeded=False,
            output=stdout,
            failure=AgentExecutionError(f"failed to parse {agent} response: {error}"),
        )
    if not isinstance(payload, dict):
        return AgentResult(
            succeeded=False,
            output=stdout,
            failure=AgentExecutionError(f"unexpected {agent} response type: {type(payload).__name__}"),
        )

    result_text = str(payload.get("result") or "")
    subtype = str(payload.get("subtype") or "")
    if subtype == "success" and not payload.get("is_error"):
        return AgentResult(succeeded=True, output=result_text)

    return AgentResult(
        succeeded=False,
        output=result_text,
        failure=AgentExecutionError(f"{agent} execution failed: {result_text or subtype}"),
    )


def _build_run_args(
    *,
    command_template: str,
    model: str | None,
    prompt: str,
    prompt_file: Path,
) -> tuple[list[str], str]:
    stripped = command_template.strip()
    if not stripped:
        raise BackendRunError("agent command template is empty", transient=False)
    if "{prompt}" not in stripped and "{prompt_file}" not in stripped:
        raise BackendRunError(
            "agent command template must include {prompt} or {prompt_file}",
            transient=False,
        )

    try:
        rendered = stripped.format(
            model=f"--model {shlex.quote(model)}" if model else "",
            prompt=shlex.quote(prompt),
            prompt_file=shlex.quote(str(prompt_file)),
        )
    except (KeyError, IndexError) as error:
        raise BackendRunError(
            f"unsupported command template placeholder: {error}",
            transient=False,
        ) from error

    argv = shlex.split(rendered)
    if not argv:
        raise BackendRunError("agent command template rendered empty command", transient=False)
    return argv, argv[0]


def _run_subprocess_with_shutdown(  # noqa: PLR0913
    *,
    run_args: list[str],
    env: dict[str, str],
    cwd: Path | None,
    timeout_seconds: int,
    stdout_handle,
    stderr_handle,
    shutdown_requested: Callable[[], bool] | None,
    graceful_shutdown_seconds: int,
) -> tuple[int, bool]:
    process = subprocess.Popen(  # noqa: S603
        run_args,
        env=env,
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        stdout=stdout_handle,
        stderr=stderr_handle,
        text=True,
    )
    start_monotonic = time.monotonic()
    shutdown_deadline: float | None = None
    graceful_seconds = max(0, graceful_shutdown_seconds)

    while True:
        returncode = process.poll()
        if returncode is not None:
            return returncode, False

        now = time.monotonic()
        if now - start_monotonic >= timeout_seconds:
            _terminate_process(process)
            return TIMEOUT_EXIT_CODE, True

        if shutdown_requested is not None and shutdown_requested():
            if shutdown_deadline is None:
                shutdown_deadline = now + graceful_seconds
            if now >= shutdown_deadline:
                _terminate_process(process)
                return TIMEOUT_EXIT_CODE, True

        time.sleep(0.1)


def _terminate_process(process: subprocess.Popen[str]) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=2)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=2)


def _read_text(path: Path) -> str:
    if not path.exists():
        return ""
    return path.read_text("utf-8", errors="replace")


def _preview(text: str) -> str:
    compact = text.strip()
    if len(compact) <= _PREVIEW_LIMIT:
        return compact
    return compact[-_PREVIEW_LIMIT:]
