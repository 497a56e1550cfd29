"""Runtime configuration for the checklist pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from checklist_runner.pipeline.backend import DEFAULT_COMMAND_TEMPLATES, SUPPORTED_AGENTS
from checklist_runner.pipeline.models import RetryPolicy
from checklist_runner.pipeline.vcs import (
    DEFAULT_AUTHOR_EMAIL,
    DEFAULT_AUTHOR_NAME,
    DEFAULT_COMMIT_PREFIX,
)


@dataclass(slots=True)
class PipelineSettings:
    """Checklist location and commit settings."""

    checklist_path: Path = Path("PRD.md")
    repository_path: Path = Path(".")
    commit_prefix: str = DEFAULT_COMMIT_PREFIX
    commit_summary_max_chars: int = 50
    git_author_name: str = DEFAULT_AUTHOR_NAME
    git_author_email: str = DEFAULT_AUTHOR_EMAIL


@dataclass(slots=True)
class RetrySettings:
    """Retry policy applied to each agent call."""

    max_attempts: int = 3
    base_delay_seconds: float = 5.0
    max_jitter_percent: int = 25

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay_seconds=self.base_delay_seconds,
            max_jitter_percent=self.max_jitter_percent,
        )


@dataclass(slots=True)
class AgentSettings:
    """External agent selection and limits."""

    agent: str = "claude"
    model: str | None = None
    timeout_seconds: int = 600
    graceful_shutdown_seconds: int = 10
    command_templates: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_COMMAND_TEMPLATES),
    )

    def command_template(self, agent: str | None = None) -> str:
        return self.command_templates.get(agent or self.agent, "")


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    pipeline: PipelineSettings = field(default_factory=PipelineSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)
    agent: AgentSettings = field(default_factory=AgentSettings)
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for local use."""

        templates = dict(DEFAULT_COMMAND_TEMPLATES)
        for agent in SUPPORTED_AGENTS:
            override = os.getenv(f"CHECKLIST_RUNNER_{agent.upper()}_COMMAND_TEMPLATE", "").strip()
            if override:
                templates[agent] = override

        return cls(
            pipeline=PipelineSettings(
                checklist_path=Path(os.getenv("CHECKLIST_RUNNER_CHECKLIST", "PRD.md")),
                repository_path=Path(os.getenv("CHECKLIST_RUNNER_REPOSITORY", ".")),
                commit_prefix=os.getenv("CHECKLIST_RUNNER_COMMIT_PREFIX", DEFAULT_COMMIT_PREFIX),
                commit_summary_max_chars=_env_int("CHECKLIST_RUNNER_COMMIT_SUMMARY_MAX_CHARS", 50),
                git_author_name=os.getenv("CHECKLIST_RUNNER_GIT_AUTHOR_NAME", DEFAULT_AUTHOR_NAME),
                git_author_email=os.getenv(
                    "CHECKLIST_RUNNER_GIT_AUTHOR_EMAIL",
                    DEFAULT_AUTHOR_EMAIL,
                ),
            ),
            retry=RetrySettings(
                max_attempts=_env_int("CHECKLIST_RUNNER_MAX_RETRIES", 3),
                base_delay_seconds=_env_float("CHECKLIST_RUNNER_RETRY_DELAY_SECONDS", 5.0),
                max_jitter_percent=_env_int("CHECKLIST_RUNNER_RETRY_JITTER_PERCENT", 25),
            ),
            agent=AgentSettings(
                agent=os.getenv("CHECKLIST_RUNNER_AGENT", "claude").strip().lower(),
                model=os.getenv("CHECKLIST_RUNNER_MODEL", "").strip() or None,
                timeout_seconds=_env_int("CHECKLIST_RUNNER_AGENT_TIMEOUT_SECONDS", 600),
                graceful_shutdown_seconds=_env_int(
                    "CHECKLIST_RUNNER_GRACEFUL_SHUTDOWN_SECONDS",
                    10,
                ),
                command_templates=templates,
            ),
            log_level=os.getenv("CHECKLIST_RUNNER_LOG_LEVEL", "WARNING").strip().upper(),
        )

    def validate(self) -> None:
        """Raise configuration error for settings the pipeline cannot run with."""

        if self.agent.agent not in SUPPORTED_AGENTS:
            raise ValueError(
                f"Unsupported agent: {self.agent.agent!r} "
                f"(supported: {', '.join(SUPPORTED_AGENTS)}).",
            )
        template = self.agent.command_template()
        if "{prompt}" not in template and "{prompt_file}" not in template:
            raise ValueError(
                f"Command template for agent={self.agent.agent!r} must include "
                "{prompt} or {prompt_file}.",
            )
        if self.agent.timeout_seconds <= 0:
            raise ValueError("CHECKLIST_RUNNER_AGENT_TIMEOUT_SECONDS must be > 0.")
        if self.agent.graceful_shutdown_seconds < 0:
            raise ValueError("CHECKLIST_RUNNER_GRACEFUL_SHUTDOWN_SECONDS must be >= 0.")
        if self.pipeline.commit_summary_max_chars <= 0:
            raise ValueError("CHECKLIST_RUNNER_COMMIT_SUMMARY_MAX_CHARS must be > 0.")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value.strip())
    except ValueError as error:
        raise ValueError(f"Invalid numeric value for {name}: {value!r}") from error
