"""Agent backend implementations."""

from checklist_runner.pipeline.backend.base import AgentBackend, AgentResult
from checklist_runner.pipeline.backend.cli_backend import (
    DEFAULT_COMMAND_TEMPLATES,
    SUPPORTED_AGENTS,
    BackendRunError,
    CliAgentBackend,
)

__all__ = [
    "DEFAULT_COMMAND_TEMPLATES",
    "SUPPORTED_AGENTS",
    "AgentBackend",
    "AgentResult",
    "BackendRunError",
    "CliAgentBackend",
]
