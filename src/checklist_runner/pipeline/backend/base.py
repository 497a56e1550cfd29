"""Agent execution interface for task requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(slots=True)
class AgentResult:
    """Outcome of one agent invocation."""

    succeeded: bool
    output: str = ""
    failure: Exception | None = None


class AgentBackend(Protocol):
    """Protocol implemented by agent runners."""

    name: str

    def execute(self, request: str) -> AgentResult:
        """Run ``request`` out of process and report the outcome."""
