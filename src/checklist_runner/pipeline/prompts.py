"""Agent request templates."""

from __future__ import annotations

_TASK_PROMPT = """\
## Task

{description}

## Instructions

1. Implement the task described above
2. Make the necessary code changes to complete the task
3. Stage and commit your changes with a descriptive commit message
4. DO NOT modify {checklist_name} - the orchestrator will handle marking tasks complete

Focus on completing the task correctly and thoroughly."""


def build_task_prompt(description: str, checklist_name: str = "the checklist file") -> str:
    """Render the request sent to the agent for one task."""

    return _TASK_PROMPT.format(description=description, checklist_name=checklist_name)
