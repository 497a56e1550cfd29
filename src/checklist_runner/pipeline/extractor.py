"""Extract pending tasks from a markdown checklist."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from checklist_runner.pipeline.errors import ChecklistLoadError
from checklist_runner.pipeline.models import Task

PENDING_PREFIX = "- [ ] "
COMPLETED_PREFIXES = ("- [x] ", "- [X] ")


def extract_tasks(lines: Iterable[str]) -> list[Task]:
    """Return pending tasks in document order.

    A ``- [ ] `` line starts a task.  Indented non-empty lines that follow it
    are continuations, joined to the description with newlines after their
    leading whitespace is removed.  Completed entries and any other line end
    the task being collected.
    """

    tasks: list[Task] = []
    description: str | None = None
    position = 0

    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.rstrip("\n").removesuffix("\r")

        if line.startswith(PENDING_PREFIX):
            if description is not None:
                tasks.append(Task(description=description, position=position))
            description = line[len(PENDING_PREFIX) :]
            position = line_number
            continue

        if line.startswith(COMPLETED_PREFIXES):
            if description is not None:
                tasks.append(Task(description=description, position=position))
                description = None
            continue

        if description is not None and line[:1] in {" ", "\t"}:
            description = description + "\n" + line.lstrip(" \t")
            continue

        if description is not None:
            tasks.append(Task(description=description, position=position))
            description = None

    if description is not None:
        tasks.append(Task(description=description, position=position))
    return tasks


def load_tasks(path: Path) -> list[Task]:
    """Read ``path`` and extract its pending tasks.

    Bytes that are not valid UTF-8 decode to U+FFFD so any document the
    marker can edit also loads here.
    """

    try:
        with path.open("r", encoding="utf-8", errors="replace", newline="\n") as handle:
            return extract_tasks(handle)
    except OSError as error:
        raise ChecklistLoadError(f"failed to load checklist {path}: {error}") from error
