"""Flip a pending checklist entry to completed in place."""

from __future__ import annotations

from pathlib import Path

from checklist_runner.pipeline.errors import MarkerError

_PENDING = b"- [ ]"
_COMPLETED = b"- [x]"


def mark_complete_content(data: bytes, position: int) -> bytes:
    """Return ``data`` with the entry on line ``position`` marked complete.

    Only the bracket interior changes; line endings, trailing whitespace and
    encoding of every line are kept byte for byte.
    """

    if position < 1:
        raise MarkerError(f"invalid position: {position} (must be >= 1)")
    if not data:
        raise MarkerError("document is empty")

    lines = data.split(b"\n")
    if lines[-1] == b"":
        lines.pop()
    if position > len(lines):
        raise MarkerError(
            f"position {position} exceeds document length ({len(lines)} lines)",
        )

    index = position - 1
    line = lines[index]
    content = line.removesuffix(b"\r")
    if not (content.startswith(_PENDING + b" ") or content == _PENDING):
        raise MarkerError(f"line {position} is not a pending task (expected '- [ ]')")

    lines[index] = _COMPLETED + line[len(_PENDING) :]
    updated = b"\n".join(lines)
    if data.endswith(b"\n"):
        updated += b"\n"
    return updated


def mark_complete(path: Path, position: int) -> None:
    """Mark the entry at ``position`` in the checklist file as completed."""

    try:
        data = path.read_bytes()
    except OSError as error:
        raise MarkerError(f"failed to read {path}: {error}") from error

    updated = mark_complete_content(data, position)

    try:
        path.write_bytes(updated)
    except OSError as error:
        raise MarkerError(f"failed to write {path}: {error}") from error
