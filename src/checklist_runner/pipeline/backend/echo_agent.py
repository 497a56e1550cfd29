"""Local deterministic agent for CLI backend integration tests."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path


def main(argv: list[str] | None = None) -> int:
    """Append the task heading to a file, or fail on request."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--prompt-file", required=True)
    parser.add_argument("--touch", default=None, help="File to append the task text to.")
    parser.add_argument("--fail", default=None, help="Fail with this stderr message.")
    parser.add_argument(
        "--fail-times",
        type=int,
        default=None,
        help="Fail only on the first N calls (needs --counter); default always fails.",
    )
    parser.add_argument("--counter", default=None, help="File tracking invocation count.")
    args = parser.parse_args(argv)

    prompt = Path(args.prompt_file).read_text("utf-8")
    calls = _bump_counter(Path(args.counter)) if args.counter else 1

    if args.fail and (args.fail_times is None or calls <= args.fail_times):
        sys.stderr.write(f"{args.fail}\n")
        return 1

    task_text = _task_text(prompt)
    if args.touch:
        target = Path(args.touch)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("a", encoding="utf-8") as handle:
            handle.write(f"{task_text}\n")
    sys.stdout.write(f"done: {task_text}\n")
    return 0


def _bump_counter(path: Path) -> int:
    current = int(path.read_text("utf-8").strip() or "0") if path.exists() else 0
    current += 1
    path.write_text(str(current), "utf-8")
    return current


def _task_text(prompt: str) -> str:
    lines = prompt.splitlines()
    try:
        start = lines.index("## Task") + 1
    except ValueError:
        return prompt.strip()
    body: list[str] = []
    for line in lines[start:]:
        if line.startswith("## "):
            break
        body.append(line)
    return "\n".join(body).strip()


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
