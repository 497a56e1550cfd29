from __future__ import annotations

import io
from pathlib import Path

import allure
import pytest

from checklist_runner.pipeline.errors import ChecklistLoadError
from checklist_runner.pipeline.extractor import extract_tasks, load_tasks
from checklist_runner.pipeline.models import Task

pytestmark = [
    allure.epic("Task Pipeline"),
    allure.feature("Checklist Extraction"),
]


def test_extract_returns_pending_tasks_in_document_order() -> None:
    document = io.StringIO(
        "# Plan\n"
        "\n"
        "- [ ] First task\n"
        "- [x] Already done\n"
        "- [ ] Second task\n"
        "Some prose\n"
        "- [ ] Third task\n",
    )

    tasks = extract_tasks(document)

    assert tasks == [
        Task(description="First task", position=3),
        Task(description="Second task", position=5),
        Task(description="Third task", position=7),
    ]


def test_extract_joins_continuation_lines_dedented() -> None:
    document = io.StringIO(
        "- [ ] Add login endpoint\n"
        "    Use JWT tokens\n"
        "\tReturn 401 on bad credentials\n"
        "- [ ] Next\n",
    )

    tasks = extract_tasks(document)

    assert tasks[0] == Task(
        description="Add login endpoint\nUse JWT tokens\nReturn 401 on bad credentials",
        position=1,
    )
    assert tasks[1] == Task(description="Next", position=4)


def test_extract_completed_marker_closes_open_task_and_skips_its_body() -> None:
    document = io.StringIO(
        "- [ ] Pending\n"
        "  detail\n"
        "- [X] Done upper\n"
        "  done detail\n"
        "- [x] Done lower\n",
    )

    tasks = extract_tasks(document)

    assert tasks == [Task(description="Pending\ndetail", position=1)]


def test_extract_blank_line_ends_continuation() -> None:
    document = io.StringIO("- [ ] Task\n\n  not a continuation\n")

    assert extract_tasks(document) == [Task(description="Task", position=1)]


def test_extract_pending_marker_is_case_and_spacing_sensitive() -> None:
    document = io.StringIO("-[ ] no space\n- [  ] wide\n* [ ] star\n- [ ]no trailing space\n")

    assert extract_tasks(document) == []


def test_extract_empty_document_yields_no_tasks() -> None:
    assert extract_tasks(io.StringIO("")) == []


def test_extract_keeps_duplicates_and_handles_crlf() -> None:
    document = io.StringIO("- [ ] Same\r\n- [ ] Same\r\n", newline="")

    assert extract_tasks(document) == [
        Task(description="Same", position=1),
        Task(description="Same", position=2),
    ]


def test_extract_last_task_without_trailing_newline() -> None:
    document = io.StringIO("intro\n- [ ] Final task\n  more")

    assert extract_tasks(document) == [Task(description="Final task\nmore", position=2)]


def test_load_tasks_reads_file(tmp_path: Path) -> None:
    checklist = tmp_path / "PRD.md"
    checklist.write_text("- [ ] Ünïcode task\n", "utf-8")

    assert load_tasks(checklist) == [Task(description="Ünïcode task", position=1)]


def test_load_tasks_missing_file_raises_load_error(tmp_path: Path) -> None:
    with pytest.raises(ChecklistLoadError, match="failed to load checklist"):
        load_tasks(tmp_path / "missing.md")


def test_load_tasks_accepts_non_utf8_bytes(tmp_path: Path) -> None:
    checklist = tmp_path / "PRD.md"
    checklist.write_bytes("# Café plan\n- [ ] task one\n- [ ] déjà vu\n".encode("latin-1"))

    tasks = load_tasks(checklist)

    assert tasks == [
        Task(description="task one", position=2),
        Task(description="d\ufffdj\ufffd vu", position=3),
    ]
