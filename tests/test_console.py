"""Unit tests for the console, logging and progress helpers."""

from __future__ import annotations

from logging import DEBUG
from typing import TYPE_CHECKING
from unittest.mock import MagicMock, call, patch

import pytest

from simple_telnet.cli.console import (
    LiveDisplayHandler,
    _active_tasks,  # noqa: PLC2701
    complete_progress,
    create_progress,
    log,
    setup_logging,
    update_progress,
)

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def reset_progress_state() -> Generator[None]:
    """Keep progress tasks from leaking between tests."""
    saved = _active_tasks.copy()
    _active_tasks.clear()
    yield
    _active_tasks.clear()
    _active_tasks.update(saved)


@pytest.fixture
def mock_live() -> Generator[MagicMock]:
    """Fixture providing a mock live display."""
    with patch("simple_telnet.cli.console.live_display") as mock:
        mock.is_started = True
        yield mock


@pytest.fixture
def mock_progress() -> Generator[MagicMock]:
    """Fixture providing a mock progress bar."""
    with patch("simple_telnet.cli.console.progress") as mock:
        mock.add_task.return_value = 7
        task = MagicMock(id=7, total=3)
        mock.tasks = [task]
        yield mock


@pytest.mark.parametrize("started", [False, True])
def test_handler_prints_above_progress(started: bool) -> None:  # noqa: FBT001
    """Test records are printed, refreshing the live display around them when it runs."""
    with (
        patch("simple_telnet.cli.console.live_display") as mock_live,
        patch("simple_telnet.cli.console.console") as mock_console,
    ):
        mock_live.is_started = started
        handler = LiveDisplayHandler()
        record = MagicMock()

        with patch.object(handler, "render", return_value="rendered") as mock_render:
            handler.emit(record)

        mock_render.assert_called_once_with(record)
        mock_console.print.assert_called_once_with("rendered")
        if mock_live.refresh.call_count != (2 if started else 0):
            pytest.fail(f"Unexpected refresh count {mock_live.refresh.call_count}")


def test_setup_logging_sets_package_level() -> None:
    """Test the package logger gets the requested level and the Rich handler."""
    with patch("simple_telnet.cli.console.basicConfig") as mock_basic_config:
        try:
            setup_logging(DEBUG)
            if log.level != DEBUG:
                pytest.fail(f"Expected DEBUG, got {log.level}")
        finally:
            log.setLevel(0)

    handlers = mock_basic_config.call_args.kwargs["handlers"]
    if len(handlers) != 1 or not isinstance(handlers[0], LiveDisplayHandler):
        pytest.fail(f"Expected a single Rich handler, got {handlers!r}")


def test_progress_lifecycle(mock_progress: MagicMock, mock_live: MagicMock) -> None:
    """Test a progress task is created, advanced and completed."""
    task_id = create_progress("Running commands", total=3, task_id="batch")
    update_progress(task_id, advance=1, description="Running commands: r1 ✓")
    complete_progress(task_id, "Done")

    mock_progress.add_task.assert_called_once_with("Running commands", total=3)
    mock_progress.update.assert_has_calls([
        call(7, advance=1, description="Running commands: r1 ✓"),
        call(7, description="Done"),
        call(7, completed=3),
    ])
    if task_id in _active_tasks:
        pytest.fail("Completed task should be forgotten")
    mock_live.stop.assert_called_once()


def test_generated_task_id(mock_progress: MagicMock, mock_live: MagicMock) -> None:
    """Test a task identifier is generated when none is given."""
    with patch("simple_telnet.cli.console.time.time", return_value=1000.0):
        task_id = create_progress("Batch")

    if task_id != "task_1000.0" or _active_tasks[task_id] != 7:
        pytest.fail(f"Unexpected task {task_id!r}")
    mock_live.start.assert_not_called()


def test_display_kept_while_tasks_remain(mock_progress: MagicMock, mock_live: MagicMock) -> None:
    """Test the display only stops after the last task."""
    create_progress("first", task_id="first")
    _active_tasks["second"] = 8

    complete_progress("first")

    mock_live.stop.assert_not_called()


@pytest.mark.parametrize("func", [update_progress, complete_progress])
def test_unknown_task_warns(func: object, mock_progress: MagicMock) -> None:
    """Test unknown task identifiers are reported and ignored."""
    with patch("simple_telnet.cli.console.log") as mock_log:
        func("missing")  # type: ignore[operator]

    mock_progress.update.assert_not_called()
    mock_log.warning.assert_called_once()
