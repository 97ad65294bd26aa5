"""Console, logging and progress display for simple telnet.

Log records are rendered with Rich and printed above the progress bars of any
batch that is running, so both stay readable while many hosts are driven at
once. The package logger is ``log``; ``setup_logging`` attaches the Rich
handler and is called by the command line interface, never on import.
"""

from __future__ import annotations

import threading
import time
from logging import INFO, WARNING, LogRecord, basicConfig, getLogger
from typing import Any

from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

console = Console(stderr=True)

progress_lock = threading.RLock()
progress = Progress(
    SpinnerColumn(),
    TextColumn("[bold blue]{task.description}"),
    BarColumn(),
    MofNCompleteColumn(),
    TimeElapsedColumn(),
    console=console,
    expand=True,
)
live_display = Live(progress, console=console, refresh_per_second=10, transient=False, auto_refresh=False)

# Progress tasks by caller-facing identifier
_active_tasks: dict[str, TaskID] = {}

log = getLogger("simple_telnet")


class LiveDisplayHandler(RichHandler):
    """Rich log handler that prints above the live progress display."""

    def emit(self, record: LogRecord) -> None:
        """Render the record, keeping any progress bars pinned below it."""
        with progress_lock:
            if not live_display.is_started:
                console.print(self.render(record))
                return
            live_display.refresh()
            console.print(self.render(record))
            live_display.refresh()


def setup_logging(level: int | str = INFO) -> None:
    """Send log records through Rich and set the package log level.

    Other libraries stay at WARNING so that only telnet events are verbose.
    """
    basicConfig(
        level=WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[LiveDisplayHandler(console=console, rich_tracebacks=True, show_time=True)],
        force=True,
    )
    log.setLevel(level)


def start_live_display() -> None:
    """Start the live display unless it is already running."""
    with progress_lock:
        if not live_display.is_started:
            live_display.start()


def stop_live_display() -> None:
    """Stop the live display once no progress task is left."""
    with progress_lock:
        if live_display.is_started and not _active_tasks:
            live_display.stop()


def create_progress(description: str, total: int = 100, task_id: str | None = None) -> str:
    """Add a progress bar, starting the live display if needed.

    Args:
        description: Text shown next to the bar
        total: Number of steps, e.g. hosts in a batch
        task_id: Identifier to use instead of a generated one

    Returns:
        Identifier to pass to ``update_progress`` and ``complete_progress``
    """
    with progress_lock:
        start_live_display()
        if task_id is None:
            task_id = f"task_{time.time()}"
        _active_tasks[task_id] = progress.add_task(description, total=total)
        live_display.refresh()
        return task_id


def update_progress(
    task_id: str,
    advance: float | None = None,
    completed: float | None = None,
    description: str | None = None,
    **kwargs: Any,
) -> None:
    """Advance a progress bar or change its description."""
    with progress_lock:
        if task_id not in _active_tasks:
            log.warning("Attempted to update non-existent progress task: %s", task_id)
            return

        changes: dict[str, Any] = {
            key: value
            for key, value in (("advance", advance), ("completed", completed), ("description", description))
            if value is not None
        }
        progress.update(_active_tasks[task_id], **changes, **kwargs)
        if live_display.is_started:
            live_display.refresh()


def complete_progress(task_id: str, description: str | None = None) -> None:
    """Fill a progress bar and forget it, stopping the display after the last one."""
    with progress_lock:
        if task_id not in _active_tasks:
            log.warning("Attempted to complete non-existent progress task: %s", task_id)
            return

        progress_task_id = _active_tasks.pop(task_id)
        if description is not None:
            progress.update(progress_task_id, description=description)
        task = next(task for task in progress.tasks if task.id == progress_task_id)
        progress.update(progress_task_id, completed=task.total)

        if live_display.is_started:
            live_display.refresh()
        stop_live_display()
