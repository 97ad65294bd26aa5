"""Output and command logs of a telnet session."""

from __future__ import annotations

from contextlib import suppress as contextlib_suppress
from dataclasses import dataclass, field
from datetime import datetime
from logging import DEBUG, FileHandler, Formatter, Logger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


def _file_logger(name: str, path: str | Path, fmt: str, terminator: str = "\n") -> Logger:
    """Create a standalone logger that appends to a file.

    Returns:
        A logger writing only to ``path``
    """
    handler = FileHandler(path, mode="a", encoding="utf-8")
    handler.setFormatter(Formatter(fmt))
    handler.terminator = terminator

    # Not registered with the logging manager, so it goes away with the session
    logger = Logger(name, level=DEBUG)
    logger.propagate = False
    logger.addHandler(handler)
    return logger


@dataclass(slots=True)
class SessionLogs:
    """Optional log files kept for one session.

    The output log receives everything the host sends, verbatim. The command
    log receives one timestamped line per command sent.
    """

    output_log: str | Path | None = field(default=None)
    command_log: str | Path | None = field(default=None)
    _output: Logger | None = field(init=False, default=None)
    _command: Logger | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        """Open the configured log files."""
        if self.output_log:
            self._output = _file_logger("simple_telnet.output", self.output_log, "%(message)s", terminator="")
            self.output(f"\n# Starting telnet output log at {datetime.now().astimezone()}")

        if self.command_log:
            self._command = _file_logger(
                "simple_telnet.command", self.command_log, "%(asctime)s %(levelname)s -- %(message)s"
            )

    def output(self, text: str, *, exact: bool = False) -> None:
        """Log text received from the host.

        Args:
            text: The text to log
            exact: Write the text as-is instead of as a line
        """
        if self._output is None:
            return
        self._output.info("%s", text if exact else f"{text}\n")

    def command(self, command: str) -> None:
        """Log a command sent to the host."""
        if self._command is None:
            return
        self._command.info("%s", command)

    def close(self) -> None:
        """Close the log files, ignoring ones that are already closed."""
        for logger in (self._output, self._command):
            if logger is None:
                continue
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                with contextlib_suppress(OSError, ValueError):
                    handler.close()
        self._output = None
        self._command = None
