"""Command line interface components for simple telnet.

This module provides console output, logging, progress tracking and file
handling for the ``simple-telnet`` command. The entry point itself lives in
``simple_telnet.cli.main``.
"""

from __future__ import annotations

from .args import parse_args
from .console import complete_progress, console, create_progress, log, setup_logging, update_progress
from .files import FileReader, FileWriter

__all__ = [
    "FileReader",
    "FileWriter",
    "complete_progress",
    "console",
    "create_progress",
    "log",
    "parse_args",
    "setup_logging",
    "update_progress",
]
