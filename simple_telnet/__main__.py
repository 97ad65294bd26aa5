"""Main entry point for simple telnet."""

from __future__ import annotations

from asyncio import run as asyncio_run
from sys import exit as sys_exit

from .cli.main import main


def launch() -> None:
    """Launch the simple telnet command line tool."""
    sys_exit(asyncio_run(main()))


if __name__ == "__main__":
    launch()
