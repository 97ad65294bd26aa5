"""Asynchronous telnet client package.

This package provides a telnet client for automating interactive hosts such as
routers, switches and legacy servers. Sessions log in, send commands and return
the output up to the next prompt, while many of them run concurrently on one
asyncio event loop.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .cli import log
from .clients.telnet import (
    ConnectionFailed,
    LoginFailed,
    PromptTimeout,
    Runtime,
    SimpleTelnet,
    TelnetError,
    TelnetOptions,
    run,
)

__all__ = [
    "ConnectionFailed",
    "LoginFailed",
    "PromptTimeout",
    "Runtime",
    "SimpleTelnet",
    "TelnetError",
    "TelnetOptions",
    "log",
    "run",
]

try:
    __version__ = version("simple-telnet")
except PackageNotFoundError:
    __version__ = "0.0.0"
