"""Telnet client module.

An asyncio implementation of a telnet client that talks to hosts the way a
person at a terminal would: wait for a prompt, type a command, read everything
up to the next prompt.

Example usage:
    ```python
    from simple_telnet.clients.telnet import SimpleTelnet, run

    async def show_version(host: SimpleTelnet) -> None:
        print(await host.cmd("show version"))

    run(show_version, host="device.example.com", username="admin", password="secret")
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .bridge import Suspension
from .client import SimpleTelnet
from .errors import ConnectionFailed, LoginFailed, PromptTimeout, TelnetError
from .options import DEFAULT_OPTIONS, PromptType, TelnetOptions
from .runtime import Runtime

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

__all__ = [
    "DEFAULT_OPTIONS",
    "ConnectionFailed",
    "LoginFailed",
    "PromptTimeout",
    "PromptType",
    "Runtime",
    "SimpleTelnet",
    "Suspension",
    "TelnetError",
    "TelnetOptions",
    "run",
]


def run(block: Callable[[SimpleTelnet], Awaitable[Any]] | None = None, /, **options: Any) -> SimpleTelnet:
    """Start an event loop, run ``block`` with a logged in session and stop.

    The loop only stops once the session and anything spawned on the same
    runtime have finished, so a ``keep_alive`` session keeps it running until
    it is closed or times out.

    Returns:
        The session
    """
    runtime = Runtime()
    return runtime.run(SimpleTelnet.connect(block, runtime=runtime, **options))
