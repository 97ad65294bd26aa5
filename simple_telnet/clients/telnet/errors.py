"""Exceptions raised by telnet sessions."""

from __future__ import annotations


class TelnetError(Exception):
    """Base class for telnet session errors."""


class ConnectionFailed(TelnetError, ConnectionError):
    """Raised when establishing the TCP connection fails."""


class PromptTimeout(TelnetError, TimeoutError):
    """Raised when no prompt arrived before the connection timed out or closed.

    Carries the host and the command that was waiting, when known.
    """

    def __init__(self, message: str = "", *, hostname: str | None = None, command: str | None = None) -> None:
        """Store the context of the timeout."""
        self.hostname = hostname
        self.command = command
        if not message:
            message = "Timed out waiting for prompt"
            if hostname:
                message += f" from {hostname}"
            if command is not None:
                message += f" after {command!r}"
        super().__init__(message)


class LoginFailed(TelnetError, TimeoutError):
    """Raised when the login procedure times out."""
