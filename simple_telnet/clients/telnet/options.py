"""Layered configuration for telnet sessions."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from re import Pattern, compile as re_compile, escape as re_escape
from typing import TYPE_CHECKING, Any, Self, TypeAlias

from simple_telnet.constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_ENCODING,
    DEFAULT_HOST,
    DEFAULT_LOGIN_PROMPT,
    DEFAULT_PASSWORD_PROMPT,
    DEFAULT_PORT,
    DEFAULT_PROMPT,
    DEFAULT_TIMEOUT,
)

if TYPE_CHECKING:
    from pathlib import Path

PromptType: TypeAlias = str | Pattern[str]


def as_pattern(prompt: PromptType) -> Pattern[str]:
    """Turn a prompt into a compiled pattern.

    Strings are matched literally, compiled patterns are used as they are.

    Returns:
        The compiled pattern
    """
    if isinstance(prompt, Pattern):
        return prompt
    return re_compile(re_escape(prompt))


@dataclass(slots=True, frozen=True)
class TelnetOptions:
    """Options of a telnet session.

    Precedence is per-call overrides, then session options, then these
    defaults. Each layer is a new instance made with ``merge``.
    """

    host: str = field(default=DEFAULT_HOST)
    port: int = field(default=DEFAULT_PORT)
    prompt: PromptType = field(default=DEFAULT_PROMPT)
    connect_timeout: float | None = field(default=DEFAULT_CONNECT_TIMEOUT)
    timeout: float | None = field(default=DEFAULT_TIMEOUT)
    wait_time: float = field(default=0.0)
    keep_alive: bool = field(default=False)
    bin_mode: bool = field(default=False)
    telnet_mode: bool = field(default=True)
    output_log: str | Path | None = field(default=None)
    command_log: str | Path | None = field(default=None)
    login_prompt: PromptType = field(default=DEFAULT_LOGIN_PROMPT)
    password_prompt: PromptType = field(default=DEFAULT_PASSWORD_PROMPT)
    username: str | None = field(default=None)
    password: str | None = field(default=None, repr=False)
    encoding: str = field(default=DEFAULT_ENCODING)

    def merge(self, **overrides: Any) -> Self:
        """Return a copy with the given options replaced.

        Raises:
            TypeError: If an option name is not recognised
        """
        if not overrides:
            return self
        return replace(self, **overrides)

    @property
    def prompt_pattern(self) -> Pattern[str]:
        """Compiled form of the prompt option."""
        return as_pattern(self.prompt)

    def as_dict(self) -> dict[str, Any]:
        """Convert the options to a dictionary.

        Returns:
            Dictionary representation of the options, password masked
        """
        options = asdict(self)
        if options["password"] is not None:
            options["password"] = "***"  # noqa: S105
        return options


DEFAULT_OPTIONS = TelnetOptions()
