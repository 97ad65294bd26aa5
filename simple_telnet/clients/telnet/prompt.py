"""Prompt detection on the decoded output of a telnet session."""

from __future__ import annotations

from asyncio import TimerHandle, get_running_loop
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from simple_telnet.cli.console import log
from simple_telnet.constants import LARGE_BUFFER_HOLDOFF, LARGE_BUFFER_SIZE

if TYPE_CHECKING:
    from collections.abc import Callable
    from re import Match, Pattern


@dataclass(slots=True)
class PromptMatcher:
    """Accumulate received text and report the output up to the next prompt.

    Matching only runs while a callback is armed with ``expect``. With a
    ``wait_time`` the match is reported only when no more text arrives for that
    long; any new text cancels the pending report and matching starts over.
    Once the buffer grows past ``LARGE_BUFFER_SIZE``, scans are limited to one
    per ``LARGE_BUFFER_HOLDOFF`` seconds because regex searches over large
    buffers get slow. The size is counted in decoded characters, not bytes,
    so with a multibyte encoding the limit applies to a larger byte count.
    """

    buffer: str = field(default="")
    last_prompt: str | None = field(default=None)
    pattern: Pattern[str] | None = field(default=None)
    wait_time: float = field(default=0.0)
    _on_match: Callable[[str], None] | None = field(default=None)
    _wait_timer: TimerHandle | None = field(default=None)
    _holdoff_timer: TimerHandle | None = field(default=None)

    @property
    def armed(self) -> bool:
        """Whether a caller is waiting for the prompt."""
        return self._on_match is not None

    def expect(self, pattern: Pattern[str], wait_time: float, on_match: Callable[[str], None]) -> None:
        """Arm the matcher for the next prompt.

        Text already in the buffer is only scanned once more text arrives.
        """
        self.pattern = pattern
        self.wait_time = wait_time or 0.0
        self._on_match = on_match

    def disarm(self) -> None:
        """Stop waiting and cancel any pending timers."""
        self._on_match = None
        self._cancel_wait_timer()
        if self._holdoff_timer is not None:
            self._holdoff_timer.cancel()
            self._holdoff_timer = None

    def feed(self, text: str) -> None:
        """Append received text and look for the prompt if armed."""
        self.buffer += text

        # More text arrived, so a pending match was not the real prompt
        self._cancel_wait_timer()

        if not self.armed:
            return

        if len(self.buffer) >= LARGE_BUFFER_SIZE:
            if self._holdoff_timer is None:
                log.debug("Input buffer at %d characters, deferring prompt scan", len(self.buffer))
                self._holdoff_timer = get_running_loop().call_later(
                    LARGE_BUFFER_HOLDOFF, self._holdoff_elapsed
                )
        else:
            self.check()

    def check(self) -> None:
        """Search the buffer for the prompt and report or schedule the match."""
        if self.pattern is None or (match := self.pattern.search(self.buffer)) is None:
            return

        if self.wait_time > 0:
            self._wait_timer = get_running_loop().call_later(self.wait_time, self._deliver, match)
        else:
            self._deliver(match)

    def _holdoff_elapsed(self) -> None:
        """Scan a large buffer once the hold-off period is over."""
        self._holdoff_timer = None
        if self.armed:
            self.check()

    def _deliver(self, match: Match[str]) -> None:
        """Consume the output up to the end of the prompt and report it."""
        self._wait_timer = None
        on_match = self._on_match
        if on_match is None:
            return

        self.last_prompt = match.group()
        output = self.buffer[: match.end()]
        self.buffer = self.buffer[match.end() :]
        self.disarm()
        on_match(output)

    def _cancel_wait_timer(self) -> None:
        if self._wait_timer is not None:
            self._wait_timer.cancel()
            self._wait_timer = None

    def clear(self) -> None:
        """Drop buffered text and pending timers."""
        self.disarm()
        self.buffer = ""
