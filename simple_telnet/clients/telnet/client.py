"""Asynchronous Telnet session implementation module.

This module provides SimpleTelnet, an asyncio protocol that drives one telnet
connection and offers a command interface in the style of the old telnetlib
``Telnet`` class: send a command, get back the output up to the next prompt.

Every blocking-style call (connecting, waiting for a prompt, running a command,
logging in) parks the calling coroutine on a Suspension which the protocol
callbacks resume, so any number of sessions can run side by side on one event
loop.
"""

from __future__ import annotations

from asyncio import get_running_loop, timeout as asyncio_timeout
from codecs import getincrementaldecoder
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Self

from simple_telnet.cli.console import log
from simple_telnet.constants import HIDDEN_COMMAND

from .bridge import Suspension
from .errors import ConnectionFailed, LoginFailed, PromptTimeout
from .logs import SessionLogs
from .negotiate import TelnetNegotiator
from .options import DEFAULT_OPTIONS, TelnetOptions
from .prompt import PromptMatcher
from .reassemble import StreamReassembler
from .types import ConnectionState

if TYPE_CHECKING:
    from asyncio import BaseTransport, Future, TimerHandle, Transport
    from codecs import IncrementalDecoder
    from collections.abc import Awaitable, Callable, Generator

    from .options import PromptType
    from .runtime import Runtime


@dataclass(slots=True, eq=False)
class SimpleTelnet:
    """Telnet session with a seemingly synchronous command interface.

    Implements the asyncio protocol callbacks for its connection and the async
    context manager protocol for easy use in async with statements.

    Examples:
        Run a block with a logged in session, closed afterwards:

        ```python
        async def show_version(host: SimpleTelnet) -> None:
            print(await host.cmd("show version"))

        await SimpleTelnet.connect(show_version, host="router", username="admin", password="secret")
        ```

        Context manager usage:

        ```python
        async with SimpleTelnet.from_options(host="router") as host:
            output = await host.cmd("ls -la", prompt=re.compile(r"\\$ \\Z"))
        ```
    """

    options: TelnetOptions = field(default=DEFAULT_OPTIONS)
    runtime: Runtime | None = field(default=None)

    state: ConnectionState = field(init=False, default=ConnectionState.CONNECTING)
    transport: Transport | None = field(init=False, default=None)
    last_command: str | None = field(init=False, default=None)
    logged_in: datetime | None = field(init=False, default=None)

    negotiator: TelnetNegotiator = field(init=False, default_factory=TelnetNegotiator)
    reassembler: StreamReassembler = field(init=False, default_factory=StreamReassembler)
    matcher: PromptMatcher = field(init=False, default_factory=PromptMatcher)
    logs: SessionLogs = field(init=False, default_factory=SessionLogs)

    _suspension: Suspension[Any] | None = field(init=False, default=None)
    _decoder: IncrementalDecoder | None = field(init=False, default=None)
    _inactivity_timer: TimerHandle | None = field(init=False, default=None)
    _last_activity: float = field(init=False, default=0.0)
    _closed: Future[None] | None = field(init=False, default=None)

    @classmethod
    def from_options(cls, *, runtime: Runtime | None = None, **options: Any) -> Self:
        """Create a session with the given options merged over the defaults.

        Returns:
            An unconnected session
        """
        return cls(options=DEFAULT_OPTIONS.merge(**options), runtime=runtime)

    @classmethod
    async def connect(
        cls,
        block: Callable[[Self], Awaitable[Any]] | None = None,
        /,
        *,
        runtime: Runtime | None = None,
        **options: Any,
    ) -> Self:
        """Connect, log in, run ``block`` with the session and close it again.

        The session stays open when ``keep_alive`` is set. Errors raised while
        logging in or inside the block propagate once the session is closed.

        Args:
            block: Coroutine function called with the logged in session
            runtime: Runtime that tracks the session
            **options: Session options, see TelnetOptions

        Returns:
            The session, closed unless ``keep_alive`` was requested
        """
        session = cls.from_options(runtime=runtime, **options)
        async with session:
            if block is not None:
                await block(session)
        return session

    async def __aenter__(self) -> Self:
        """Connect and log in.

        Returns:
            The connected and logged in session

        Raises:
            ConnectionFailed: If the connection attempt fails
            LoginFailed: If the login times out
        """
        if not self.is_connected:
            await self.open()
        try:
            await self.login()
        except BaseException:
            await self._finish()
            raise
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Close the session unless it should be kept alive."""
        await self._finish()

    async def _finish(self) -> None:
        if not self.options.keep_alive:
            await self.close()

    # Properties

    @property
    def is_connected(self) -> bool:
        """Check if the session is currently connected."""
        return self.state in {ConnectionState.CONNECTED, ConnectionState.WAITING_FOR_PROMPT}

    @property
    def closed(self) -> bool:
        """Check if the connection is closed."""
        return self.state is ConnectionState.CLOSED

    @property
    def is_logged_in(self) -> bool:
        """Check if the login succeeded."""
        return self.logged_in is not None

    @property
    def last_prompt(self) -> str | None:
        """Text of the prompt matched last."""
        return self.matcher.last_prompt

    @property
    def input_buffer(self) -> str:
        """Received text not yet returned by a wait."""
        return self.matcher.buffer

    @property
    def telnet_mode(self) -> bool:
        """Whether telnet command sequences are interpreted and escaped.

        Turn this off when connecting to a non-telnet service such as SMTP.
        """
        return self.options.telnet_mode

    @telnet_mode.setter
    def telnet_mode(self, enabled: bool) -> None:
        self.options = self.options.merge(telnet_mode=enabled)

    @property
    def bin_mode(self) -> bool:
        """Whether newline conversion is switched off."""
        return self.options.bin_mode

    @bin_mode.setter
    def bin_mode(self, enabled: bool) -> None:
        self.options = self.options.merge(bin_mode=enabled)

    @property
    def timeout(self) -> float | None:
        """Seconds of inactivity after which the connection is closed."""
        return self.options.timeout

    @timeout.setter
    def timeout(self, seconds: float | None) -> None:
        self.options = self.options.merge(timeout=seconds)
        self._arm_inactivity()

    @contextmanager
    def temporary_timeout(self, seconds: float | None) -> Generator[None]:
        """Use another inactivity timeout for the duration of the block.

        Examples:
            ```python
            with host.temporary_timeout(200):
                await host.cmd("command 1")
                await host.cmd("command 2")
            ```
        """
        before = self.timeout
        self.timeout = seconds
        try:
            yield
        finally:
            self.timeout = before

    @contextmanager
    def overridden(self, **overrides: Any) -> Generator[TelnetOptions]:
        """Replace options for the duration of the block and restore them after."""
        previous = self.options
        self.options = previous.merge(**overrides)
        if "timeout" in overrides:
            self._arm_inactivity()
        try:
            yield self.options
        finally:
            self.options = previous
            if "timeout" in overrides:
                self._arm_inactivity()

    # Connection handling

    async def open(self) -> Self:
        """Establish the telnet connection.

        Returns:
            The connected session

        Raises:
            ConnectionFailed: If the connection fails or times out
        """
        if self.is_connected:
            return self

        loop = get_running_loop()
        host, port = self.options.host, self.options.port
        self.state = ConnectionState.CONNECTING
        self.logs = SessionLogs(self.options.output_log, self.options.command_log)
        self._closed = loop.create_future()
        if self.runtime is not None:
            self.runtime.register(self)

        suspension = self._park()
        log.info("Connecting with telnet to %s:%d", host, port)
        try:
            async with asyncio_timeout(self.options.connect_timeout or None):
                await loop.create_connection(lambda: self, host, port)
        except (TimeoutError, OSError) as e:
            if not self.closed:
                self._connection_failed(e)

        await suspension
        return self

    def connection_made(self, transport: BaseTransport) -> None:
        """Called by asyncio once the connection is established."""
        if self.state is ConnectionState.CLOSED:
            log.debug("Dropping connection to %s closed while connecting", self.options.host)
            transport.close()
            return

        self.transport = transport  # type: ignore[assignment]
        self.state = ConnectionState.CONNECTED
        self._decoder = getincrementaldecoder(self.options.encoding)(errors="replace")
        self._touch()
        self._arm_inactivity()
        log.debug("Connected with telnet to %s:%d", self.options.host, self.options.port)
        self._resume(self)

    def data_received(self, data: bytes) -> None:
        """Called by asyncio with raw bytes from the host."""
        self._touch()
        options = self.options

        ready = self.reassembler.feed(data, telnet_mode=options.telnet_mode, bin_mode=options.bin_mode)
        if options.telnet_mode:
            ready, replies = self.negotiator.decode(ready, bin_mode=options.bin_mode)
            if replies:
                log.debug("Answering %d telnet commands from %s", len(replies), options.host)
                self.write(b"".join(replies))

        text = self._decoder.decode(ready) if self._decoder else ready.decode(options.encoding, "replace")

        # Only telnet sequences were received
        if not text:
            return

        self.logs.output(text, exact=True)
        self.matcher.feed(text)

    def eof_received(self) -> bool | None:
        """Let the transport close when the host stops sending."""
        log.debug("Host %s closed its side of the connection", self.options.host)
        return None

    def connection_lost(self, exc: Exception | None) -> None:
        """Called by asyncio once the connection is closed.

        A coroutine waiting for a prompt gets a PromptTimeout carrying the host
        and the last command, any other waiter a ConnectionFailed.
        """
        if self.state is ConnectionState.CLOSED:
            return

        waiting = self.state is ConnectionState.WAITING_FOR_PROMPT
        log.debug("Closed telnet connection to %s:%d", self.options.host, self.options.port)
        self._teardown()

        if self._suspension is None:
            return
        if waiting:
            error: Exception = PromptTimeout(hostname=self.options.host, command=self.last_command)
        else:
            error = ConnectionFailed(f"Connection to {self.options.host}:{self.options.port} closed")
        error.__cause__ = exc
        self._resume(error)

    def _connection_failed(self, exc: BaseException) -> None:
        """Close the session after a failed connection attempt and wake the caller."""
        host, port = self.options.host, self.options.port
        reason = str(exc) or "timed out"
        log.warning("Telnet connection to %s:%d failed: %s", host, port, reason)
        self._teardown()
        error = ConnectionFailed(f"Failed to connect to {host}:{port}")
        error.__cause__ = exc
        self._resume(error)

    def _teardown(self) -> None:
        """Release everything held by an open session."""
        self.state = ConnectionState.CLOSED
        if self._inactivity_timer is not None:
            self._inactivity_timer.cancel()
            self._inactivity_timer = None
        self.matcher.disarm()
        self.reassembler.clear()
        self.logs.close()
        if self.runtime is not None:
            self.runtime.release(self)
        if self._closed is not None and not self._closed.done():
            self._closed.set_result(None)

    async def close(self) -> None:
        """Close the connection once pending output is written.

        Override this to send a logout command first. That command will most
        likely not return a prompt, so send it with ``puts``.
        """
        if self.transport is not None and not self.transport.is_closing():
            log.debug("Closing telnet connection to %s:%d", self.options.host, self.options.port)
            self.transport.close()
        elif self.transport is None and self.state is ConnectionState.CONNECTING:
            if self._closed is None:
                # Never opened
                self.state = ConnectionState.CLOSED
            else:
                self._connection_failed(ConnectionAbortedError("closed while connecting"))
        await self.wait_closed()

    async def wait_closed(self) -> None:
        """Wait until the connection is torn down."""
        if self._closed is not None:
            await self._closed

    # Suspension handling

    def _park(self) -> Suspension[Any]:
        """Create the suspension the next blocking call waits on.

        Raises:
            RuntimeError: If a call is already waiting on this session
        """
        if self._suspension is not None and not self._suspension.resumed:
            msg = "Session is already waiting for the host"
            raise RuntimeError(msg)
        self._suspension = Suspension()
        return self._suspension

    def _resume(self, value: object) -> None:
        """Resume the parked call, if any, with a result or an exception."""
        suspension, self._suspension = self._suspension, None
        if suspension is not None and not suspension.resumed:
            suspension.resume(value)

    # Inactivity timeout

    def _touch(self) -> None:
        self._last_activity = get_running_loop().time()

    def _arm_inactivity(self) -> None:
        """(Re)start the inactivity timer with the current timeout."""
        if self._inactivity_timer is not None:
            self._inactivity_timer.cancel()
            self._inactivity_timer = None
        if not self.timeout or self.transport is None or self.closed:
            return
        self._inactivity_timer = get_running_loop().call_later(self.timeout, self._check_inactivity)

    def _check_inactivity(self) -> None:
        """Abort the connection if nothing was sent or received for too long."""
        self._inactivity_timer = None
        if not self.timeout or self.transport is None or self.closed:
            return

        loop = get_running_loop()
        idle = loop.time() - self._last_activity
        if idle < self.timeout:
            self._inactivity_timer = loop.call_later(self.timeout - idle, self._check_inactivity)
            return

        log.warning(
            "No activity on %s:%d for %.1f seconds, closing connection",
            self.options.host,
            self.options.port,
            idle,
        )
        self.transport.abort()

    # Reading

    async def waitfor(self, prompt: PromptType | None = None, **overrides: Any) -> str:
        """Read data from the host until the prompt is matched.

        A string prompt is matched literally, a compiled pattern as it is. Any
        option can be overridden for this call only, e.g. ``timeout`` or
        ``wait_time``.

        Returns:
            All text received up to and including the matched prompt

        Raises:
            ConnectionFailed: If the session is not connected
            PromptTimeout: If the connection times out or closes while waiting
        """
        if prompt is not None:
            overrides["prompt"] = prompt
        if not self.is_connected:
            msg = f"Not connected to {self.options.host}:{self.options.port}"
            raise ConnectionFailed(msg)

        with self.overridden(**overrides) as options:
            suspension = self._park()
            self.state = ConnectionState.WAITING_FOR_PROMPT
            self.matcher.expect(options.prompt_pattern, options.wait_time, self._resume)
            try:
                return await suspension
            finally:
                self.matcher.disarm()
                self._suspension = None
                if self.state is ConnectionState.WAITING_FOR_PROMPT:
                    self.state = ConnectionState.CONNECTED

    # Writing

    def write(self, data: bytes) -> None:
        """Send raw bytes to the host without any conversion.

        Raises:
            ConnectionFailed: If the session is not connected
        """
        if self.transport is None or self.closed:
            msg = f"Not connected to {self.options.host}:{self.options.port}"
            raise ConnectionFailed(msg)
        self.transport.write(data)
        self._touch()

    def print(self, text: str) -> None:  # noqa: A003
        """Send text to the host without appending a newline.

        IAC bytes are escaped in telnet mode. Unless in binary mode, newlines
        are sent as CR when BINARY and SGA are negotiated, CR NUL with only SGA
        and CR LF otherwise.
        """
        data = text.encode(self.options.encoding)
        if self.telnet_mode:
            data = TelnetNegotiator.escape(data)

        if not self.bin_mode:
            if self.negotiator.binary and self.negotiator.suppress_go_ahead:
                data = data.replace(b"\n", b"\r")
            elif self.negotiator.suppress_go_ahead:
                data = data.replace(b"\n", b"\r\0")
            else:
                data = data.replace(b"\n", b"\r\n")

        self.write(data)

    def puts(self, text: str) -> None:
        """Send text to the host, appending a newline unless there is one."""
        if not text.endswith("\n"):
            text += "\n"
        self.print(text)

    async def cmd(
        self,
        command: object,
        *,
        hide: bool = False,
        raw: bool = False,
        prompt: PromptType | None = None,
        **overrides: Any,
    ) -> str:
        """Send a command and return its output up to the next prompt.

        A hidden command is recorded as ``"<hidden command>"`` both in the
        command log and in ``last_command``, so a password never shows up in a
        later PromptTimeout.

        Examples:
            ```python
            await host.cmd("delete user john", prompt="Are you sure?")
            await host.cmd("yes")
            ```

        Args:
            command: The command to send
            hide: Log a placeholder instead of the command (for passwords)
            raw: Send the command without appending a newline
            prompt: Prompt to wait for instead of the configured one
            **overrides: Options overridden while waiting

        Returns:
            The received text, usually the echoed command, its output and the prompt
        """
        command = str(command)
        shown = HIDDEN_COMMAND if hide else command
        self.last_command = shown
        self.logs.command(shown)
        log.debug("Sending command %r to %s", shown, self.options.host)

        if raw:
            self.print(command)
        else:
            self.puts(command)

        return await self.waitfor(prompt, **overrides)

    async def login(self, **overrides: Any) -> str | None:
        """Log in with the configured username and password.

        Waits for the login prompt, sends the username, waits for the password
        prompt if a password is set and sends the password without logging it.
        Without a username, only marks the session as logged in.

        Returns:
            The text received while logging in, including the echoed username

        Raises:
            LoginFailed: If an expected prompt did not arrive in time
        """
        options = self.options.merge(**overrides)

        # Don't log in if username is not set
        if options.username is None:
            self.logged_in = datetime.now().astimezone()
            return None

        try:
            output = await self.waitfor(options.login_prompt)
            if options.password is not None:
                output += await self.cmd(options.username, prompt=options.password_prompt)
                output += await self.cmd(options.password, hide=True, prompt=options.prompt)
            else:
                output += await self.cmd(options.username, prompt=options.prompt)
        except PromptTimeout as e:
            msg = "Timed out while expecting some kind of prompt"
            raise LoginFailed(msg) from e

        self.logged_in = datetime.now().astimezone()
        log.debug("Logged in to %s as %s", options.host, options.username)
        return output
