"""Batch command execution module.

This module runs the same commands on many telnet hosts concurrently, with a
concurrency limit and a progress bar, and collects one result per host.
"""

from __future__ import annotations

from asyncio import Semaphore, gather as asyncio_gather, get_running_loop
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from simple_telnet.cli.console import complete_progress, create_progress, log, update_progress
from simple_telnet.clients.telnet import Runtime, SimpleTelnet, TelnetError
from simple_telnet.constants import DEFAULT_PORT

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence


@dataclass(slots=True, frozen=True)
class HostTarget:
    """Host to run the batch on, with optional per-host credentials."""

    host: str
    port: int = DEFAULT_PORT
    username: str | None = None
    password: str | None = field(default=None, repr=False)

    @classmethod
    def from_row(
        cls,
        row: Mapping[str, Any],
        *,
        port: int = DEFAULT_PORT,
        username: str | None = None,
        password: str | None = None,
    ) -> HostTarget:
        """Create a target from an input file row, filling gaps with the given defaults.

        Raises:
            ValueError: If the row has no host
        """
        host = str(row.get("host") or "").strip()
        if not host:
            msg = f"Row without a host: {dict(row)}"
            raise ValueError(msg)
        return cls(
            host=host,
            port=int(row.get("port") or port),
            username=row.get("username") or username,
            password=row.get("password") or password,
        )


@dataclass(slots=True)
class CommandResult:
    """Result of running the batch commands on one host."""

    host: str
    port: int
    success: bool
    elapsed: float
    output: str = ""
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Convert the result to a dictionary.

        Returns:
            Dictionary representation of the result
        """
        return {
            "host": self.host,
            "port": self.port,
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "elapsed": self.elapsed,
        }


async def run_commands(
    target: HostTarget, commands: Sequence[str], *, runtime: Runtime | None = None, **options: Any
) -> CommandResult:
    """Log in to one host and run the commands in turn.

    Args:
        target: The host to connect to
        commands: Commands to run, each waiting for the prompt
        runtime: Runtime tracking the session
        **options: Further session options, e.g. ``timeout`` or ``prompt``

    Returns:
        CommandResult with the collected output or the error
    """
    loop = get_running_loop()
    start_time = loop.time()
    outputs: list[str] = []

    async def run_all(session: SimpleTelnet) -> None:
        # Without a login the shell prompt shown on connect is still pending
        if target.username is None:
            await session.waitfor()
        for command in commands:
            outputs.append(await session.cmd(command))

    def elapsed() -> float:
        return round(loop.time() - start_time, 3)

    try:
        await SimpleTelnet.connect(
            run_all,
            runtime=runtime,
            host=target.host,
            port=target.port,
            username=target.username,
            password=target.password,
            **options,
        )
    except (TelnetError, OSError) as e:
        log.debug("Commands on %s:%d failed: %r", target.host, target.port, e)
        return CommandResult(
            host=target.host,
            port=target.port,
            success=False,
            elapsed=elapsed(),
            output="".join(outputs),
            error=f"{type(e).__name__}: {e}",
        )

    return CommandResult(
        host=target.host, port=target.port, success=True, elapsed=elapsed(), output="".join(outputs)
    )


async def run_batch(
    targets: Iterable[HostTarget], commands: Sequence[str], max_concurrency: int, **options: Any
) -> list[CommandResult]:
    """Run the commands on every host, at most ``max_concurrency`` at a time.

    Args:
        targets: Hosts to run the commands on
        commands: Commands to run on each host
        max_concurrency: Maximum number of simultaneous sessions
        **options: Session options shared by all hosts

    Returns:
        One CommandResult per target, in the order given
    """
    targets = list(targets)
    runtime = Runtime()
    semaphore = Semaphore(max_concurrency)
    task_id = create_progress(f"Running commands on {len(targets)} hosts", total=len(targets))

    async def host_task(target: HostTarget) -> CommandResult:
        async with semaphore:
            log.debug("Running %d commands on %s:%d", len(commands), target.host, target.port)
            result = await run_commands(target, commands, runtime=runtime, **options)
            status = "✓" if result.success else "✗"
            update_progress(task_id, advance=1, description=f"Running commands: {target.host} {status}")
            return result

    try:
        tasks = [await runtime.spawn(host_task(target)) for target in targets]
        results = await asyncio_gather(*tasks)
        await runtime.wait_idle()
    except Exception:
        complete_progress(task_id, "Batch failed")
        raise

    failed = sum(not result.success for result in results)
    complete_progress(task_id, f"Completed {len(results)} hosts, {failed} failed")
    return list(results)
