"""Event loop driver for telnet sessions.

The runtime owns the bookkeeping needed to decide when an event loop started on
behalf of telnet sessions may stop: the set of live sessions, the flows spawned
into an already running loop, and work deferred to a thread pool.
"""

from __future__ import annotations

from asyncio import (
    Future,
    Task,
    create_task as asyncio_create_task,
    get_running_loop,
    run as asyncio_run,
    sleep as asyncio_sleep,
)
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from simple_telnet.cli.console import log
from simple_telnet.constants import DEFERRED_WORKERS, IDLE_POLL_INTERVAL

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

T = TypeVar("T")


@dataclass(slots=True)
class Runtime:
    """Drive telnet session flows on a single event loop.

    Examples:
        Start a loop for a flow and stop it once every session is closed:

        ```python
        runtime = Runtime()
        output = runtime.run(SimpleTelnet.connect(run_commands, runtime=runtime, host="router"))
        ```

        Start another flow from code already running on the loop:

        ```python
        task = await runtime.spawn(SimpleTelnet.connect(run_commands, runtime=runtime, host="switch"))
        ```
    """

    poll_interval: float = field(default=IDLE_POLL_INTERVAL)
    max_workers: int = field(default=DEFERRED_WORKERS)
    _sessions: set[Any] = field(default_factory=set)
    _tasks: set[Task[Any]] = field(default_factory=set)
    _deferred: set[Future[Any]] = field(default_factory=set)
    _executor: ThreadPoolExecutor | None = field(default=None)

    def active_sessions(self) -> int:
        """Return the number of sessions that are connecting or connected."""
        return len(self._sessions)

    def idle(self) -> bool:
        """Check whether no session, spawned flow or deferred work is left.

        Returns:
            True if the event loop may stop
        """
        return not (self._sessions or self._tasks or self._deferred)

    def register(self, session: object) -> None:
        """Count a session as live."""
        self._sessions.add(session)

    def release(self, session: object) -> None:
        """Stop counting a session as live."""
        self._sessions.discard(session)

    def run(self, flow: Coroutine[Any, Any, T]) -> T:
        """Start an event loop, drive the flow and stop once the runtime is idle.

        Returns:
            The result of the flow

        Raises:
            RuntimeError: If an event loop is already running in this thread
        """
        try:
            get_running_loop()
        except RuntimeError:
            return asyncio_run(self._drive(flow))
        flow.close()
        msg = "An event loop is already running, use Runtime.spawn() instead"
        raise RuntimeError(msg)

    async def _drive(self, flow: Coroutine[Any, Any, T]) -> T:
        """Await the flow, then wait for everything else to finish.

        The thread pool is shut down even when the flow fails, so deferred work
        never outlives the loop it reports to.

        Returns:
            The result of the flow
        """
        try:
            result = await flow
            await self.wait_idle()
        finally:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None
        log.debug("Runtime idle, stopping event loop")
        return result

    async def wait_idle(self) -> None:
        """Wait until no sessions, spawned flows or deferred work remain."""
        while not self.idle():
            await asyncio_sleep(self.poll_interval)

    async def spawn(self, flow: Coroutine[Any, Any, T]) -> Task[T]:
        """Start a flow on the running loop and return once it first suspends.

        Returns:
            The task running the flow, which can be awaited for its result
        """
        task = asyncio_create_task(flow)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        # Let the new flow run up to its first suspension point
        await asyncio_sleep(0)
        return task

    def defer(self, func: Callable[..., T], /, *args: Any) -> Future[T]:
        """Run blocking work on the runtime's thread pool.

        Returns:
            A future resolved on the event loop with the result of ``func``
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="simple-telnet"
            )
        future = get_running_loop().run_in_executor(self._executor, func, *args)
        self._deferred.add(future)
        future.add_done_callback(self._deferred.discard)
        return future
