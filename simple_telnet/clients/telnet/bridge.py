"""Suspension points that let session code await events from protocol callbacks.

A session coroutine parks on a ``Suspension`` while the event loop keeps running.
Protocol callbacks (data received, connection lost, timers) resume it exactly
once, either with a result or with an exception that is raised at the await.
"""

from __future__ import annotations

from asyncio import AbstractEventLoop, Future, get_running_loop
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Generator

T = TypeVar("T")


class Suspension(Generic[T]):
    """One-shot resume point for a parked coroutine.

    Examples:
        ```python
        suspension = Suspension()
        loop.call_later(1, suspension.resume, "done")
        result = await suspension
        ```
    """

    __slots__ = ("_future",)

    def __init__(self, loop: AbstractEventLoop | None = None) -> None:
        """Create the suspension on the given or the running event loop."""
        self._future: Future[T] = (loop or get_running_loop()).create_future()

    def __await__(self) -> Generator[None, None, T]:
        """Park until resumed.

        Returns:
            The value passed to ``resume``
        """
        return self._future.__await__()

    @property
    def resumed(self) -> bool:
        """Whether ``resume`` was already called (or the waiter went away)."""
        return self._future.done()

    def resume(self, value: T | BaseException) -> None:
        """Wake the parked coroutine with a value, or with an exception to raise.

        Raises:
            RuntimeError: If the suspension was already resumed
        """
        if self._future.done():
            msg = "Suspension already resumed"
            raise RuntimeError(msg)
        if isinstance(value, BaseException):
            self._future.set_exception(value)
        else:
            self._future.set_result(value)
