"""Cancellable asynchronous operations.

Every engine operation runs as an :class:`asyncio.Task` paired with a
:class:`CancellationToken`. The token is checked explicitly before and after
each fetch; cancelling the handle also cancels the task so an in-flight
fetch is abandoned instead of awaited.
"""

import asyncio
import threading
from collections.abc import Callable, Coroutine, Generator
from typing import Any, Generic, TypeVar


T = TypeVar("T")


class CancellationToken:
    """Thread-safe cancellation token for cooperative task cancellation.

    Examples:
        >>> token = CancellationToken()
        >>> token.is_cancelled()
        False
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(self) -> None:
        """Initialize a new cancellation token."""
        self._is_cancelled = threading.Event()
        self._lock = threading.Lock()

    def cancel(self) -> None:
        """Signal that cancellation has been requested."""
        with self._lock:
            self._is_cancelled.set()

    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._is_cancelled.is_set()

    def raise_if_cancelled(self) -> None:
        """Stop the current operation if cancellation has been requested.

        Raises:
            asyncio.CancelledError: If the token was cancelled
        """
        if self.is_cancelled():
            raise asyncio.CancelledError()


class CancellableTask(Generic[T]):
    """Handle on a running engine operation.

    Awaiting the handle yields the operation result; awaiting a cancelled
    handle raises :class:`asyncio.CancelledError`. Must be created while an
    event loop is running.

    Example:
        task = engine.search(source, "dune")
        ...
        task.cancel()
    """

    def __init__(
        self,
        operation: Callable[[CancellationToken], Coroutine[Any, Any, T]],
        name: str | None = None,
    ):
        self.token = CancellationToken()
        self._task: asyncio.Task[T] = asyncio.get_running_loop().create_task(
            operation(self.token), name=name
        )

    @property
    def name(self) -> str:
        return self._task.get_name()

    def cancel(self) -> bool:
        """Request cancellation.

        Returns:
            False if the operation had already finished
        """
        self.token.cancel()
        return self._task.cancel()

    def cancelled(self) -> bool:
        return self._task.cancelled()

    def done(self) -> bool:
        return self._task.done()

    def result(self) -> T:
        """Return the result of a finished operation (see :meth:`asyncio.Task.result`)."""
        return self._task.result()

    def add_done_callback(self, callback: Callable[["asyncio.Task[T]"], Any]) -> None:
        self._task.add_done_callback(callback)

    def __await__(self) -> Generator[Any, None, T]:
        return self._task.__await__()
