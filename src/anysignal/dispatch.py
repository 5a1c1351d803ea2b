"""Execution contexts for signal handlers.

Every handler runs inside a runner task, so a handler that suspends never
holds up the emitter or its siblings. Runners that finish their job park
themselves and wait for the next one instead of exiting, which keeps
task creation proportional to the number of overlapping handlers rather
than to the number of dispatches.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any
from weakref import WeakKeyDictionary


if TYPE_CHECKING:
    from collections.abc import Callable


logger = logging.getLogger(__name__)

type Job = tuple[Callable[..., Any], tuple[Any, ...]]


class Dispatcher:
    """Runs callbacks in reusable, independently suspending runner tasks.

    Example:
        dispatcher = Dispatcher()
        dispatcher.dispatch(print, ("hello",))
        await dispatcher.join()
    """

    __slots__ = (
        "_busy",
        "_idle",
        "_join_waiters",
        "_log_handler_errors",
        "_max_idle_runners",
        "_tasks",
    )

    def __init__(self, max_idle_runners: int = 1, log_handler_errors: bool = True) -> None:
        """Create a dispatcher.

        Args:
            max_idle_runners: How many finished runners are kept parked for reuse
            log_handler_errors: Whether handler exceptions are logged
        """
        if max_idle_runners < 0:
            msg = f"max_idle_runners must be >= 0, got {max_idle_runners}"
            raise ValueError(msg)
        self._max_idle_runners = max_idle_runners
        self._log_handler_errors = log_handler_errors
        self._idle: list[asyncio.Future[Job]] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self._busy = 0
        self._join_waiters: list[asyncio.Future[None]] = []

    def dispatch(self, callback: Callable[..., Any], args: tuple[Any, ...] = ()) -> None:
        """Hand callback and args to an execution context without waiting for it.

        Raises:
            RuntimeError: If called without a running event loop
        """
        loop = asyncio.get_running_loop()
        self._busy += 1
        inbox = self._acquire_idle(loop)
        if inbox is not None:
            inbox.set_result((callback, args))
            return
        task = loop.create_task(self._run((callback, args)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Started runner %d for %r", len(self._tasks), callback)

    async def join(self) -> None:
        """Wait until no runner is executing a handler."""
        while self._busy:
            waiter = asyncio.get_running_loop().create_future()
            self._join_waiters.append(waiter)
            await waiter

    def close(self) -> None:
        """Cancel all runner tasks, parked or busy."""
        for task in list(self._tasks):
            task.cancel()
        self._idle.clear()

    @property
    def idle_count(self) -> int:
        """Number of parked runners available for reuse."""
        return sum(1 for inbox in self._idle if not inbox.done())

    @property
    def busy_count(self) -> int:
        """Number of handlers dispatched but not yet finished."""
        return self._busy

    @property
    def runner_count(self) -> int:
        """Number of live runner tasks."""
        return len(self._tasks)

    @property
    def max_idle_runners(self) -> int:
        return self._max_idle_runners

    def _acquire_idle(self, loop: asyncio.AbstractEventLoop) -> asyncio.Future[Job] | None:
        while self._idle:
            inbox = self._idle.pop()
            if not inbox.done() and inbox.get_loop() is loop:
                return inbox
        return None

    async def _run(self, job: Job) -> None:
        loop = asyncio.get_running_loop()
        while True:
            callback, args = job
            try:
                await self._invoke(callback, args)
            finally:
                self._release()
            if self.idle_count >= self._max_idle_runners:
                return
            inbox: asyncio.Future[Job] = loop.create_future()
            self._idle.append(inbox)
            logger.debug("Runner parked (%d idle)", len(self._idle))
            try:
                job = await inbox
            except asyncio.CancelledError:
                # a job handed over right before cancellation never runs
                if inbox.done() and not inbox.cancelled():
                    self._release()
                raise
            finally:
                # parked inboxes reference their loop; never keep a stale one
                if inbox in self._idle:
                    self._idle.remove(inbox)

    async def _invoke(self, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            if self._log_handler_errors:
                logger.exception("Error in signal handler %r", callback)

    def _release(self) -> None:
        self._busy -= 1
        if self._busy:
            return
        waiters, self._join_waiters = self._join_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(runners={self.runner_count}, "
            f"idle={self.idle_count}, busy={self.busy_count})"
        )


_loop_dispatchers: WeakKeyDictionary[asyncio.AbstractEventLoop, Dispatcher] = (
    WeakKeyDictionary()
)


def get_dispatcher() -> Dispatcher:
    """Return the shared dispatcher of the running event loop.

    Raises:
        RuntimeError: If called without a running event loop
    """
    loop = asyncio.get_running_loop()
    if loop not in _loop_dispatchers:
        _loop_dispatchers[loop] = Dispatcher()
    return _loop_dispatchers[loop]
