"""Core signal classes for fire-and-forget async event handling."""

from __future__ import annotations

import asyncio
import functools
import inspect
import time
from typing import TYPE_CHECKING, Any, NoReturn, Self, TypeVarTuple, Unpack, overload
from weakref import WeakKeyDictionary

from anysignal.dispatch import Dispatcher, get_dispatcher
from anysignal.exceptions import ForeignConnectionError, InvalidMemberError


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


Ts = TypeVarTuple("Ts")

type Callback[*Ts] = Callable[[Unpack[Ts]], Any]
type Predicate[*Ts] = Callable[[Unpack[Ts]], bool | Awaitable[bool]]


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class StrictMembers:
    """Mixin raising InvalidMemberError for undeclared members.

    Works together with __slots__: only names defined on the class
    (slots, methods, properties) can be read or assigned.
    """

    __slots__ = ()

    def __getattr__(self, name: str) -> NoReturn:
        raise InvalidMemberError(self, name, "get")

    def __setattr__(self, name: str, value: Any) -> None:
        if not hasattr(type(self), name):
            raise InvalidMemberError(self, name, "set")
        object.__setattr__(self, name, value)


class Connection[*Ts](StrictMembers):
    """Membership of one callback in a signal's handler list.

    Created by Signal.connect and friends. A disconnected connection keeps
    its callback and can be revived with Signal.reconnect.
    """

    __slots__ = (
        "_callback",
        "_connected",
        "_handler",
        "_next",
        "_once",
        "_prev",
        "_signal",
    )

    def __init__(
        self,
        signal: Signal[*Ts],
        callback: Callback[*Ts],
        once: bool = False,
        handler: Callback[*Ts] | None = None,
    ) -> None:
        self._signal = signal
        self._callback = callback
        # what actually gets dispatched, e.g. a filtering wrapper around callback
        self._handler = callback if handler is None else handler
        self._once = once
        self._connected = True
        self._prev: Connection[*Ts] | None = None
        self._next: Connection[*Ts] | None = None

    def disconnect(self) -> None:
        """Stop future deliveries to this connection.

        Handler invocations already dispatched are not affected.
        """
        if not self._connected:
            return
        self._connected = False
        self._signal._unlink(self)

    destroy = disconnect

    @property
    def connected(self) -> bool:
        """Whether the connection is eligible for dispatch."""
        return self._connected

    @property
    def callback(self) -> Callback[*Ts]:
        """The callback passed in when connecting."""
        return self._callback

    @property
    def signal(self) -> Signal[*Ts]:
        """The signal owning this connection."""
        return self._signal

    def __repr__(self) -> str:
        state = "connected" if self._connected else "disconnected"
        return f"<{type(self).__name__} {state} callback={self._callback!r}>"


class Signal[*Ts](StrictMembers):
    """Emitter fanning out positional arguments to connected handlers.

    Handlers may be plain or async callables. Each one runs in its own
    execution context, so fire() returns immediately and a handler that
    suspends or fails leaves the others untouched. Handlers are visited
    newest-first.

    Example:
        changed = Signal[str]()
        connection = changed.connect(on_change)
        changed.fire("hello")
        connection.disconnect()
    """

    __slots__ = ("_clock", "_debounce_until", "_dispatcher", "_head", "_last_fire_time")

    def __init__(
        self,
        *,
        dispatcher: Dispatcher | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Create a signal.

        Args:
            dispatcher: Dispatcher running the handlers. Defaults to the shared
                dispatcher of the event loop that is running at fire time.
            clock: Monotonic clock used by debounced_fire and throttle_fire
        """
        self._dispatcher = dispatcher
        self._clock = clock
        self._head: Connection[*Ts] | None = None
        self._debounce_until: float | None = None
        self._last_fire_time: float | None = None

    def connect(self, callback: Callback[*Ts]) -> Connection[*Ts]:
        """Connect callback and return its connection.

        The same callback may be connected several times, each connection
        being independent.
        """
        return self._prepend(Connection(self, callback))

    def once(self, callback: Callback[*Ts]) -> Connection[*Ts]:
        """Connect callback for the next fire only.

        The connection is disconnected before the callback is dispatched,
        so a fire from within the callback does not reach it again.
        """
        return self._prepend(Connection(self, callback, once=True))

    def filter_connect(
        self, predicate: Predicate[*Ts], callback: Callback[*Ts]
    ) -> Connection[*Ts]:
        """Connect callback, invoking it only for fires where predicate(*args) is true.

        The predicate is evaluated on every fire and may be async.
        """

        @functools.wraps(callback)
        async def filtered(*args: *Ts) -> None:
            if await _resolve(predicate(*args)):
                await _resolve(callback(*args))

        return self._prepend(Connection(self, callback, handler=filtered))

    def disconnect_all(self) -> None:
        """Detach every connection from this signal.

        Detached connections keep their connected flag; they can no longer be
        reached through this signal.
        """
        self._head = None

    destroy = disconnect_all

    def reconnect(self, connection: Connection[*Ts]) -> None:
        """Re-enable a disconnected connection, placing it first in line.

        Raises:
            ForeignConnectionError: If the connection belongs to another signal
        """
        if connection._signal is not self:
            msg = f"{connection!r} is not owned by {self!r}"
            raise ForeignConnectionError(msg)
        if connection._connected:
            return
        connection._connected = True
        self._prepend(connection)

    def fire(self, *args: *Ts) -> None:
        """Dispatch args to every connected handler without waiting for them.

        Raises:
            RuntimeError: If called without a running event loop
        """
        dispatcher = self.dispatcher
        item = self._head
        while item is not None:
            if item._connected:
                if item._once:
                    item.disconnect()
                dispatcher.dispatch(item._handler, args)
            item = item._next

    async def wait(self, timeout: float | None = None) -> tuple[*Ts]:
        """Suspend until the next fire and return its arguments.

        Fires that happened before the call are not observed.

        Args:
            timeout: Seconds to wait before raising TimeoutError (None waits forever)
        """
        future: asyncio.Future[tuple[*Ts]] = asyncio.get_running_loop().create_future()

        def resume(*args: *Ts) -> None:
            if not future.done():
                future.set_result(args)

        connection = self._prepend(Connection(self, resume, once=True))
        try:
            async with asyncio.timeout(timeout):
                return await future
        finally:
            connection.disconnect()

    def debounced_fire(self, timeout: float, *args: *Ts) -> None:
        """Fire, then drop further debounced fires until timeout seconds passed.

        The window is measured with the signal clock, so it expires even if the
        event loop that was running at fire time is gone.
        """
        if timeout < 0:
            msg = f"timeout must be >= 0, got {timeout}"
            raise ValueError(msg)
        now = self._clock()
        if self._debounce_until is not None and now < self._debounce_until:
            return
        self.fire(*args)
        self._debounce_until = now + timeout

    def throttle_fire(self, interval: float, *args: *Ts) -> None:
        """Fire only if at least interval seconds passed since the last throttled fire."""
        if interval < 0:
            msg = f"interval must be >= 0, got {interval}"
            raise ValueError(msg)
        now = self._clock()
        if self._last_fire_time is not None and now - self._last_fire_time < interval:
            return
        self._last_fire_time = now
        self.fire(*args)

    def get_connections(self) -> list[Connection[*Ts]]:
        """Return connected connections, newest first."""
        connections = []
        item = self._head
        while item is not None:
            if item._connected:
                connections.append(item)
            item = item._next
        return connections

    def get_connection_count(self) -> int:
        return len(self.get_connections())

    def is_connected(self, connection: Connection[*Ts] | None) -> bool:
        return connection is not None and connection._connected

    def has_handlers(self) -> bool:
        return self._head is not None

    @property
    def dispatcher(self) -> Dispatcher:
        """Dispatcher used for handler execution."""
        return self._dispatcher or get_dispatcher()

    def _prepend(self, connection: Connection[*Ts]) -> Connection[*Ts]:
        connection._prev = None
        connection._next = self._head
        if self._head is not None:
            self._head._prev = connection
        self._head = connection
        return connection

    def _unlink(self, connection: Connection[*Ts]) -> None:
        # The forward link is kept so a traversal standing on it can move on.
        prev, nxt = connection._prev, connection._next
        if self._head is connection:
            self._head = nxt
        elif prev is not None:
            prev._next = nxt
        if nxt is not None and nxt._prev is connection:
            nxt._prev = prev
        connection._prev = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} connections={self.get_connection_count()}>"


class SignalDescriptor[*Ts]:
    """Descriptor: define at class level, get a Signal per instance.

    Example:
        class Counter:
            incremented = SignalDescriptor[int]()

        counter = Counter()
        counter.incremented.connect(print)
    """

    __slots__ = ("_dispatcher", "_instance_signals", "_name")

    def __init__(self, *, dispatcher: Dispatcher | None = None) -> None:
        self._name: str = ""
        self._dispatcher = dispatcher
        self._instance_signals: WeakKeyDictionary[object, Signal[*Ts]] = WeakKeyDictionary()

    def __set_name__(self, owner: type, name: str) -> None:
        self._name = name

    @overload
    def __get__(self, obj: None, owner: type | None = None) -> Self: ...

    @overload
    def __get__(self, obj: object, owner: type | None = None) -> Signal[*Ts]: ...

    def __get__(self, obj: object | None, owner: type | None = None) -> Self | Signal[*Ts]:
        if obj is None:
            return self
        if obj not in self._instance_signals:
            self._instance_signals[obj] = Signal(dispatcher=self._dispatcher)
        return self._instance_signals[obj]

    @property
    def name(self) -> str:
        """Attribute name the descriptor is bound to."""
        return self._name
