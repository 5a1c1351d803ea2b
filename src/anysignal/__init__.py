"""Fire-and-forget async signals.

A signal fans out positional arguments to connected handlers, each running
in its own execution context. Connections can be disconnected and revived,
and signals offer once, filtered, debounced, throttled and awaitable
variants of delivery.

Example:
    class Downloader:
        finished = SignalDescriptor[str]()

    downloader = Downloader()
    connection = downloader.finished.connect(print)
    downloader.finished.fire("report.pdf")
    path, = await downloader.finished.wait()
"""

from __future__ import annotations

from anysignal.configs import DispatcherConfig
from anysignal.core import Connection, Signal, SignalDescriptor
from anysignal.dispatch import Dispatcher, get_dispatcher
from anysignal.exceptions import ForeignConnectionError, InvalidMemberError, SignalError

__version__ = "0.1.0"

__all__ = [
    # Signals
    "Connection",
    "Signal",
    "SignalDescriptor",
    # Dispatch
    "Dispatcher",
    "DispatcherConfig",
    "get_dispatcher",
    # Errors
    "ForeignConnectionError",
    "InvalidMemberError",
    "SignalError",
]
