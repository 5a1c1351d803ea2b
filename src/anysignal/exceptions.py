"""Exceptions raised by anysignal."""

from __future__ import annotations


class SignalError(Exception):
    """Base class for all signal errors."""


class InvalidMemberError(SignalError, AttributeError):
    """Raised when getting or setting an undeclared member of a signal object."""

    def __init__(self, obj: object, name: str, action: str = "get") -> None:
        message = f"Attempt to {action} {type(obj).__name__}.{name} (not a valid member)"
        super().__init__(message, name=name, obj=obj)
        self.action = action


class ForeignConnectionError(SignalError, ValueError):
    """Raised when a connection is handed to a signal that does not own it."""
