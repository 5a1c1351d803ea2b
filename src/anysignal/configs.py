"""Dispatcher configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field


if TYPE_CHECKING:
    from anysignal.dispatch import Dispatcher


class DispatcherConfig(BaseModel):
    """Dispatcher configuration.

    Controls how many idle execution contexts are kept around for reuse
    and how handler failures are reported.
    """

    max_idle_runners: int = Field(
        default=1,
        ge=0,
        title="Idle Runners",
        examples=[1, 4],
    )
    """Number of parked runners kept for reuse (0 creates a task per dispatch)."""

    log_handler_errors: bool = Field(default=True, title="Log Handler Errors")
    """Whether exceptions raised by handlers are logged."""

    model_config = ConfigDict(use_attribute_docstrings=True, extra="forbid")

    def get_dispatcher(self) -> Dispatcher:
        """Create a dispatcher from this configuration."""
        from anysignal.dispatch import Dispatcher

        return Dispatcher(
            max_idle_runners=self.max_idle_runners,
            log_handler_errors=self.log_handler_errors,
        )
