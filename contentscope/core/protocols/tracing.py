"""Protocol for structured trace hooks."""

from typing import Any, Protocol


class TraceHook(Protocol):
    """Receives one record per traced step.

    Implementations must be cheap and must never raise into the caller.
    """

    def record(self, step: str, **attributes: Any) -> None:
        """Record a single step with its attributes."""
        ...
