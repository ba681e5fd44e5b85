"""Trace hook implementations."""

from typing import Any, Optional

from contentscope.core.logging import ContextualLogger
from contentscope.core.logging import logger as default_logger


class NullTraceHook:
    """Discards every record. The default when tracing is off."""

    def record(self, step: str, **attributes: Any) -> None:
        pass


class LoggingTraceHook:
    """Writes each traced step as a debug log line with its attributes as dimensions."""

    def __init__(self, logger: Optional[ContextualLogger] = None) -> None:
        """Initialize with an optional logger."""
        self._logger = (logger or default_logger).with_context(component="trace")

    def record(self, step: str, **attributes: Any) -> None:
        """Log the step with stringified attributes."""
        self._logger.with_context(**{k: str(v) for k, v in attributes.items()}).debug(step)
