"""Logging configuration with contextual dimensions.

Every log line can carry a set of dimensions (request id, user id, content
type, ...). Dimensions are attached through ``ContextualLogger.with_context``
and rendered by the formatters below, either as ``key=value`` pairs for local
development or as a single JSON object per line.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional, Tuple

from contentscope.core.config import settings

_HANDLER_NAME = "contentscope"


class _TextFormatter(logging.Formatter):
    """Human readable formatter that appends dimensions as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        dimensions: Dict[str, Any] = getattr(record, "dimensions", None) or {}
        if not dimensions:
            return base
        rendered = " ".join(f"{key}={value}" for key, value in sorted(dimensions.items()))
        return f"{base} [{rendered}]"


class _JsonFormatter(logging.Formatter):
    """One JSON object per record, dimensions flattened into the top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(getattr(record, "dimensions", None) or {})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter carrying dimensions and an optional message prefix.

    ``with_context`` and ``with_prefix`` return new adapters; the original is
    never mutated, so a logger can be specialised per request or component.
    """

    def __init__(
        self,
        logger: logging.Logger,
        dimensions: Optional[Dict[str, Any]] = None,
        prefix: str = "",
    ) -> None:
        """Wrap ``logger`` with the given dimensions and prefix."""
        self.dimensions: Dict[str, Any] = dict(dimensions or {})
        self.prefix = prefix
        super().__init__(logger, self.dimensions)

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        """Attach dimensions to the record and apply the prefix."""
        extra = dict(kwargs.get("extra") or {})
        extra["dimensions"] = {**self.dimensions, **extra.get("dimensions", {})}
        kwargs["extra"] = extra
        return f"{self.prefix}{msg}", kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a logger with additional dimensions. ``None`` values are dropped."""
        merged = dict(self.dimensions)
        merged.update({key: value for key, value in dimensions.items() if value is not None})
        return ContextualLogger(self.logger, merged, self.prefix)

    def with_prefix(self, prefix: str) -> "ContextualLogger":
        """Return a logger that prefixes every message with ``prefix``."""
        return ContextualLogger(self.logger, self.dimensions, prefix)


class LoggerConfigurator:
    """Builds contextual loggers sharing a single configured handler."""

    @staticmethod
    def _ensure_handler(base: logging.Logger) -> None:
        if any(h.get_name() == _HANDLER_NAME for h in base.handlers):
            return
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        if settings.LOG_JSON:
            handler.setFormatter(_JsonFormatter())
        else:
            handler.setFormatter(
                _TextFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
            )
        base.addHandler(handler)
        base.setLevel(settings.LOG_LEVEL)
        base.propagate = False

    @staticmethod
    def configure_logger(
        name: str, dimensions: Optional[Dict[str, Any]] = None
    ) -> ContextualLogger:
        """Return a ``ContextualLogger`` for ``name`` with initial dimensions.

        Args:
            name: Dotted logger name, normally under ``contentscope``.
            dimensions: Dimensions attached to every record.

        Returns:
            The configured contextual logger.
        """
        LoggerConfigurator._ensure_handler(logging.getLogger("contentscope"))
        return ContextualLogger(logging.getLogger(name), dimensions)


logger = LoggerConfigurator.configure_logger("contentscope")
