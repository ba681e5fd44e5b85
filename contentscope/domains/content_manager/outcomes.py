"""Abstract operation outcomes handed to the transport layer.

The orchestrator never produces protocol status codes. Each operation ends in
exactly one of four outcomes which the transport maps to its own responses.
"""

import functools
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from contentscope.core.exceptions import (
    NotFoundException,
    PermissionException,
    ValidationException,
)

T = TypeVar("T")


class OutcomeKind(str, Enum):
    OK = "ok"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "notFound"
    CLIENT_ERROR = "clientError"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of one content operation."""

    kind: OutcomeKind
    payload: Optional[T] = None
    details: Any = None

    @classmethod
    def ok(cls, payload: T) -> "Outcome[T]":
        return cls(OutcomeKind.OK, payload=payload)

    @classmethod
    def forbidden(cls) -> "Outcome[T]":
        return cls(OutcomeKind.FORBIDDEN)

    @classmethod
    def not_found(cls) -> "Outcome[T]":
        return cls(OutcomeKind.NOT_FOUND)

    @classmethod
    def client_error(cls, details: Any) -> "Outcome[T]":
        return cls(OutcomeKind.CLIENT_ERROR, details=details)

    @property
    def is_ok(self) -> bool:
        return self.kind is OutcomeKind.OK


def as_outcome(
    operation: Callable[..., Awaitable["Outcome[T]"]],
) -> Callable[..., Awaitable["Outcome[T]"]]:
    """Convert the orchestrator's control-flow exceptions into outcomes.

    The wrapped coroutine takes ``(self, ctx, uid, ...)``. Permission,
    not-found and validation exceptions end the operation; anything else
    (storage failures, unknown content types) propagates.
    """

    @functools.wraps(operation)
    async def wrapper(self: Any, ctx: Any, uid: str, *args: Any, **kwargs: Any) -> Outcome[T]:
        log = ctx.for_content_type(uid).with_context(operation=operation.__name__)
        try:
            return await operation(self, ctx, uid, *args, **kwargs)
        except ValidationException as e:
            log.info(f"Rejected invalid input: {e.details}")
            return Outcome.client_error(e.details)
        except PermissionException as e:
            log.info(f"Forbidden: {e.message}")
            return Outcome.forbidden()
        except NotFoundException as e:
            log.info(f"Not found: {e.message}")
            return Outcome.not_found()

    return wrapper
