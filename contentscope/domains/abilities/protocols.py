"""Protocols for the abilities domain."""

from typing import Any, FrozenSet, Mapping, Optional, Protocol


class AbilityProtocol(Protocol):
    """Decision interface of a caller's authorization grants.

    The permission layer only asks questions through this interface; it never
    inspects the grants themselves.
    """

    def can(self, action: str, subject: str) -> bool:
        """Whether any grant allows ``action`` on some record of ``subject``."""
        ...

    def can_record(self, action: str, subject: str, record: Mapping[str, Any]) -> bool:
        """Whether a grant allows ``action`` on this specific record."""
        ...

    def permitted_fields(
        self, action: str, subject: str, record: Optional[Mapping[str, Any]] = None
    ) -> Optional[FrozenSet[str]]:
        """Dotted field paths allowed for ``action``; None means every field.

        With a record, only grants whose conditions hold for it contribute.
        """
        ...
