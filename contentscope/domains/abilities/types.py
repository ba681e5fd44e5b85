"""Ability grant model."""

from functools import cached_property
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from contentscope.domains.queries.parsing import parse_filters
from contentscope.domains.queries.types import FilterExpression


class AbilityGrant(BaseModel):
    """One rule: ``subject`` may be subjected to ``action``.

    ``fields`` restricts the rule to a list of dotted attribute paths; None
    means every field. ``conditions`` restricts it to records matching a
    filter written in the query filter dialect; None means every record.
    """

    model_config = ConfigDict(frozen=True)

    action: str
    subject: str
    fields: Optional[List[str]] = None
    conditions: Optional[Dict[str, Any]] = None

    @cached_property
    def condition(self) -> Optional[FilterExpression]:
        """Parsed ``conditions``."""
        return parse_filters(self.conditions) if self.conditions else None

    def applies_to(self, action: str, subject: str) -> bool:
        return self.action == action and self.subject == subject
