"""In-memory ability built from a list of grants."""

from typing import Any, FrozenSet, Iterable, Mapping, Optional

from contentscope.domains.abilities.protocols import AbilityProtocol
from contentscope.domains.abilities.types import AbilityGrant
from contentscope.domains.queries.evaluate import matches


class GrantAbility(AbilityProtocol):
    """Evaluates grants for one caller.

    Grants for the same action and subject combine: conditions any-match and
    allowed fields union. A grant without a field list allows every field.
    """

    def __init__(self, grants: Iterable[AbilityGrant]) -> None:
        """Initialize with the caller's grants."""
        self._grants = tuple(grants)

    @classmethod
    def from_dicts(cls, raw: Iterable[Mapping[str, Any]]) -> "GrantAbility":
        """Build from raw grant dicts (``action``, ``subject``, ``fields``, ``conditions``)."""
        return cls(AbilityGrant.model_validate(item) for item in raw)

    def _matching(self, action: str, subject: str) -> list[AbilityGrant]:
        return [g for g in self._grants if g.applies_to(action, subject)]

    def _holds(self, grant: AbilityGrant, record: Mapping[str, Any]) -> bool:
        return grant.condition is None or matches(grant.condition, record)

    def can(self, action: str, subject: str) -> bool:
        """Collection-level check; conditions are ignored."""
        return bool(self._matching(action, subject))

    def can_record(self, action: str, subject: str, record: Mapping[str, Any]) -> bool:
        """Record-level check; true if any matching grant's condition holds."""
        return any(self._holds(g, record) for g in self._matching(action, subject))

    def permitted_fields(
        self, action: str, subject: str, record: Optional[Mapping[str, Any]] = None
    ) -> Optional[FrozenSet[str]]:
        """Union of allowed fields of the applicable grants."""
        grants = self._matching(action, subject)
        if record is not None:
            grants = [g for g in grants if self._holds(g, record)]

        fields: set[str] = set()
        for grant in grants:
            if grant.fields is None:
                return None
            fields.update(grant.fields)
        return frozenset(fields)
