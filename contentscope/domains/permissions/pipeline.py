"""Input sanitization pipeline for create and update bodies.

The pipeline has a fixed shape: the writable-attribute filter, then the
permission filter, then the audit stamp. The stamp is a separate ``finalize``
argument rather than a stage so it always runs last and always overwrites
caller-supplied values for the audit keys.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from contentscope.domains.permissions.sanitizers import pick_writable_attributes
from contentscope.domains.schemas.types import ContentTypeSchema

CREATED_BY = "createdBy"
UPDATED_BY = "updatedBy"
CREATED_AT = "createdAt"
UPDATED_AT = "updatedAt"

Stage = Callable[[Mapping[str, Any]], Dict[str, Any]]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class NamedStage:
    """A pipeline stage with a name for logging."""

    name: str
    apply: Stage


class AuditStamp:
    """Sets creator or editor metadata on an input body.

    On creation both creator and editor are the caller; on edition only the
    editor keys are set.
    """

    def __init__(self, user_id: Any, *, is_edition: bool, clock: Optional[Clock] = None) -> None:
        """Initialize with the caller identity and whether this is an edit."""
        self.user_id = user_id
        self.is_edition = is_edition
        self._clock = clock or utc_now

    def fields(self) -> Dict[str, Any]:
        """The audit keys and values this stamp writes."""
        now = self._clock()
        if self.is_edition:
            return {UPDATED_BY: self.user_id, UPDATED_AT: now}
        return {
            CREATED_BY: self.user_id,
            UPDATED_BY: self.user_id,
            CREATED_AT: now,
            UPDATED_AT: now,
        }

    def __call__(self, body: Mapping[str, Any]) -> Dict[str, Any]:
        return {**body, **self.fields()}


class InputPipeline:
    """Ordered filters followed by the audit stamp."""

    def __init__(self, stages: Tuple[NamedStage, ...], finalize: AuditStamp) -> None:
        """Initialize with the filter stages and the stamp that always runs last."""
        self.stages = stages
        self.finalize = finalize

    @classmethod
    def build(
        cls, schema: ContentTypeSchema, permitted: Stage, stamp: AuditStamp
    ) -> "InputPipeline":
        """The standard pipeline: writable attributes, permitted fields, stamp."""
        return cls(
            stages=(
                NamedStage("writable", lambda body: pick_writable_attributes(body, schema)),
                NamedStage("permitted", permitted),
            ),
            finalize=stamp,
        )

    @property
    def stage_names(self) -> Tuple[str, ...]:
        return tuple(stage.name for stage in self.stages) + ("stamp",)

    def run(self, body: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Apply every stage in order, then the stamp."""
        current: Dict[str, Any] = dict(body or {})
        for stage in self.stages:
            current = stage.apply(current)
        return self.finalize(current)
