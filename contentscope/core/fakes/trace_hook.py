"""Fake trace hook for testing."""

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class TraceRecord:
    """Single recorded trace step."""

    step: str
    attributes: Dict[str, Any] = field(default_factory=dict)


class RecordingTraceHook:
    """In-memory test double for TraceHook. Records every step for assertions."""

    def __init__(self) -> None:
        """Initialize with an empty record list."""
        self.records: list[TraceRecord] = []

    def record(self, step: str, **attributes: Any) -> None:
        """Store the step."""
        self.records.append(TraceRecord(step=step, attributes=attributes))

    def steps(self) -> list[str]:
        """Return step names in recording order."""
        return [r.step for r in self.records]

    def get_all(self, step: str) -> list[TraceRecord]:
        """Return all records for the given step name."""
        return [r for r in self.records if r.step == step]
