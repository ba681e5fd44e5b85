"""Core protocols for dependency injection.

Domain-specific protocols live in their respective domains/ directories. This
module keeps cross-cutting infrastructure protocols only.
"""

from contentscope.core.protocols.tracing import TraceHook

__all__ = [
    "TraceHook",
]
