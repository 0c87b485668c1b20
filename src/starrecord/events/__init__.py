"""
Events - Lifecycle Hook Dispatch

🚀 Event-Driven Records:
Records announce every step of their lifecycle (fetch, create, update,
save, delete) so behavior can be attached without subclassing.

Structure:
- lifecycle/: phases, the per-type registry, instance emitter and outcomes
"""

from .lifecycle import (
    HookOutcome, OutcomeKind, EventEmitter, EventRegistry, Phase,
    normalize_result, is_cancelled
)

__all__ = [
    "HookOutcome", "OutcomeKind", "EventEmitter", "EventRegistry", "Phase",
    "normalize_result", "is_cancelled"
]
