"""
Lifecycle Events - Record Hooks

Type-level handlers (EventRegistry), instance-level handlers
(EventEmitter) and the typed results both produce (HookOutcome).
"""

from .outcome import HookOutcome, OutcomeKind, normalize_result, is_cancelled
from .emitter import EventEmitter
from .registry import EventRegistry, Phase, BEFORE_PHASES, CONVENTION_METHODS

__all__ = [
    "HookOutcome", "OutcomeKind", "normalize_result", "is_cancelled",
    "EventEmitter", "EventRegistry", "Phase", "BEFORE_PHASES", "CONVENTION_METHODS"
]
