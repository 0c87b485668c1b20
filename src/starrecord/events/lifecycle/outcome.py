"""
Hook Outcomes - Typed Handler Results

Every lifecycle handler result is normalized into a HookOutcome so callers
never have to interpret raw sentinel values:

- ``None``           → no outcome, dispatch continues
- ``False``          → Cancel, the triggering operation is refused
- HookOutcome        → used as is
- any other value    → Override(value)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

class OutcomeKind(Enum):
    """What a handler asked the bus to do"""
    OVERRIDE = "override"
    CANCEL = "cancel"
    CONTINUE = "continue"

@dataclass(frozen=True)
class HookOutcome:
    """Result of a lifecycle handler"""
    kind: OutcomeKind
    value: Any = None

    @classmethod
    def override(cls, value: Any) -> 'HookOutcome':
        return cls(OutcomeKind.OVERRIDE, value)

    @classmethod
    def cancel(cls) -> 'HookOutcome':
        # A cancel reads as False when used in a value context
        return cls(OutcomeKind.CANCEL, False)

    @classmethod
    def proceed(cls) -> 'HookOutcome':
        return cls(OutcomeKind.CONTINUE)

    @property
    def is_cancel(self) -> bool:
        return self.kind is OutcomeKind.CANCEL

    @property
    def is_override(self) -> bool:
        return self.kind is OutcomeKind.OVERRIDE

    @property
    def halts(self) -> bool:
        """Whether a halting dispatch stops at this outcome"""
        return self.kind is not OutcomeKind.CONTINUE

def normalize_result(result: Any) -> Optional[HookOutcome]:
    """Convert a raw handler return value into a HookOutcome"""
    if result is None:
        return None
    if isinstance(result, HookOutcome):
        return result
    if result is False:
        return HookOutcome.cancel()
    return HookOutcome.override(result)

def is_cancelled(outcome: Optional[HookOutcome]) -> bool:
    """True when a dispatch outcome refuses the operation"""
    return outcome is not None and outcome.is_cancel

__all__ = ["HookOutcome", "OutcomeKind", "normalize_result", "is_cancelled"]
