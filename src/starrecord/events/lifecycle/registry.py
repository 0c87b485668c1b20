"""
Lifecycle Event Registry - Per Type Hook Dispatch

🚀 Ordered, Cancellable Lifecycle Hooks:
The registry keeps the handlers registered for each record type and each
lifecycle phase, and remembers which types already had their convention
methods wired ("booted"). It is owned by the service container so a test
can reset it in one call.

Phases come in pairs. ``before`` phases (fetching, creating, updating,
saving, deleting) are dispatched halting: the first handler that returns
an outcome wins, and a Cancel refuses the operation. ``after`` phases
(fetched, created, updated, saved, deleted) run every handler.
"""

from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Type
import itertools
import logging

from .outcome import HookOutcome, normalize_result

logger = logging.getLogger(__name__)

class Phase(Enum):
    """Lifecycle phases a record type can listen to"""
    FETCHING = "fetching"
    FETCHED = "fetched"
    CREATING = "creating"
    CREATED = "created"
    UPDATING = "updating"
    UPDATED = "updated"
    SAVING = "saving"
    SAVED = "saved"
    DELETING = "deleting"
    DELETED = "deleted"
    BOOTED = "booted"

    @property
    def is_before(self) -> bool:
        return self in BEFORE_PHASES

    @property
    def convention_method(self) -> Optional[str]:
        """Instance method auto-registered for this phase (before_save, after_fetch, ...)"""
        return CONVENTION_METHODS.get(self)

BEFORE_PHASES = {Phase.FETCHING, Phase.CREATING, Phase.UPDATING, Phase.SAVING, Phase.DELETING}

CONVENTION_METHODS = {
    Phase.FETCHING: "before_fetch",
    Phase.FETCHED: "after_fetch",
    Phase.CREATING: "before_create",
    Phase.CREATED: "after_create",
    Phase.UPDATING: "before_update",
    Phase.UPDATED: "after_update",
    Phase.SAVING: "before_save",
    Phase.SAVED: "after_save",
    Phase.DELETING: "before_delete",
    Phase.DELETED: "after_delete",
    Phase.BOOTED: "after_boot",
}

_sequence = itertools.count()

@dataclass
class Registration:
    """A handler registered for a record type and phase"""
    handler: Callable[[Any], Any]
    priority: int
    sequence: int
    # Registered while the type was booting
    from_boot: bool = False

class EventRegistry:
    """
    Registry of lifecycle handlers keyed by record type.

    Handlers receive the record instance. Dispatch is keyed on the exact
    record type; subclasses boot and register on their own.
    """

    def __init__(self):
        self._listeners: Dict[type, Dict[Phase, List[Registration]]] = defaultdict(lambda: defaultdict(list))
        self._booted: Set[type] = set()
        self._booting: Set[type] = set()

    # Registration
    def listen(self, record_type: Type, phase: Phase, handler: Callable[[Any], Any], priority: int = 0):
        """Register a handler for a phase of a record type"""
        phase = Phase(phase)
        registrations = self._listeners[record_type][phase]
        registrations.append(Registration(handler, priority, next(_sequence), record_type in self._booting))
        registrations.sort(key=lambda item: (-item.priority, item.sequence))

    def listeners(self, record_type: Type, phase: Phase) -> List[Callable[[Any], Any]]:
        """Handlers registered for a record type and phase, in dispatch order"""
        return [item.handler for item in self._listeners.get(record_type, {}).get(Phase(phase), [])]

    # Dispatch
    def dispatch(self, record: Any, phase: Phase, halt: Optional[bool] = None) -> Optional[HookOutcome]:
        """
        Dispatch a phase to the handlers of the record's type.

        Args:
            record: The record instance passed to every handler
            phase: Lifecycle phase
            halt: Stop at the first outcome; defaults to True for before phases

        Returns:
            The halting outcome, or None when no handler halted
        """
        phase = Phase(phase)
        if halt is None:
            halt = phase.is_before

        registrations = list(self._listeners.get(type(record), {}).get(phase, []))
        for item in registrations:
            outcome = normalize_result(item.handler(record))
            if halt and outcome is not None and outcome.halts:
                logger.debug(f"{type(record).__name__}.{phase.value} halted with {outcome.kind.value}")
                return outcome

        return None

    # Boot tracking
    def is_booted(self, record_type: Type) -> bool:
        return record_type in self._booted

    def mark_booted(self, record_type: Type):
        self._booted.add(record_type)

    @contextmanager
    def booting(self, record_type: Type) -> Iterator[None]:
        """
        Scope the boot of a type. Handlers registered by an earlier boot of
        the same type are dropped first, so booting again after a flush
        never wires a handler twice.
        """
        for registrations in self._listeners.get(record_type, {}).values():
            registrations[:] = [item for item in registrations if not item.from_boot]

        self.mark_booted(record_type)
        self._booting.add(record_type)
        try:
            yield
        finally:
            self._booting.discard(record_type)

    def flush(self, record_type: Optional[Type] = None):
        """
        Remove the listeners of one type (or of every type) and clear the
        boot flag of every type so wiring is registered again on next use.
        """
        if record_type is None:
            self._listeners.clear()
        else:
            self._listeners.pop(record_type, None)
        self._booted.clear()

__all__ = ["EventRegistry", "Phase", "Registration", "BEFORE_PHASES", "CONVENTION_METHODS"]
