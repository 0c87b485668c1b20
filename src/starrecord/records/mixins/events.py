"""
Lifecycle Events Mixin - Boot Wiring and Dispatch

🚀 Override By Method, Or Hook From Outside:
The first time a record type is constructed it is "booted": for every
lifecycle phase a handler is registered that

1. binds the convention method (``before_save``, ``after_fetch``, ...) to
   the matching instance event (``model.beforeSave``) when the record,
   one of its dynamic methods or one of its extensions provides it
2. fires that instance event and hands its outcome back to the registry

so both styles share one ordered, cancellable chain. ``boot()`` runs once
per type right after, for types that register handlers of their own.
"""

from typing import Any, Callable, Optional
import logging

from ...events.lifecycle.registry import EventRegistry, Phase, CONVENTION_METHODS
from ...events.lifecycle.outcome import HookOutcome
from ...infrastructure.container import get_service_container

logger = logging.getLogger(__name__)

def event_name(method: str) -> str:
    """Instance event fired for a convention method: before_save → model.beforeSave"""
    head, *rest = method.split("_")
    return "model." + head + "".join(part.capitalize() for part in rest)

def _convention_handler(phase: Phase) -> Callable[[Any], Any]:
    method = CONVENTION_METHODS[phase]
    event = event_name(method)

    def handler(record):
        if method not in record._convention_bound and record.method_exists(method):
            record._convention_bound.add(method)
            record.bind_event(event, lambda *args: record.call_method(method))

        if phase.is_before:
            return record.fire_event(event, halt=True)
        record.fire_event(event)

    handler.__name__ = f"convention_{method}"
    return handler

class HasLifecycleEvents:
    """Per type boot wiring and phase dispatch"""

    @classmethod
    def event_registry(cls) -> EventRegistry:
        return get_service_container().event_registry

    def boot_if_not_booted(self):
        cls = type(self)
        registry = cls.event_registry()
        if registry.is_booted(cls):
            return

        with registry.booting(cls):
            for phase in CONVENTION_METHODS:
                registry.listen(cls, phase, _convention_handler(phase))
            cls.boot()

        logger.debug(f"Booted lifecycle events for {cls.__name__}")
        registry.dispatch(self, Phase.BOOTED, halt=False)

    @classmethod
    def boot(cls):
        """Register type level handlers; runs once per type"""
        pass

    @classmethod
    def flush_event_listeners(cls):
        """Remove this type's handlers and clear every type's boot flag"""
        cls.event_registry().flush(cls)

    def fire_model_event(self, phase: Phase, halt: Optional[bool] = None) -> Optional[HookOutcome]:
        return self.event_registry().dispatch(self, phase, halt)

    # Type level registration shortcuts
    @classmethod
    def listen(cls, phase: Phase, handler: Callable[[Any], Any], priority: int = 0):
        cls.event_registry().listen(cls, phase, handler, priority)

    @classmethod
    def fetching(cls, handler, priority: int = 0):
        cls.listen(Phase.FETCHING, handler, priority)

    @classmethod
    def fetched(cls, handler, priority: int = 0):
        cls.listen(Phase.FETCHED, handler, priority)

    @classmethod
    def creating(cls, handler, priority: int = 0):
        cls.listen(Phase.CREATING, handler, priority)

    @classmethod
    def created(cls, handler, priority: int = 0):
        cls.listen(Phase.CREATED, handler, priority)

    @classmethod
    def updating(cls, handler, priority: int = 0):
        cls.listen(Phase.UPDATING, handler, priority)

    @classmethod
    def updated(cls, handler, priority: int = 0):
        cls.listen(Phase.UPDATED, handler, priority)

    @classmethod
    def saving(cls, handler, priority: int = 0):
        cls.listen(Phase.SAVING, handler, priority)

    @classmethod
    def saved(cls, handler, priority: int = 0):
        cls.listen(Phase.SAVED, handler, priority)

    @classmethod
    def deleting(cls, handler, priority: int = 0):
        cls.listen(Phase.DELETING, handler, priority)

    @classmethod
    def deleted(cls, handler, priority: int = 0):
        cls.listen(Phase.DELETED, handler, priority)

__all__ = ["HasLifecycleEvents", "event_name"]
