"""
Event Emitter - Instance Level Hooks

Records carry their own emitter so handlers can be bound to a single
instance (``record.bind_event('model.beforeSave', handler)``). Handlers run
by descending priority, then registration order.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union
import itertools
import logging

from .outcome import HookOutcome, normalize_result

logger = logging.getLogger(__name__)

_sequence = itertools.count()

@dataclass
class BoundHandler:
    """A handler bound to an instance event"""
    handler: Callable[..., Any]
    priority: int
    sequence: int
    once: bool = False

class EventEmitter:
    """
    Instance event capabilities mixin.

    ``fire_event(name, *args, halt=True)`` returns the first outcome that
    halts (an Optional[HookOutcome]); without halting it returns the list of
    every handler outcome, skipping handlers that returned nothing.
    """

    def _get_emitter_handlers(self) -> Dict[str, List[BoundHandler]]:
        handlers = self.__dict__.get("_emitter_handlers")
        if handlers is None:
            handlers = {}
            self.__dict__["_emitter_handlers"] = handlers
        return handlers

    def bind_event(self, event: str, handler: Callable[..., Any], priority: int = 0, once: bool = False):
        """Bind a handler to an instance event"""
        if not callable(handler):
            raise TypeError(f"Handler for event '{event}' must be callable")

        bound = self._get_emitter_handlers().setdefault(event, [])
        bound.append(BoundHandler(handler, priority, next(_sequence), once))
        bound.sort(key=lambda item: (-item.priority, item.sequence))
        return self

    def bind_event_once(self, event: str, handler: Callable[..., Any], priority: int = 0):
        """Bind a handler that is removed after its first call"""
        return self.bind_event(event, handler, priority, once=True)

    def unbind_event(self, event: Optional[Union[str, List[str]]] = None):
        """Remove handlers for one event, several events or all events"""
        handlers = self._get_emitter_handlers()
        if event is None:
            handlers.clear()
            return self

        for name in ([event] if isinstance(event, str) else event):
            handlers.pop(name, None)
        return self

    def has_event_handlers(self, event: str) -> bool:
        return bool(self._get_emitter_handlers().get(event))

    def fire_event(self, event: str, *args: Any, halt: bool = False):
        """Fire an instance event"""
        bound = self._get_emitter_handlers().get(event)
        if not bound:
            return None if halt else []

        outcomes = []
        for item in list(bound):
            if item.once:
                bound.remove(item)

            outcome = normalize_result(item.handler(*args))
            if outcome is None:
                continue

            if halt and outcome.halts:
                logger.debug(f"Event '{event}' halted with {outcome.kind.value}")
                return outcome

            outcomes.append(outcome)

        return None if halt else outcomes

__all__ = ["EventEmitter", "BoundHandler"]
