"""
Record Mixins - Capabilities Composed Into Record

- attributes: attribute store and transformation pipeline
- events: lifecycle boot wiring and dispatch
- relations: relation cache, resolution and deferred bindings
- persistence: save, push and delete cascades
- extensions: runtime attachable behavior
"""

from .attributes import HasAttributes
from .events import HasLifecycleEvents, event_name
from .relations import HasRelations
from .persistence import HasPersistence
from .extensions import Extendable, RecordExtension

__all__ = [
    "HasAttributes", "HasLifecycleEvents", "event_name", "HasRelations",
    "HasPersistence", "Extendable", "RecordExtension"
]
