"""
Relations Mixin - Relation Cache, Resolution and Deferred Binding

🔗 Explicit Relation Access:
Loaded relations live in ``record.relations`` keyed by name. Reading an
unloaded relation resolves it through ``resolve_relation``, which fails
fast with LazyLoadingViolationError when lazy loading is forbidden.

Relation writes (``bind``, ``unbind``, ``create_related`` and assigning a
relation through ``set``) run immediately, or are queued in the deferred
binding ledger when a session key is active.
"""

from typing import Any, Dict, Iterable, List, Optional, Union
import logging

from ...relations.definition import (
    RelationDefinition, RelationKind, definitions_from_class, resolve_record_type
)
from ...relations import handlers
from ...persistence.transactions.deferred_binding import BindingOperation, DeferredBinding, DeferredBindingLedger
from ...infrastructure.container import get_service_container
from ..errors import LazyLoadingViolationError, RelationNotFoundError

logger = logging.getLogger(__name__)

class HasRelations:
    """Relation definitions, cache and write operations"""

    # Definitions
    @classmethod
    def declared_relations(cls) -> Dict[str, RelationDefinition]:
        """Relations declared on the class dictionaries"""
        cached = cls.__dict__.get("_declared_relations")
        if cached is None:
            cached = definitions_from_class(cls)
            cls._declared_relations = cached
        return cached

    def get_relation_definitions(self) -> Dict[str, RelationDefinition]:
        return {**self.declared_relations(), **self._extra_relations}

    def get_relation_definition(self, name: str) -> Optional[RelationDefinition]:
        return self._extra_relations.get(name) or self.declared_relations().get(name)

    def has_relation(self, name: str) -> bool:
        return self.get_relation_definition(name) is not None

    def add_relation(self, kind: Union[str, RelationKind], name: str, declaration: Any):
        """Define a relation on this instance only"""
        self._extra_relations[name] = RelationDefinition.from_declaration(name, kind, declaration)
        return self

    def _definition_or_fail(self, name: str) -> RelationDefinition:
        definition = self.get_relation_definition(name)
        if definition is None:
            raise RelationNotFoundError(f"Relation '{name}' is not defined on {type(self).__name__}")
        return definition

    def is_relation_pushable(self, name: str) -> bool:
        definition = self.get_relation_definition(name)
        if definition is None:
            return True
        return definition.push

    # Cache
    def relation_loaded(self, name: str) -> bool:
        return name in self.relations

    def get_relation(self, name: str) -> Any:
        return self.relations.get(name)

    def set_relation(self, name: str, value: Any):
        self.relations[name] = value
        return self

    def unset_relation(self, name: str):
        self.relations.pop(name, None)
        return self

    def reload_relations(self, name: Optional[str] = None):
        """Forget one loaded relation, or all of them"""
        self.flush_duplicate_cache()
        if name is None:
            self.relations.clear()
        else:
            self.relations.pop(name, None)

    # Resolution
    def prevents_lazy_loading(self) -> bool:
        if self.prevent_lazy_loading is not None:
            return self.prevent_lazy_loading
        return get_service_container().config.records.prevent_lazy_loading

    def resolve_relation(self, name: str) -> Any:
        """Return a relation from the cache, loading it when lazy loading is allowed"""
        if name in self.relations:
            return self.relations[name]

        self._definition_or_fail(name)
        if self.prevents_lazy_loading():
            raise LazyLoadingViolationError(type(self).__name__, name)

        return self.load_relation(name)

    def get_relation_value(self, name: str) -> Any:
        return self.resolve_relation(name)

    def load_relation(self, *names: str):
        """Fetch relations from storage into the cache, regardless of lazy loading mode"""
        for name in names:
            definition = self._definition_or_fail(name)
            self.relations[name] = handlers.load(self, definition)
            logger.debug(f"Loaded relation {type(self).__name__}.{name}")
        return self.relations[names[0]] if len(names) == 1 else self

    def _resolve_for_cascade(self, name: str) -> Any:
        if name in self.relations:
            return self.relations[name]
        return self.load_relation(name)

    @staticmethod
    def unwrap_related(value: Any) -> List[Any]:
        """A relation value as a list of records"""
        if value is None:
            return []
        if isinstance(value, HasRelations):
            return [value]
        if isinstance(value, (list, tuple)):
            return list(value)
        if isinstance(value, Iterable) and not isinstance(value, (str, bytes, dict)):
            return list(value)
        return [value]

    # Writes
    def ledger(self) -> DeferredBindingLedger:
        return get_service_container().ledger

    def _session_key(self, session_key: Optional[str]) -> Optional[str]:
        return session_key if session_key is not None else self.session_key

    def _waits_for_owner_key(self, definition: RelationDefinition) -> bool:
        return not self.exists and definition.kind is not RelationKind.BELONGS_TO

    def _after_owner_saved(self, operation):
        self.bind_event_once("model.afterSave", operation)

    def bind(self, name: str, record: Any, session_key: Optional[str] = None,
             pivot_data: Optional[Dict[str, Any]] = None):
        """
        Associate a record with a relation. Deferred to the ledger when a
        session key is active, or to the next save when the owner has no
        key yet.
        """
        definition = self._definition_or_fail(name)
        session_key = self._session_key(session_key)

        if session_key:
            self.ledger().bind(session_key, self, name, record, definition.kind.value, pivot_data)
        elif self._waits_for_owner_key(definition):
            self._after_owner_saved(lambda: handlers.bind(self, definition, record, pivot_data))
        else:
            handlers.bind(self, definition, record, pivot_data)
        return self

    def unbind(self, name: str, record: Any, session_key: Optional[str] = None):
        """Dissociate a record from a relation, deferred like ``bind``"""
        definition = self._definition_or_fail(name)
        session_key = self._session_key(session_key)

        if session_key:
            self.ledger().unbind(session_key, self, name, record, definition.kind.value)
        elif self._waits_for_owner_key(definition):
            self._after_owner_saved(lambda: handlers.unbind(self, definition, record))
        else:
            handlers.unbind(self, definition, record)
        return self

    def create_related(self, name: str, attributes: Dict[str, Any], session_key: Optional[str] = None,
                       pivot_data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Create a related record. With an active session key, or while the
        owner has no key yet, the new record is returned unsaved and written
        when the owner is saved.
        """
        definition = self._definition_or_fail(name)
        session_key = self._session_key(session_key)

        if not session_key and not self._waits_for_owner_key(definition):
            return handlers.insert(self, definition, attributes, pivot_data)

        related = definition.resolve_target()().force_fill(attributes)
        if not session_key:
            self._after_owner_saved(lambda: handlers.bind(self, definition, related, pivot_data))
            return related

        self.ledger().insert(session_key, self, name, attributes, definition.kind.value,
                             pivot_data=pivot_data, slave=related)
        return related

    def set_relation_value(self, name: str, value: Any):
        """
        Assign a relation through ``set``. Values may be records or keys.
        Relations that need the owner's key wait for the next save when the
        owner does not exist yet.
        """
        definition = self._definition_or_fail(name)
        target = definition.resolve_target()

        related = [item if isinstance(item, HasRelations) else target.find(item) for item in self.unwrap_related(value)]
        related = [item for item in related if item is not None]

        if definition.kind is RelationKind.BELONGS_TO:
            slave = related[0] if related else None
            key, other_key = handlers.relation_keys(self, definition)
            self.set(key, slave.get(other_key) if slave is not None else None)
            self.relations[name] = slave
            return self

        session_key = self.session_key
        if session_key:
            for item in related:
                self.bind(name, item, session_key)
            return self

        if not self.exists:
            self._after_owner_saved(lambda: self._sync_relation(definition, related))
            self.relations[name] = related if definition.is_many else (related[0] if related else None)
            return self

        self._sync_relation(definition, related)
        return self

    def _sync_relation(self, definition: RelationDefinition, related: List[Any]):
        current = self.unwrap_related(handlers.load(self, definition))
        wanted_keys = {item.get_key() for item in related if item.exists}

        for item in current:
            if item.get_key() not in wanted_keys:
                handlers.unbind(self, definition, item)

        current_keys = {item.get_key() for item in current}
        for item in related:
            if not item.exists or item.get_key() not in current_keys:
                handlers.bind(self, definition, item)

        self.relations[definition.name] = related if definition.is_many else (related[0] if related else None)

    # Deferred bindings
    def apply_deferred_binding(self, entry: DeferredBinding):
        """Replay one ledger entry against this record"""
        definition = self._definition_or_fail(entry.master_field)

        if entry.operation is BindingOperation.INSERT:
            slave = entry.slave or definition.resolve_target()().force_fill(entry.payload or {})
            handlers.bind(self, definition, slave, entry.pivot_data)
            return

        slave = entry.slave
        if slave is None:
            slave = resolve_record_type(entry.slave_type).find(entry.slave_id)
            if slave is None:
                logger.warning(f"Deferred {entry.operation.value} on {entry.master_field} refers to a missing record [{entry.slave_id}]")
                return

        if entry.operation is BindingOperation.BIND:
            handlers.bind(self, definition, slave, entry.pivot_data)
        else:
            handlers.unbind(self, definition, slave)

    def commit_deferred_before(self, session_key: Optional[str]) -> int:
        return self.ledger().commit_before(self, session_key)

    def commit_deferred_after(self, session_key: Optional[str]) -> int:
        return self.ledger().commit_after(self, session_key)

    def get_deferred_bindings(self, session_key: Optional[str] = None,
                              name: Optional[str] = None) -> List[DeferredBinding]:
        session_key = self._session_key(session_key)
        if not session_key:
            return []
        return self.ledger().get_deferred(session_key, type(self), name)

    def has_deferred(self, session_key: Optional[str] = None) -> bool:
        return bool(self.get_deferred_bindings(session_key))

    def cancel_deferred(self, session_key: Optional[str] = None) -> int:
        session_key = self._session_key(session_key)
        if not session_key:
            return 0
        return self.ledger().cancel_deferred(session_key, type(self))

__all__ = ["HasRelations"]
