"""
Persistence Mixin - Save, Push and Delete

💾 Writing Records:
``save`` runs the whole write protocol for one record:

1. halting ``model.saveInternal`` instance event (False refuses the save)
2. the outgoing payload is checked for structured values that are not
   declared jsonable
3. ``saving`` then ``creating``/``updating`` hooks (False refuses the save)
4. deferred bindings of the "before" policy are replayed
5. the purged payload is written by the repository and ``original`` is
   synced, so changes made by later hooks stay dirty
6. the remaining deferred bindings are replayed
7. ``created``/``updated`` then ``saved`` hooks

A refused save returns False and leaves storage and the deferred binding
ledger untouched.

Cascades:
- ``push`` saves the record, then every loaded, pushable relation member,
  stopping at the first failure
- ``delete`` force deletes relations flagged ``delete`` and detaches
  belongs_to_many relations unless they are flagged ``detach=False``,
  whether or not they were loaded
"""

from typing import Any, Dict, Optional
import logging

from ...events.lifecycle.registry import Phase
from ...events.lifecycle.outcome import is_cancelled
from ...relations.definition import RelationKind
from ...relations import handlers
from ..casting import is_structured
from ..errors import JsonableConfigurationError, RecordError

logger = logging.getLogger(__name__)

class HasPersistence:
    """Save, push and delete with cascades"""

    # Saving
    def save(self, options: Optional[Dict[str, Any]] = None, session_key: Optional[str] = None) -> bool:
        """Save the record; returns False when a hook refused the save"""
        if session_key is not None:
            self.session_key = session_key
        return self.save_internal({"force": False, **(options or {})})

    def force_save(self, options: Optional[Dict[str, Any]] = None, session_key: Optional[str] = None) -> bool:
        """Save with the ``force`` option, for hooks that skip validation"""
        return self.save({**(options or {}), "force": True}, session_key)

    def save_internal(self, options: Optional[Dict[str, Any]] = None) -> bool:
        options = {"force": False, **(options or {})}

        if is_cancelled(self.fire_event("model.saveInternal", self.attributes, options, halt=True)):
            return False

        for attribute, value in self.get_attributes_for_write().items():
            if is_structured(value):
                raise JsonableConfigurationError(attribute)

        if is_cancelled(self.fire_model_event(Phase.SAVING)):
            logger.debug(f"Save of {type(self).__name__} refused by a saving hook")
            return False

        creating = not self.exists
        if creating:
            if is_cancelled(self.fire_model_event(Phase.CREATING)):
                return False
        elif self.is_dirty():
            if is_cancelled(self.fire_model_event(Phase.UPDATING)):
                return False

        self.commit_deferred_before(self.session_key)

        if creating:
            self._perform_insert()
            written = Phase.CREATED
        else:
            written = Phase.UPDATED if self._perform_update() else None
        self.sync_original()

        self.commit_deferred_after(self.session_key)

        if written is not None:
            self.fire_model_event(written)
        self.fire_model_event(Phase.SAVED)
        return True

    def _perform_insert(self):
        if self.uses_timestamps():
            self.update_timestamps()

        key = self.get_repository().persist(
            self.get_table(), self.get_attributes_for_write(), self.primary_key, exists=False
        )
        if self.attributes.get(self.primary_key) is None:
            self.attributes[self.primary_key] = key

        self.exists = True
        self.was_recently_created = True
        logger.debug(f"Inserted {type(self).__name__} [{key}]")

    def _perform_update(self) -> bool:
        if not self.is_dirty():
            return False

        if self.uses_timestamps():
            self.update_timestamps()

        dirty = self.get_attributes_for_write(self.get_dirty())
        if dirty:
            self.get_repository().persist(
                self.get_table(), dirty, self.primary_key,
                key=self.get_original(self.primary_key, self.get_key()), exists=True
            )
        self.sync_changes()
        return bool(dirty)

    def persist_columns(self, columns: Dict[str, Any]):
        """Write a few columns of an existing row directly, without hooks"""
        self.get_repository().persist(self.get_table(), columns, self.primary_key, key=self.get_key(), exists=True)
        for name in columns:
            self.sync_original_attribute(name)
        return self

    # Cascading save
    def push(self, options: Optional[Dict[str, Any]] = None, session_key: Optional[str] = None) -> bool:
        """
        Save the record and every loaded relation member.

        Without the ``always`` option a refused save stops the push before
        any relation is visited. A refused member stops the push; members
        already saved stay saved.
        """
        always = bool((options or {}).get("always", False))

        if not self.save(None, session_key) and not always:
            return False

        for name, value in list(self.relations.items()):
            if not self.is_relation_pushable(name):
                continue

            for related in self.unwrap_related(value):
                if not isinstance(related, HasPersistence):
                    continue
                if not related.push(None, session_key):
                    logger.debug(f"Push of {type(self).__name__}.{name} stopped at a refused member")
                    return False

        return True

    def always_push(self, options: Optional[Dict[str, Any]] = None, session_key: Optional[str] = None) -> bool:
        """Push relations even when the record's own save is refused"""
        return self.push({**(options or {}), "always": True}, session_key)

    # Deleting
    def delete(self) -> bool:
        """Delete the record and cascade to its relations"""
        if self.primary_key is None:
            raise RecordError(f"No primary key defined on {type(self).__name__}")

        if not self.exists:
            return False

        if is_cancelled(self.fire_model_event(Phase.DELETING)):
            return False

        self.perform_delete_internal()

        self.fire_model_event(Phase.DELETED)
        return True

    def force_delete(self) -> bool:
        """Delete bypassing soft delete style prevention in hooks"""
        self._force_deleting = True
        try:
            return self.delete()
        finally:
            self._force_deleting = False

    def is_force_deleting(self) -> bool:
        return self._force_deleting

    def perform_delete_internal(self):
        self.perform_delete_on_relations()
        self.get_repository().delete_row(self.get_table(), self.primary_key, self.get_key())
        self.exists = False
        logger.debug(f"Deleted {type(self).__name__} [{self.get_key()}]")

    def perform_delete_on_relations(self):
        for name, definition in self.get_relation_definitions().items():
            if definition.delete:
                for related in self.unwrap_related(self._resolve_for_cascade(name)):
                    if isinstance(related, HasPersistence):
                        related.force_delete()

            if definition.kind is RelationKind.BELONGS_TO_MANY and definition.detach:
                handlers.detach_all(self, definition)

__all__ = ["HasPersistence"]
