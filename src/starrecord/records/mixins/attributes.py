"""
Attribute Pipeline - Record Attribute Access

🔄 Every Read And Write Goes Through One Path:
``get`` and ``set`` are the only way attribute values move in and out of a
record. Along the way values are offered to hooks, mutated, cast, coerced
to dates, JSON encoded/decoded and trimmed.

Read path (``get_attribute_value``):
    model.beforeGetAttribute (first outcome wins) → raw value → get mutator
    or cast or date coercion → JSON decode for jsonable attributes
    (malformed JSON keeps the raw text) → model.getAttribute (outcome wins)

Write path (``set``):
    relation names go to the relation layer → model.beforeSetAttribute
    (outcome replaces the value) → JSON encode for jsonable attributes →
    trim text → set mutator or date formatting or cast → store →
    model.setAttribute notification

The mixin also owns dirty tracking, mass assignment, purgeable attributes,
timestamps and the output mapping used for serialization.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
import json
import logging

from pydantic_core import to_jsonable_python

from ..casting import (
    as_date_time, from_date_time, encode_json, decode_json, is_structured,
    is_date_cast, cast_to_python, cast_for_storage
)
from ..errors import AttributeNameError, IdentityImmutableError, MassAssignmentError
from ...infrastructure.container import get_service_container

logger = logging.getLogger(__name__)

class HasAttributes:
    """Attribute store and transformation pipeline"""

    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"

    # Reading
    def get(self, name: str, default: Any = None) -> Any:
        """
        Read an attribute, a relation or an extension property.

        Stored, cast and mutated attributes run through the read pipeline.
        Other names are looked up as loaded relations, then as defined
        relations (lazy loaded unless lazy loading is forbidden), then as
        extension properties.
        """
        if not name:
            return default

        if self.has_attribute(name):
            return self.get_attribute_value(name)

        if self.relation_loaded(name):
            return self.relations[name]

        if self.has_relation(name):
            return self.get_relation_value(name)

        return self.get_extension_property(name, default)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes or name in self.casts or self.has_get_mutator(name)

    def get_attribute_value(self, name: str) -> Any:
        outcome = self.fire_event("model.beforeGetAttribute", name, halt=True)
        if outcome is not None:
            return outcome.value

        value = self._get_base_attribute_value(name)

        if name in self.jsonable and value and isinstance(value, (str, bytes)):
            decoded, result = decode_json(value)
            if decoded:
                value = result
            else:
                logger.debug(f"Attribute '{name}' of {type(self).__name__} holds malformed JSON, keeping raw text")

        outcome = self.fire_event("model.getAttribute", name, value, halt=True)
        if outcome is not None:
            return outcome.value

        return value

    def _get_base_attribute_value(self, name: str) -> Any:
        value = self.attributes.get(name)

        if self.has_get_mutator(name):
            return getattr(self, f"get_{name}_attribute")(value)

        if name in self.casts:
            return cast_to_python(self, name, self.casts[name], value, self.get_date_format())

        if name in self.get_dates() and value not in (None, ""):
            return self.as_date_time(value)

        return value

    def get_raw_attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __contains__(self, name: str) -> bool:
        return self.has_attribute(name) or self.relation_loaded(name)

    # Writing
    def set(self, name: str, value: Any):
        """Write an attribute through the pipeline"""
        if not name:
            raise AttributeNameError("Cannot set an attribute without a name")

        if self.has_relation(name) and not self.has_set_mutator(name):
            return self.set_relation_value(name, value)

        outcome = self.fire_event("model.beforeSetAttribute", name, value, halt=True)
        if outcome is not None:
            value = outcome.value

        if name in self.jsonable and (value or is_structured(value)):
            value = encode_json(value)

        if self.trims_string_attributes() and isinstance(value, str):
            value = value.strip()

        self._set_base_attribute(name, value)

        self.fire_event("model.setAttribute", name, value)
        return self

    def _set_base_attribute(self, name: str, value: Any):
        if name == self.primary_key and self.exists:
            current = self.original.get(name)
            if current is not None and value != current:
                raise IdentityImmutableError(
                    f"Cannot change the key of persisted {type(self).__name__} [{current}] to [{value}]"
                )

        if self.has_set_mutator(name):
            getattr(self, f"set_{name}_attribute")(value)
            return

        if value not in (None, "") and self.is_date_attribute(name):
            value = from_date_time(value, self.get_date_format())
        elif name in self.casts:
            value = cast_for_storage(self, name, self.casts[name], value, self.get_date_format())

        self.attributes[name] = value

    def __setitem__(self, name: str, value: Any):
        self.set(name, value)

    def set_raw_attributes(self, attributes: Dict[str, Any], sync: bool = False):
        """Replace the attributes without running the pipeline"""
        self.attributes = dict(attributes)
        if sync:
            self.sync_original()
        return self

    # Mutators
    def has_get_mutator(self, name: str) -> bool:
        return callable(getattr(type(self), f"get_{name}_attribute", None))

    def has_set_mutator(self, name: str) -> bool:
        return callable(getattr(type(self), f"set_{name}_attribute", None))

    # Mass assignment
    def fill(self, attributes: Dict[str, Any]):
        """Set every fillable attribute; guarded keys are skipped"""
        totally_guarded = self.totally_guarded()

        for key, value in attributes.items():
            if self.is_fillable(key):
                self.set(key, value)
            elif totally_guarded:
                raise MassAssignmentError(
                    f"Add [{key}] to fillable property to allow mass assignment on [{type(self).__name__}]."
                )
        return self

    def force_fill(self, attributes: Dict[str, Any]):
        for key, value in attributes.items():
            self.set(key, value)
        return self

    def is_fillable(self, key: str) -> bool:
        if key in self.fillable:
            return True
        if self.is_guarded(key):
            return False
        return not self.fillable and not key.startswith("_")

    def is_guarded(self, key: str) -> bool:
        return key in self.guarded or self.guarded == ["*"]

    def totally_guarded(self) -> bool:
        return not self.fillable and self.guarded == ["*"]

    def add_fillable(self, *names: str):
        self.fillable.extend(name for name in names if name not in self.fillable)
        return self

    def add_jsonable(self, *names: str):
        self.jsonable.extend(name for name in names if name not in self.jsonable)
        return self

    def add_casts(self, casts: Dict[str, Any]):
        self.casts.update(casts)
        return self

    def add_date_attribute(self, name: str):
        if name not in self.dates:
            self.dates.append(name)
        return self

    def add_hidden(self, *names: str):
        self.hidden.extend(name for name in names if name not in self.hidden)
        return self

    def add_visible(self, *names: str):
        self.visible.extend(name for name in names if name not in self.visible)
        return self

    # Purgeable attributes
    def add_purgeable(self, *names: str):
        self.purgeable.extend(name for name in names if name not in self.purgeable)
        return self

    def get_purgeable(self) -> List[str]:
        return list(self.purgeable)

    def purge_attributes(self, *names: str) -> Dict[str, Any]:
        """
        Remove purgeable values from memory. The removed values stay
        available through ``get_original_purge_value``.
        """
        for name in names or self.purgeable:
            if name in self.attributes:
                self._purged_values[name] = self.attributes.pop(name)
        return self.attributes

    def get_original_purge_value(self, name: str) -> Any:
        return self._purged_values.get(name)

    def get_attributes_for_write(self, attributes: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """The outgoing payload: attributes without purgeable names"""
        attributes = self.attributes if attributes is None else attributes
        return {key: value for key, value in attributes.items() if key not in self.purgeable}

    # Dirty tracking
    def get_original(self, name: Optional[str] = None, default: Any = None) -> Any:
        if name is None:
            return dict(self.original)
        return self.original.get(name, default)

    def get_dirty(self) -> Dict[str, Any]:
        return {
            key: value for key, value in self.attributes.items()
            if key not in self.original or self.original[key] != value
        }

    def is_dirty(self, *names: str) -> bool:
        dirty = self.get_dirty()
        if not names:
            return bool(dirty)
        return any(name in dirty for name in names)

    def is_clean(self, *names: str) -> bool:
        return not self.is_dirty(*names)

    def sync_original(self):
        self.original = dict(self.attributes)
        return self

    def sync_original_attribute(self, name: str):
        self.original[name] = self.attributes.get(name)
        return self

    def sync_changes(self):
        self.changes = self.get_dirty()
        return self

    def get_changes(self) -> Dict[str, Any]:
        return dict(self.changes)

    def was_changed(self, *names: str) -> bool:
        if not names:
            return bool(self.changes)
        return any(name in self.changes for name in names)

    # Dates and timestamps
    def get_dates(self) -> List[str]:
        dates = list(self.dates)
        if self.uses_timestamps():
            dates.extend(name for name in (self.CREATED_AT, self.UPDATED_AT) if name not in dates)
        return dates

    def is_date_attribute(self, name: str) -> bool:
        return name in self.get_dates() or (name in self.casts and is_date_cast(self.casts[name]))

    def get_date_format(self) -> str:
        return self.date_format or get_service_container().config.persistence.date_format

    def as_date_time(self, value: Any) -> datetime:
        return as_date_time(value, self.get_date_format())

    def from_date_time(self, value: Any) -> Optional[str]:
        return from_date_time(value, self.get_date_format())

    def serialize_date(self, value: datetime) -> str:
        return value.isoformat()

    def uses_timestamps(self) -> bool:
        return self.timestamps

    def fresh_timestamp(self) -> datetime:
        return datetime.now()

    def update_timestamps(self):
        now = self.fresh_timestamp()

        if not self.is_dirty(self.UPDATED_AT):
            self.set(self.UPDATED_AT, now)

        if not self.exists and not self.is_dirty(self.CREATED_AT):
            self.set(self.CREATED_AT, now)

    def trims_string_attributes(self) -> bool:
        if self.trim_string_attributes is not None:
            return self.trim_string_attributes
        return get_service_container().config.records.trim_string_attributes

    # Output
    def get_arrayable_attributes(self) -> Dict[str, Any]:
        attributes = dict(self.attributes)
        if self.visible:
            attributes = {key: value for key, value in attributes.items() if key in self.visible}
        return {key: value for key, value in attributes.items() if key not in self.hidden}

    def get_arrayable_appends(self) -> List[str]:
        appends = [name for name in self.appends if name not in self.hidden]
        if self.visible:
            appends = [name for name in appends if name in self.visible]
        return appends

    def to_output_mapping(self) -> Dict[str, Any]:
        """Every externally visible attribute, in presentation form"""
        attributes = self.get_arrayable_attributes()

        for key in list(attributes):
            outcome = self.fire_event("model.beforeGetAttribute", key, halt=True)
            if outcome is not None:
                attributes[key] = outcome.value

        for key in self.get_dates():
            if attributes.get(key) in (None, ""):
                continue
            attributes[key] = self.serialize_date(self.as_date_time(attributes[key]))

        mutated = [key for key in attributes if self.has_get_mutator(key)]
        for key in mutated:
            attributes[key] = self._mutate_for_output(key, attributes[key])

        for key, cast in self.casts.items():
            if key not in attributes or key in mutated:
                continue
            value = cast_to_python(self, key, cast, attributes[key], self.get_date_format())
            if isinstance(value, datetime):
                value = self.serialize_date(value)
            attributes[key] = value

        for key in self.get_arrayable_appends():
            attributes[key] = self._mutate_for_output(key, None)

        for key in self.jsonable:
            if key not in attributes or key in mutated or not isinstance(attributes[key], str):
                continue
            decoded, value = decode_json(attributes[key])
            if decoded:
                attributes[key] = value

        for key in list(attributes):
            outcome = self.fire_event("model.getAttribute", key, attributes[key], halt=True)
            if outcome is not None:
                attributes[key] = outcome.value

        return attributes

    def _mutate_for_output(self, key: str, value: Any) -> Any:
        value = getattr(self, f"get_{key}_attribute")(value)
        if hasattr(value, "to_dict"):
            return value.to_dict()
        return value

    def relations_to_dict(self) -> Dict[str, Any]:
        output: Dict[str, Any] = {}
        for name, value in self.relations.items():
            if name in self.hidden:
                continue
            if value is None:
                output[name] = None
            elif isinstance(value, (list, tuple)):
                output[name] = [item.to_dict() for item in value]
            else:
                output[name] = value.to_dict()
        return output

    def to_dict(self) -> Dict[str, Any]:
        return {**self.to_output_mapping(), **self.relations_to_dict()}

    def to_json(self, **kwargs) -> str:
        return json.dumps(self.to_dict(), default=to_jsonable_python, **kwargs)

__all__ = ["HasAttributes"]
