"""
Extensions Mixin - Runtime Attachable Behavior

🧩 Composition At Runtime:
A RecordExtension is a behavior bundle attached to a record. It receives
the record on construction and may declare relations (same class
dictionaries as records) and public methods or properties.

Attaching:
- per type: list extension classes in ``implement``, or call
  ``Post.extend_class_with(Ext)`` / ``Post.extend(callback)``
- per instance: ``post.extend_with(Ext)`` or ``post.extend(callback)``

Lookup order for names the record does not define: dynamic methods, then
extensions in attachment order.
"""

from typing import Any, Callable, Dict, List, Optional, Type, Union
import importlib
import logging

from ...relations.definition import RELATION_KINDS
from ..errors import ExtensionError

logger = logging.getLogger(__name__)

class RecordExtension:
    """Base class for behavior bundles attached to records"""

    def __init__(self, record):
        self.record = record

_EXTENSION_BASE_NAMES = set(dir(RecordExtension)) | {"record"}

# Per type attachments, keyed by record class
_class_extensions: Dict[type, List[Any]] = {}
_class_callbacks: Dict[type, List[Callable[[Any], Any]]] = {}

def resolve_extension(extension: Union[str, Type[RecordExtension]]) -> Type[RecordExtension]:
    if isinstance(extension, str):
        module_name, _, class_name = extension.rpartition(".")
        if not module_name:
            raise ExtensionError(f"Extension '{extension}' must be a dotted import path")
        extension = getattr(importlib.import_module(module_name), class_name)

    if not (isinstance(extension, type) and issubclass(extension, RecordExtension)):
        raise ExtensionError(f"{extension!r} is not a RecordExtension")
    return extension

class class_or_instance_method:
    """Descriptor binding to the instance when there is one, else to the class"""

    def __init__(self, class_function: Callable, instance_function: Callable):
        self.class_function = class_function
        self.instance_function = instance_function

    def __get__(self, instance, owner):
        if instance is None:
            return self.class_function.__get__(owner, type(owner))
        return self.instance_function.__get__(instance, owner)

def _extend_class(cls, callback: Callable[[Any], Any]):
    """Run the callback on every new instance of the type"""
    if not callable(callback):
        raise ExtensionError("extend() requires a callable")
    _class_callbacks.setdefault(cls, []).append(callback)

def _extend_instance(self, callback: Callable[[Any], Any]):
    """Run the callback against this instance"""
    if not callable(callback):
        raise ExtensionError("extend() requires a callable")
    return callback(self)

class Extendable:
    """Extension attachment, dynamic methods and dynamic properties"""

    implement: List[Any] = []

    extend = class_or_instance_method(_extend_class, _extend_instance)

    @classmethod
    def extend_class_with(cls, extension: Union[str, Type[RecordExtension]]):
        """Attach an extension to every new instance of the type"""
        _class_extensions.setdefault(cls, []).append(resolve_extension(extension))

    @classmethod
    def clear_extended_classes(cls):
        _class_extensions.pop(cls, None)
        _class_callbacks.pop(cls, None)

    def extendable_construct(self):
        """Attach type level extensions and run type level callbacks, base classes first"""
        lineage = [klass for klass in reversed(type(self).__mro__) if issubclass(klass, Extendable)]

        for klass in lineage:
            for extension in klass.__dict__.get("implement", []):
                self.extend_with(extension)
            for extension in _class_extensions.get(klass, []):
                self.extend_with(extension)

        for klass in lineage:
            for callback in _class_callbacks.get(klass, []):
                callback(self)

    def extend_with(self, extension: Union[str, Type[RecordExtension]]) -> RecordExtension:
        """Attach an extension to this instance"""
        extension = resolve_extension(extension)
        if self.is_class_extended_with(extension):
            raise ExtensionError(f"{type(self).__name__} is already extended with {extension.__name__}")

        instance = extension(self)
        self._extensions.append(instance)

        for kind in RELATION_KINDS:
            for name, declaration in (getattr(extension, kind, None) or {}).items():
                self.add_relation(kind, name, declaration)

        logger.debug(f"Extended {type(self).__name__} with {extension.__name__}")
        return instance

    def is_class_extended_with(self, extension: Union[str, type]) -> bool:
        return self.get_class_extension(extension) is not None

    def get_class_extension(self, extension: Union[str, type]) -> Optional[RecordExtension]:
        for instance in self._extensions:
            if isinstance(extension, str):
                if extension in (type(instance).__name__, f"{type(instance).__module__}.{type(instance).__name__}"):
                    return instance
            elif type(instance) is extension:
                return instance
        return None

    def as_extension(self, extension: Union[str, type]) -> Optional[RecordExtension]:
        return self.get_class_extension(extension)

    # Dynamic members
    def add_dynamic_method(self, name: str, method: Callable[..., Any]):
        self._dynamic_methods[name] = method
        return self

    def add_dynamic_property(self, name: str, value: Any = None):
        """Add an attribute that is readable in memory but never written to storage"""
        if name in self._dynamic_properties:
            return self
        self.add_purgeable(name)
        self._dynamic_properties.append(name)
        self.set(name, value)
        return self

    def get_dynamic_properties(self) -> Dict[str, Any]:
        return {name: self.attributes.get(name) for name in self._dynamic_properties}

    def method_exists(self, name: str) -> bool:
        if callable(getattr(type(self), name, None)):
            return True
        if name in self._dynamic_methods:
            return True
        return any(callable(getattr(instance, name, None)) for instance in self._extensions
                   if name not in _EXTENSION_BASE_NAMES)

    def call_method(self, name: str, *args, **kwargs) -> Any:
        if callable(getattr(type(self), name, None)):
            return getattr(self, name)(*args, **kwargs)
        return self._extension_member(name)(*args, **kwargs)

    def get_extension_property(self, name: str, default: Any = None) -> Any:
        if name in _EXTENSION_BASE_NAMES:
            return default
        for instance in self._extensions:
            if hasattr(instance, name):
                value = getattr(instance, name)
                if not callable(value):
                    return value
        return default

    def _extension_member(self, name: str) -> Any:
        dynamic = self.__dict__.get("_dynamic_methods", {})
        if name in dynamic:
            return dynamic[name]

        if name not in _EXTENSION_BASE_NAMES:
            for instance in self.__dict__.get("_extensions", []):
                if hasattr(instance, name):
                    return getattr(instance, name)

        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def __getattr__(self, name: str) -> Any:
        # Only reached for names the record does not define
        if name.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")
        return self._extension_member(name)

__all__ = ["Extendable", "RecordExtension", "resolve_extension"]
