"""
Relation Definitions - Declarative Relation Configuration

🔗 How Records Point At Each Other:
Record classes declare relations as class dictionaries, one per
cardinality::

    class Post(Record):
        belongs_to = {"author": "User"}
        has_many = {"comments": (Comment, {"delete": True})}
        belongs_to_many = {"tags": {"target": Tag, "table": "post_tags"}}

Each entry is normalized into a RelationDefinition. Targets may be record
classes, registered class names or dotted import paths.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union
import importlib
import logging
import re

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

class RelationKind(str, Enum):
    """Relation cardinalities"""
    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    BELONGS_TO_MANY = "belongs_to_many"

    @property
    def is_many(self) -> bool:
        return self in (RelationKind.HAS_MANY, RelationKind.BELONGS_TO_MANY)

RELATION_KINDS = [kind.value for kind in RelationKind]

# Record classes by name, filled as record classes are defined
_record_types: Dict[str, type] = {}

def register_record_type(record_type: type):
    _record_types[record_type.__name__] = record_type
    _record_types[f"{record_type.__module__}.{record_type.__qualname__}"] = record_type

def resolve_record_type(target: Union[str, type]) -> type:
    """Resolve a record class from a class, a registered name or a dotted path"""
    if isinstance(target, type):
        return target

    if target in _record_types:
        return _record_types[target]

    module_name, _, class_name = target.rpartition(".")
    if module_name:
        module = importlib.import_module(module_name)
        return getattr(module, class_name)

    raise LookupError(f"Unknown record type '{target}'")

def snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()

class RelationDefinition(BaseModel):
    """
    Declarative configuration for one relation.

    Attributes:
        name: Relation name on the owning record
        kind: Cardinality
        target: Related record class, registered name or dotted path
        key: Foreign key column (on the owner for belongs_to, on the
            related rows for has_one/has_many, on the pivot for belongs_to_many)
        other_key: Column the foreign key points at (belongs_to) or the
            related record's column on the pivot (belongs_to_many)
        table: Pivot table for belongs_to_many
        pivot_model: Record class used to wrap pivot rows
        pivot: Extra pivot columns loaded with the related records
        delete: Force delete related records when the owner is deleted
        detach: Remove pivot rows when the owner is deleted (belongs_to_many)
        push: Include the relation when the owner is pushed
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    kind: RelationKind
    target: Any
    key: Optional[str] = None
    other_key: Optional[str] = None
    table: Optional[str] = None
    pivot_model: Optional[Any] = None
    pivot: List[str] = Field(default_factory=list)
    delete: bool = False
    detach: bool = True
    push: bool = True

    @property
    def is_many(self) -> bool:
        return self.kind.is_many

    def resolve_target(self) -> Type:
        return resolve_record_type(self.target)

    def resolve_pivot_model(self) -> Optional[Type]:
        return resolve_record_type(self.pivot_model) if self.pivot_model is not None else None

    @classmethod
    def from_declaration(cls, name: str, kind: Union[str, RelationKind], declaration: Any) -> 'RelationDefinition':
        """
        Normalize a class dictionary entry.

        Accepted forms: ``Target``, ``"Target"``, ``(Target, {options})`` and
        ``{"target": Target, **options}``.
        """
        if isinstance(declaration, RelationDefinition):
            return declaration.model_copy(update={"name": name, "kind": RelationKind(kind)})

        options: Dict[str, Any] = {}
        if isinstance(declaration, dict):
            options = dict(declaration)
            if "target" not in options:
                raise ValueError(f"Relation '{name}' declaration needs a target")
            target = options.pop("target")
        elif isinstance(declaration, (list, tuple)):
            target = declaration[0]
            if len(declaration) > 1:
                options = dict(declaration[1])
        else:
            target = declaration

        return cls(name=name, kind=RelationKind(kind), target=target, **options)

def definitions_from_class(record_type: type) -> Dict[str, RelationDefinition]:
    """Collect the relation definitions declared on a record class"""
    definitions: Dict[str, RelationDefinition] = {}
    for kind in RELATION_KINDS:
        for name, declaration in (getattr(record_type, kind, None) or {}).items():
            definitions[name] = RelationDefinition.from_declaration(name, kind, declaration)
    return definitions

__all__ = [
    "RelationDefinition", "RelationKind", "RELATION_KINDS", "definitions_from_class",
    "register_record_type", "resolve_record_type", "snake_case"
]
