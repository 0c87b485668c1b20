"""
Relations - Definitions and Cardinality Mechanics

- definition: RelationDefinition, RelationKind and record type resolution
- handlers: load/bind/unbind/insert/detach per cardinality
"""

from .definition import (
    RelationDefinition, RelationKind, RELATION_KINDS, definitions_from_class,
    register_record_type, resolve_record_type, snake_case
)
from . import handlers

__all__ = [
    "RelationDefinition", "RelationKind", "RELATION_KINDS", "definitions_from_class",
    "register_record_type", "resolve_record_type", "snake_case", "handlers"
]
