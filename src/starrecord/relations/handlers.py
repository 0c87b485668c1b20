"""
Relation Handlers - Cardinality Mechanics

Load, bind, unbind, insert and detach for each relation kind, written
against the repository row primitives. Keys default to the usual naming:

- belongs_to: ``<relation>_id`` on the owner, pointing at the target key
- has_one / has_many: ``<owner_type>_id`` on the related rows
- belongs_to_many: pivot table named after both tables (sorted), with
  ``<owner_type>_id`` and ``<target_type>_id`` columns
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from .definition import RelationDefinition, RelationKind, snake_case

logger = logging.getLogger(__name__)

def relation_keys(record: Any, definition: RelationDefinition) -> Tuple[str, str]:
    """(key, other_key) for a relation, with defaults applied"""
    target = definition.resolve_target()
    owner_type = type(record)

    if definition.kind is RelationKind.BELONGS_TO:
        return (definition.key or f"{definition.name}_id",
                definition.other_key or target.primary_key)

    if definition.kind in (RelationKind.HAS_ONE, RelationKind.HAS_MANY):
        return (definition.key or f"{snake_case(owner_type.__name__)}_id",
                definition.other_key or owner_type.primary_key)

    return (definition.key or f"{snake_case(owner_type.__name__)}_id",
            definition.other_key or f"{snake_case(target.__name__)}_id")

def pivot_table(record: Any, definition: RelationDefinition) -> str:
    if definition.table:
        return definition.table
    target = definition.resolve_target()
    return "_".join(sorted([type(record).get_table(), target.get_table()]))

# Loading
def load(record: Any, definition: RelationDefinition) -> Any:
    """Fetch the related record(s) from storage"""
    target = definition.resolve_target()
    repository = record.get_repository()
    key, other_key = relation_keys(record, definition)

    if definition.kind is RelationKind.BELONGS_TO:
        foreign = record.attributes.get(key)
        if foreign is None:
            return None
        rows = repository.fetch_where(target.get_table(), {other_key: foreign}, use_cache=target.duplicate_cache)
        return target.new_from_storage(rows[0]) if rows else None

    if definition.kind in (RelationKind.HAS_ONE, RelationKind.HAS_MANY):
        owner_key = record.attributes.get(other_key)
        if owner_key is None:
            return [] if definition.is_many else None
        rows = repository.fetch_where(target.get_table(), {key: owner_key}, use_cache=target.duplicate_cache)
        related = [target.new_from_storage(row) for row in rows]
        if definition.is_many:
            return related
        return related[0] if related else None

    return _load_pivoted(record, definition, target, key, other_key)

def _load_pivoted(record: Any, definition: RelationDefinition, target: Any, key: str, other_key: str) -> List[Any]:
    owner_key = record.get_key()
    if owner_key is None:
        return []

    repository = record.get_repository()
    pivots = repository.fetch_where(pivot_table(record, definition), {key: owner_key}, use_cache=type(record).duplicate_cache)
    if not pivots:
        return []

    ids = [pivot[other_key] for pivot in pivots]
    rows = repository.fetch_where(target.get_table(), {target.primary_key: ids}, use_cache=target.duplicate_cache)
    rows = {row[target.primary_key]: row for row in rows}
    pivot_model = definition.resolve_pivot_model()

    related = []
    for pivot in pivots:
        row = rows.get(pivot[other_key])
        if row is None:
            continue
        item = target.new_from_storage(row)
        item.pivot = pivot_model.new_from_storage(pivot) if pivot_model else dict(pivot)
        related.append(item)
    return related

# Binding
def bind(record: Any, definition: RelationDefinition, slave: Any, pivot_data: Optional[Dict[str, Any]] = None):
    """Associate an existing (or new) record with the owner"""
    key, other_key = relation_keys(record, definition)

    if definition.kind is RelationKind.BELONGS_TO:
        if not slave.exists:
            slave.save()
        record.set(key, slave.get(other_key))
        if record.exists:
            record.persist_columns({key: record.attributes.get(key)})

    elif definition.kind in (RelationKind.HAS_ONE, RelationKind.HAS_MANY):
        slave.set(key, record.attributes.get(other_key))
        slave.save()

    else:
        if not slave.exists:
            slave.save()
        repository = record.get_repository()
        table = pivot_table(record, definition)
        link = {key: record.get_key(), other_key: slave.get_key()}
        if not repository.fetch_where(table, link, use_cache=False):
            repository.persist(table, {**link, **(pivot_data or {})}, other_key)
        slave.pivot = {**link, **(pivot_data or {})}

    _cache_add(record, definition, slave)
    logger.debug(f"Bound {type(slave).__name__} to {type(record).__name__}.{definition.name}")

def unbind(record: Any, definition: RelationDefinition, slave: Any):
    """Dissociate a related record from the owner"""
    key, other_key = relation_keys(record, definition)

    if definition.kind is RelationKind.BELONGS_TO:
        record.set(key, None)
        if record.exists:
            record.persist_columns({key: None})

    elif definition.kind in (RelationKind.HAS_ONE, RelationKind.HAS_MANY):
        if slave.exists and slave.attributes.get(key) == record.attributes.get(other_key):
            slave.set(key, None)
            slave.save()

    else:
        record.get_repository().delete_where(pivot_table(record, definition), {
            key: record.get_key(), other_key: slave.get_key()
        })

    _cache_remove(record, definition, slave)
    logger.debug(f"Unbound {type(slave).__name__} from {type(record).__name__}.{definition.name}")

def insert(record: Any, definition: RelationDefinition, payload: Dict[str, Any],
           pivot_data: Optional[Dict[str, Any]] = None) -> Any:
    """Create a related record from attributes and bind it"""
    slave = definition.resolve_target()().force_fill(payload)
    bind(record, definition, slave, pivot_data)
    return slave

def detach_all(record: Any, definition: RelationDefinition) -> int:
    """Remove every pivot row of a belongs_to_many relation for the owner"""
    if definition.kind is not RelationKind.BELONGS_TO_MANY or record.get_key() is None:
        return 0

    key, _ = relation_keys(record, definition)
    detached = record.get_repository().delete_where(pivot_table(record, definition), {key: record.get_key()})
    if definition.name in record.relations:
        record.relations[definition.name] = []
    logger.debug(f"Detached {detached} pivot row(s) of {type(record).__name__}.{definition.name}")
    return detached

# Relation cache upkeep
def _cache_add(record: Any, definition: RelationDefinition, slave: Any):
    if definition.name not in record.relations:
        return
    if definition.is_many:
        loaded = record.relations[definition.name] or []
        if not any(item is slave for item in loaded):
            loaded.append(slave)
        record.relations[definition.name] = loaded
    else:
        record.relations[definition.name] = slave

def _cache_remove(record: Any, definition: RelationDefinition, slave: Any):
    if definition.name not in record.relations:
        return
    if definition.is_many:
        record.relations[definition.name] = [
            item for item in record.relations[definition.name] or []
            if item is not slave and not (slave.exists and item.get_key() == slave.get_key())
        ]
    elif record.relations[definition.name] is slave or definition.kind is RelationKind.BELONGS_TO:
        record.relations[definition.name] = None

__all__ = ["load", "bind", "unbind", "insert", "detach_all", "relation_keys", "pivot_table"]
