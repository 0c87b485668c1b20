"""
Deferred Binding Ledger - Session Scoped Relation Operations

🔗 Bind Now, Write Later:
Relation operations requested before the owning record has an identity
(attach a tag to a post that is still being filled in, create a comment
for it) cannot run yet. They are recorded here under a caller supplied
session key and replayed around the owner's next successful save.

Rules:
- Entries for a key replay in insertion order and are removed once applied
- A bind cancels a pending unbind of the same related record (and the
  reverse); a repeated bind or unbind is ignored
- Several records may share one session key; entries are filtered by the
  owning record type
- A cancelled or failed save leaves the entries in place
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
import itertools
import logging

logger = logging.getLogger(__name__)

class BindingOperation(Enum):
    """Kinds of deferred relation operations"""
    BIND = "bind"
    UNBIND = "unbind"
    INSERT = "insert"

    @property
    def opposite(self) -> Optional['BindingOperation']:
        if self is BindingOperation.BIND:
            return BindingOperation.UNBIND
        if self is BindingOperation.UNBIND:
            return BindingOperation.BIND
        return None

_sequence = itertools.count(1)

def type_name(record_type: type) -> str:
    """Qualified name used to match entries to record types"""
    return f"{record_type.__module__}.{record_type.__qualname__}"

@dataclass
class DeferredBinding:
    """A relation operation waiting for its owner to be saved"""
    session_key: str
    master_type: str
    master_field: str
    operation: BindingOperation
    relation_kind: Optional[str] = None
    slave_type: Optional[str] = None
    slave_id: Any = None
    # In-memory related record (bind/unbind) or attributes to create (insert)
    slave: Any = None
    payload: Optional[Dict[str, Any]] = None
    pivot_data: Dict[str, Any] = field(default_factory=dict)
    sequence: int = field(default_factory=lambda: next(_sequence))
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def is_bind(self) -> bool:
        return self.operation is BindingOperation.BIND

    def targets_same_slave(self, other: 'DeferredBinding') -> bool:
        if self.slave_id is None or other.slave_id is None:
            return self.slave is not None and self.slave is other.slave
        return self.slave_type == other.slave_type and self.slave_id == other.slave_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_key": self.session_key,
            "master_type": self.master_type,
            "master_field": self.master_field,
            "operation": self.operation.value,
            "relation_kind": self.relation_kind,
            "slave_type": self.slave_type,
            "slave_id": self.slave_id,
            "payload": self.payload,
            "pivot_data": dict(self.pivot_data),
            "sequence": self.sequence,
            "created_at": self.created_at.isoformat()
        }

class DeferredBindingLedger:
    """
    Pending relation operations keyed by session key.

    Records replay their entries through ``apply_deferred_binding(entry)``.
    Relation kinds listed in ``before_kinds`` replay in ``commit_before``
    (ahead of the owner's write), every other entry in ``commit_after``.
    """

    def __init__(self, before_kinds: Optional[Iterable[str]] = None, ttl_hours: int = 5):
        self.before_kinds = set(before_kinds or [])
        self.ttl_hours = ttl_hours
        self._entries: Dict[str, List[DeferredBinding]] = {}

    # Recording
    def add(self, entry: DeferredBinding) -> bool:
        """
        Record an entry, collapsing it against pending entries.

        Returns:
            True when the entry was queued, False when it was absorbed
        """
        pending = self._entries.setdefault(entry.session_key, [])

        if entry.operation is not BindingOperation.INSERT:
            for existing in pending:
                if (existing.master_type != entry.master_type
                        or existing.master_field != entry.master_field
                        or existing.operation is BindingOperation.INSERT
                        or not existing.targets_same_slave(entry)):
                    continue

                if existing.operation is entry.operation.opposite:
                    pending.remove(existing)
                    logger.debug(f"Deferred {entry.operation.value} on {entry.master_field} cancelled a pending {existing.operation.value}")
                else:
                    logger.debug(f"Ignoring repeated deferred {entry.operation.value} on {entry.master_field}")
                if not pending:
                    del self._entries[entry.session_key]
                return False

        pending.append(entry)
        logger.debug(f"Deferred {entry.operation.value} on {entry.master_type}.{entry.master_field} under '{entry.session_key}'")
        return True

    def bind(self, session_key: str, record: Any, field_name: str, slave: Any,
             relation_kind: Optional[str] = None, pivot_data: Optional[Dict[str, Any]] = None) -> bool:
        return self.add(self._entry(session_key, record, field_name, BindingOperation.BIND,
                                    relation_kind, slave=slave, pivot_data=pivot_data))

    def unbind(self, session_key: str, record: Any, field_name: str, slave: Any,
               relation_kind: Optional[str] = None) -> bool:
        return self.add(self._entry(session_key, record, field_name, BindingOperation.UNBIND,
                                    relation_kind, slave=slave))

    def insert(self, session_key: str, record: Any, field_name: str, payload: Dict[str, Any],
               relation_kind: Optional[str] = None, pivot_data: Optional[Dict[str, Any]] = None,
               slave: Any = None) -> bool:
        return self.add(self._entry(session_key, record, field_name, BindingOperation.INSERT,
                                    relation_kind, slave=slave, payload=dict(payload), pivot_data=pivot_data))

    def _entry(self, session_key: str, record: Any, field_name: str, operation: BindingOperation,
               relation_kind: Optional[str], slave: Any = None, payload: Optional[Dict[str, Any]] = None,
               pivot_data: Optional[Dict[str, Any]] = None) -> DeferredBinding:
        if not session_key:
            raise ValueError("Deferred bindings need a session key")

        return DeferredBinding(
            session_key=session_key,
            master_type=type_name(type(record)),
            master_field=field_name,
            operation=operation,
            relation_kind=relation_kind,
            slave_type=type_name(type(slave)) if slave is not None else None,
            slave_id=slave.get_key() if slave is not None and hasattr(slave, "get_key") else None,
            slave=slave,
            payload=payload,
            pivot_data=dict(pivot_data or {})
        )

    # Inspection
    def get_deferred(self, session_key: str, master_type: Optional[type] = None,
                     field_name: Optional[str] = None) -> List[DeferredBinding]:
        """Pending entries for a key, in insertion order"""
        entries = self._entries.get(session_key, [])
        if master_type is not None:
            entries = [e for e in entries if e.master_type == type_name(master_type)]
        if field_name is not None:
            entries = [e for e in entries if e.master_field == field_name]
        return sorted(entries, key=lambda e: e.sequence)

    def has_deferred(self, session_key: str, master_type: Optional[type] = None) -> bool:
        return bool(self.get_deferred(session_key, master_type))

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._entries.values())

    # Replay
    def commit_before(self, record: Any, session_key: Optional[str]) -> int:
        """Replay entries that must land before the owner's row is written"""
        return self._commit(record, session_key, before=True)

    def commit_after(self, record: Any, session_key: Optional[str]) -> int:
        """Replay the remaining entries now that the owner has an identity"""
        return self._commit(record, session_key, before=False)

    def _commit(self, record: Any, session_key: Optional[str], before: bool) -> int:
        if not session_key or session_key not in self._entries:
            return 0

        selected = [
            entry for entry in self.get_deferred(session_key, type(record))
            if (entry.relation_kind in self.before_kinds) == before
        ]

        applied = 0
        for entry in selected:
            record.apply_deferred_binding(entry)
            self._discard(entry)
            applied += 1

        if applied:
            logger.debug(f"Committed {applied} deferred binding(s) for '{session_key}' ({'before' if before else 'after'} save)")
        return applied

    def _discard(self, entry: DeferredBinding):
        pending = self._entries.get(entry.session_key)
        if pending is None:
            return
        if entry in pending:
            pending.remove(entry)
        if not pending:
            del self._entries[entry.session_key]

    # Housekeeping
    def cancel_deferred(self, session_key: str, master_type: Optional[type] = None) -> int:
        """Drop pending entries without applying them"""
        entries = self.get_deferred(session_key, master_type)
        for entry in entries:
            self._discard(entry)
        return len(entries)

    def clean_up(self, older_than_hours: Optional[int] = None) -> int:
        """Drop entries older than the given age (defaults to the configured TTL)"""
        hours = self.ttl_hours if older_than_hours is None else older_than_hours
        cutoff = datetime.now() - timedelta(hours=hours)

        removed = 0
        for session_key in list(self._entries):
            kept = [entry for entry in self._entries[session_key] if entry.created_at >= cutoff]
            removed += len(self._entries[session_key]) - len(kept)
            if kept:
                self._entries[session_key] = kept
            else:
                del self._entries[session_key]

        if removed:
            logger.info(f"Removed {removed} stale deferred binding(s)")
        return removed

    def flush(self):
        self._entries.clear()

__all__ = ["DeferredBindingLedger", "DeferredBinding", "BindingOperation", "type_name"]
