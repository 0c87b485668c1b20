"""
Memory Repository - In-Memory Persistence Backend

🧠 In-Memory Storage:
This module provides a complete in-memory backend for development and
testing: dictionary tables with auto-increment keys, filtered reads and
snapshot transactions that roll back when the block raises.
"""

from typing import Dict, Optional, List, Any, Iterator
from contextlib import contextmanager
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
import copy
import logging

from ..repositories.interface import Row, Filters
from ..repositories.base import BaseRepository, TransactionError
from ..caching.duplicate_cache import DuplicateQueryCache

logger = logging.getLogger(__name__)

@dataclass
class MemoryTransaction:
    """Snapshot taken when a transaction starts"""
    tables: Dict[str, List[Row]]
    counters: Dict[str, int]
    started_at: datetime = field(default_factory=datetime.now)
    depth: int = 1

class MemoryRepository(BaseRepository):
    """
    In-memory repository implementation.

    Features:
    - Tables as ordered lists of row dictionaries
    - Auto-increment keys per table
    - Snapshot transactions with rollback, nestable
    - Rows returned as copies so callers never alias storage
    """

    def __init__(self,
                 duplicate_cache: Optional[DuplicateQueryCache] = None,
                 auto_create_tables: bool = True):
        super().__init__(duplicate_cache=duplicate_cache, auto_create_tables=auto_create_tables)

        self._tables: Dict[str, List[Row]] = {}
        self._counters: Dict[str, int] = defaultdict(int)
        self._transaction: Optional[MemoryTransaction] = None
        self.auto_create_tables = auto_create_tables

    # Schema helpers
    def create_table(self, table: str, rows: Optional[List[Row]] = None):
        """Create (or reset) a table, optionally seeded with rows"""
        self._tables[table] = [dict(row) for row in rows or []]
        self.flush_cache()

    def drop_table(self, table: str):
        self._tables.pop(table, None)
        self._counters.pop(table, None)
        self.flush_cache()

    def rows(self, table: str) -> List[Row]:
        """Copies of every row of a table, for inspection"""
        return [dict(row) for row in self._tables.get(table, [])]

    def _table(self, table: str) -> List[Row]:
        if table not in self._tables:
            if not self.auto_create_tables:
                raise TransactionError(f"Table '{table}' does not exist")
            self._tables[table] = []
        return self._tables[table]

    # Backend hooks
    def _do_fetch_where(self, table: str, filters: Filters) -> List[Row]:
        return [dict(row) for row in self._tables.get(table, []) if self._row_matches(row, filters)]

    def _do_insert(self, table: str, attributes: Row, key_name: str) -> Any:
        rows = self._table(table)
        key = attributes.get(key_name)
        if key is None:
            self._counters[table] += 1
            key = self._counters[table]
            attributes[key_name] = key
        elif isinstance(key, int):
            self._counters[table] = max(self._counters[table], key)

        rows.append(dict(attributes))
        return key

    def _do_update(self, table: str, key_name: str, key: Any, attributes: Row) -> int:
        updated = 0
        for row in self._table(table):
            if row.get(key_name) == key:
                row.update(attributes)
                updated += 1
        return updated

    def _do_delete_where(self, table: str, filters: Filters) -> int:
        rows = self._tables.get(table, [])
        kept = [row for row in rows if not self._row_matches(row, filters)]
        deleted = len(rows) - len(kept)
        if table in self._tables:
            self._tables[table] = kept
        return deleted

    # Readiness
    def has_table(self, table: str) -> bool:
        return table in self._tables

    def ping(self) -> bool:
        return True

    # Transactions
    @contextmanager
    def transaction(self) -> Iterator['MemoryRepository']:
        """Snapshot the tables; restore them if the block raises"""
        if self._transaction is not None:
            self._transaction.depth += 1
            try:
                yield self
            finally:
                self._transaction.depth -= 1
            return

        self._transaction = MemoryTransaction(
            tables=copy.deepcopy(self._tables),
            counters=dict(self._counters)
        )
        try:
            yield self
        except Exception:
            logger.debug("Rolling back memory transaction")
            self._tables = self._transaction.tables
            self._counters = defaultdict(int, self._transaction.counters)
            self.flush_cache()
            raise
        finally:
            self._transaction = None

__all__ = ["MemoryRepository", "MemoryTransaction"]
