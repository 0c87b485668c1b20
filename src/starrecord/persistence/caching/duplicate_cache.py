"""
Duplicate Query Cache - Request Scoped Read Memoization

🧠 Avoid Re-reading The Same Rows:
Reads issued through a repository are memoized under a hash of their
query shape (operation, table, filters). Any write flushes the whole
cache, and records flush it explicitly on reload.
"""

from typing import Any, Dict, Optional
import copy
import hashlib
import json
import logging

logger = logging.getLogger(__name__)

class DuplicateQueryCache:
    """In-memory memo of read results keyed by query shape"""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._results: Dict[str, Any] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def hash_query(operation: str, table: str, filters: Optional[Dict[str, Any]] = None) -> str:
        """Hash the shape of a query into a cache key"""
        shape = {
            "operation": operation,
            "table": table,
            "filters": {
                key: sorted(value, key=str) if isinstance(value, (list, tuple, set)) else value
                for key, value in (filters or {}).items()
            }
        }
        payload = json.dumps(shape, sort_keys=True, default=str)
        return hashlib.sha1(payload.encode("utf-8")).hexdigest()

    def has(self, key: str) -> bool:
        return key in self._results

    def get(self, key: str) -> Any:
        """Return a copy of a memoized result, or None on a miss"""
        if key not in self._results:
            self.misses += 1
            return None
        self.hits += 1
        return copy.deepcopy(self._results[key])

    def put(self, key: str, value: Any):
        self._results[key] = copy.deepcopy(value)

    def flush(self):
        if self._results:
            logger.debug(f"Flushing {len(self._results)} memoized queries")
        self._results.clear()

    def __len__(self) -> int:
        return len(self._results)

__all__ = ["DuplicateQueryCache"]
