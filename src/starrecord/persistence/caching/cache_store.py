"""
Cache Store - Key/Value Collaborator

The key/value store used to memoize readiness checks. ArrayCacheStore
keeps values for the lifetime of the process.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

class CacheStore(ABC):
    """Minimal key/value cache contract"""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def forever(self, key: str, value: Any):
        """Store a value without expiry"""
        pass

    @abstractmethod
    def forget(self, key: str) -> bool:
        pass

    @abstractmethod
    def flush(self):
        pass

class ArrayCacheStore(CacheStore):
    """Process-local cache store"""

    def __init__(self):
        self._items: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._items.get(key, default)

    def forever(self, key: str, value: Any):
        self._items[key] = value

    def forget(self, key: str) -> bool:
        return self._items.pop(key, None) is not None

    def flush(self):
        self._items.clear()

    def has(self, key: str) -> bool:
        return key in self._items

__all__ = ["CacheStore", "ArrayCacheStore"]
