"""
Persistence Layer - Storage Collaborators

💾 Where Records Live:
- repositories/: the RecordRepository contract, BaseRepository, SQLRepository
- backends/: in-memory storage
- caching/: duplicate query memoization and the key/value cache store
- transactions/: the deferred binding ledger
"""

from .repositories import (
    RecordRepository, BaseRepository, SQLRepository, SQLConnectionConfig,
    RepositoryError, RecordNotFoundError, TransactionError, ValidationError
)
from .backends import MemoryRepository
from .caching import DuplicateQueryCache, CacheStore, ArrayCacheStore
from .transactions import DeferredBindingLedger, DeferredBinding, BindingOperation

__all__ = [
    "RecordRepository", "BaseRepository", "SQLRepository", "SQLConnectionConfig",
    "RepositoryError", "RecordNotFoundError", "TransactionError", "ValidationError",
    "MemoryRepository", "DuplicateQueryCache", "CacheStore", "ArrayCacheStore",
    "DeferredBindingLedger", "DeferredBinding", "BindingOperation"
]
