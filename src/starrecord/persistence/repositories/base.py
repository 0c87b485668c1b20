"""
Base Repository - Common Repository Functionality

🏗️ Shared Repository Foundation:
This module provides the base class for storage backends: metrics,
validation of table and key names, duplicate query memoization and the
split between public operations and backend specific ``_do_*`` hooks.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging
from dataclasses import dataclass

from .interface import RecordRepository, Row, Filters
from ..caching.duplicate_cache import DuplicateQueryCache

logger = logging.getLogger(__name__)

class RepositoryError(Exception):
    """Base exception for repository operations"""
    pass

class RecordNotFoundError(RepositoryError):
    """Raised when a row is not found"""
    pass

class TransactionError(RepositoryError):
    """Raised when transaction operations fail"""
    pass

class ValidationError(RepositoryError):
    """Raised when a request to the repository is malformed"""
    pass

@dataclass
class RepositoryMetrics:
    """Metrics collected by repository implementations"""
    total_operations: int = 0
    successful_operations: int = 0
    failed_operations: int = 0
    average_response_time_ms: float = 0.0
    cache_hits: int = 0
    cache_misses: int = 0
    rows_written: int = 0
    rows_deleted: int = 0
    uptime_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary"""
        return {
            "total_operations": self.total_operations,
            "successful_operations": self.successful_operations,
            "failed_operations": self.failed_operations,
            "success_rate": self.successful_operations / max(self.total_operations, 1),
            "average_response_time_ms": self.average_response_time_ms,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "cache_hit_rate": self.cache_hits / max(self.cache_hits + self.cache_misses, 1),
            "rows_written": self.rows_written,
            "rows_deleted": self.rows_deleted,
            "uptime_seconds": self.uptime_seconds
        }

class BaseRepository(RecordRepository, ABC):
    """
    Base repository implementation providing common functionality.

    This class provides:
    - Metrics collection
    - Duplicate query memoization (flushed on every write)
    - Validation of table, key and filter arguments
    - Logging
    """

    def __init__(self, duplicate_cache: Optional[DuplicateQueryCache] = None, **config):
        self.config = config
        self.metrics = RepositoryMetrics()
        self.duplicate_cache = duplicate_cache if duplicate_cache is not None else DuplicateQueryCache()
        self.start_time = datetime.now()
        self._logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    # Backend hooks
    @abstractmethod
    def _do_fetch_where(self, table: str, filters: Filters) -> List[Row]:
        pass

    @abstractmethod
    def _do_insert(self, table: str, attributes: Row, key_name: str) -> Any:
        """Insert a row and return its key"""
        pass

    @abstractmethod
    def _do_update(self, table: str, key_name: str, key: Any, attributes: Row) -> int:
        pass

    @abstractmethod
    def _do_delete_where(self, table: str, filters: Filters) -> int:
        pass

    # Reads
    def fetch_one(self, table: str, key_name: str, key: Any, use_cache: bool = True) -> Optional[Row]:
        if key is None:
            return None
        rows = self._cached_read("fetch_one", table, {key_name: key}, use_cache)
        return rows[0] if rows else None

    def fetch_where(self, table: str, filters: Filters, use_cache: bool = True) -> List[Row]:
        return self._cached_read("fetch_where", table, filters, use_cache)

    def _cached_read(self, operation: str, table: str, filters: Filters, use_cache: bool) -> List[Row]:
        self._validate_table(table)
        self._validate_filters(filters)

        cache_key = None
        if use_cache and self.duplicate_cache.enabled:
            cache_key = self.duplicate_cache.hash_query(operation, table, filters)
            cached = self.duplicate_cache.get(cache_key)
            if cached is not None:
                self._record_cache_hit()
                return cached
            self._record_cache_miss()

        start_time = self._record_operation_start()
        try:
            rows = self._do_fetch_where(table, filters)
        except Exception as e:
            self._record_operation_failure(start_time, e)
            raise
        self._record_operation_success(start_time)

        if operation == "fetch_one":
            rows = rows[:1]
        if cache_key is not None:
            self.duplicate_cache.put(cache_key, rows)
        return rows

    # Writes
    def persist(self, table: str, attributes: Row, key_name: str,
                key: Any = None, exists: bool = False) -> Any:
        self._validate_table(table)
        self._validate_key_name(key_name)

        start_time = self._record_operation_start()
        try:
            if exists:
                if key is None:
                    raise ValidationError(f"Cannot update a row of '{table}' without a key")
                if attributes:
                    self._do_update(table, key_name, key, dict(attributes))
                result = key
            else:
                result = self._do_insert(table, dict(attributes), key_name)
        except Exception as e:
            self._record_operation_failure(start_time, e)
            raise
        finally:
            self.flush_cache()

        self._record_operation_success(start_time)
        self.metrics.rows_written += 1
        self._logger.debug(f"Persisted row {result!r} in {table}")
        return result

    def delete_row(self, table: str, key_name: str, key: Any) -> int:
        self._validate_key_name(key_name)
        if key is None:
            return 0
        return self.delete_where(table, {key_name: key})

    def delete_where(self, table: str, filters: Filters) -> int:
        self._validate_table(table)
        self._validate_filters(filters)
        if not filters:
            raise ValidationError(f"Refusing to delete every row of '{table}' without filters")

        start_time = self._record_operation_start()
        try:
            deleted = self._do_delete_where(table, filters)
        except Exception as e:
            self._record_operation_failure(start_time, e)
            raise
        finally:
            self.flush_cache()

        self._record_operation_success(start_time)
        self.metrics.rows_deleted += deleted
        return deleted

    def flush_cache(self):
        self.duplicate_cache.flush()

    # Metrics and monitoring
    def get_metrics(self) -> Dict[str, Any]:
        """Get repository performance metrics"""
        self.metrics.uptime_seconds = (datetime.now() - self.start_time).total_seconds()
        return self.metrics.to_dict()

    def _record_operation_start(self) -> datetime:
        """Record the start of an operation"""
        return datetime.now()

    def _record_operation_success(self, start_time: datetime):
        """Record a successful operation"""
        duration = (datetime.now() - start_time).total_seconds() * 1000
        self.metrics.total_operations += 1
        self.metrics.successful_operations += 1

        # Update average response time
        total_time = self.metrics.average_response_time_ms * (self.metrics.successful_operations - 1)
        self.metrics.average_response_time_ms = (total_time + duration) / self.metrics.successful_operations

    def _record_operation_failure(self, start_time: datetime, error: Exception):
        """Record a failed operation"""
        self.metrics.total_operations += 1
        self.metrics.failed_operations += 1
        self._logger.error(f"Operation failed: {error}")

    def _record_cache_hit(self):
        self.metrics.cache_hits += 1

    def _record_cache_miss(self):
        self.metrics.cache_misses += 1

    # Validation helpers
    def _validate_table(self, table: str):
        if not table or not isinstance(table, str):
            raise ValidationError("Table name must be a non-empty string")

    def _validate_key_name(self, key_name: str):
        if not key_name or not isinstance(key_name, str):
            raise ValidationError("Key column must be a non-empty string")

    def _validate_filters(self, filters: Filters):
        if not isinstance(filters, dict):
            raise ValidationError("Filters must be a dictionary of column to value")

    # Filter helpers shared by in-process backends
    @staticmethod
    def _row_matches(row: Row, filters: Filters) -> bool:
        """Check if a row matches all filters"""
        for column, expected in filters.items():
            actual = row.get(column)
            if isinstance(expected, (list, tuple, set)):
                if actual not in expected:
                    return False
            elif actual != expected:
                return False
        return True

# Export main components
__all__ = [
    "BaseRepository", "RepositoryError", "RecordNotFoundError",
    "TransactionError", "ValidationError", "RepositoryMetrics"
]
