"""
Persistence Repository Interface

💾 Standard Data Access Contract:
This module defines the interface every storage backend implements so
records can read and write rows without knowing which store holds them.
Rows travel as plain dictionaries of column name to raw value.

Filters are dictionaries of column name to value; a list, tuple or set
value matches any of its members.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Dict, List, Optional

Row = Dict[str, Any]
Filters = Dict[str, Any]

class RecordRepository(ABC):
    """
    Abstract repository interface for record persistence.

    This interface defines the contract the record layer relies on:
    fetch, persist, delete, readiness checks and transaction scoping.
    """

    @abstractmethod
    def fetch_one(self, table: str, key_name: str, key: Any, use_cache: bool = True) -> Optional[Row]:
        """
        Fetch a single row by key.

        Args:
            table: Table name
            key_name: Primary key column
            key: Primary key value
            use_cache: Allow the duplicate query cache to answer

        Returns:
            The row or None if not found
        """
        pass

    @abstractmethod
    def fetch_where(self, table: str, filters: Filters, use_cache: bool = True) -> List[Row]:
        """
        Fetch every row matching the filters, in storage order.

        Args:
            table: Table name
            filters: Column to value conditions, all must match
            use_cache: Allow the duplicate query cache to answer

        Returns:
            Matching rows
        """
        pass

    @abstractmethod
    def persist(self, table: str, attributes: Row, key_name: str,
                key: Any = None, exists: bool = False) -> Any:
        """
        Write a row.

        Args:
            table: Table name
            attributes: Column values to write
            key_name: Primary key column
            key: Primary key of an existing row
            exists: Update the existing row instead of inserting

        Returns:
            The key of the written row
        """
        pass

    @abstractmethod
    def delete_row(self, table: str, key_name: str, key: Any) -> int:
        """
        Delete a row by key.

        Returns:
            Number of rows deleted
        """
        pass

    @abstractmethod
    def delete_where(self, table: str, filters: Filters) -> int:
        """
        Delete every row matching the filters.

        Returns:
            Number of rows deleted
        """
        pass

    @abstractmethod
    def has_table(self, table: str) -> bool:
        """Check whether a table exists in the store"""
        pass

    @abstractmethod
    def ping(self) -> bool:
        """Check the store is reachable; may raise when it is not"""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """
        Scope several writes in one transaction.

        Changes are committed when the block exits normally and rolled back
        when it raises.
        """
        pass

    @abstractmethod
    def get_metrics(self) -> Dict[str, Any]:
        """
        Get repository performance metrics.

        Returns:
            Dictionary of metrics
        """
        pass

    def flush_cache(self):
        """Drop memoized reads; repositories without a cache ignore this"""
        pass

# Export main components
__all__ = ["RecordRepository", "Row", "Filters"]
