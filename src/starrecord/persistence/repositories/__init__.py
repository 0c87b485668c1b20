"""
Persistence Repositories - Data Access Layer

💾 Clean Data Access Patterns:
The repository contract records are persisted through, the shared base
implementation and the SQLAlchemy backed SQL repository.

Components:
- RecordRepository: Standard interface for all persistence backends
- BaseRepository: Metrics, validation and duplicate query memoization
- SQLRepository: Relational storage through SQLAlchemy Core
"""

from .interface import RecordRepository, Row, Filters
from .base import (
    BaseRepository, RepositoryError, RecordNotFoundError,
    TransactionError, ValidationError, RepositoryMetrics
)
from .sql import SQLRepository, SQLConnectionConfig

__all__ = [
    "RecordRepository", "Row", "Filters",
    "BaseRepository", "RepositoryError", "RecordNotFoundError",
    "TransactionError", "ValidationError", "RepositoryMetrics",
    "SQLRepository", "SQLConnectionConfig"
]
