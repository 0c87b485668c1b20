"""
Persistence Backends - Storage Implementation Layer

💾 Pluggable Storage Implementations:
Concrete implementations of the RecordRepository interface.

Available Backends:
- MemoryRepository: In-memory tables with snapshot transactions
- SQLRepository: SQLAlchemy Core (see persistence.repositories.sql)
"""

from .memory import MemoryRepository, MemoryTransaction

__all__ = ["MemoryRepository", "MemoryTransaction"]
