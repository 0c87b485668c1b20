"""
Service Container - Process Wide Record Services

🏗️ Dependency Injection over Globals:
Everything records share across a process lives here: configuration, the
repository, the cache store, the duplicate query cache, the deferred
binding ledger and the lifecycle event registry. Tests swap or reset the
container to get a clean slate.
"""

from typing import Optional
import logging

from .configuration import ApplicationConfig, get_config
from ..events.lifecycle.registry import EventRegistry
from ..persistence.repositories.interface import RecordRepository
from ..persistence.repositories.base import BaseRepository
from ..persistence.repositories.sql import SQLRepository, SQLConnectionConfig
from ..persistence.backends.memory import MemoryRepository
from ..persistence.caching.cache_store import CacheStore, ArrayCacheStore
from ..persistence.caching.duplicate_cache import DuplicateQueryCache
from ..persistence.transactions.deferred_binding import DeferredBindingLedger

logger = logging.getLogger(__name__)

class ServiceContainer:
    """
    Service container for dependency injection.

    This container holds all the services that records need,
    allowing for easy configuration and testing.
    """

    def __init__(self, config: Optional[ApplicationConfig] = None):
        self.config = config or get_config()

        self.duplicate_cache = DuplicateQueryCache(enabled=self.config.persistence.duplicate_cache)
        self.cache_store: CacheStore = ArrayCacheStore()
        self.event_registry = EventRegistry()
        self.ledger = DeferredBindingLedger(
            before_kinds=self.config.records.deferred_before_kinds,
            ttl_hours=self.config.records.deferred_binding_ttl_hours
        )
        self._repository: Optional[RecordRepository] = None

    @property
    def repository(self) -> RecordRepository:
        """The configured repository, built on first use"""
        if self._repository is None:
            self._repository = self._build_repository()
        return self._repository

    def _build_repository(self) -> RecordRepository:
        persistence = self.config.persistence
        if persistence.default_backend == "sql":
            logger.info("Using SQL backend")
            return SQLRepository(
                SQLConnectionConfig(database_url=persistence.database_url, echo=persistence.echo),
                duplicate_cache=self.duplicate_cache
            )
        if persistence.default_backend == "memory":
            return MemoryRepository(duplicate_cache=self.duplicate_cache)
        raise ValueError(f"Unknown persistence backend: {persistence.default_backend}")

    def configure_repository(self, repository: RecordRepository):
        """Configure the repository; it shares the container's duplicate cache"""
        if isinstance(repository, BaseRepository):
            repository.duplicate_cache = self.duplicate_cache
        self._repository = repository
        return self

    def configure_cache_store(self, cache_store: CacheStore):
        """Configure the key/value cache store"""
        self.cache_store = cache_store
        return self

    def configure_ledger(self, ledger: DeferredBindingLedger):
        """Configure the deferred binding ledger"""
        self.ledger = ledger
        return self

    def configure_events(self, registry: EventRegistry):
        """Configure the lifecycle event registry"""
        self.event_registry = registry
        return self

    def flush(self):
        """Reset process-wide state without replacing the services"""
        self.duplicate_cache.flush()
        self.cache_store.flush()
        self.ledger.flush()
        self.event_registry.flush()

# Global service container - created on first use, can be overridden for testing
_global_container: Optional[ServiceContainer] = None

def get_service_container() -> ServiceContainer:
    """Get the global service container"""
    global _global_container
    if _global_container is None:
        _global_container = ServiceContainer()
    return _global_container

def set_service_container(container: Optional[ServiceContainer]):
    """Set the global service container"""
    global _global_container
    _global_container = container

def reset_service_container(config: Optional[ApplicationConfig] = None) -> ServiceContainer:
    """Replace the global container with a fresh one"""
    container = ServiceContainer(config)
    set_service_container(container)
    return container

__all__ = ["ServiceContainer", "get_service_container", "set_service_container", "reset_service_container"]
