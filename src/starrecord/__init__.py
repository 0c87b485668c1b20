"""
StarRecord - Data Mapper Records With Lifecycle Hooks

🌟 Records that know how to behave:
StarRecord binds in-memory records to relational rows and adds an
attribute transformation pipeline, an ordered and cancellable lifecycle
event bus, session scoped deferred relation bindings and cascading
save/delete across relations.

Quick start::

    from starrecord import Record

    class Post(Record):
        table = "posts"
        jsonable = ["tags"]

    post = Post(title="Hello", tags=["a", "b"])
    post.save()
"""

from .records import (
    Record, RecordExtension, AttributeCast, as_date_time,
    RecordError, AttributeNameError, JsonableConfigurationError,
    IdentityImmutableError, LazyLoadingViolationError, RelationNotFoundError,
    MassAssignmentError, ExtensionError
)
from .events import HookOutcome, OutcomeKind, EventRegistry, Phase
from .relations import RelationDefinition, RelationKind
from .persistence import (
    RecordRepository, MemoryRepository, SQLRepository, SQLConnectionConfig,
    DeferredBindingLedger, DeferredBinding, BindingOperation,
    DuplicateQueryCache, CacheStore, ArrayCacheStore,
    RepositoryError, RecordNotFoundError
)
from .infrastructure import (
    ApplicationConfig, Environment, get_config, set_config,
    ServiceContainer, get_service_container, set_service_container, reset_service_container,
    configure_logging
)

__version__ = "0.1.0"

__all__ = [
    "Record", "RecordExtension", "AttributeCast", "as_date_time",
    "RecordError", "AttributeNameError", "JsonableConfigurationError",
    "IdentityImmutableError", "LazyLoadingViolationError", "RelationNotFoundError",
    "MassAssignmentError", "ExtensionError",
    "HookOutcome", "OutcomeKind", "EventRegistry", "Phase",
    "RelationDefinition", "RelationKind",
    "RecordRepository", "MemoryRepository", "SQLRepository", "SQLConnectionConfig",
    "DeferredBindingLedger", "DeferredBinding", "BindingOperation",
    "DuplicateQueryCache", "CacheStore", "ArrayCacheStore",
    "RepositoryError", "RecordNotFoundError",
    "ApplicationConfig", "Environment", "get_config", "set_config",
    "ServiceContainer", "get_service_container", "set_service_container", "reset_service_container",
    "configure_logging"
]
