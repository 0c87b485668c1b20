"""
Record - Row Backed Domain Object

🏗️ Composition Of Capabilities:
Record binds an in-memory attribute store to one row of a table. Its
behavior is composed from mixins (attribute pipeline, lifecycle events,
relations, persistence cascades, extensions, instance events) and its
shared services (repository, ledger, event registry, caches) come from the
service container, so tests can swap every one of them.

Configuration lives on the class::

    class Post(Record):
        table = "posts"
        jsonable = ["tags"]
        dates = ["published_at"]
        belongs_to_many = {"categories": Category}

        def before_save(self):
            if not self.get("title"):
                return False
"""

from contextlib import AbstractContextManager
from typing import Any, ClassVar, Dict, List, Optional
import logging

from ..mixins.attributes import HasAttributes
from ..mixins.events import HasLifecycleEvents
from ..mixins.relations import HasRelations
from ..mixins.persistence import HasPersistence
from ..mixins.extensions import Extendable
from ...events.lifecycle.emitter import EventEmitter
from ...events.lifecycle.registry import Phase
from ...events.lifecycle.outcome import is_cancelled
from ...infrastructure.container import get_service_container
from ...persistence.repositories.interface import RecordRepository
from ...persistence.repositories.base import RecordNotFoundError
from ...relations.definition import register_record_type, snake_case

logger = logging.getLogger(__name__)

class Record(HasAttributes, HasRelations, HasPersistence, HasLifecycleEvents, Extendable, EventEmitter):
    """
    Row backed record with lifecycle hooks, relations and deferred bindings.

    Attributes are read and written with ``get``/``set`` (or item access).
    Class level lists below are copied per instance so extensions and
    callers can adjust one instance without touching the type.
    """

    # Storage
    table: ClassVar[Optional[str]] = None
    primary_key: ClassVar[str] = "id"
    incrementing: ClassVar[bool] = True
    timestamps: ClassVar[bool] = True
    date_format: ClassVar[Optional[str]] = None
    duplicate_cache: ClassVar[bool] = True

    # Pipeline defaults; None falls back to the application configuration
    trim_string_attributes: ClassVar[Optional[bool]] = None
    prevent_lazy_loading: ClassVar[Optional[bool]] = None

    # Attribute configuration
    casts: Dict[str, Any] = {}
    jsonable: List[str] = []
    dates: List[str] = []
    purgeable: List[str] = []
    fillable: List[str] = []
    guarded: List[str] = []
    hidden: List[str] = []
    visible: List[str] = []
    appends: List[str] = []

    # Relations
    belongs_to: ClassVar[Dict[str, Any]] = {}
    has_one: ClassVar[Dict[str, Any]] = {}
    has_many: ClassVar[Dict[str, Any]] = {}
    belongs_to_many: ClassVar[Dict[str, Any]] = {}

    # Pivot row attached by belongs_to_many loading
    pivot = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        register_record_type(cls)

    def __init__(self, attributes: Optional[Dict[str, Any]] = None, **kwargs):
        cls = type(self)

        self.attributes: Dict[str, Any] = {}
        self.original: Dict[str, Any] = {}
        self.relations: Dict[str, Any] = {}
        self.changes: Dict[str, Any] = {}
        self.exists = False
        self.was_recently_created = False
        self.session_key: Optional[str] = None

        self.casts = dict(cls.casts)
        self.jsonable = list(cls.jsonable)
        self.dates = list(cls.dates)
        self.purgeable = list(cls.purgeable)
        self.fillable = list(cls.fillable)
        self.guarded = list(cls.guarded)
        self.hidden = list(cls.hidden)
        self.visible = list(cls.visible)
        self.appends = list(cls.appends)

        self._purged_values: Dict[str, Any] = {}
        self._extra_relations = {}
        self._extensions = []
        self._dynamic_methods = {}
        self._dynamic_properties: List[str] = []
        self._convention_bound = set()
        self._force_deleting = False

        self.boot_if_not_booted()
        self.extendable_construct()
        self.fill({**(attributes or {}), **kwargs})

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.primary_key}={self.get_key()!r} exists={self.exists}>"

    # Identity
    def get_key(self) -> Any:
        return self.attributes.get(self.primary_key)

    def get_key_name(self) -> str:
        return self.primary_key

    @classmethod
    def get_table(cls) -> str:
        return cls.table or f"{snake_case(cls.__name__)}s"

    @classmethod
    def get_repository(cls) -> RecordRepository:
        return get_service_container().repository

    @classmethod
    def transaction(cls) -> AbstractContextManager:
        """Scope several writes in one storage transaction"""
        return cls.get_repository().transaction()

    # Construction
    @classmethod
    def make(cls, attributes: Optional[Dict[str, Any]] = None) -> 'Record':
        return cls(attributes)

    @classmethod
    def create(cls, attributes: Optional[Dict[str, Any]] = None, session_key: Optional[str] = None) -> 'Record':
        record = cls(attributes)
        record.save(None, session_key)
        return record

    @classmethod
    def new_from_storage(cls, row: Dict[str, Any]) -> 'Record':
        """
        Build an existing record from a storage row. A ``fetching`` hook
        returning False leaves the record without attributes.
        """
        record = cls()
        record.exists = True

        if is_cancelled(record.fire_model_event(Phase.FETCHING)):
            return record

        record.set_raw_attributes(row, sync=True)
        record.fire_model_event(Phase.FETCHED, halt=False)
        return record

    # Queries
    @classmethod
    def find(cls, key: Any) -> Optional['Record']:
        row = cls.get_repository().fetch_one(cls.get_table(), cls.primary_key, key, use_cache=cls.duplicate_cache)
        return cls.new_from_storage(row) if row is not None else None

    @classmethod
    def find_or_fail(cls, key: Any) -> 'Record':
        record = cls.find(key)
        if record is None:
            raise RecordNotFoundError(f"No {cls.__name__} found for [{key}]")
        return record

    @classmethod
    def where(cls, **filters) -> List['Record']:
        rows = cls.get_repository().fetch_where(cls.get_table(), filters, use_cache=cls.duplicate_cache)
        return [cls.new_from_storage(row) for row in rows]

    @classmethod
    def all(cls) -> List['Record']:
        return cls.where()

    def reload(self):
        """Refresh attributes from storage; new records just sync their original"""
        self.flush_duplicate_cache()

        if not self.exists:
            self.sync_original()
        else:
            fresh = type(self).find(self.get_key())
            if fresh is not None:
                self.set_raw_attributes(fresh.attributes, sync=True)
        return self

    def fresh(self) -> Optional['Record']:
        if not self.exists:
            return None
        self.flush_duplicate_cache()
        return type(self).find(self.get_key())

    # Caches and readiness
    @classmethod
    def flush_duplicate_cache(cls):
        container = get_service_container()
        container.duplicate_cache.flush()
        container.repository.flush_cache()

    def is_database_ready(self) -> bool:
        """Whether storage is reachable and holds this record's table"""
        cls = type(self)
        cache_key = f"starrecord::record.{cls.__module__}.{cls.__qualname__}.is_database_ready.{self.get_table()}"
        cache_store = get_service_container().cache_store
        if cache_store.get(cache_key):
            return True

        try:
            repository = self.get_repository()
            repository.ping()
        except Exception as e:
            logger.warning(f"Storage unavailable for {cls.__name__}: {e}")
            return False

        try:
            if not repository.has_table(self.get_table()):
                return False
        except Exception as e:
            logger.warning(f"Could not inspect table {self.get_table()}: {e}")
            return False

        cache_store.forever(cache_key, True)
        return True

    @classmethod
    def has_database_table(cls) -> bool:
        return cls().is_database_ready()

__all__ = ["Record"]
