"""
Infrastructure Tests

🔧 Configuration, container, caches and readiness:
Environment presets, configuration sources, the service container,
logging setup, the duplicate query cache, the in-memory repository and
storage readiness checks.
"""

import json
import logging

import pytest

from starrecord import (
    ApplicationConfig, ArrayCacheStore, DuplicateQueryCache, Environment, MemoryRepository, Record,
    RecordNotFoundError, ServiceContainer, configure_logging, get_service_container, reset_service_container
)
from starrecord.infrastructure.configuration import LoggingConfig
from starrecord.persistence.repositories.base import ValidationError

from tests.records import Post, Tag

class Shelf(Record):
    table = "shelves"
    timestamps = False
    duplicate_cache = False

class Library(Record):
    table = "libraries"
    timestamps = False
    has_many = {"shelves": Shelf}
    belongs_to_many = {"readers": (Tag, {"table": "library_reader"})}

class TestConfiguration:

    def test_environment_presets(self):
        testing = ApplicationConfig.for_environment(Environment.TESTING)
        production = ApplicationConfig.for_environment(Environment.PRODUCTION)

        assert testing.persistence.database_url == "sqlite://"
        assert testing.persistence.date_format == "%Y-%m-%d %H:%M:%S"
        assert production.records.prevent_lazy_loading is True
        assert production.debug is False

    def test_from_dict_ignores_unknown_keys(self):
        config = ApplicationConfig.from_dict({
            "environment": "staging",
            "records": {"deferred_before_kinds": ["belongs_to"], "unknown": 1},
            "persistence": {"default_backend": "sql"},
        })

        assert config.environment is Environment.STAGING
        assert config.records.deferred_before_kinds == ["belongs_to"]
        assert config.persistence.default_backend == "sql"
        assert not hasattr(config.records, "unknown")

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("STARRECORD_ENV", "testing")
        monkeypatch.setenv("STARRECORD_DATABASE_URL", "sqlite:///records.db")
        monkeypatch.setenv("STARRECORD_LOG_LEVEL", "error")

        config = ApplicationConfig.from_environment()

        assert config.environment is Environment.TESTING
        assert config.persistence.default_backend == "sql"
        assert config.persistence.database_url == "sqlite:///records.db"
        assert config.logging.level == "ERROR"

    def test_from_file_round_trip(self, tmp_path):
        path = tmp_path / "starrecord.json"
        source = ApplicationConfig.for_environment(Environment.TESTING)
        source.records.deferred_binding_ttl_hours = 2
        path.write_text(json.dumps(source.to_dict()))

        loaded = ApplicationConfig.from_file(path)

        assert loaded.to_dict() == source.to_dict()

    def test_from_file_rejects_other_formats(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("environment: testing")

        with pytest.raises(ValueError):
            ApplicationConfig.from_file(path)

class TestServiceContainer:

    def test_container_builds_services_from_config(self):
        config = ApplicationConfig.for_environment(Environment.TESTING)
        config.records.deferred_before_kinds = ["belongs_to"]
        config.records.deferred_binding_ttl_hours = 1

        container = ServiceContainer(config)

        assert container.ledger.before_kinds == {"belongs_to"}
        assert container.ledger.ttl_hours == 1
        assert isinstance(container.repository, MemoryRepository)
        assert container.repository.duplicate_cache is container.duplicate_cache

    def test_unknown_backend(self):
        config = ApplicationConfig.for_environment(Environment.TESTING)
        config.persistence.default_backend = "redis"

        with pytest.raises(ValueError):
            ServiceContainer(config).repository

    def test_reset_gives_a_clean_slate(self, container):
        Post.saving(lambda post: False)
        container.ledger.bind("s", Post(), "tags", Tag(id=1))

        fresh = reset_service_container(ApplicationConfig.for_environment(Environment.TESTING))

        assert get_service_container() is fresh
        assert len(fresh.ledger) == 0
        assert Post(title="t").save() is True

    def test_flush_keeps_services(self, container):
        ledger = container.ledger
        ledger.bind("s", Post(), "tags", Tag(id=1))

        container.flush()

        assert container.ledger is ledger
        assert len(ledger) == 0
        assert not container.event_registry.is_booted(Post)

class TestLogging:

    def test_configure_logging_replaces_its_handlers(self, tmp_path):
        log_file = tmp_path / "records.log"
        config = LoggingConfig(level="debug", file_path=str(log_file))

        logger = configure_logging(config)
        configure_logging(config)

        own = [handler for handler in logger.handlers if getattr(handler, "_starrecord_handler", False)]
        assert logger.name == "starrecord"
        assert logger.level == logging.DEBUG
        assert len(own) == 2

        logging.getLogger("starrecord.records").debug("hello")
        for handler in own:
            handler.flush()
        assert "hello" in log_file.read_text()

        for handler in own:
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)

class TestDuplicateQueryCache:

    def test_repeated_reads_hit_the_cache(self, repository):
        Post.create({"title": "cached"})
        repository.metrics.cache_hits = 0

        Post.find(1)
        Post.find(1)

        assert repository.metrics.cache_hits == 1

    def test_writes_flush_the_cache(self, repository):
        post = Post.create({"title": "before"})
        Post.find(1)

        post.set("title", "after")
        post.save()

        assert Post.find(1).get("title") == "after"

    def test_disabled_cache_never_answers(self):
        cache = DuplicateQueryCache(enabled=False)
        repository = MemoryRepository(duplicate_cache=cache)
        repository.create_table("posts", [{"id": 1}])

        repository.fetch_one("posts", "id", 1)
        repository.fetch_one("posts", "id", 1)

        assert len(cache) == 0
        assert repository.metrics.cache_hits == 0

    def test_relation_loading_respects_the_type_toggle(self, repository):
        library = Library.create({"name": "central"})
        Shelf.create({"library_id": library.get_key()})
        repository.metrics.cache_hits = 0

        library.load_relation("shelves")
        library.load_relation("shelves")

        assert repository.metrics.cache_hits == 0
        assert len(library.get("shelves")) == 1

    def test_pivot_reads_follow_the_owner_type(self, repository):
        library = Library.create({"name": "central"})
        library.bind("readers", Tag.create({"name": "ann"}))
        repository.metrics.cache_hits = 0

        library.load_relation("readers")
        library.load_relation("readers")

        assert repository.metrics.cache_hits == 2

    def test_cached_rows_are_copies(self):
        cache = DuplicateQueryCache()
        key = cache.hash_query("fetch_where", "posts", {"id": [2, 1]})
        cache.put(key, [{"id": 1}])

        rows = cache.get(key)
        rows[0]["id"] = 99

        assert cache.get(key) == [{"id": 1}]
        assert key == cache.hash_query("fetch_where", "posts", {"id": [1, 2]})

class TestMemoryRepository:

    def test_transaction_rolls_back_on_error(self, repository):
        Post.create({"title": "kept"})

        with pytest.raises(RuntimeError):
            with Post.transaction():
                Post.create({"title": "discarded"})
                raise RuntimeError("boom")

        assert [row["title"] for row in repository.rows("posts")] == ["kept"]
        assert Post.create({"title": "next"}).get_key() == 2

    def test_nested_transactions_join(self, repository):
        with Post.transaction():
            with Post.transaction():
                Post.create({"title": "inner"})

        assert len(repository.rows("posts")) == 1

    def test_delete_requires_filters(self, repository):
        with pytest.raises(ValidationError):
            repository.delete_where("posts", {})

    def test_find_or_fail(self):
        with pytest.raises(RecordNotFoundError):
            Post.find_or_fail(404)

    def test_where_and_all(self):
        Post.create({"title": "a", "status": "draft"})
        Post.create({"title": "b", "status": "live"})
        Post.create({"title": "c", "status": "live"})

        assert [post.get("title") for post in Post.where(status="live")] == ["b", "c"]
        assert len(Post.all()) == 3

    def test_reload_and_fresh(self, repository):
        post = Post.create({"title": "original"})
        repository.persist("posts", {"title": "changed"}, "id", key=post.get_key(), exists=True)

        assert post.fresh().get("title") == "changed"
        assert post.get("title") == "original"

        post.reload()
        assert post.get("title") == "changed"
        assert post.is_clean()

class TestReadiness:

    def test_missing_table_is_not_ready(self, repository):
        assert Post.has_database_table() is False

    def test_ready_result_is_cached(self, container, repository):
        repository.create_table("posts")
        assert Post.has_database_table() is True

        repository.drop_table("posts")
        assert Post.has_database_table() is True

        container.cache_store.flush()
        assert Post.has_database_table() is False

    def test_unreachable_storage_is_not_ready(self, container):
        class Offline(MemoryRepository):
            def ping(self):
                raise ConnectionError("storage offline")

        container.configure_repository(Offline())

        assert Post().is_database_ready() is False

    def test_array_cache_store(self):
        store = ArrayCacheStore()
        store.forever("k", 1)

        assert store.get("k") == 1
        assert store.forget("k") is True
        assert store.get("k", "default") == "default"
