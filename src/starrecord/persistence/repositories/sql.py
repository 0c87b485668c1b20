"""
SQL Repository - SQLAlchemy Core Integration

🗃️ SQL Database Repository:
This module provides a repository implementation for relational databases
using SQLAlchemy Core. Tables are reflected from the database on first
use, rows are read and written as dictionaries, and writes join the
active transaction when one is open.

Key Features:
- Table reflection, no model classes required
- Dictionary filters translated to WHERE / IN clauses
- Transaction scoping through ``engine.begin()``
- Connection pooling configuration for server databases
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional
import logging

from sqlalchemy import MetaData, Table, create_engine, delete, inspect, insert, select, text, update, and_
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import NoSuchTableError

from .interface import Row, Filters
from .base import BaseRepository, RepositoryError, ValidationError
from ..caching.duplicate_cache import DuplicateQueryCache

logger = logging.getLogger(__name__)

@dataclass
class SQLConnectionConfig:
    """SQL database connection configuration"""
    database_url: str
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 3600
    echo: bool = False
    connect_args: Dict[str, Any] = field(default_factory=dict)

    def engine_options(self) -> Dict[str, Any]:
        """Keyword arguments for create_engine"""
        options: Dict[str, Any] = {"echo": self.echo, "connect_args": self.connect_args}
        # SQLite uses single-connection pools that reject sizing arguments
        if not self.database_url.startswith("sqlite"):
            options.update(
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_timeout=self.pool_timeout,
                pool_recycle=self.pool_recycle
            )
        return options

class SQLRepository(BaseRepository):
    """
    SQL repository implementation using SQLAlchemy Core.

    Either pass a connection configuration or an already built engine
    (useful for in-memory SQLite shared through a StaticPool).
    """

    def __init__(self,
                 config: Optional[SQLConnectionConfig] = None,
                 engine: Optional[Engine] = None,
                 duplicate_cache: Optional[DuplicateQueryCache] = None):
        if config is None and engine is None:
            raise ValidationError("SQLRepository needs a connection config or an engine")

        super().__init__(duplicate_cache=duplicate_cache)
        self.connection_config = config
        self.engine = engine or create_engine(config.database_url, **config.engine_options())
        self.metadata = MetaData()
        self._tables: Dict[str, Table] = {}
        self._connection: Optional[Connection] = None

        self._logger.info(f"SQLRepository bound to {self.engine.url.render_as_string(hide_password=True)}")

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False, **kwargs) -> 'SQLRepository':
        return cls(SQLConnectionConfig(database_url=database_url, echo=echo), **kwargs)

    # Connection handling
    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        """Join the open transaction, or run in a transaction of our own"""
        if self._connection is not None:
            yield self._connection
            return

        with self.engine.begin() as connection:
            yield connection

    def _table(self, name: str, connection: Connection) -> Table:
        table = self._tables.get(name)
        if table is None:
            try:
                table = Table(name, self.metadata, autoload_with=connection)
            except NoSuchTableError as e:
                raise RepositoryError(f"Table '{name}' does not exist") from e
            self._tables[name] = table
        return table

    def _where(self, table: Table, filters: Filters):
        clauses = []
        for column_name, value in filters.items():
            if column_name not in table.c:
                raise ValidationError(f"Unknown column '{column_name}' on table '{table.name}'")
            column = table.c[column_name]
            if isinstance(value, (list, tuple, set)):
                clauses.append(column.in_(list(value)))
            elif value is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == value)
        return and_(*clauses) if clauses else None

    # Backend hooks
    def _do_fetch_where(self, table: str, filters: Filters) -> List[Row]:
        with self._connect() as connection:
            sa_table = self._table(table, connection)
            stmt = select(sa_table)
            where = self._where(sa_table, filters)
            if where is not None:
                stmt = stmt.where(where)
            return [dict(row) for row in connection.execute(stmt).mappings()]

    def _do_insert(self, table: str, attributes: Row, key_name: str) -> Any:
        with self._connect() as connection:
            sa_table = self._table(table, connection)
            result = connection.execute(insert(sa_table).values(**attributes))
            key = attributes.get(key_name)
            if key is None and result.inserted_primary_key:
                key = result.inserted_primary_key[0]
            return key

    def _do_update(self, table: str, key_name: str, key: Any, attributes: Row) -> int:
        with self._connect() as connection:
            sa_table = self._table(table, connection)
            stmt = update(sa_table).where(sa_table.c[key_name] == key).values(**attributes)
            return connection.execute(stmt).rowcount

    def _do_delete_where(self, table: str, filters: Filters) -> int:
        with self._connect() as connection:
            sa_table = self._table(table, connection)
            return connection.execute(delete(sa_table).where(self._where(sa_table, filters))).rowcount

    # Readiness
    def has_table(self, table: str) -> bool:
        with self._connect() as connection:
            return inspect(connection).has_table(table)

    def ping(self) -> bool:
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True

    # Transactions
    @contextmanager
    def transaction(self) -> Iterator['SQLRepository']:
        """Run the block in one database transaction; nested blocks join it"""
        if self._connection is not None:
            yield self
            return

        try:
            with self.engine.begin() as connection:
                self._connection = connection
                try:
                    yield self
                finally:
                    self._connection = None
        except Exception:
            logger.debug("Rolled back SQL transaction")
            self.flush_cache()
            raise

    def dispose(self):
        """Release pooled connections"""
        self.engine.dispose()

__all__ = ["SQLRepository", "SQLConnectionConfig"]
