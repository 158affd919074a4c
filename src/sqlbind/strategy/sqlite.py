"""
SQLite-specific strategy implementation.

SQLite caches compiled statements per connection, so prepared statements run
through a plain ``execute`` on a dedicated cursor.
"""
import logging
import sqlite3
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlbind.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from sqlbind.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    driver_errors = (sqlite3.Error,)

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for SQLite."""
        return sa.URL.create(drivername='sqlite', database=options.database)

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        connect_args: dict[str, Any] = {'check_same_thread': False}
        if options.timeout:
            connect_args['timeout'] = options.timeout
        return {'connect_args': connect_args}

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']

    def configure_connection(self, conn: Any) -> None:
        """Configure connection settings for SQLite.
        """
        sqlite_conn = conn
        if hasattr(conn, 'dbapi_connection'):
            sqlite_conn = conn.dbapi_connection
        sqlite_conn.execute('PRAGMA foreign_keys = ON')
        self.enable_autocommit(sqlite_conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = None

    def get_placeholder_style(self) -> str:
        """Return SQLite's placeholder marker.
        """
        return '?'

    def describe_error(self, exc: BaseException) -> tuple[Any, Any]:
        """Extended result code and its symbolic name (Python 3.11+).
        """
        return getattr(exc, 'sqlite_errorcode', None), getattr(exc, 'sqlite_errorname', None)
