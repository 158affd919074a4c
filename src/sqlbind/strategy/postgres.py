"""
PostgreSQL-specific strategy implementation (psycopg 3).
"""
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import psycopg
import sqlalchemy as sa
from sqlbind.sql import escape_percent_signs
from sqlbind.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from sqlbind.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    driver_errors = (psycopg.Error,)

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        if options.appname:
            query['application_name'] = options.appname

        return sa.URL.create(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or None,
            database=options.database,
            query=query
        )

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """PostgreSQL needs no extra engine arguments."""
        return {}

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database']

    def configure_connection(self, conn: Any) -> None:
        """Configure connection settings for PostgreSQL.
        """
        raw_conn = conn
        if hasattr(conn, 'driver_connection'):
            raw_conn = conn.driver_connection
        self.enable_autocommit(raw_conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = True

    def standardize_sql(self, sql: str) -> str:
        """Rewrite placeholders and double literal ``%`` signs.

        psycopg parses every ``%`` when parameters are passed, including
        those in string literals and the modulo operator.
        """
        return escape_percent_signs(super().standardize_sql(sql))

    def execute_prepared(self, cursor: Any, sql: str, params: Sequence[Any]) -> None:
        """Run the statement with server-side preparation."""
        cursor.execute(sql, tuple(params), prepare=True)

    def describe_error(self, exc: BaseException) -> tuple[Any, Any]:
        """psycopg has no numeric codes; the error class names the condition.
        """
        return type(exc).__name__, getattr(exc, 'sqlstate', None)
