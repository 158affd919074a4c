"""
Base strategy interface for dialect-specific behavior.

A strategy encapsulates everything the connection layer needs to know about a
driver: how to build its URL and engine, how to configure a fresh session,
how to probe liveness, how to run a prepared statement, and how to read the
code and SQL state off the driver's exceptions.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlbind.exceptions import DriverError
from sqlbind.sql import standardize_placeholders

if TYPE_CHECKING:
    from sqlbind.options import DatabaseOptions

logger = logging.getLogger(__name__)

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('postgresql')
        class PostgresStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for database-specific operations.
    """

    #: Exception classes raised by this dialect's DB-API driver
    driver_errors: tuple[type[BaseException], ...] = ()

    ping_sql = 'SELECT 1'

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier."""

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL.

        Args:
            options: DatabaseOptions with the connection parameters

        Returns
            URL object understood by ``sqlalchemy.create_engine``
        """

    @abstractmethod
    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return dialect-specific ``create_engine`` keyword arguments.
        """

    @abstractmethod
    def configure_connection(self, conn: Any) -> None:
        """Apply session settings to a freshly opened DB-API connection.
        """

    @abstractmethod
    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode on the raw connection."""

    @abstractmethod
    def describe_error(self, exc: BaseException) -> tuple[Any, Any]:
        """Return ``(error_code, sqlstate)`` reported by the driver.
        """

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.

        Returns
            List of field names that must have non-None/non-zero values
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Args:
            options: DatabaseOptions to validate

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    def get_placeholder_style(self) -> str:
        """Return the positional placeholder marker for this dialect."""
        return '%s'

    def standardize_sql(self, sql: str) -> str:
        """Rewrite a prepared statement's SQL for this dialect's driver."""
        return standardize_placeholders(sql, self.get_placeholder_style())

    def ping(self, raw_conn: Any) -> bool:
        """Check that the session still answers a trivial statement.
        """
        try:
            cursor = raw_conn.cursor()
            try:
                cursor.execute(self.ping_sql)
                cursor.fetchall()
            finally:
                cursor.close()
        except DriverError as err:
            logger.debug(f'Ping failed on {self.dialect_name}: {err}')
            return False
        return True

    def execute_prepared(self, cursor: Any, sql: str, params: Sequence[Any]) -> None:
        """Run a prepared statement on its own cursor.

        Drivers without explicit preparation rely on their statement cache.
        """
        cursor.execute(sql, tuple(params))
