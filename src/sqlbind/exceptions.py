"""
Database-specific exception classes.

Driver exceptions are grouped into one tuple so the connection boundary can
catch them regardless of the dialect that raised them.
"""
import logging
import sqlite3

import psycopg
import sqlalchemy as sa

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Base class for all sqlbind errors.
    """


class ConnectionFailure(DatabaseError):
    """Error establishing or re-establishing the database session.
    """


class QueryError(DatabaseError):
    """Error in statement execution or result navigation.
    """


class InvalidColumnError(QueryError):
    """Column index outside the current result row.
    """


class ResultSetClosedError(QueryError):
    """Result set read after it was superseded by a newer execution.
    """


class TypeConversionError(DatabaseError):
    """Column value cannot be converted to the requested type.
    """


class UnsupportedTypeError(DatabaseError):
    """Extraction requested for a type outside the supported set.
    """


class RowCountMismatchError(DatabaseError):
    """Single-row extraction against a result that is not exactly one row.
    """

    def __init__(self, count: int) -> None:
        super().__init__(f'Expected one row, got {count}')
        self.count = count


class EmptyResultError(DatabaseError):
    """Query returned no rows.
    """


DriverError = (
    psycopg.Error,
    sqlite3.Error,
    sa.exc.SQLAlchemyError,
    )


def root_driver_error(exc: BaseException) -> BaseException:
    """Find the DB-API exception behind a wrapped error.

    Follows SQLAlchemy's ``orig`` attribute and explicit ``raise ... from``
    chains down to the error the driver actually raised.
    """
    seen = set()
    while id(exc) not in seen:
        seen.add(id(exc))
        if isinstance(exc, sa.exc.DBAPIError) and exc.orig is not None:
            exc = exc.orig
        elif exc.__cause__ is not None:
            exc = exc.__cause__
        else:
            break
    return exc


def describe_driver_error(exc: BaseException) -> tuple[str, object, object]:
    """Return ``(message, code, sqlstate)`` for an error.

    Code and state come from the dialect strategy owning the driver that
    raised; package errors without a driver cause report ``None`` for both.
    """
    from sqlbind.strategy import strategy_for_error

    root = root_driver_error(exc)
    strategy = strategy_for_error(root)
    if strategy is None:
        return str(exc), None, None
    code, state = strategy.describe_error(root)
    return str(exc), code, state


def log_driver_error(sql: str | None, exc: BaseException) -> None:
    """Log a failed statement as separate STMT/ERR/code/state lines.
    """
    message, code, state = describe_driver_error(exc)
    logger.error(f'STMT: {sql}')
    logger.error(f'ERR: {message}')
    logger.error(f'error code: {code}')
    logger.error(f'SQLState: {state}')
