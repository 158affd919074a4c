"""
Statement handles owned by a Connection.

``Statement`` runs ad-hoc SQL text; ``PreparedStatement`` holds one
parameterized statement and its bound parameters. Each handle owns its own
DB-API cursor, so the two never disturb each other. Driver exceptions are
re-raised as QueryError with the driver error kept as the cause.
"""
import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import Any

from sqlbind.exceptions import DriverError, QueryError
from sqlbind.result import ResultSet
from sqlbind.sql import count_placeholders
from sqlbind.strategy import DatabaseStrategy

__all__ = ['Statement', 'PreparedStatement']

logger = logging.getLogger(__name__)

_UNSET = object()


def dumpsql(func: Callable) -> Callable:
    """Decorator for logging statements and their execution time."""
    @wraps(func)
    def wrapper(self, *args: Any, **kwargs: Any):
        operation = args[0] if args else self.sql
        start = time.time()
        logger.debug(f'SQL:\n{operation}')
        try:
            return func(self, *args, **kwargs)
        finally:
            elapsed = time.time() - start
            if self.owner is not None:
                self.owner.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


def _close_quietly(cursor: Any) -> None:
    try:
        cursor.close()
    except DriverError as err:
        logger.debug(f'Error closing cursor: {err}')


class Statement:
    """Ad-hoc statement bound to one native session.
    """

    def __init__(self, raw_conn: Any, strategy: DatabaseStrategy, owner: Any = None) -> None:
        self.strategy = strategy
        self.owner = owner
        self.sql: str | None = None
        self.cursor = raw_conn.cursor()

    @property
    def rowcount(self) -> int:
        """Rows affected by the last command."""
        return self.cursor.rowcount

    @dumpsql
    def execute(self, sql: str) -> ResultSet | None:
        """Run ``sql``; return its rows, or None when it produces no result set."""
        self.sql = sql
        try:
            self.cursor.execute(sql)
            if self.cursor.description is None:
                return None
            return ResultSet.from_cursor(self.cursor, sql)
        except DriverError as err:
            raise QueryError(str(err)) from err

    def close(self) -> None:
        _close_quietly(self.cursor)


class PreparedStatement:
    """Parameterized statement created once and executed many times.

    Parameters are 1-based and may be written as ``%s`` or ``?`` in the SQL;
    they are rewritten to the dialect's marker when the statement is created.
    """

    def __init__(self, raw_conn: Any, strategy: DatabaseStrategy, sql: str,
                 owner: Any = None) -> None:
        self.strategy = strategy
        self.owner = owner
        self.sql = sql
        self.operation = strategy.standardize_sql(sql)
        self.param_count = count_placeholders(self.operation)
        self._params: list[Any] = [_UNSET] * self.param_count
        self.cursor = raw_conn.cursor()

    def __repr__(self) -> str:
        return f'<PreparedStatement {self.sql!r} ({self.param_count} params)>'

    @property
    def params(self) -> tuple:
        """Currently bound parameter values (unset ones as None)."""
        return tuple(None if p is _UNSET else p for p in self._params)

    def _check_index(self, index: int) -> None:
        if not 1 <= index <= self.param_count:
            raise QueryError(f'Parameter index {index} out of range (1..{self.param_count})')

    def set_value(self, index: int, value: Any) -> None:
        self._check_index(index)
        self._params[index - 1] = value

    def set_int(self, index: int, value: int) -> None:
        self.set_value(index, int(value))

    def set_uint(self, index: int, value: int) -> None:
        if value < 0:
            raise QueryError(f'Parameter {index}: {value} is negative')
        self.set_value(index, int(value))

    def set_double(self, index: int, value: float) -> None:
        self.set_value(index, float(value))

    def set_string(self, index: int, value: str) -> None:
        self.set_value(index, str(value))

    def set_null(self, index: int) -> None:
        self.set_value(index, None)

    def set_params(self, *values: Any) -> None:
        """Bind every parameter at once, in order."""
        if len(values) != self.param_count:
            raise QueryError(
                f'Parameter count mismatch: SQL needs {self.param_count} '
                f'but {len(values)} were provided'
            )
        self._params = list(values)

    def clear_parameters(self) -> None:
        self._params = [_UNSET] * self.param_count

    def rebind(self, raw_conn: Any) -> None:
        """Move the statement onto a new session, keeping its parameters."""
        _close_quietly(self.cursor)
        self.cursor = raw_conn.cursor()
        logger.debug(f'Prepared statement rebound after reconnect: {self.sql}')

    @dumpsql
    def execute(self) -> ResultSet | None:
        """Run with the bound parameters; return rows or None."""
        unset = [i for i, p in enumerate(self._params, start=1) if p is _UNSET]
        if unset:
            raise QueryError(f'Parameters not set: {unset}')
        try:
            self.strategy.execute_prepared(self.cursor, self.operation, self._params)
            if self.cursor.description is None:
                return None
            return ResultSet.from_cursor(self.cursor, self.sql)
        except DriverError as err:
            raise QueryError(str(err)) from err

    def close(self) -> None:
        _close_quietly(self.cursor)
