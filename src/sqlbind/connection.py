"""
Per-connection wrapper around a database session.

A Connection owns one native session, one ad-hoc statement, an optional
prepared statement and the most recent result set. Before every execution it
checks that the session is alive and reconnects once, with the parameters it
was built with, when it is not. Results are extracted into typed slots by the
ResultBinder:

    >>> cn = connect({'drivername': 'sqlite', 'database': ':memory:'})
    >>> cn.execute_command('create table t (id integer, name text)')
    True
    >>> cn.execute_command("insert into t values (1, 'a'), (2, 'b')")
    True
    >>> name = Slot(str)
    >>> cn.execute_query_value('select name from t where id = 1', name)
    True
    >>> name.value
    'a'
    >>> ids = []
    >>> cn.execute_query_column('select id from t order by id', int, ids)
    True
    >>> ids
    [1, 2]
    >>> cn.close()

Every public execution method reports failure through its return value
(``False``, or ``0`` for counts). Nothing raised by the driver escapes; the
failure is logged and kept in ``last_error``, where an empty result
(EmptyResultError) can be told apart from a real error.
"""
import logging
import weakref
from collections.abc import Callable
from dataclasses import fields
from functools import wraps
from typing import Any, Self, TypeVar

import sqlalchemy as sa
from sqlbind.binder import ResultBinder
from sqlbind.engine import get_engine_for_options
from sqlbind.exceptions import ConnectionFailure, DatabaseError, DriverError
from sqlbind.exceptions import EmptyResultError, QueryError
from sqlbind.exceptions import RowCountMismatchError, UnsupportedTypeError
from sqlbind.exceptions import log_driver_error
from sqlbind.options import DatabaseOptions
from sqlbind.result import ResultSet
from sqlbind.statement import PreparedStatement, Statement
from sqlbind.strategy import get_strategy
from sqlbind.types import Slot, column_kind, type_name

from libb import load_options

__all__ = [
    'Connection',
    'connect',
    'catch_driver_errors',
]

logger = logging.getLogger(__name__)

T = TypeVar('T')

BOUNDARY_ERRORS = (DatabaseError, *DriverError)


def _manager_reference(manager: Any) -> Callable[[], Any] | None:
    """Weak reference to the manager; a plain closure for objects that
    cannot be weakly referenced (dicts, ``__slots__`` classes).
    """
    if manager is None:
        return None
    try:
        return weakref.ref(manager)
    except TypeError:
        return lambda: manager


def catch_driver_errors(default: Any) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Turn failures raised inside a Connection method into ``default``.

    The statement being run is logged with the driver's message, code and
    SQL state, and the exception is stored on ``last_error``.
    """
    def decorator(f: Callable[..., T]) -> Callable[..., T]:
        @wraps(f)
        def inner(self: 'Connection', *args: Any, **kwargs: Any) -> T:
            self.last_error = None
            try:
                return f(self, *args, **kwargs)
            except BOUNDARY_ERRORS as err:
                log_driver_error(self._last_sql, err)
                self.last_error = err
                return default
        return inner
    return decorator


class Connection:
    """One logical database connection with typed result extraction.

    Not thread-safe: a Connection is meant to be borrowed by one caller at a
    time and used for sequential executions.
    """

    def __init__(self, manager: Any, conn_id: Any, host: str | None = None,
                 user: str | None = None, password: str | None = None,
                 database: str | None = None, *, drivername: str = 'postgresql',
                 port: int = 0, timeout: int = 0,
                 options: DatabaseOptions | None = None) -> None:
        """Open a connection for the manager.

        Args:
            manager: Owning connection manager or context handle (may be None);
                held by weak reference when the object supports one
            conn_id: Identifier assigned by the manager
            host, user, password, database: Session parameters
            drivername, port, timeout: Further session parameters
            options: Complete DatabaseOptions, used instead of the parameters above

        A failed initial connect is logged; the next execution reconnects.
        """
        if options is None:
            options = DatabaseOptions(drivername=drivername, hostname=host,
                                      username=user, password=password,
                                      database=database, port=port,
                                      timeout=timeout)
        self.options = options
        self._manager_ref = _manager_reference(manager)
        self._id = conn_id
        self.strategy = get_strategy(options.drivername)
        self.engine = get_engine_for_options(options)

        self.native_handle: sa.engine.Connection | None = None
        self.statement_handle: Statement | None = None
        self.prepared_handle: PreparedStatement | None = None
        self.current_result: ResultSet | None = None

        self.last_error: DatabaseError | BaseException | None = None
        self._last_sql: str | None = None
        self.calls = 0
        self.time = 0
        self.reconnects = 0

        try:
            self._open_native()
        except ConnectionFailure as err:
            log_driver_error(None, err)
            self.last_error = err

    @classmethod
    def from_options(cls, manager: Any, conn_id: Any, options: DatabaseOptions) -> Self:
        """Create a connection from resolved options."""
        return cls(manager, conn_id, options=options)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __repr__(self) -> str:
        return f'<Connection id={self._id} {self.options.drivername}:{self.options.database}>'

    def get_id(self) -> Any:
        return self._id

    def set_id(self, conn_id: Any) -> None:
        self._id = conn_id

    @property
    def manager(self) -> Any:
        """The manager this connection was created for, if still alive."""
        return self._manager_ref() if self._manager_ref is not None else None

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    #
    # session lifecycle
    #

    def _open_native(self) -> None:
        """Open a session and the ad-hoc statement bound to it."""
        sa_connection = None
        try:
            sa_connection = self.engine.connect()
            self.strategy.configure_connection(sa_connection.connection)
            statement = Statement(sa_connection.connection, self.strategy, self)
        except DriverError as err:
            if sa_connection is not None:
                self._close_native(sa_connection)
            raise ConnectionFailure(
                f'Could not connect to {self.options.drivername} '
                f'database {self.options.database}: {err}') from err
        self.native_handle = sa_connection
        self.statement_handle = statement
        logger.debug(f'Connection {self._id} opened')

    @staticmethod
    def _close_native(sa_connection: sa.engine.Connection) -> None:
        try:
            sa_connection.close()
        except DriverError as err:
            logger.debug(f'Error closing session: {err}')

    def _release_native(self) -> None:
        if self.statement_handle is not None:
            self.statement_handle.close()
            self.statement_handle = None
        if self.native_handle is not None:
            self._close_native(self.native_handle)
            self.native_handle = None

    def is_valid(self) -> bool:
        """Whether the native session is open and, if configured, answers a ping."""
        handle = self.native_handle
        if handle is None or handle.closed or handle.invalidated:
            return False
        if not self.options.check_connection:
            return True
        return self.strategy.ping(handle.connection)

    def reconnect(self) -> None:
        """Replace the session with a new one; raises ConnectionFailure.
        """
        self.reconnects += 1
        logger.debug(f'Connection {self._id} is not valid, reconnecting')
        self._release_native()
        self._open_native()
        if self.prepared_handle is not None:
            self.prepared_handle.rebind(self.native_handle.connection)

    def _ensure_connection(self) -> None:
        if not self.is_valid():
            self.reconnect()

    def close(self) -> None:
        """Release owned handles in reverse acquisition order.
        """
        if self.prepared_handle is not None:
            self.prepared_handle.close()
            self.prepared_handle = None
        self._reset_result()
        self._release_native()
        logger.debug(f'Connection {self._id} closed: {self.calls} queries in {self.time:.2f}s '
                     f'(avg: {self.time/max(1, self.calls):.3f}s per query)')

    #
    # execution
    #

    def _reset_result(self) -> None:
        if self.current_result is not None:
            self.current_result.close()
            self.current_result = None

    def _run(self, sql: str) -> ResultSet | None:
        self._last_sql = sql
        self._reset_result()
        self._ensure_connection()
        return self.statement_handle.execute(sql)

    def _query(self, sql: str) -> ResultSet:
        result = self._run(sql)
        if result is None:
            raise QueryError('Statement produced no result set')
        self.current_result = result
        return result

    def _empty(self, sql: str | None) -> bool:
        logger.debug(f'No rows returned: {sql}')
        self.last_error = EmptyResultError(f'No rows returned: {sql}')
        return False

    def _single_row(self, sql: str) -> ResultSet | None:
        """Run a query that must return exactly one row and position on it."""
        result = self._query(sql)
        count = result.rows_count()
        if count == 0:
            self._empty(sql)
            return None
        if count != 1:
            logger.error(f'Error rows count: {count}')
            self.last_error = RowCountMismatchError(count)
            return None
        result.next()
        return result

    def _check_types(self, *types: Any) -> bool:
        for type_ in types:
            if column_kind(type_) is None:
                logger.error(f'Unsupported type: {type_name(type_)}')
                self.last_error = UnsupportedTypeError(f'Unsupported type: {type_name(type_)}')
                return False
        return True

    @catch_driver_errors(default=False)
    def execute_command(self, sql: str) -> bool:
        """Run a statement that produces no rows (DDL/DML)."""
        self._run(sql)
        logger.debug(f'Command affected {self.statement_handle.rowcount} rows')
        return True

    @catch_driver_errors(default=False)
    def execute_query(self, sql: str) -> bool:
        """Run a query and keep its result; False when it returns no rows.

        No rows is not logged as an error: ``last_error`` holds an
        EmptyResultError so it can be told apart from a failed statement.
        """
        result = self._query(sql)
        if result.rows_count() == 0:
            return self._empty(sql)
        return True

    @catch_driver_errors(default=0)
    def execute_query_count(self, sql: str) -> int:
        """Run a query and return its number of rows."""
        return self._query(sql).rows_count()

    @catch_driver_errors(default=False)
    def execute_check_exist(self, sql: str) -> bool:
        """True iff the query returns at least one row."""
        return self._query(sql).rows_count() > 0

    def get_current_result(self) -> ResultSet | None:
        """The result of the latest query; invalid after the next execution."""
        return self.current_result

    #
    # prepared statements
    #

    @catch_driver_errors(default=False)
    def create_prepared(self, sql: str) -> bool:
        """Create the prepared statement, replacing any previous one."""
        self._last_sql = sql
        self._ensure_connection()
        if self.prepared_handle is not None:
            self.prepared_handle.close()
            self.prepared_handle = None
        self.prepared_handle = PreparedStatement(self.native_handle.connection,
                                                 self.strategy, sql, self)
        return True

    def get_prepared(self) -> PreparedStatement | None:
        return self.prepared_handle

    def _prepared(self) -> PreparedStatement:
        if self.prepared_handle is None:
            self._last_sql = None
            raise QueryError('No prepared statement; call create_prepared() first')
        self._last_sql = self.prepared_handle.sql
        self._ensure_connection()
        return self.prepared_handle

    @catch_driver_errors(default=False)
    def execute_prepared_command(self) -> bool:
        """Run the prepared statement as a command; the current result is kept."""
        self._prepared().execute()
        return True

    @catch_driver_errors(default=False)
    def execute_prepared_query(self) -> bool:
        """Run the prepared statement as a query, replacing the current result."""
        prepared = self._prepared()
        self._reset_result()
        result = prepared.execute()
        if result is None:
            raise QueryError('Prepared statement produced no result set')
        self.current_result = result
        if result.rows_count() == 0:
            return self._empty(prepared.sql)
        return True

    #
    # typed extraction
    #

    @catch_driver_errors(default=False)
    def execute_query_column(self, sql: str, type_: type[T], values: list[T]) -> bool:
        """Collect column 1 of every row into ``values`` as ``type_``.

        ``values`` is cleared once the query returns rows. Rows whose value
        does not convert are skipped; the call succeeds if any row was bound.
        """
        if not self._check_types(type_):
            return False
        result = self._query(sql)
        if result.rows_count() == 0:
            return self._empty(sql)

        values.clear()
        slot = Slot(type_)
        binder = ResultBinder(result)
        while result.next():
            if binder.bind(1, slot):
                values.append(slot.value)
        if not values:
            self.last_error = binder.error
            return False
        return True

    @catch_driver_errors(default=False)
    def execute_query_value(self, sql: str, slot: Slot) -> bool:
        """Bind column 1 of the single result row into ``slot``."""
        if not self._check_types(slot.type):
            return False
        result = self._single_row(sql)
        if result is None:
            return False
        binder = ResultBinder(result)
        if not binder.bind(1, slot):
            self.last_error = binder.error
            return False
        return True

    @catch_driver_errors(default=False)
    def execute_query_values(self, sql: str, *slots: Slot) -> bool:
        """Bind columns 1..n of the single result row into ``slots``.

        Binding stops at the first slot that fails; later slots are untouched.
        """
        if not self._check_types(*(slot.type for slot in slots)):
            return False
        result = self._single_row(sql)
        if result is None:
            return False
        binder = ResultBinder(result)
        if not binder.bind_all(1, *slots):
            self.last_error = binder.error
            return False
        return True


@load_options(cls=DatabaseOptions)
def connect(options: DatabaseOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> Connection:
    """Open a standalone Connection (no manager, id 0).

    Args:
        options: Can be:
                - DatabaseOptions object
                - String name of a configuration in ``config``
                - Dictionary of options
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        Connection ready for use
    """
    if isinstance(options, DatabaseOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=DatabaseOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    return Connection.from_options(None, 0, options)


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
