"""
Per-connection database wrapper with typed result extraction.

A Connection checks its session before every execution, reconnecting once
when it has dropped, and binds query results into typed slots:

- execute_query_value(sql, slot) - one column of exactly one row
- execute_query_values(sql, *slots) - consecutive columns of exactly one row
- execute_query_column(sql, type_, values) - column 1 of every row

Supported dialects: PostgreSQL (psycopg) and SQLite.
"""
__version__ = '0.1.0'

from sqlbind.binder import ResultBinder, bind_value, bind_values
from sqlbind.connection import Connection, connect
from sqlbind.exceptions import ConnectionFailure, DatabaseError, EmptyResultError
from sqlbind.exceptions import InvalidColumnError, QueryError
from sqlbind.exceptions import ResultSetClosedError, RowCountMismatchError
from sqlbind.exceptions import TypeConversionError, UnsupportedTypeError
from sqlbind.manager import ConnectionManager
from sqlbind.options import DatabaseOptions
from sqlbind.result import ResultSet
from sqlbind.statement import PreparedStatement, Statement
from sqlbind.types import ColumnKind, Slot, column_kind

__all__ = [
    'connect',
    'Connection',
    'ConnectionManager',
    'DatabaseOptions',
    'ResultSet',
    'ResultBinder',
    'bind_value',
    'bind_values',
    'Statement',
    'PreparedStatement',
    'ColumnKind',
    'Slot',
    'column_kind',
    'DatabaseError',
    'ConnectionFailure',
    'QueryError',
    'InvalidColumnError',
    'ResultSetClosedError',
    'TypeConversionError',
    'UnsupportedTypeError',
    'RowCountMismatchError',
    'EmptyResultError',
]
