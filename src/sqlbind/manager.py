"""
Minimal connection manager.

Creates Connections with sequential identifiers, lends them out and takes
them back. A returned connection is handed out again before a new one is
opened; there is no further scheduling policy.
"""
import itertools
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlbind.connection import Connection
from sqlbind.options import DatabaseOptions

__all__ = ['ConnectionManager']

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Thread-safe owner of a bounded set of Connections.
    """

    def __init__(self, options: DatabaseOptions, max_connections: int = 5) -> None:
        self.options = options
        self.max_connections = max_connections
        self._ids = itertools.count(1)
        self._idle: list[Connection] = []
        self._in_use: dict[Any, Connection] = {}
        self._lock = threading.RLock()

    def __enter__(self) -> 'ConnectionManager':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_all()

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._idle) + len(self._in_use)

    def request_connection(self) -> Connection:
        """Return an idle connection, or open a new one if below the limit.

        Raises
            RuntimeError: If every connection is in use
        """
        with self._lock:
            if self._idle:
                cn = self._idle.pop(0)
                logger.debug(f'Reusing connection {cn.get_id()}')
            elif len(self._in_use) < self.max_connections:
                cn = Connection.from_options(self, next(self._ids), self.options)
                logger.debug(f'Created connection {cn.get_id()}')
            else:
                raise RuntimeError('Connection pool exhausted')
            self._in_use[cn.get_id()] = cn
            return cn

    def release_connection(self, cn: Connection) -> None:
        """Take a borrowed connection back."""
        with self._lock:
            if self._in_use.pop(cn.get_id(), None) is None:
                logger.warning(f'Connection {cn.get_id()} was not borrowed from this manager')
                return
            self._idle.append(cn)

    def reassign_id(self, cn: Connection, conn_id: Any) -> None:
        """Give a connection a new identifier, keeping the books consistent."""
        with self._lock:
            if conn_id in self._in_use or any(c.get_id() == conn_id for c in self._idle):
                raise ValueError(f'Connection id {conn_id} already in use')
            borrowed = self._in_use.pop(cn.get_id(), None)
            cn.set_id(conn_id)
            if borrowed is not None:
                self._in_use[conn_id] = cn

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Borrow a connection for the duration of the block."""
        cn = self.request_connection()
        try:
            yield cn
        finally:
            self.release_connection(cn)

    def close_all(self) -> None:
        """Close idle connections; borrowed ones are left to their holders."""
        with self._lock:
            for cn in self._idle:
                cn.close()
            self._idle.clear()
            if self._in_use:
                logger.debug(f'{len(self._in_use)} connections still in use')
