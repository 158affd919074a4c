"""
SQLAlchemy engine management.

Engines are created once per distinct set of options and kept in a
thread-safe registry. Every engine uses ``NullPool``: a checked-out session
belongs to exactly one Connection, and closing it really closes the driver
connection, so pooling stays the job of the connection manager.
"""
import atexit
import logging
import threading
from collections.abc import Callable
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool
from sqlbind.options import DatabaseOptions
from sqlbind.strategy import get_strategy

__all__ = [
    'create_url_from_options',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def create_url_from_options(options: DatabaseOptions) -> sa.URL:
    """Convert DatabaseOptions to SQLAlchemy URL.
    """
    return get_strategy(options.drivername).build_connection_url(options)


def get_engine_for_options(options: DatabaseOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.

    Args:
        options: DatabaseOptions object
        engine_factory: Function to create engines (defaults to sqlalchemy.create_engine)
        **kwargs: Additional arguments passed to engine factory

    Returns
        sqlalchemy.engine.Engine: SQLAlchemy engine
    """
    key = str(options)

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        url = create_url_from_options(options)

        engine_kwargs: dict[str, Any] = {'echo': False, 'poolclass': NullPool}
        engine_kwargs.update(get_strategy(options.drivername).get_engine_kwargs(options))
        engine_kwargs.update(kwargs)

        engine = engine_factory(url, **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in _engine_registry.values():
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)
