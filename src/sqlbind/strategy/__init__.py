"""
Database strategy factory for dialect-specific operations.
"""
from functools import lru_cache

from sqlbind.strategy.base import _STRATEGY_REGISTRY
from sqlbind.strategy.base import DatabaseStrategy as DatabaseStrategy
from sqlbind.strategy.base import register_strategy as register_strategy
from sqlbind.strategy.postgres import PostgresStrategy as PostgresStrategy
from sqlbind.strategy.sqlite import SQLiteStrategy as SQLiteStrategy


def _validate_dialect(dialect: str) -> None:
    """Raise ValueError if dialect is not registered."""
    if dialect not in _STRATEGY_REGISTRY:
        available = list(_STRATEGY_REGISTRY.keys())
        raise ValueError(f'Unsupported dialect: {dialect}. Available: {available}')


@lru_cache(maxsize=8)
def _get_strategy(dialect: str) -> DatabaseStrategy:
    """Get cached strategy instance for a dialect."""
    _validate_dialect(dialect)
    return _STRATEGY_REGISTRY[dialect]()


def get_strategy(dialect: str) -> DatabaseStrategy:
    """Get strategy instance for a dialect name."""
    return _get_strategy(dialect)


def strategy_for_error(exc: BaseException) -> DatabaseStrategy | None:
    """Find the strategy whose driver raised ``exc``, if any."""
    for dialect, cls in _STRATEGY_REGISTRY.items():
        if isinstance(exc, cls.driver_errors):
            return _get_strategy(dialect)
    return None


def get_available_dialects() -> list[str]:
    """Return list of registered dialect names."""
    return list(_STRATEGY_REGISTRY.keys())


def is_supported_dialect(dialect: str) -> bool:
    """Check if a dialect is supported."""
    return dialect in _STRATEGY_REGISTRY


def get_strategy_class(dialect: str) -> type['DatabaseStrategy']:
    """Get the strategy class for a dialect without instantiating."""
    _validate_dialect(dialect)
    return _STRATEGY_REGISTRY[dialect]
