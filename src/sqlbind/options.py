from dataclasses import dataclass

from sqlbind.strategy import get_available_dialects, get_strategy_class
from sqlbind.strategy import is_supported_dialect

from libb import ConfigOptions, scriptname

__all__ = [
    'DatabaseOptions',
]


@dataclass
class DatabaseOptions(ConfigOptions):
    """Options

    supported driver names: `postgresql`, `sqlite`

    - check_connection: ping the session before each execution, in addition
      to the closed/invalidated check (default: True)
    - timeout: passed to the driver as its connect/busy timeout in seconds
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    check_connection: bool = True

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        self.appname = self.appname or scriptname() or 'python_console'
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)
