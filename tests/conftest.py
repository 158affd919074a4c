import pathlib
import site

import pytest
from sqlbind.engine import dispose_all_engines

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def dispose_engines():
    """Drop registered engines after each test to keep sessions isolated."""
    yield
    dispose_all_engines()


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.values',
    'tests.fixtures.sqlite',
    'tests.fixtures.postgres',
]
