import pytest
import sqlbind
from sqlbind.options import DatabaseOptions


def stage_test_data(cn):
    create_table = """
    CREATE TABLE test_table (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        value INTEGER NOT NULL,
        price REAL,
        code TEXT
    )
    """
    assert cn.execute_command(create_table)

    insert_data = """
    INSERT INTO test_table (name, value, price, code) VALUES
    ('Alice', 10, 1.5, '7'),
    ('Bob', 20, 2.5, 'x'),
    ('Charlie', 30, NULL, '9')
    """
    assert cn.execute_command(insert_data)


@pytest.fixture
def sl_conn():
    """In-memory SQLite connection with test data."""
    cn = sqlbind.connect({
        'drivername': 'sqlite',
        'database': ':memory:'
    })
    stage_test_data(cn)

    yield cn
    cn.close()


@pytest.fixture
def sl_file_options(tmp_path):
    """Options for a file-based SQLite database, which survives reconnects."""
    return DatabaseOptions(drivername='sqlite', database=str(tmp_path / 'test.db'))


@pytest.fixture
def sl_file_conn(sl_file_options):
    """File-based SQLite connection with test data."""
    cn = sqlbind.Connection.from_options(None, 1, sl_file_options)
    stage_test_data(cn)

    yield cn
    cn.close()
