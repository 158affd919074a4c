import pytest
from sqlbind.options import DatabaseOptions


def test_init_defaults():
    """Test default initialization"""
    options = DatabaseOptions(
        hostname='testhost',
        username='testuser',
        password='testpass',
        database='testdb',
        port=1234,
        timeout=30
    )

    assert options.drivername == 'postgresql'
    assert options.appname is not None
    assert options.check_connection is True


def test_sqlite_requires_only_database():
    options = DatabaseOptions(drivername='sqlite', database=':memory:')
    assert options.hostname is None


def test_validation():
    """Test validation rules"""
    with pytest.raises(ValueError, match='drivername'):
        DatabaseOptions(
            drivername='invalid',
            hostname='testhost',
            username='testuser',
            password='testpass',
            database='testdb',
        )


@pytest.mark.parametrize('missing', ['hostname', 'username', 'password', 'database'])
def test_postgres_required_fields(missing):
    kwargs = {
        'hostname': 'testhost',
        'username': 'testuser',
        'password': 'testpass',
        'database': 'testdb',
    }
    kwargs[missing] = None
    with pytest.raises(ValueError, match=missing):
        DatabaseOptions(drivername='postgresql', **kwargs)


def test_sqlite_requires_database():
    with pytest.raises(ValueError, match='database'):
        DatabaseOptions(drivername='sqlite')
