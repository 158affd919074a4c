import pytest
from sqlbind.exceptions import QueryError
from sqlbind.result import ResultSet
from sqlbind.statement import PreparedStatement, Statement
from sqlbind.strategy import get_strategy


@pytest.fixture
def sqlite_strategy():
    return get_strategy('sqlite')


@pytest.fixture
def postgres_strategy():
    return get_strategy('postgresql')


def test_statement_returns_result_for_queries(create_mock_cursor, mock_raw_connection, sqlite_strategy):
    cursor = create_mock_cursor(['id'], [(1,), (2,)])
    mock_raw_connection.cursor.side_effect = None
    mock_raw_connection.cursor.return_value = cursor

    stmt = Statement(mock_raw_connection, sqlite_strategy)
    result = stmt.execute('select id from t')
    assert isinstance(result, ResultSet)
    assert result.rows_count() == 2
    cursor.execute.assert_called_once_with('select id from t')


def test_statement_returns_none_for_commands(mock_raw_connection, sqlite_strategy):
    stmt = Statement(mock_raw_connection, sqlite_strategy)
    assert stmt.execute('delete from t') is None


def test_statement_tracks_owner_calls(mock_raw_connection, sqlite_strategy):
    class Owner:
        calls = 0

        def addcall(self, elapsed):
            self.calls += 1

    owner = Owner()
    stmt = Statement(mock_raw_connection, sqlite_strategy, owner)
    stmt.execute('delete from t')
    stmt.execute('delete from t')
    assert owner.calls == 2


def test_prepared_placeholders_standardized(mock_raw_connection, sqlite_strategy):
    prepared = PreparedStatement(mock_raw_connection, sqlite_strategy,
                                 "insert into t values (%s, %s, '%s')")
    assert prepared.operation == "insert into t values (?, ?, '%s')"
    assert prepared.param_count == 2


def test_prepared_postgres_escapes_percent(mock_raw_connection, postgres_strategy):
    prepared = PreparedStatement(mock_raw_connection, postgres_strategy,
                                 "select * from t where name like 'a%' and id % 2 = ?")
    assert prepared.operation == "select * from t where name like 'a%%' and id %% 2 = %s"
    assert prepared.param_count == 1

    prepared.set_int(1, 0)
    prepared.execute()
    prepared.cursor.execute.assert_called_once_with(
        "select * from t where name like 'a%%' and id %% 2 = %s", (0,), prepare=True)


def test_prepared_sqlite_keeps_percent(mock_raw_connection, sqlite_strategy):
    prepared = PreparedStatement(mock_raw_connection, sqlite_strategy,
                                 "select * from t where name like 'a%' and id = %s")
    assert prepared.operation == "select * from t where name like 'a%' and id = ?"


def test_prepared_typed_setters(mock_raw_connection, postgres_strategy):
    prepared = PreparedStatement(mock_raw_connection, postgres_strategy,
                                 'insert into t values (?, ?, ?, ?, ?)')
    assert prepared.operation == 'insert into t values (%s, %s, %s, %s, %s)'
    prepared.set_int(1, '12')
    prepared.set_uint(2, 7)
    prepared.set_double(3, 1)
    prepared.set_string(4, 5)
    prepared.set_null(5)
    assert prepared.params == (12, 7, 1.0, '5', None)

    prepared.execute()
    prepared.cursor.execute.assert_called_once_with(
        'insert into t values (%s, %s, %s, %s, %s)', (12, 7, 1.0, '5', None), prepare=True)


def test_prepared_index_bounds(mock_raw_connection, sqlite_strategy):
    prepared = PreparedStatement(mock_raw_connection, sqlite_strategy, 'select ?')
    with pytest.raises(QueryError, match='out of range'):
        prepared.set_value(0, 1)
    with pytest.raises(QueryError, match='out of range'):
        prepared.set_value(2, 1)
    with pytest.raises(QueryError, match='negative'):
        prepared.set_uint(1, -1)


def test_prepared_set_params_count(mock_raw_connection, sqlite_strategy):
    prepared = PreparedStatement(mock_raw_connection, sqlite_strategy, 'select ?, ?')
    with pytest.raises(QueryError, match='Parameter count mismatch'):
        prepared.set_params(1)
    prepared.set_params(1, 'a')
    assert prepared.params == (1, 'a')


def test_prepared_requires_all_parameters(mock_raw_connection, sqlite_strategy):
    prepared = PreparedStatement(mock_raw_connection, sqlite_strategy, 'select ?, ?')
    prepared.set_value(1, 1)
    with pytest.raises(QueryError, match=r'Parameters not set: \[2\]'):
        prepared.execute()
    prepared.set_value(2, 2)
    prepared.clear_parameters()
    with pytest.raises(QueryError, match=r'\[1, 2\]'):
        prepared.execute()


def test_prepared_rebind_keeps_parameters(mock_raw_connection, sqlite_strategy):
    prepared = PreparedStatement(mock_raw_connection, sqlite_strategy, 'select ?')
    prepared.set_value(1, 'kept')
    old_cursor = prepared.cursor
    prepared.rebind(mock_raw_connection)
    old_cursor.close.assert_called_once()
    assert prepared.cursor is not old_cursor
    assert prepared.params == ('kept',)
