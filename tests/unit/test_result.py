from decimal import Decimal

import pandas as pd
import pytest
from sqlbind.exceptions import InvalidColumnError, QueryError
from sqlbind.exceptions import ResultSetClosedError, TypeConversionError
from sqlbind.result import ResultSet


@pytest.fixture
def result():
    return ResultSet(
        ['id', 'Name', 'price', 'code', 'blob'],
        [
            (1, 'Alice', 1.5, '7', b'abc'),
            (-2, 'Bob', Decimal('2.50'), 'x', None),
        ],
        'select * from t')


def test_navigation(result):
    assert result.rows_count() == 2
    assert result.column_count() == 5
    assert result.column_names == ('id', 'Name', 'price', 'code', 'blob')
    assert result.next() is True
    assert result.get_row() == (1, 'Alice', 1.5, '7', b'abc')
    assert result.next() is True
    assert result.next() is False
    assert result.next() is False


def test_read_before_next_raises(result):
    with pytest.raises(QueryError, match='No current row'):
        result.get_int64(1)


def test_read_after_exhaustion_raises(result):
    while result.next():
        pass
    with pytest.raises(QueryError):
        result.get_string(1)


@pytest.mark.parametrize('idx', [0, 6, -1])
def test_column_index_out_of_range(result, idx):
    """Column indices are 1-based and bounded by the row width"""
    result.next()
    with pytest.raises(InvalidColumnError):
        result.get_string(idx)


def test_typed_accessors(result):
    result.next()
    assert result.get_int64(1) == 1
    assert result.get_uint64(1) == 1
    assert result.get_double(1) == 1.0
    assert result.get_string(2) == 'Alice'
    assert result.get_double(3) == 1.5
    assert result.get_int64(3) == 1
    assert result.get_int64(4) == 7
    assert result.get_double(4) == 7.0
    assert result.get_string(5) == 'abc'

    result.next()
    assert result.get_int64(1) == -2
    assert result.get_double(3) == 2.5
    assert result.get_string(3) == '2.50'


def test_null_reads_as_zero_value(result):
    result.next()
    result.next()
    assert result.get_string(5) == ''
    assert result.was_null() is True
    assert result.get_int64(5) == 0
    assert result.get_uint64(5) == 0
    assert result.get_double(5) == 0.0
    assert result.get_string(2) == 'Bob'
    assert result.was_null() is False


def test_uint64_rejects_negative(result):
    result.next()
    result.next()
    with pytest.raises(TypeConversionError, match='unsigned'):
        result.get_uint64(1)


def test_non_numeric_text_rejected(result):
    result.next()
    result.next()
    with pytest.raises(TypeConversionError):
        result.get_int64(4)
    with pytest.raises(TypeConversionError):
        result.get_double(4)
    with pytest.raises(TypeConversionError):
        result.get_int64(2)


def test_int64_range():
    rs = ResultSet(['big', 'huge'], [(2 ** 63 - 1, 2 ** 63)])
    rs.next()
    assert rs.get_int64(1) == 2 ** 63 - 1
    with pytest.raises(TypeConversionError, match='signed 64-bit'):
        rs.get_int64(2)
    assert rs.get_uint64(2) == 2 ** 63


def test_invalid_utf8_bytes():
    rs = ResultSet(['b'], [(b'\xff\xfe',)])
    rs.next()
    with pytest.raises(TypeConversionError):
        rs.get_string(1)


def test_find_column(result):
    assert result.find_column('name') == 2
    assert result.find_column('PRICE') == 3
    with pytest.raises(InvalidColumnError):
        result.find_column('missing')


def test_closed_result_rejects_reads(result):
    """A superseded result can no longer be observed"""
    result.next()
    result.close()
    assert result.closed is True
    for call in (result.next, result.rows_count, result.get_row,
                 lambda: result.get_int64(1), result.to_frame):
        with pytest.raises(ResultSetClosedError):
            call()


def test_from_cursor(create_mock_cursor):
    cursor = create_mock_cursor(['id', 'name'], [(1, 'a'), (2, 'b')])
    rs = ResultSet.from_cursor(cursor, 'select id, name from t')
    assert rs.column_names == ('id', 'name')
    assert rs.rows_count() == 2
    assert rs.sql == 'select id, name from t'
    cursor.fetchall.assert_called_once()


def test_to_frame(result):
    df = result.to_frame()
    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == ['id', 'Name', 'price', 'code', 'blob']
    assert df['Name'].tolist() == ['Alice', 'Bob']


def test_to_frame_empty_keeps_columns():
    df = ResultSet(['a', 'b'], []).to_frame()
    assert df.empty
    assert list(df.columns) == ['a', 'b']
