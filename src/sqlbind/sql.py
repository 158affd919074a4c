"""
SQL text helpers for parameterized statements.

Only placeholder handling lives here: prepared statements may be written with
either ``%s`` or ``?`` markers and are rewritten to the marker the driver of
the active dialect expects. Placeholders inside string literals are never
rewritten.
"""
import re
from dataclasses import dataclass
from enum import Enum, auto

__all__ = [
    'TokenType',
    'Token',
    'tokenize_sql',
    'has_placeholders',
    'count_placeholders',
    'standardize_placeholders',
    'escape_percent_signs',
]


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    POSITIONAL_PH = auto()      # %s or ?


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    start: int
    end: int


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<percent_s>%s)
    |(?P<qmark>\?)
""", re.VERBOSE)

_HAS_PLACEHOLDER = re.compile(r'%s|\?')

_LONE_PERCENT = re.compile(r'(?<!%)%(?!%)')

PLACEHOLDER_STYLES = ('%s', '?')


def tokenize_sql(sql: str) -> list[Token]:
    """Parse SQL into tokens in a single pass.

    Parameters
        sql: SQL query string

    Returns
        List of tokens preserving all SQL text
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start], last_end, start))

        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        else:
            ttype = TokenType.POSITIONAL_PH

        tokens.append(Token(ttype, match.group(0), start, end))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def has_placeholders(sql: str | None) -> bool:
    """Quick check whether the SQL contains any positional marker."""
    if not sql:
        return False
    return bool(_HAS_PLACEHOLDER.search(sql))


def count_placeholders(sql: str) -> int:
    """Count positional markers outside of string literals.

    >>> count_placeholders("select * from t where a = %s and b = '?'")
    1
    >>> count_placeholders('insert into t values (?, ?)')
    2
    """
    if not has_placeholders(sql):
        return 0
    return sum(1 for token in tokenize_sql(sql) if token.type == TokenType.POSITIONAL_PH)


def standardize_placeholders(sql: str, style: str = '%s') -> str:
    """Convert placeholders between %s and ? styles.

    Parameters
        sql: SQL query string
        style: Target placeholder marker, ``%s`` or ``?``

    Returns
        SQL with standardized placeholders

    >>> standardize_placeholders('select %s, \\'%s\\'', '?')
    "select ?, '%s'"
    >>> standardize_placeholders('select ?', '%s')
    'select %s'
    """
    if style not in PLACEHOLDER_STYLES:
        raise ValueError(f'Unsupported placeholder style: {style}')

    if not has_placeholders(sql):
        return sql

    result = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.POSITIONAL_PH:
            result.append(style)
        else:
            result.append(token.text)
    return ''.join(result)


def escape_percent_signs(sql: str) -> str:
    """Double every lone ``%`` that is not a ``%s`` placeholder.

    Needed for drivers that parse ``%`` in the statement text whenever
    parameters are passed (psycopg). Already doubled ``%%`` is kept.

    >>> escape_percent_signs("select * from t where a like 'x%' and b = %s")
    "select * from t where a like 'x%%' and b = %s"
    >>> escape_percent_signs('select 7 % 2, 100 %% 3')
    'select 7 %% 2, 100 %% 3'
    """
    if not sql or '%' not in sql:
        return sql

    result = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.POSITIONAL_PH:
            result.append(token.text)
        else:
            result.append(_LONE_PERCENT.sub('%%', token.text))
    return ''.join(result)


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
