"""
Typed output slots and the closed mapping from slot type to column accessor.

The kind of a slot is resolved once, from the type given at the call site,
by exact type identity. There is no fallback coercion: a type missing from
the mapping has no kind, and binding into it fails.

    >>> Slot(int).kind
    <ColumnKind.INT64: 'get_int64'>
    >>> Slot(np.uint32).kind
    <ColumnKind.UINT64: 'get_uint64'>
    >>> Slot(bool).kind is None
    True
"""
from enum import Enum
from typing import Any, Generic, TypeVar

import numpy as np
from sqlbind.exceptions import TypeConversionError

__all__ = [
    'ColumnKind',
    'Slot',
    'column_kind',
    'supported_types',
    'convert_to_slot_type',
]


class ColumnKind(Enum):
    """Accessor family used to read a column; the value names the accessor."""
    DOUBLE = 'get_double'
    INT64 = 'get_int64'
    UINT64 = 'get_uint64'
    STRING = 'get_string'

    @property
    def accessor(self) -> str:
        return self.value


_KINDS: dict[type, ColumnKind] = {
    float: ColumnKind.DOUBLE,
    np.float32: ColumnKind.DOUBLE,
    np.float64: ColumnKind.DOUBLE,
    int: ColumnKind.INT64,
    np.int32: ColumnKind.INT64,
    np.int64: ColumnKind.INT64,
    np.uint32: ColumnKind.UINT64,
    np.uint64: ColumnKind.UINT64,
    str: ColumnKind.STRING,
}

T = TypeVar('T', float, np.float32, np.float64, int, np.int32, np.int64,
            np.uint32, np.uint64, str)


def column_kind(type_: Any) -> ColumnKind | None:
    """Return the accessor kind for a slot type, or None when unsupported."""
    try:
        return _KINDS.get(type_)
    except TypeError:
        return None


def supported_types() -> tuple[type, ...]:
    """Types that can be used as extraction targets."""
    return tuple(_KINDS)


def type_name(type_: Any) -> str:
    return getattr(type_, '__qualname__', None) or repr(type_)


def convert_to_slot_type(type_: type, raw: Any) -> Any:
    """Narrow an accessor result to the slot type.

    Fixed-width numpy integers reject values outside their range instead of
    wrapping around.
    """
    if type_ in {np.int32, np.int64, np.uint32, np.uint64}:
        info = np.iinfo(type_)
        if not info.min <= raw <= info.max:
            raise TypeConversionError(f'{raw} out of range for {type_name(type_)}')
    return type_(raw)


class Slot(Generic[T]):
    """Typed output holder filled by the result binder.

    The slot keeps its previous value until a bind into it succeeds, so a
    failed extraction never leaves a partially converted value behind.
    """

    __slots__ = ('type', 'kind', 'value')

    def __init__(self, type_: type[T], value: T | None = None) -> None:
        self.type = type_
        self.kind = column_kind(type_)
        self.value = value

    @property
    def type_name(self) -> str:
        return type_name(self.type)

    def assign(self, raw: Any) -> None:
        """Convert an accessor result and store it."""
        self.value = convert_to_slot_type(self.type, raw)

    def __repr__(self) -> str:
        return f'Slot({self.type_name}, value={self.value!r})'
