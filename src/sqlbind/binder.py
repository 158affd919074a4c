"""
Type-directed extraction of result columns into typed slots.

Each slot reads its column through the accessor named by its ColumnKind.
Multi-column binding walks consecutive columns from a starting index and
stops at the first slot that fails, so slots after the failing one keep
their previous values.

Unsupported slot types and values that do not convert are reported through
a False return (and ``ResultBinder.error``). Contract violations such as a
column index past the end of the row, or reading a closed result, raise.
"""
import logging

from sqlbind.exceptions import DatabaseError, TypeConversionError
from sqlbind.exceptions import UnsupportedTypeError
from sqlbind.result import ResultSet
from sqlbind.types import Slot

__all__ = ['ResultBinder', 'bind_value', 'bind_values']

logger = logging.getLogger(__name__)


class ResultBinder:
    """Binds columns of the current row of a ResultSet into slots.
    """

    def __init__(self, result: ResultSet) -> None:
        self.result = result
        self.error: DatabaseError | None = None

    def bind(self, index: int, slot: Slot) -> bool:
        """Fill ``slot`` from column ``index`` (1-based) of the current row."""
        if slot.kind is None:
            logger.error(f'Unsupported type: {slot.type_name}')
            self.error = UnsupportedTypeError(f'Unsupported type: {slot.type_name}')
            return False

        accessor = getattr(self.result, slot.kind.accessor)
        try:
            slot.assign(accessor(index))
        except TypeConversionError as err:
            logger.error(f'Column {index} into {slot.type_name}: {err}')
            self.error = err
            return False
        return True

    def bind_all(self, index: int, *slots: Slot) -> bool:
        """Fill ``slots`` from columns ``index``, ``index + 1``, ... in order.
        """
        for offset, slot in enumerate(slots):
            if not self.bind(index + offset, slot):
                return False
        return True


def bind_value(result: ResultSet, index: int, slot: Slot) -> bool:
    """Bind a single column of the current row."""
    return ResultBinder(result).bind(index, slot)


def bind_values(result: ResultSet, index: int, *slots: Slot) -> bool:
    """Bind consecutive columns of the current row, starting at ``index``."""
    return ResultBinder(result).bind_all(index, *slots)
