from enum import Enum
from typing import Callable, Protocol, Union

from section_cdc.rows import UpdateRow


class _Absent:
    """Marker returned by an accessor for a column the row image lacks."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()

ColumnValue = Union[str, None, _Absent]
ColumnAccessor = Callable[[str], ColumnValue]


class MissingColumnPolicy(str, Enum):
    """
    What a column condition concludes when the referenced column is absent.

    INVALID: the condition fails (default).
    VALID: the condition passes.
    RAISE: evaluation raises FilterEvaluationError.
    """

    INVALID = "invalid"
    VALID = "valid"
    RAISE = "raise"


class ColumnFilter(Protocol):
    """Protocol for a predicate evaluated against one row image."""

    def validate(self, accessor: ColumnAccessor) -> bool:
        """Return True if the image read through ``accessor`` matches."""
        ...


def before_accessor(row: UpdateRow) -> ColumnAccessor:
    """Accessor bound to the before image of ``row``."""
    image = row.before

    def access(column: str) -> ColumnValue:
        return image.get(column, ABSENT)

    return access


def after_accessor(row: UpdateRow) -> ColumnAccessor:
    """Accessor bound to the after image of ``row``."""
    image = row.after

    def access(column: str) -> ColumnValue:
        return image.get(column, ABSENT)

    return access
