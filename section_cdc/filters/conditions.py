from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

from section_cdc.filters.base import (
    ABSENT,
    ColumnAccessor,
    ColumnFilter,
    MissingColumnPolicy,
)
from section_cdc.filters.converters import Converter
from section_cdc.utils.exceptions import FilterEvaluationError


class ColumnCondition(ABC):
    """Abstract base class for a condition on a single column.

    Subclasses implement ``matches`` for a present value (a string, or None
    for SQL NULL). What happens when the column is absent from the image is
    decided by the condition's MissingColumnPolicy.
    """

    def __init__(
        self,
        column: str,
        on_missing: MissingColumnPolicy = MissingColumnPolicy.INVALID,
    ):
        if not column:
            raise ValueError("Column name is required for a column condition")
        self.column = column
        self.on_missing = on_missing

    def validate(self, accessor: ColumnAccessor) -> bool:
        value = accessor(self.column)
        if value is ABSENT:
            if self.on_missing is MissingColumnPolicy.RAISE:
                raise FilterEvaluationError(
                    f"Column {self.column!r} is absent from the row image"
                )
            return self.on_missing is MissingColumnPolicy.VALID
        return self.matches(value)

    @abstractmethod
    def matches(self, value: Optional[str]) -> bool:
        """Decide whether a present column value satisfies the condition."""
        pass


class EqualCondition(ColumnCondition):
    """Column equals a fixed string value."""

    def __init__(self, column: str, value: Optional[str], **kwargs: Any):
        super().__init__(column, **kwargs)
        self.value = value

    def matches(self, value: Optional[str]) -> bool:
        return value == self.value

    def __repr__(self) -> str:
        return f"EqualCondition({self.column}={self.value!r})"


class InCondition(ColumnCondition):
    """Column value is one of a fixed set of strings."""

    def __init__(self, column: str, values: Iterable[Optional[str]], **kwargs: Any):
        super().__init__(column, **kwargs)
        self.values = frozenset(values)

    def matches(self, value: Optional[str]) -> bool:
        return value in self.values

    def __repr__(self) -> str:
        return f"InCondition({self.column} in {sorted(self.values)!r})"


class NotNullCondition(ColumnCondition):
    """Column is present and not SQL NULL."""

    def matches(self, value: Optional[str]) -> bool:
        return value is not None

    def __repr__(self) -> str:
        return f"NotNullCondition({self.column})"


class RangeCondition(ColumnCondition):
    """Column value, after conversion, lies within [start, end].

    Either bound may be None for an open range. NULL never matches. A value
    the converter rejects raises FilterEvaluationError rather than being
    treated as out of range.
    """

    def __init__(
        self,
        column: str,
        start: Any = None,
        end: Any = None,
        converter: Converter = str,
        **kwargs: Any,
    ):
        super().__init__(column, **kwargs)
        if start is None and end is None:
            raise ValueError(f"Range condition on {column!r} needs at least one bound")
        self.converter = converter
        self.start = start
        self.end = end

    def matches(self, value: Optional[str]) -> bool:
        if value is None:
            return False
        try:
            converted = self.converter(value)
        except (TypeError, ValueError) as e:
            raise FilterEvaluationError(
                f"Cannot convert value {value!r} of column {self.column!r}: {e}"
            ) from e
        if self.start is not None and converted < self.start:
            return False
        if self.end is not None and converted > self.end:
            return False
        return True

    def __repr__(self) -> str:
        return f"RangeCondition({self.column} in [{self.start!r}, {self.end!r}])"


class TableColumnCondition:
    """All-of combination of column conditions for one table.

    An empty condition list accepts every image.
    """

    def __init__(self, conditions: Optional[List[ColumnFilter]] = None):
        self.conditions: List[ColumnFilter] = list(conditions or [])

    def add_condition(self, condition: ColumnFilter) -> None:
        self.conditions.append(condition)

    def validate(self, accessor: ColumnAccessor) -> bool:
        return all(condition.validate(accessor) for condition in self.conditions)

    def __repr__(self) -> str:
        return f"TableColumnCondition({self.conditions!r})"
