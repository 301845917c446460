"""Column filters evaluated against row images.

Update rows are re-evaluated against the configured filter of their table,
once with the before image and once with the after image, to decide whether
a consumer tracking only matched rows should see an insert, an update, a
delete, or nothing.

Key components:
- ColumnFilter: Protocol for anything with ``validate(accessor) -> bool``
- ColumnCondition: Abstract base class for single-column conditions
- TableColumnCondition: All-of combination of column conditions
- FilterFactory: Builds a TableColumnCondition from table configuration
- MissingColumnPolicy: What an absent column means for a condition
"""

from section_cdc.filters.base import (
    ABSENT,
    ColumnAccessor,
    ColumnFilter,
    MissingColumnPolicy,
    after_accessor,
    before_accessor,
)
from section_cdc.filters.conditions import (
    ColumnCondition,
    EqualCondition,
    InCondition,
    NotNullCondition,
    RangeCondition,
    TableColumnCondition,
)
from section_cdc.filters.factory import FilterFactory

__all__ = [
    "ABSENT",
    "ColumnAccessor",
    "ColumnFilter",
    "MissingColumnPolicy",
    "after_accessor",
    "before_accessor",
    "ColumnCondition",
    "EqualCondition",
    "InCondition",
    "NotNullCondition",
    "RangeCondition",
    "TableColumnCondition",
    "FilterFactory",
]
