from typing import Iterable, List, Sequence, Tuple

from section_cdc.filters.base import ColumnFilter, after_accessor, before_accessor
from section_cdc.rows import ChangeKind, ChangeRow, UpdateRow
from section_cdc.utils.exceptions import ProcessingError


ClassifiedRow = Tuple[ChangeKind, ChangeRow]
Run = Tuple[ChangeKind, List[ChangeRow]]


def classify(row: UpdateRow, column_filter: ColumnFilter) -> Tuple[bool, bool]:
    """
    Evaluate ``column_filter`` against both images of ``row``.

    Each accessor closes over this row only and goes out of scope when the
    call returns, on success and on failure alike.

    Returns:
        Tuple[bool, bool]: (before_valid, after_valid)
    """
    before_valid = column_filter.validate(before_accessor(row))
    after_valid = column_filter.validate(after_accessor(row))
    return before_valid, after_valid


def reclassify(
    rows: Iterable[ChangeRow], column_filter: ColumnFilter
) -> List[ClassifiedRow]:
    """
    Decide the effective kind of every update row.

    - neither image valid: the row is dropped
    - only the after image valid: Insert, row projected with ``to_insert()``
    - only the before image valid: Delete, row projected with ``to_delete()``
    - both images valid: Update, row unchanged

    Args:
        rows: Update rows in received order.
        column_filter: Filter configured for the rows' table.

    Returns:
        List of (effective kind, row) pairs in received order, without the
        dropped rows.

    Raises:
        ProcessingError: If a row is not an update row.
    """
    classified: List[ClassifiedRow] = []
    for row in rows:
        if not isinstance(row, UpdateRow):
            raise ProcessingError(
                f"Only update rows can be reclassified, got {type(row).__name__}"
            )
        before_valid, after_valid = classify(row, column_filter)
        if before_valid and after_valid:
            classified.append((ChangeKind.UPDATE, row))
        elif after_valid:
            classified.append((ChangeKind.INSERT, row.to_insert()))
        elif before_valid:
            classified.append((ChangeKind.DELETE, row.to_delete()))
    return classified


def split_runs(classified: Sequence[ClassifiedRow]) -> List[Run]:
    """
    Group adjacent rows of equal effective kind into runs, keeping order.

    [(Insert, a), (Insert, b), (Delete, c)] becomes
    [(Insert, [a, b]), (Delete, [c])].
    """
    runs: List[Run] = []
    for kind, row in classified:
        if runs and runs[-1][0] is kind:
            runs[-1][1].append(row)
        else:
            runs.append((kind, [row]))
    return runs
