import pytest
from unittest.mock import MagicMock
from section_cdc.filters.conditions import EqualCondition
from section_cdc.processing.reclassifier import classify, reclassify, split_runs
from section_cdc.rows import ChangeKind, DeleteRow, InsertRow, UpdateRow
from section_cdc.utils.exceptions import ProcessingError


def update(row_id, before_status, after_status):
    return UpdateRow(
        before={"id": row_id, "status": before_status},
        after={"id": row_id, "status": after_status},
    )


class TestReclassify:
    """Test cases for the effective kind of update rows"""

    @pytest.fixture
    def active_filter(self):
        return EqualCondition("status", "active")

    def test_classify_reads_both_images(self, active_filter):
        assert classify(update("1", "active", "gone"), active_filter) == (True, False)
        assert classify(update("1", "gone", "active"), active_filter) == (False, True)

    def test_effective_kinds(self, active_filter):
        """Test the four combinations of before and after validity."""
        rows = [
            update("1", "active", "active"),
            update("2", "active", "gone"),
            update("3", "gone", "gone"),
            update("4", "gone", "active"),
        ]

        classified = reclassify(rows, active_filter)

        assert [kind for kind, _ in classified] == [
            ChangeKind.UPDATE,
            ChangeKind.DELETE,
            ChangeKind.INSERT,
        ]
        assert classified[0][1] is rows[0]
        assert classified[1][1] == DeleteRow(before=rows[1].before)
        assert classified[2][1] == InsertRow(after=rows[3].after)

    def test_input_is_not_mutated(self, active_filter):
        rows = [update("1", "active", "gone")]

        reclassify(rows, active_filter)

        assert rows == [update("1", "active", "gone")]

    def test_dropped_row_leaves_neighbours_adjacent(self, active_filter):
        rows = [
            update("1", "active", "gone"),
            update("2", "gone", "gone"),
            update("3", "active", "gone"),
        ]

        runs = split_runs(reclassify(rows, active_filter))

        assert runs == [
            (ChangeKind.DELETE, [rows[0].to_delete(), rows[2].to_delete()])
        ]

    def test_empty_input(self, active_filter):
        assert reclassify([], active_filter) == []

    def test_non_update_row_rejected(self, active_filter):
        with pytest.raises(ProcessingError):
            reclassify([InsertRow(after={"status": "active"})], active_filter)

    def test_filter_failure_propagates(self):
        failing_filter = MagicMock()
        failing_filter.validate.side_effect = RuntimeError("bad filter")

        with pytest.raises(RuntimeError, match="bad filter"):
            reclassify([update("1", "active", "active")], failing_filter)

    def test_accessors_are_bound_to_one_row(self, active_filter):
        """Test that every evaluation sees only the row it was built for."""
        seen = []

        class RecordingFilter:
            def validate(self, accessor):
                seen.append(accessor("id"))
                return True

        reclassify([update("1", "a", "b"), update("2", "a", "b")], RecordingFilter())

        assert seen == ["1", "1", "2", "2"]


class TestSplitRuns:
    """Test cases for grouping classified rows into runs"""

    def test_adjacent_equal_kinds_merge(self):
        a, b, c = object(), object(), object()

        runs = split_runs(
            [(ChangeKind.INSERT, a), (ChangeKind.INSERT, b), (ChangeKind.DELETE, c)]
        )

        assert runs == [(ChangeKind.INSERT, [a, b]), (ChangeKind.DELETE, [c])]

    def test_alternating_kinds_never_merge(self):
        a, b, c = object(), object(), object()

        runs = split_runs(
            [(ChangeKind.UPDATE, a), (ChangeKind.DELETE, b), (ChangeKind.UPDATE, c)]
        )

        assert [kind for kind, _ in runs] == [
            ChangeKind.UPDATE,
            ChangeKind.DELETE,
            ChangeKind.UPDATE,
        ]

    def test_empty(self):
        assert split_runs([]) == []

    def test_order_preserved(self):
        rows = [object() for _ in range(5)]

        runs = split_runs([(ChangeKind.UPDATE, r) for r in rows])

        assert runs == [(ChangeKind.UPDATE, rows)]
