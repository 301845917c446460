from datetime import datetime
from decimal import Decimal
import pytest
from section_cdc.filters.base import (
    ABSENT,
    MissingColumnPolicy,
    after_accessor,
    before_accessor,
)
from section_cdc.filters.conditions import (
    EqualCondition,
    InCondition,
    NotNullCondition,
    RangeCondition,
    TableColumnCondition,
)
from section_cdc.filters.converters import ConverterRegistry, to_bool
from section_cdc.rows import UpdateRow
from section_cdc.utils.exceptions import FilterEvaluationError, UnsupportedTypeError


def accessor_for(image):
    """Accessor over a plain dict, like the ones bound to row images."""
    return lambda column: image.get(column, ABSENT)


class TestAccessors:
    """Test cases for accessors bound to update row images"""

    @pytest.fixture
    def row(self):
        return UpdateRow(before={"status": "active"}, after={"status": None})

    def test_before_accessor_reads_before_image(self, row):
        assert before_accessor(row)("status") == "active"

    def test_after_accessor_reads_after_image(self, row):
        assert after_accessor(row)("status") is None

    def test_absent_column_is_not_null(self, row):
        """Test that a missing column is distinguishable from SQL NULL."""
        value = after_accessor(row)("missing")

        assert value is ABSENT
        assert value is not None
        assert not value

    def test_accessors_are_independent_per_row(self, row):
        """Test that an accessor never sees another row's data."""
        first = before_accessor(row)
        second = before_accessor(UpdateRow(before={"status": "other"}, after={}))

        assert first("status") == "active"
        assert second("status") == "other"


class TestEqualAndInConditions:
    """Test cases for equality based conditions"""

    def test_equal_matches(self):
        condition = EqualCondition("status", "active")

        assert condition.validate(accessor_for({"status": "active"}))
        assert not condition.validate(accessor_for({"status": "archived"}))
        assert not condition.validate(accessor_for({"status": None}))

    def test_in_matches(self):
        condition = InCondition("region", ["eu", "us"])

        assert condition.validate(accessor_for({"region": "eu"}))
        assert not condition.validate(accessor_for({"region": "apac"}))

    def test_not_null(self):
        condition = NotNullCondition("email")

        assert condition.validate(accessor_for({"email": "a@b.c"}))
        assert not condition.validate(accessor_for({"email": None}))

    def test_column_name_required(self):
        with pytest.raises(ValueError):
            EqualCondition("", "x")


class TestMissingColumnPolicy:
    """Test cases for conditions referencing absent columns"""

    def test_invalid_by_default(self):
        condition = EqualCondition("status", "active")

        assert condition.validate(accessor_for({})) is False

    def test_valid_policy(self):
        condition = EqualCondition("status", "active", on_missing=MissingColumnPolicy.VALID)

        assert condition.validate(accessor_for({})) is True

    def test_raise_policy(self):
        condition = NotNullCondition("email", on_missing=MissingColumnPolicy.RAISE)

        with pytest.raises(FilterEvaluationError) as exc_info:
            condition.validate(accessor_for({}))

        assert "email" in str(exc_info.value)

    def test_policy_does_not_affect_null(self):
        """Test that a present NULL value is judged by the condition itself."""
        condition = EqualCondition("status", "active", on_missing=MissingColumnPolicy.VALID)

        assert condition.validate(accessor_for({"status": None})) is False


class TestRangeCondition:
    """Test cases for range conditions with value conversion"""

    def test_closed_int_range(self):
        condition = RangeCondition("amount", 10, 20, converter=ConverterRegistry.get("int"))

        assert condition.validate(accessor_for({"amount": "10"}))
        assert condition.validate(accessor_for({"amount": "20"}))
        assert not condition.validate(accessor_for({"amount": "9"}))
        assert not condition.validate(accessor_for({"amount": "21"}))

    def test_open_ended_range(self):
        condition = RangeCondition(
            "amount", start=Decimal("10.5"), converter=ConverterRegistry.get("decimal")
        )

        assert condition.validate(accessor_for({"amount": "1000"}))
        assert not condition.validate(accessor_for({"amount": "10.49"}))

    def test_datetime_range(self):
        condition = RangeCondition(
            "created_at",
            end=datetime(2024, 1, 1),
            converter=ConverterRegistry.get("datetime"),
        )

        assert condition.validate(accessor_for({"created_at": "2023-12-31 23:59:59"}))
        assert not condition.validate(accessor_for({"created_at": "2024-01-01 00:00:01"}))

    def test_null_never_in_range(self):
        condition = RangeCondition("amount", 0, converter=int)

        assert not condition.validate(accessor_for({"amount": None}))

    def test_unconvertible_value_raises(self):
        condition = RangeCondition("amount", 0, converter=ConverterRegistry.get("int"))

        with pytest.raises(FilterEvaluationError):
            condition.validate(accessor_for({"amount": "abc"}))

    def test_bounds_required(self):
        with pytest.raises(ValueError):
            RangeCondition("amount")


class TestTableColumnCondition:
    """Test cases for combined table conditions"""

    def test_all_conditions_must_hold(self):
        condition = TableColumnCondition(
            [EqualCondition("status", "active"), NotNullCondition("email")]
        )

        assert condition.validate(accessor_for({"status": "active", "email": "x"}))
        assert not condition.validate(accessor_for({"status": "active", "email": None}))
        assert not condition.validate(accessor_for({"status": "gone", "email": "x"}))

    def test_empty_condition_accepts_everything(self):
        assert TableColumnCondition().validate(accessor_for({}))

    def test_add_condition(self):
        condition = TableColumnCondition()
        condition.add_condition(EqualCondition("status", "active"))

        assert len(condition.conditions) == 1
        assert not condition.validate(accessor_for({"status": "gone"}))


class TestConverters:
    """Test cases for string value converters"""

    def test_bool_converter(self):
        assert to_bool("1") is True
        assert to_bool(" TRUE ") is True
        assert to_bool("off") is False
        with pytest.raises(ValueError):
            to_bool("maybe")

    def test_unknown_converter(self):
        with pytest.raises(UnsupportedTypeError) as exc_info:
            ConverterRegistry.get("uuid")

        assert "Supported types" in str(exc_info.value)

    def test_register_converter(self):
        original = ConverterRegistry.REGISTRY.copy()
        try:
            ConverterRegistry.register_converter("Upper", str.upper)
            assert ConverterRegistry.get("upper")("abc") == "ABC"
        finally:
            ConverterRegistry.REGISTRY = original
