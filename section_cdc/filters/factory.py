from typing import Any, List, Mapping, Optional

from section_cdc.filters.base import ColumnFilter, MissingColumnPolicy
from section_cdc.filters.conditions import (
    EqualCondition,
    InCondition,
    NotNullCondition,
    RangeCondition,
    TableColumnCondition,
)
from section_cdc.filters.converters import ConverterRegistry
from section_cdc.utils.exceptions import ConfigurationError
from section_cdc.utils.logger import logger
from section_cdc.utils.serializer import Serializer


class FilterFactory:
    """Factory for building column filters from table configuration.

    A filter spec maps column names to operator mappings, for example::

        {
            "status": {"eq": "active"},
            "region": {"in": ["eu", "us"]},
            "amount": {"range": [10, null], "type": "int"},
            "email": {"not_null": true, "on_missing": "raise"}
        }

    Every column condition must hold for an image to be valid. Operands are
    compared in the string form row images use, so ``true`` matches "1" and
    ``null`` matches SQL NULL. A range without ``type`` compares as ``int``, or
    ``decimal`` if a bound has a fraction, when a bound is a JSON number.
    """

    OPERATORS = ("eq", "in", "range", "not_null")

    @classmethod
    def create_filter(
        cls,
        spec: Optional[Mapping[str, Mapping[str, Any]]],
        on_missing: MissingColumnPolicy = MissingColumnPolicy.INVALID,
    ) -> Optional[TableColumnCondition]:
        """Create a TableColumnCondition from a filter spec.

        Args:
            spec: Column -> operator mapping. None or empty means no filter.
            on_missing: Default policy for columns absent from an image.

        Returns:
            The combined condition, or None when the spec is empty.

        Raises:
            ConfigurationError: If the spec is malformed.
        """
        if not spec:
            return None
        if not isinstance(spec, Mapping):
            raise ConfigurationError(f"Filter spec must be a mapping, got {type(spec).__name__}")

        conditions: List[ColumnFilter] = []
        for column, operators in spec.items():
            conditions.extend(cls._create_column_conditions(column, operators, on_missing))

        logger.debug(f"Created column filter with {len(conditions)} conditions")
        return TableColumnCondition(conditions)

    @classmethod
    def _create_column_conditions(
        cls,
        column: str,
        operators: Mapping[str, Any],
        default_on_missing: MissingColumnPolicy,
    ) -> List[ColumnFilter]:
        if not isinstance(operators, Mapping):
            raise ConfigurationError(f"Filter for column {column!r} must be a mapping")

        unknown = set(operators) - set(cls.OPERATORS) - {"type", "on_missing"}
        if unknown:
            raise ConfigurationError(
                f"Unknown filter operators for column {column!r}: {sorted(unknown)}. "
                f"Supported operators: {list(cls.OPERATORS)}"
            )

        try:
            on_missing = MissingColumnPolicy(operators.get("on_missing", default_on_missing))
        except ValueError:
            raise ConfigurationError(
                f"Invalid on_missing policy for column {column!r}: {operators['on_missing']}"
            )

        conditions: List[ColumnFilter] = []
        if "eq" in operators:
            conditions.append(
                EqualCondition(column, cls._operand(operators["eq"]), on_missing=on_missing)
            )
        if "in" in operators:
            values = operators["in"]
            if not isinstance(values, list):
                raise ConfigurationError(f"'in' filter for column {column!r} must be a list")
            conditions.append(
                InCondition(column, [cls._operand(v) for v in values], on_missing=on_missing)
            )
        if "range" in operators:
            conditions.append(cls._create_range(column, operators, on_missing))
        if operators.get("not_null"):
            conditions.append(NotNullCondition(column, on_missing=on_missing))

        if not conditions:
            raise ConfigurationError(f"No filter operator given for column {column!r}")
        return conditions

    @staticmethod
    def _operand(value: Any) -> Optional[str]:
        # Same string form as row images: true -> "1", null -> SQL NULL
        return Serializer().serialize_value(value)

    @staticmethod
    def _infer_range_type(bounds: List[Any]) -> str:
        numbers = [b for b in bounds if isinstance(b, (int, float)) and not isinstance(b, bool)]
        if any(isinstance(b, float) for b in numbers):
            return "decimal"
        if numbers:
            return "int"
        return "str"

    @classmethod
    def _create_range(
        cls, column: str, operators: Mapping[str, Any], on_missing: MissingColumnPolicy
    ) -> RangeCondition:
        bounds = operators["range"]
        if not isinstance(bounds, list) or len(bounds) != 2:
            raise ConfigurationError(
                f"'range' filter for column {column!r} must be a [start, end] list"
            )

        converter = ConverterRegistry.get(
            operators.get("type") or cls._infer_range_type(bounds)
        )
        try:
            start, end = (None if b is None else converter(str(b)) for b in bounds)
            return RangeCondition(column, start, end, converter=converter, on_missing=on_missing)
        except ValueError as e:
            raise ConfigurationError(f"Invalid range for column {column!r}: {e}")
