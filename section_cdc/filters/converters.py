from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, ClassVar, Dict

from section_cdc.utils.exceptions import UnsupportedTypeError


Converter = Callable[[str], Any]

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_TRUE_VALUES = frozenset(["1", "true", "yes", "on"])
_FALSE_VALUES = frozenset(["0", "false", "no", "off"])


def to_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot convert {value!r} to bool")


def to_decimal(value: str) -> Decimal:
    try:
        return Decimal(value.strip())
    except InvalidOperation:
        raise ValueError(f"Cannot convert {value!r} to decimal")


def to_datetime(value: str) -> datetime:
    return datetime.strptime(value.strip(), DATETIME_FORMAT)


class ConverterRegistry:
    """
    Registry of string value converters keyed by type name.

    Row images hold strings; range conditions convert both the bounds and the
    column value with the same converter before comparing.
    """

    REGISTRY: ClassVar[Dict[str, Converter]] = {
        "str": str,
        "int": lambda value: int(value.strip()),
        "float": lambda value: float(value.strip()),
        "decimal": to_decimal,
        "bool": to_bool,
        "datetime": to_datetime,
    }

    @classmethod
    def register_converter(cls, name: str, converter: Converter) -> None:
        cls.REGISTRY[name.lower()] = converter

    @classmethod
    def get(cls, name: str) -> Converter:
        """
        Look up a converter by type name.

        Raises:
            UnsupportedTypeError: If no converter is registered under ``name``.
        """
        normalized = name.lower()
        if normalized not in cls.REGISTRY:
            supported = list(cls.REGISTRY.keys())
            raise UnsupportedTypeError(
                f"Unsupported value type: {name}. Supported types: {supported}"
            )
        return cls.REGISTRY[normalized]
