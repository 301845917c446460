from typing import Any, Dict, Mapping, Optional
import json
from datetime import date, datetime, time, timedelta
from section_cdc.utils.logger import logger


class Serializer:
    """
    Utility class for turning binlog values into row images and messages.

    Row images carry every column value as a string (SQL NULL stays ``None``)
    so that column filters compare uniform values regardless of the MySQL
    column type. Messages sent downstream are made JSON-compatible, with a
    fallback to string conversion for objects JSON cannot represent.
    """

    def serialize_value(self, value: Any) -> Optional[str]:
        """
        Convert a single column value to its string form.

        Args:
            value (Any): Value decoded by the binlog reader.

        Returns:
            Optional[str]: String form of the value, or None for SQL NULL.
        """
        if value is None:
            return None
        if isinstance(value, str):
            return value
        if isinstance(value, bytes):
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError:
                return value.hex()
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, datetime):
            return value.strftime("%Y-%m-%d %H:%M:%S")
        if isinstance(value, (date, time)):
            return value.isoformat()
        if isinstance(value, timedelta):
            return str(value)
        if isinstance(value, (dict, list)):
            return json.dumps(value, default=str)
        return str(value)

    def serialize_image(self, values: Optional[Mapping[Any, Any]]) -> Dict[str, Optional[str]]:
        """Convert a column->value mapping into a column->string row image."""
        if not values:
            return {}
        return {str(column): self.serialize_value(value) for column, value in values.items()}

    def serialize(self, data: Any) -> Any:
        """
        Serialize data to a JSON-compatible format.

        Args:
            data (Any): The data to serialize.

        Returns:
            Any: The serialized data, either as a JSON-compatible structure or a string.
        """
        try:
            return json.loads(json.dumps(data, default=str))
        except (TypeError, ValueError) as e:
            logger.debug(
                f"Serialization exception: {e}, converting entire object to string"
            )
            return str(data)
