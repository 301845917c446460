class SectionCDCError(Exception):
    """Base exception for all section-cdc errors."""

    pass


class ConfigurationError(SectionCDCError):
    """Raised when there is an issue with configuration settings."""

    pass


class TableConfigNotFoundError(ConfigurationError):
    """Raised when no table configuration is registered for a schema and table."""

    def __init__(self, schema: str, table: str):
        self.schema = schema
        self.table = table
        super().__init__(f"No table configuration registered for {schema}.{table}")


class UnsupportedTypeError(SectionCDCError):
    """Raised when an unsupported type is requested from a factory."""

    pass


class DataSourceError(SectionCDCError):
    """Raised when there is an issue with a data source operation."""

    pass


class ActionError(SectionCDCError):
    """Raised when a bundled table action fails to handle dispatched rows."""

    pass


class FilterEvaluationError(SectionCDCError):
    """Raised when a column filter cannot be evaluated against a row image."""

    pass


class ProcessingError(SectionCDCError):
    """Raised when there is an issue with data processing."""

    pass


class SerializationError(SectionCDCError):
    """Raised when there is an issue with data serialization."""

    pass
