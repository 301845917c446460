from typing import Any, ClassVar, Dict, List, Type
from section_cdc.utils.logger import logger
from section_cdc.utils.exceptions import UnsupportedTypeError
from section_cdc.datasources.base import DataSource


class DataSourceFactory:
    """
    Registry of transports that can feed micro-batches into the handler.

    Data source classes register under a case-insensitive name; DS_TYPE picks
    one at startup.
    """

    REGISTRY: ClassVar[Dict[str, Type[DataSource]]] = {}

    @classmethod
    def register_datasource(
        cls, name: str, datasource_class: Type[DataSource]
    ) -> None:
        cls.REGISTRY[name.lower()] = datasource_class

    @classmethod
    def available(cls) -> List[str]:
        return sorted(cls.REGISTRY)

    @classmethod
    def create(cls, datasource_type: str, **kwargs: Any) -> DataSource:
        """
        Instantiate the data source registered under ``datasource_type``.

        Args:
            datasource_type (str): Registered name, any case.
            **kwargs: Passed to the data source constructor.

        Raises:
            UnsupportedTypeError: If nothing is registered under that name.
        """
        normalized_type = datasource_type.lower()
        datasource_class = cls.REGISTRY.get(normalized_type)
        if datasource_class is None:
            message = (
                f"Unsupported data source type: {datasource_type}. "
                f"Supported types: {cls.available()}"
            )
            logger.error(message)
            raise UnsupportedTypeError(message)

        logger.debug(f"Creating data source of type: {normalized_type}")
        return datasource_class(**kwargs)
