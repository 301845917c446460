from abc import ABC, abstractmethod
from typing import Iterator

from section_cdc.rows import RowBatch


class DataSource(ABC):
    """
    Base abstract class for all data source implementations.

    A data source is the transport side of the pipeline: it connects to a
    change log and yields micro-batches in log order. Every RowBatch it yields
    holds rows of a single (schema, table, kind).
    """

    @abstractmethod
    def connect(self) -> None:
        """
        Connect to the data source.

        Raises:
            DataSourceError: If connection fails.
        """
        pass

    @abstractmethod
    def listen(self) -> Iterator[RowBatch]:
        """
        Yield micro-batches from the data source, in log order.

        Raises:
            DataSourceError: If listening fails.
        """
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """
        Disconnect from the data source.

        Raises:
            DataSourceError: If disconnection fails.
        """
        pass

    @abstractmethod
    def get_source_type(self) -> str:
        """
        Get the type identifier for this datasource.

        Returns:
            str: A string identifier for the type of this datasource.
        """
        pass

    @abstractmethod
    def get_source_id(self) -> str:
        """
        Get the unique identifier for this datasource instance.

        Returns:
            str: A string uniquely identifying this datasource instance.
        """
        pass
