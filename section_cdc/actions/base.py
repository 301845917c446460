from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Sequence, Tuple

from section_cdc.filters.base import ColumnFilter
from section_cdc.rows import DeleteRow, InsertRow, UpdateRow
from section_cdc.utils.exceptions import TableConfigNotFoundError
from section_cdc.utils.logger import logger


class TableAction(ABC):
    """
    Base abstract class for the downstream handling of one table's changes.

    The handler calls exactly one of the ``on_*`` methods per dispatched run,
    with the run's rows in their original order. The sequence passed in is a
    read-only view; implementations must not keep a reference expecting it to
    stay valid after they return.
    """

    @abstractmethod
    def on_insert(self, rows: Sequence[InsertRow]) -> None:
        """
        Handle a run of inserted rows.

        Args:
            rows (Sequence[InsertRow]): Rows in original order.
        """
        pass

    @abstractmethod
    def on_update(self, rows: Sequence[UpdateRow]) -> None:
        """
        Handle a run of updated rows.

        Args:
            rows (Sequence[UpdateRow]): Rows in original order.
        """
        pass

    @abstractmethod
    def on_delete(self, rows: Sequence[DeleteRow]) -> None:
        """
        Handle a run of deleted rows.

        Args:
            rows (Sequence[DeleteRow]): Rows in original order.
        """
        pass

    def close(self) -> None:
        """Release any resources held by the action."""
        pass


@dataclass(frozen=True)
class TableConfig:
    """Action and optional column filter registered for one table."""

    action: TableAction
    column_filter: Optional[ColumnFilter] = None


class SchemaTables:
    """
    Lookup of table configuration by (schema, table).

    Only the delivery thread reads this once the pipeline runs; registration
    happens during startup.
    """

    def __init__(self) -> None:
        self._tables: Dict[Tuple[str, str], TableConfig] = {}

    def register(
        self,
        schema: str,
        table: str,
        action: TableAction,
        column_filter: Optional[ColumnFilter] = None,
    ) -> None:
        key = (schema, table)
        if key in self._tables:
            logger.warning(f"Replacing table configuration for {schema}.{table}")
        self._tables[key] = TableConfig(action=action, column_filter=column_filter)

    def lookup(self, schema: str, table: str) -> TableConfig:
        """
        Resolve the configuration of a table.

        Raises:
            TableConfigNotFoundError: If the table was never registered.
        """
        try:
            return self._tables[(schema, table)]
        except KeyError:
            raise TableConfigNotFoundError(schema, table) from None

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._tables

    def __len__(self) -> int:
        return len(self._tables)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._tables)

    def close(self) -> None:
        """Close every distinct action once, logging but not raising failures."""
        seen = set()
        for config in self._tables.values():
            if id(config.action) in seen:
                continue
            seen.add(id(config.action))
            try:
                config.action.close()
            except Exception as e:
                logger.error(f"Error closing action {type(config.action).__name__}: {e}")
