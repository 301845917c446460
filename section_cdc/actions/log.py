from typing import Optional, Sequence

from section_cdc.actions.base import TableAction
from section_cdc.rows import ChangeRow, DeleteRow, InsertRow, UpdateRow
from section_cdc.utils.logger import Logger
from section_cdc.utils.serializer import Serializer


class LogAction(TableAction):
    """Writes every dispatched run to the application log.

    Useful as a dry-run target while tuning column filters.
    """

    def __init__(self, table: Optional[str] = None, level: str = "INFO"):
        self.table = table or "log"
        self.log = Logger.child(f"action.{self.table}")
        self.level = level.upper()
        self.serializer = Serializer()

    def _write(self, kind: str, rows: Sequence[ChangeRow]) -> None:
        level = getattr(self.log, self.level.lower(), self.log.info)
        level(f"{kind} run of {len(rows)} rows")
        for row in rows:
            self.log.debug(self.serializer.serialize(row.to_dict()))

    def on_insert(self, rows: Sequence[InsertRow]) -> None:
        self._write("Insert", rows)

    def on_update(self, rows: Sequence[UpdateRow]) -> None:
        self._write("Update", rows)

    def on_delete(self, rows: Sequence[DeleteRow]) -> None:
        self._write("Delete", rows)
