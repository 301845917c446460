from enum import Enum
from typing import List, Optional, Sequence

from section_cdc.actions.base import SchemaTables, TableAction
from section_cdc.processing.reclassifier import reclassify, split_runs
from section_cdc.processing.recovery import (
    PropagatePolicy,
    RecoveryContext,
    RecoveryPolicy,
)
from section_cdc.rows import BatchKey, ChangeKind, ChangeRow
from section_cdc.utils.exceptions import ProcessingError
from section_cdc.utils.logger import Logger

logger = Logger.child("handler")


class HandlerState(str, Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    FLUSHING = "flushing"
    FAILED = "failed"


class EventTypeSectionHandler:
    """
    Coalesces contiguous micro-batches per (schema, table, kind) and
    dispatches them to the table's action.

    Micro-batches sharing the key of the previous one are appended to the
    pending buffer without being inspected. A micro-batch with a different key
    first flushes the buffer under the previous key. Update batches of a table
    with a column filter are re-evaluated row by row on flush: each row may
    become an insert, a delete, stay an update, or be dropped, and every
    maximal run of one effective kind is dispatched with a single call.

    All state is confined to the delivery thread. The handler is not
    re-entrant: an action must not feed rows back into the handler that
    called it.
    """

    def __init__(
        self,
        schema_tables: SchemaTables,
        recovery_policy: Optional[RecoveryPolicy] = None,
    ) -> None:
        """
        Initialize the handler.

        Args:
            schema_tables: Table configuration lookup, resolved once per flush.
            recovery_policy: Decides whether failures are ignored. Defaults to
                PropagatePolicy.
        """
        self.schema_tables = schema_tables
        self.recovery_policy = recovery_policy or PropagatePolicy()

        self.buffer: List[ChangeRow] = []
        self.state = HandlerState.IDLE

        # Key of the rows currently in the buffer
        self.last_schema: Optional[str] = None
        self.last_table: Optional[str] = None
        self.last_kind: Optional[ChangeKind] = None

        # Key of the micro-batch being delivered
        self.current_schema: Optional[str] = None
        self.current_table: Optional[str] = None
        self.current_kind: Optional[ChangeKind] = None

        self.last_recovery_context: Optional[RecoveryContext] = None

    def accepts(self, schema: str, table: str) -> bool:
        """Return True if the table has a configuration to dispatch to."""
        return (schema, table) in self.schema_tables

    @property
    def last_key(self) -> Optional[BatchKey]:
        if self.last_kind is None:
            return None
        return BatchKey(self.last_schema, self.last_table, self.last_kind)

    def on_rows(
        self, schema: str, table: str, kind: ChangeKind, rows: Sequence[ChangeRow]
    ) -> None:
        """
        Accept a micro-batch whose rows all share (schema, table, kind).

        If the key differs from the buffered one, the buffer is flushed first.
        A failure of that flush is handed to the recovery policy; when the
        policy ignores it, the undispatched rows stay with the recovery
        context and the handler continues with the new micro-batch.

        Raises:
            ProcessingError: If called while the handler is flushing.
            Exception: Any failure from the flush the policy does not ignore.
        """
        self._check_not_flushing()
        self.current_schema = schema
        self.current_table = table
        self.current_kind = kind

        if (schema, table, kind) != (self.last_schema, self.last_table, self.last_kind):
            try:
                self.flush()
            except Exception as e:
                if not self.handle_exception(e, during_end_of_stream=False):
                    raise
                self._detach_buffer()
            self.last_schema = schema
            self.last_table = table
            self.last_kind = kind

        self.buffer.extend(rows)
        self.state = HandlerState.ACCUMULATING if self.buffer else HandlerState.IDLE
        logger.debug(
            f"Buffered {len(rows)} {kind.value} rows for {schema}.{table}, "
            f"buffer size: {len(self.buffer)}"
        )

    def end_of_stream(self) -> None:
        """
        Flush whatever is buffered and leave the handler idle.

        The buffer is emptied even when the flush fails, so that a reused
        handler never carries rows across streams.

        Raises:
            Exception: Any failure from the flush the policy does not ignore.
        """
        self._check_not_flushing()
        self.current_schema = self.last_schema
        self.current_table = self.last_table
        self.current_kind = self.last_kind
        try:
            self.flush()
        except Exception as e:
            if not self.handle_exception(e, during_end_of_stream=True):
                raise
        finally:
            self._detach_buffer()
            self.last_schema = self.last_table = self.last_kind = None
            self.state = HandlerState.IDLE

    def flush(self) -> None:
        """
        Dispatch the buffer under the last key.

        Update rows are reclassified when the table has a column filter; all
        other batches go out as a single run of their own kind. Dispatched
        rows leave the buffer as each run completes, so after a failure the
        buffer holds exactly the failing run and what came after it.
        """
        if not self.buffer:
            return

        self.state = HandlerState.FLUSHING
        try:
            config = self.schema_tables.lookup(self.last_schema, self.last_table)
            if self.last_kind is ChangeKind.UPDATE and config.column_filter is not None:
                classified = reclassify(self.buffer, config.column_filter)
                dropped = len(self.buffer) - len(classified)
                if dropped:
                    logger.debug(
                        f"Dropped {dropped} update rows of {self.last_schema}."
                        f"{self.last_table} matching neither image"
                    )
                self.buffer[:] = [row for _, row in classified]
                for kind, run in split_runs(classified):
                    self._dispatch(config.action, kind, run)
            else:
                self._dispatch(config.action, self.last_kind, list(self.buffer))
        except Exception:
            self.state = HandlerState.FAILED
            raise

        self.state = HandlerState.IDLE

    def _dispatch(self, action: TableAction, kind: ChangeKind, run: List[ChangeRow]) -> None:
        """Call the action for one run, then drop the run from the buffer head."""
        logger.debug(
            f"Dispatching {len(run)} {kind.value} rows of "
            f"{self.last_schema}.{self.last_table}"
        )
        view = tuple(run)
        if kind is ChangeKind.INSERT:
            action.on_insert(view)
        elif kind is ChangeKind.UPDATE:
            action.on_update(view)
        else:
            action.on_delete(view)
        del self.buffer[: len(run)]

    def build_recovery_context(self, exception: BaseException) -> RecoveryContext:
        """Snapshot the last key and the pending buffer for error reporting."""
        return RecoveryContext(
            exception=exception,
            schema=self.last_schema,
            table=self.last_table,
            kind=self.last_kind,
            rows=self.buffer,
        )

    def handle_exception(
        self, exception: BaseException, during_end_of_stream: bool
    ) -> bool:
        """
        Ask the recovery policy whether to ignore a failure.

        The context is built from the key of the failed rows before anything
        moves. When the failure is ignored the last key advances to the
        in-flight key, so the next differing key does not flush the already
        attempted rows again. The buffer is left as it is.

        Returns:
            bool: True if the failure is ignored.
        """
        context = self.build_recovery_context(exception)
        self.last_recovery_context = context

        if not self.recovery_policy.should_ignore(exception, during_end_of_stream, context):
            return False

        self.last_schema = self.current_schema
        self.last_table = self.current_table
        self.last_kind = self.current_kind
        self.state = HandlerState.ACCUMULATING if self.buffer else HandlerState.IDLE
        return True

    def reset(self) -> None:
        """Drop pending rows and key without dispatching, after a fatal failure."""
        if self.buffer:
            logger.warning(f"Discarding {len(self.buffer)} undispatched rows")
        self._detach_buffer()
        self.last_schema = self.last_table = self.last_kind = None
        self.current_schema = self.current_table = self.current_kind = None
        self.state = HandlerState.IDLE

    def _detach_buffer(self) -> None:
        # A recovery context may still reference the old list
        self.buffer = []

    def _check_not_flushing(self) -> None:
        if self.state is HandlerState.FLUSHING:
            raise ProcessingError("Handler is not re-entrant: called while flushing")
