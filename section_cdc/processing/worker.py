from typing import Iterator, Optional
from section_cdc.utils.logger import Logger
from section_cdc.datasources.base import DataSource
from section_cdc.processing.handler import EventTypeSectionHandler
from section_cdc.rows import RowBatch
from section_cdc.utils.exceptions import ProcessingError

logger = Logger.child("worker")


class Worker:
    """
    Delivery loop feeding micro-batches from a data source into the handler.

    The worker is the single delivery thread: it pulls RowBatch objects from
    the data source and calls the handler synchronously, so slow actions
    slow down reading. When the source is exhausted or the worker is stopped,
    the handler receives the end-of-stream signal.
    """

    def __init__(self, datasource: DataSource, handler: EventTypeSectionHandler) -> None:
        """
        Initialize the worker.

        Args:
            datasource: Source of micro-batches
            handler: Handler receiving the micro-batches
        """
        self.datasource = datasource
        self.handler = handler
        self.running = True
        self._stopping = False
        self.batches_processed = 0
        self.batches_skipped = 0

    def run(self) -> None:
        """
        Run the delivery loop until the source ends or ``stop`` is called.

        Raises:
            ProcessingError: If a failure reaches the worker; the handler is
                reset and the data source disconnected before it propagates.
        """
        failed = False
        try:
            self.datasource.connect()
            logger.info("Worker started")
            batches: Iterator[RowBatch] = self.datasource.listen()
            while self.running:
                batch = next(batches, None)
                if batch is None:
                    break
                self.process_batch(batch)
        except Exception as e:
            failed = True
            logger.error(f"Worker error: {e}")
            raise ProcessingError(f"Processing failed: {str(e)}") from e
        finally:
            self._finish(failed)

    def process_batch(self, batch: RowBatch) -> None:
        """Hand one micro-batch to the handler, skipping unconfigured tables.

        The binlog filter subscribes to every configured schema and every
        configured table name, so it also lets through pairs such as a table
        name that is only configured under another schema.
        """
        if not self.handler.accepts(batch.schema, batch.table):
            logger.debug(f"Skipping unconfigured table {batch.schema}.{batch.table}")
            self.batches_skipped += 1
            return
        logger.debug(
            f"Received {len(batch.rows)} {batch.kind.value} rows for "
            f"{batch.schema}.{batch.table}"
        )
        self.handler.on_rows(batch.schema, batch.table, batch.kind, batch.rows)
        self.batches_processed += 1

    def _finish(self, failed: bool) -> None:
        self._stopping = True
        try:
            if failed:
                self.handler.reset()
            else:
                self.handler.end_of_stream()
        except Exception as e:
            logger.error(f"Final flush failed: {e}")
            raise ProcessingError(f"Final flush failed: {str(e)}") from e
        finally:
            self._disconnect()
            logger.info(
                f"Worker stopped after {self.batches_processed} batches, "
                f"{self.batches_skipped} skipped"
            )

    def _disconnect(self) -> None:
        try:
            self.datasource.disconnect()
        except Exception as e:
            logger.error(f"Error disconnecting data source: {e}")

    def stop(self) -> None:
        """
        Ask the delivery loop to stop after the current micro-batch.

        Buffered rows are flushed by the end-of-stream signal when the loop
        exits.
        """
        if self._stopping:
            logger.debug("Stop already in progress, ignoring duplicate call")
            return

        logger.info("Stop signal received")
        self._stopping = True
        self.running = False
