from typing import Any, Dict, Iterator, List, Optional, Union
import os
import random
import time
import pymysql
from pymysql.cursors import Cursor
from pymysqlreplication import BinLogStreamReader
from pymysqlreplication.row_event import (
    DeleteRowsEvent,
    UpdateRowsEvent,
    WriteRowsEvent,
)
from section_cdc.datasources.base import DataSource
from section_cdc.rows import ChangeKind, ChangeRow, DeleteRow, InsertRow, RowBatch, UpdateRow
from section_cdc.utils.logger import logger
from section_cdc.utils.serializer import Serializer
from section_cdc.utils.exceptions import DataSourceError, ConfigurationError


class MySQLSettingsValidator:
    """Validates the MySQL server settings row reclassification depends on.

    Update rows need both images with column names, hence ROW format with a
    FULL row image and FULL row metadata.
    """

    REQUIRED_SETTINGS = {
        "binlog_format": "ROW",
        "binlog_row_image": "FULL",
        "binlog_row_metadata": "FULL",
    }

    def __init__(
        self,
        host: Union[str, None],
        user: Union[str, None],
        password: Union[str, None],
        port: Union[int, None],
    ):
        if not host:
            raise ConfigurationError("Database host is required for validation")
        if not user:
            raise ConfigurationError("Database user is required for validation")
        if not password:
            raise ConfigurationError("Database password is required for validation")
        if not port:
            raise ConfigurationError("Database port is required for validation")

        self.host = host
        self.user = user
        self.password = password
        self.port = port

    def _fetch_actual_settings(self, cursor: Cursor) -> Dict[str, str]:
        names = list(self.REQUIRED_SETTINGS)
        placeholders = ", ".join(["%s"] * len(names))
        cursor.execute(
            f"SHOW GLOBAL VARIABLES WHERE Variable_name IN ({placeholders})", names
        )

        actual_settings = {}
        for var_name, var_value in cursor.fetchall():
            if var_name is not None and var_value is not None:
                actual_settings[var_name.lower()] = var_value
        return actual_settings

    def _verify_settings(self, actual_settings: Dict[str, str]) -> None:
        for setting, expected in self.REQUIRED_SETTINGS.items():
            actual = actual_settings.get(setting)

            if actual is None:
                logger.error(f"MySQL setting {setting} not found in server variables")
                raise ConfigurationError(f"MySQL setting {setting} not found")

            if actual.upper() != expected.upper():
                logger.error(
                    f"MySQL setting {setting} is set to {actual}, expected {expected}"
                )
                raise ConfigurationError(
                    f"MySQL setting {setting} is incorrect: "
                    f"expected={expected}, actual={actual}"
                )

            logger.debug(f"MySQL setting {setting} is correctly set to {actual}")

    def validate(self) -> None:
        try:
            conn = pymysql.connect(
                host=self.host,
                user=self.user,
                password=self.password,
                port=self.port,
                connect_timeout=5,
            )
        except pymysql.MySQLError as e:
            error_msg = f"Failed to connect to MySQL: {e}"
            logger.error(error_msg)
            raise ConfigurationError(error_msg) from e

        try:
            with conn.cursor() as cursor:
                self._verify_settings(self._fetch_actual_settings(cursor))
        except pymysql.MySQLError as e:
            error_msg = f"Failed to validate MySQL settings: {e}"
            logger.error(error_msg)
            raise ConfigurationError(error_msg) from e
        finally:
            conn.close()


class MySQLDataSource(DataSource):
    """MySQL binlog transport yielding one micro-batch per rows event.

    A binlog rows event already carries rows of a single table and kind, so
    it maps directly onto a RowBatch. Column values are turned into strings
    for the row images.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        port: Optional[int] = None,
        server_id: Optional[int] = None,
        only_schemas: Optional[List[str]] = None,
        only_tables: Optional[List[str]] = None,
    ):
        self.server_id = server_id or random.randint(10000, 1000000)
        self.host = host or os.getenv("DB_HOST")
        if not self.host:
            raise ConfigurationError("DB_HOST is required")

        self.user = user or os.getenv("DB_USER")
        if not self.user:
            raise ConfigurationError("DB_USER is required")

        self.password = password or os.getenv("DB_PASSWORD")
        if not self.password:
            raise ConfigurationError("DB_PASSWORD is required")

        self.port = port or int(os.getenv("DB_PORT", "3306"))
        self.only_schemas = only_schemas
        self.only_tables = only_tables

        self.binlog_client = BinLogStreamReader
        self.client: Optional[BinLogStreamReader] = None
        self.serializer = Serializer()
        self._is_connected = False

    def _validate_settings(self) -> None:
        MySQLSettingsValidator(
            host=self.host,
            user=self.user,
            password=self.password,
            port=self.port,
        ).validate()

    def _create_binlog_client(self) -> BinLogStreamReader:
        connection_settings = {
            "host": self.host,
            "user": self.user,
            "passwd": self.password,
            "port": self.port,
        }

        client_args: Dict[str, Any] = {
            "connection_settings": connection_settings,
            "server_id": self.server_id,
            "blocking": True,
            "resume_stream": True,
            "only_events": [WriteRowsEvent, UpdateRowsEvent, DeleteRowsEvent],
        }
        if self.only_schemas:
            client_args["only_schemas"] = self.only_schemas
        if self.only_tables:
            client_args["only_tables"] = self.only_tables

        return self.binlog_client(**client_args)

    def connect(self) -> None:
        """Connect to the MySQL binlog stream, retrying on server_id conflicts."""
        if self._is_connected:
            logger.debug("Already connected to MySQL")
            return

        logger.info(f"Connecting to MySQL at {self.host}:{self.port}")
        self._validate_settings()

        max_retries = 5
        backoff_factor = 2

        for attempt in range(1, max_retries + 1):
            try:
                self.client = self._create_binlog_client()
                self._is_connected = True
                logger.info("Connected to MySQL binlog stream")
                return
            except Exception as e:
                error_str = str(e)
                if "server_uuid/server_id" not in error_str or attempt == max_retries:
                    error_msg = f"Failed to connect to MySQL: {error_str}"
                    logger.error(error_msg)
                    raise DataSourceError(error_msg) from e

                old_server_id = self.server_id
                self.server_id = (
                    random.randint(100000, 9999999) + int(time.time()) % 1000000
                )
                logger.warning(
                    f"Server ID conflict detected. Retrying with new server_id: "
                    f"{old_server_id} -> {self.server_id}"
                )
                self._close_client()

                sleep_time = (backoff_factor**attempt) + random.uniform(0.1, 1.0)
                logger.info(f"Retrying in {sleep_time:.2f} seconds...")
                time.sleep(sleep_time)

    def _close_client(self) -> None:
        if self.client:
            try:
                self.client.close()
            except Exception as e:
                logger.debug(f"Error closing binlog client: {e}")
            finally:
                self.client = None

    def _get_change_kind(self, event: Any) -> Optional[ChangeKind]:
        if isinstance(event, WriteRowsEvent):
            return ChangeKind.INSERT
        if isinstance(event, UpdateRowsEvent):
            return ChangeKind.UPDATE
        if isinstance(event, DeleteRowsEvent):
            return ChangeKind.DELETE
        return None

    def _create_row(self, kind: ChangeKind, row: Dict[str, Any]) -> ChangeRow:
        if kind is ChangeKind.INSERT:
            return InsertRow(after=self.serializer.serialize_image(row.get("values")))
        if kind is ChangeKind.UPDATE:
            return UpdateRow(
                before=self.serializer.serialize_image(row.get("before_values")),
                after=self.serializer.serialize_image(row.get("after_values")),
            )
        return DeleteRow(before=self.serializer.serialize_image(row.get("values")))

    def to_batch(self, event: Any) -> Optional[RowBatch]:
        """Convert a binlog rows event into a RowBatch, or None to skip it."""
        kind = self._get_change_kind(event)
        if kind is None or not getattr(event, "rows", None):
            return None
        rows = [self._create_row(kind, row) for row in event.rows]
        return RowBatch(schema=event.schema, table=event.table, kind=kind, rows=rows)

    def listen(self) -> Iterator[RowBatch]:
        """
        Listen for binlog rows events and yield them as micro-batches.

        Yields:
            RowBatch: Rows of one rows event.
        """
        if not self._is_connected or not self.client:
            raise DataSourceError("Data source not connected")

        try:
            for event in self.client:
                batch = self.to_batch(event)
                if batch is not None:
                    yield batch
        except DataSourceError:
            raise
        except Exception as e:
            logger.error(f"Error processing binlog: {str(e)}")
            raise DataSourceError(f"Error processing binlog: {str(e)}") from e

    def disconnect(self) -> None:
        if not self._is_connected:
            return

        logger.info("Disconnecting from MySQL")
        self._is_connected = False
        self._close_client()

    def get_source_type(self) -> str:
        return "mysql"

    def get_source_id(self) -> str:
        if not self.host:
            raise DataSourceError("No host configured")
        return self.host
