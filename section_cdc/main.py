import signal
from typing import Any
from dotenv import load_dotenv

from section_cdc.utils.logger import Logger
from section_cdc.config.loader import AppConfig, load_table_config
from section_cdc.datasources import DataSourceFactory
from section_cdc.processing import EventTypeSectionHandler, RecoveryPolicyFactory, Worker


def main() -> None:
    """
    Main entry point for the section-cdc application.

    Loads configuration, builds the table lookup, handler and data source,
    and runs the worker until the stream ends or a shutdown signal arrives.
    """
    load_dotenv()

    logger = Logger.get_logger()
    app_config = AppConfig.load()
    Logger.update_level(app_config.log_level)

    schema_tables = load_table_config(
        app_config.table_config_path, app_config.missing_column_policy
    )
    recovery_policy = RecoveryPolicyFactory.create(
        app_config.recovery_policy, **app_config.recovery_policy_options()
    )
    handler = EventTypeSectionHandler(schema_tables, recovery_policy)

    schemas = sorted({schema for schema, _ in schema_tables})
    tables = sorted({table for _, table in schema_tables})
    datasource = DataSourceFactory.create(
        app_config.datasource_type, only_schemas=schemas, only_tables=tables
    )

    worker = Worker(datasource, handler)

    def signal_handler(sig: Any, _frame: Any) -> None:
        logger.info("Shutdown signal received")
        worker.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        worker.run()
    finally:
        schema_tables.close()


if __name__ == "__main__":
    main()
