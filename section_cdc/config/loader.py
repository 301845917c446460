from dataclasses import dataclass
import json
import os
from typing import Any, Dict, Mapping

from section_cdc.actions import ActionFactory, SchemaTables
from section_cdc.filters import FilterFactory, MissingColumnPolicy
from section_cdc.utils.exceptions import ConfigurationError
from section_cdc.utils.logger import logger


@dataclass
class AppConfig(object):
    """
    Application-wide configuration read from the environment.
    """

    log_level: str
    datasource_type: str
    table_config_path: str
    recovery_policy: str
    max_failures: int
    missing_column_policy: MissingColumnPolicy

    @classmethod
    def load(cls) -> "AppConfig":
        """
        Create an AppConfig instance from environment variables.

        Returns:
            AppConfig: Values from the environment, or defaults.

        Raises:
            ConfigurationError: If a value cannot be parsed.
        """
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        datasource_type = os.getenv("DS_TYPE", "mysql").lower()
        table_config_path = os.getenv("TABLE_CONFIG", "tables.json")
        recovery_policy = os.getenv("RECOVERY_POLICY", "propagate").lower()

        try:
            max_failures = int(os.getenv("MAX_FAILURES", "3"))
        except ValueError:
            raise ConfigurationError(f"MAX_FAILURES must be an integer, got {os.getenv('MAX_FAILURES')}")

        try:
            missing_column_policy = MissingColumnPolicy(
                os.getenv("MISSING_COLUMN_POLICY", "invalid").lower()
            )
        except ValueError:
            raise ConfigurationError(
                f"MISSING_COLUMN_POLICY must be one of "
                f"{[p.value for p in MissingColumnPolicy]}"
            )

        logger.info(
            f"Config: log_level={log_level}, datasource={datasource_type}, "
            f"tables={table_config_path}, recovery={recovery_policy}, "
            f"missing_column={missing_column_policy.value}"
        )

        return cls(
            log_level=log_level,
            datasource_type=datasource_type,
            table_config_path=table_config_path,
            recovery_policy=recovery_policy,
            max_failures=max_failures,
            missing_column_policy=missing_column_policy,
        )

    def recovery_policy_options(self) -> Dict[str, Any]:
        if self.recovery_policy == "max_failures":
            return {"max_failures": self.max_failures}
        return {}


def build_schema_tables(
    tables: Mapping[str, Mapping[str, Any]],
    on_missing: MissingColumnPolicy = MissingColumnPolicy.INVALID,
) -> SchemaTables:
    """
    Build the table configuration lookup from a parsed table config.

    Each key is "schema.table"; each value names an action, optional action
    options and an optional column filter spec::

        {"shop.orders": {"action": "sqs", "options": {}, "filter": {"status": {"eq": "active"}}}}

    Raises:
        ConfigurationError: If an entry is malformed.
    """
    if not isinstance(tables, Mapping):
        raise ConfigurationError("Table config must be a mapping of 'schema.table' entries")

    schema_tables = SchemaTables()
    for name, entry in tables.items():
        schema, sep, table = name.partition(".")
        if not sep or not schema or not table:
            raise ConfigurationError(f"Table config key must be 'schema.table', got {name!r}")
        if not isinstance(entry, Mapping) or "action" not in entry:
            raise ConfigurationError(f"Table config for {name} must name an action")

        options = dict(entry.get("options") or {})
        options.setdefault("table", name)
        action = ActionFactory.create(entry["action"], **options)
        column_filter = FilterFactory.create_filter(entry.get("filter"), on_missing)

        schema_tables.register(schema, table, action, column_filter)
        logger.info(
            f"Registered {name}: action={entry['action']}, "
            f"filter={'yes' if column_filter else 'no'}"
        )

    return schema_tables


def load_table_config(
    path: str, on_missing: MissingColumnPolicy = MissingColumnPolicy.INVALID
) -> SchemaTables:
    """
    Load the table configuration from a JSON file.

    Raises:
        ConfigurationError: If the file is missing, not JSON, or malformed.
    """
    try:
        with open(path, encoding="utf-8") as f:
            tables = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Table config file not found: {path}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Table config file {path} is not valid JSON: {e}")

    schema_tables = build_schema_tables(tables, on_missing)
    if not len(schema_tables):
        logger.warning(f"No tables configured in {path}")
    return schema_tables
