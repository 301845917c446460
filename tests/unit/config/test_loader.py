import json
import os
import pytest
from unittest.mock import patch
from section_cdc.actions import LogAction
from section_cdc.config.loader import AppConfig, build_schema_tables, load_table_config
from section_cdc.filters import MissingColumnPolicy
from section_cdc.filters.base import ABSENT
from section_cdc.utils.exceptions import ConfigurationError, UnsupportedTypeError


class TestAppConfig:
    """Test cases for environment configuration"""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = AppConfig.load()

        assert config.log_level == "INFO"
        assert config.datasource_type == "mysql"
        assert config.table_config_path == "tables.json"
        assert config.recovery_policy == "propagate"
        assert config.max_failures == 3
        assert config.missing_column_policy is MissingColumnPolicy.INVALID
        assert config.recovery_policy_options() == {}

    def test_from_env(self):
        env_vars = {
            "LOG_LEVEL": "debug",
            "DS_TYPE": "MySQL",
            "TABLE_CONFIG": "/etc/cdc/tables.json",
            "RECOVERY_POLICY": "MAX_FAILURES",
            "MAX_FAILURES": "7",
            "MISSING_COLUMN_POLICY": "Raise",
        }
        with patch.dict(os.environ, env_vars, clear=True):
            config = AppConfig.load()

        assert config.log_level == "DEBUG"
        assert config.datasource_type == "mysql"
        assert config.table_config_path == "/etc/cdc/tables.json"
        assert config.recovery_policy == "max_failures"
        assert config.missing_column_policy is MissingColumnPolicy.RAISE
        assert config.recovery_policy_options() == {"max_failures": 7}

    def test_invalid_max_failures(self):
        with patch.dict(os.environ, {"MAX_FAILURES": "many"}, clear=True):
            with pytest.raises(ConfigurationError, match="MAX_FAILURES"):
                AppConfig.load()

    def test_invalid_missing_column_policy(self):
        with patch.dict(os.environ, {"MISSING_COLUMN_POLICY": "ignore"}, clear=True):
            with pytest.raises(ConfigurationError, match="MISSING_COLUMN_POLICY"):
                AppConfig.load()


class TestBuildSchemaTables:
    """Test cases for building the table lookup"""

    def test_builds_action_and_filter(self):
        schema_tables = build_schema_tables(
            {
                "shop.orders": {
                    "action": "log",
                    "options": {"level": "debug"},
                    "filter": {"status": {"eq": "active"}},
                },
                "shop.customers": {"action": "log"},
            }
        )

        orders = schema_tables.lookup("shop", "orders")
        assert isinstance(orders.action, LogAction)
        assert orders.action.table == "shop.orders"
        assert orders.action.level == "DEBUG"
        assert orders.column_filter.validate(lambda column: "active")
        assert not orders.column_filter.validate(lambda column: "closed")

        assert schema_tables.lookup("shop", "customers").column_filter is None
        assert len(schema_tables) == 2

    def test_default_missing_column_policy_applied(self):
        schema_tables = build_schema_tables(
            {"shop.orders": {"action": "log", "filter": {"status": {"eq": "active"}}}},
            MissingColumnPolicy.VALID,
        )

        column_filter = schema_tables.lookup("shop", "orders").column_filter
        assert column_filter.validate(lambda column: ABSENT)

    @pytest.mark.parametrize("name", ["orders", ".orders", "shop."])
    def test_invalid_table_name(self, name):
        with pytest.raises(ConfigurationError, match="schema.table"):
            build_schema_tables({name: {"action": "log"}})

    def test_missing_action(self):
        with pytest.raises(ConfigurationError, match="must name an action"):
            build_schema_tables({"shop.orders": {"filter": {}}})

    def test_unknown_action(self):
        with pytest.raises(UnsupportedTypeError):
            build_schema_tables({"shop.orders": {"action": "kafka"}})

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationError):
            build_schema_tables(["shop.orders"])


class TestLoadTableConfig:
    """Test cases for reading the table config file"""

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "tables.json"
        path.write_text(json.dumps({"shop.orders": {"action": "log"}}))

        schema_tables = load_table_config(str(path))

        assert ("shop", "orders") in schema_tables

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_table_config(str(tmp_path / "missing.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "tables.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_table_config(str(path))

    def test_empty_config(self, tmp_path):
        path = tmp_path / "tables.json"
        path.write_text("{}")

        assert len(load_table_config(str(path))) == 0
