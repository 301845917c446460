from section_cdc.datasources.base import DataSource
from section_cdc.datasources.factory import DataSourceFactory
from section_cdc.datasources.mysql import MySQLDataSource

# Register the MySQL binlog data source with the factory
DataSourceFactory.register_datasource("mysql", MySQLDataSource)

__all__ = ["DataSource", "DataSourceFactory", "MySQLDataSource"]
