from section_cdc.actions.base import SchemaTables, TableAction, TableConfig
from section_cdc.actions.factory import ActionFactory
from section_cdc.actions.log import LogAction
from section_cdc.actions.sqs import SQSAction

# Register the bundled actions with the factory
ActionFactory.register_action("log", LogAction)
ActionFactory.register_action("sqs", SQSAction)

__all__ = [
    "ActionFactory",
    "LogAction",
    "SchemaTables",
    "SQSAction",
    "TableAction",
    "TableConfig",
]
