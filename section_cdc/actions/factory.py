from typing import Any, ClassVar, Dict, Type
from section_cdc.utils.logger import logger
from section_cdc.utils.exceptions import UnsupportedTypeError
from section_cdc.actions.base import TableAction


class ActionFactory:
    """
    Factory for creating TableAction implementations.

    Registry-based: new action types are registered under a name and created
    from table configuration by that name.
    """

    REGISTRY: ClassVar[Dict[str, Type[TableAction]]] = {}

    @classmethod
    def register_action(cls, name: str, action_class: Type[TableAction]) -> None:
        """
        Register an action implementation.

        Args:
            name (str): The name to register the action under.
            action_class (Type[TableAction]): The action class to register.
        """
        cls.REGISTRY[name.lower()] = action_class

    @classmethod
    def create(cls, action_type: str, **kwargs: Any) -> TableAction:
        """
        Create a TableAction implementation based on requested type.

        Args:
            action_type (str): The type of action to create.
            **kwargs: Configuration parameters passed to the action.

        Returns:
            TableAction: An initialized TableAction implementation.

        Raises:
            UnsupportedTypeError: If the requested action type is not supported.
        """
        normalized_type = action_type.lower()
        logger.debug(f"Creating action of type: {normalized_type}")

        if normalized_type not in cls.REGISTRY:
            supported = list(cls.REGISTRY.keys())
            logger.error(
                f"Unsupported action type: {action_type}. Supported types: {supported}"
            )
            raise UnsupportedTypeError(
                f"Unsupported action type: {action_type}. Supported types: {supported}"
            )

        action_class = cls.REGISTRY[normalized_type]
        return action_class(**kwargs)
