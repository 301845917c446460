import logging
import os
from typing import Optional


LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


class Logger:
    """
    Singleton logger for the section-cdc application.

    One console handler is attached to the application root logger. Components
    obtain named children through ``child`` so that log lines show which part
    of the pipeline (handler, worker, actions) emitted them while sharing the
    same handler and level.
    """

    _instance = None

    def __init__(self, log_level: str = "INFO", logger_name: Optional[str] = None):
        """
        Initialize the logger with a specific log level and optional name.

        Args:
            log_level (str): The logging level (e.g., "INFO", "DEBUG").
            logger_name (str, optional): Root logger name. Defaults to APP_NAME
                or "section-cdc".
        """
        self.logger_name = logger_name or os.getenv("APP_NAME", "section-cdc")
        self.logger = logging.getLogger(self.logger_name)

        self.logger.handlers.clear()

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        self.logger.addHandler(console_handler)

        self.set_level(log_level)

        self.logger.propagate = False

    def set_level(self, log_level: str) -> None:
        level = getattr(logging, log_level.upper(), logging.INFO)
        self.logger.setLevel(level)
        self.logger.debug(f"Logging level set to {log_level}")

    @classmethod
    def get_logger(cls, log_level: str = "INFO") -> logging.Logger:
        """
        Get the application root logger, creating the singleton on first use.

        Args:
            log_level (str): The logging level used if the singleton is created.

        Returns:
            logging.Logger: The configured root logger.
        """
        if cls._instance is None:
            cls._instance = Logger(log_level=log_level)
        return cls._instance.logger

    @classmethod
    def update_level(cls, log_level: str) -> None:
        if cls._instance is None:
            cls.get_logger(log_level=log_level)
        else:
            cls._instance.set_level(log_level)

    @classmethod
    def child(cls, name: str) -> logging.Logger:
        """
        Get a component logger below the application root logger.

        Args:
            name (str): Component name, e.g. "handler".

        Returns:
            logging.Logger: Child logger that inherits the root handler and level.
        """
        return cls.get_logger().getChild(name)


logger = Logger.get_logger()
