import logging
from ...core.ports.logger import Logger


class PythonLogger(Logger):
    """Logger port backed by the standard logging module"""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def info(self, message: str, *args) -> None:
        self._logger.info(message, *args)

    def warning(self, message: str, *args) -> None:
        self._logger.warning(message, *args)

    def error(self, message: str, *args) -> None:
        self._logger.error(message, *args)
