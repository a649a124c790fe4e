import logging
import os
import re
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ControlCharacterFilter(logging.Filter):
    """Filter that escapes control characters so user-supplied file names cannot forge log lines."""

    CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f]')

    def filter(self, record: logging.LogRecord) -> bool:
        """Escape control characters in the log message and its arguments."""
        if isinstance(record.msg, str):
            record.msg = self._escape(record.msg)

        if hasattr(record, 'args') and record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._escape_value(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._escape_value(arg) for arg in record.args)

        return True

    def _escape(self, text: str) -> str:
        return self.CONTROL_CHARS.sub(lambda m: repr(m.group())[1:-1], text)

    def _escape_value(self, value):
        if isinstance(value, str):
            return self._escape(value)
        return value


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None
) -> logging.Logger:
    """
    Set up logging configuration for a component.

    Handlers are attached to the component logger and to the ``common``,
    ``server`` and ``cli`` package loggers so module loggers created with
    ``logging.getLogger(__name__)`` share the same output.

    Args:
        component_name: Name of the component (e.g., 'server', 'cli')
        log_level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var or INFO

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')

    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(component_name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    handler.addFilter(ControlCharacterFilter())

    logger.addHandler(handler)
    logger.propagate = False

    for package in ('common', 'server', 'cli'):
        package_logger = logging.getLogger(package)
        if package_logger is logger or package_logger.handlers:
            continue
        package_logger.setLevel(level)
        package_logger.addHandler(handler)
        package_logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
