"""Logging for sitewright.

Every module logs through ``get_logger("<module>")`` under the ``sitewright``
hierarchy. The console shows which part of the pipeline spoke, e.g.
``[sitewright:compiler] INFO Compiled content/post/a.md.jinja``. Command results
meant for the user are echoed by the CLI, not logged.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "sitewright"
_CONSOLE_FORMAT = "[%(component)s] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"

# Third-party loggers that are chatty at DEBUG while a watch loop runs.
_QUIET_LOGGERS = ("watchdog", "httpx", "httpcore")


class _ComponentFormatter(logging.Formatter):
    """Formatter exposing ``component``: ``sitewright:<module>`` for our loggers."""

    def format(self, record: logging.LogRecord) -> str:
        prefix = _LOGGER_NAME + "."
        if record.name.startswith(prefix):
            record.component = f"{_LOGGER_NAME}:{record.name[len(prefix):]}"
        else:
            record.component = record.name
        return super().format(record)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the logger for one sitewright module (``sitewright.<name>``)."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send sitewright logs to the console and, optionally, a log file.

    Calling this again (the CLI does once per invocation) replaces the handlers
    installed by the previous call.

    Args:
        verbose: Log at DEBUG instead of INFO.
        log_file: Also append records, with timestamps and thread names, here.

    Returns:
        The ``sitewright`` root logger.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(_ComponentFormatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


__all__ = ["configure_logging", "get_logger"]
