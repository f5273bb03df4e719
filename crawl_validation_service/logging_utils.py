"""Logging setup shared by the API process and the CLI.

Log calls across the service attach context such as ``job_id`` or ``uri``
through ``extra=``; ``ContextFormatter`` renders those fields after the
message so they survive into plain-text logs.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_RESERVED = set(vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))) | {"message", "asctime"}

# Request lines from the engine and validation clients are noise at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore")


class ContextFormatter(logging.Formatter):
    """Appends ``extra=`` fields to the formatted line as sorted ``key=value`` pairs."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED and not key.startswith("_") and value is not None
        }
        if not context:
            return line
        rendered = " ".join(f"{key}={context[key]}" for key in sorted(context))
        return f"{line} | {rendered}"


def configure_logging(log_file: Optional[Path] = None, level: Union[int, str] = logging.INFO) -> None:
    formatter = ContextFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=3)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root_logger.level))


__all__ = ["ContextFormatter", "configure_logging"]
