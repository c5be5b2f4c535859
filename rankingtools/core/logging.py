"""
Logging helpers shared by every module.

Modules grab a logger with ``get_logger(__name__)``; ``setup_logging`` wires the
package logger to the console once, using the level from settings.
"""

import logging
import sys

from .settings import settings

ROOT_LOGGER_NAME = "rankingtools"

_RESERVED_ATTRS = set(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class ExtraFormatter(logging.Formatter):
    """Formatter that appends ``extra={...}`` context to the message."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS
        }
        if not extras:
            return base
        context = " ".join(f"{key}={value!r}" for key, value in sorted(extras.items()))
        return f"{base} | {context}"


def setup_logging() -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(settings.log_level)

    if settings.enable_console_logging and not any(
        getattr(h, "_rankingtools_console", False) for h in logger.handlers
    ):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            ExtraFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        handler._rankingtools_console = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
