"""Logging utilities for codefixer commands."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "codefixer"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the codefixer hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


class IssueLogAdapter(logging.LoggerAdapter):
    """Prefixes every message with the issue it concerns, e.g. ``#7 Opened change request``."""

    def process(self, msg, kwargs):
        return f"#{self.extra['issue']} {msg}", kwargs


def issue_logger(logger: logging.Logger, number: int) -> IssueLogAdapter:
    """Return ``logger`` scoped to issue ``number`` for the duration of one attempt."""
    return IssueLogAdapter(logger, {"issue": number})


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the codefixer logger with console output and optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Repeated CLI invocations in one process would otherwise duplicate output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[codefixer] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = ["IssueLogAdapter", "configure_logging", "get_logger", "issue_logger"]
