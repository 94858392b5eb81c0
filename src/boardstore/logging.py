"""Logging configuration for boardstore.

Every module logs to a child of the ``boardstore`` logger. Nothing is
emitted unless setup_logging() attaches a handler, except that records
still propagate to the root logger so host applications (and pytest's
caplog) see heals and dropped rows.
"""

import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

LOGGER_NAMESPACE = "boardstore"

# Marks handlers installed here so a second setup replaces them
_HANDLER_FLAG = "_boardstore_handler"


def _remove_installed_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_FLAG, False):
            logger.removeHandler(handler)
            handler.close()


def _install(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    setattr(handler, _HANDLER_FLAG, True)
    logger.addHandler(handler)


def setup_logging(verbose: int = 0, log_file: Path | None = None) -> logging.Logger:
    """Configure the boardstore logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        verbose: Verbosity level (0=off, 1=INFO, 2+=DEBUG)
        log_file: Optional path to write logs to file; logs at INFO even
            when verbose is 0

    Returns:
        The package logger.
    """
    logger = logging.getLogger(LOGGER_NAMESPACE)
    _remove_installed_handlers(logger)
    if verbose == 0 and log_file is None:
        return logger

    level = logging.DEBUG if verbose >= 2 else logging.INFO
    logger.setLevel(level)

    if verbose > 0:
        _install(logger, logging.StreamHandler(sys.stderr), level)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _install(logger, logging.FileHandler(log_file, encoding="utf-8"), level)

    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
    logger.info("=" * 60)
    logger.info(
        "boardstore starting | %s | level=%s", timestamp, logging.getLevelName(level)
    )
    logger.info("=" * 60)
    return logger
