"""Logging configuration for the codegen enhancer."""

import logging
import sys

PACKAGE_LOGGER = "codegen_enhancer"


def setup_logging(level: str = "INFO", debug: bool = False) -> None:
    """
    Configure logging for command-line use.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: Enable debug mode with verbose formatting
    """
    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)

    # Format
    if debug:
        log_format = (
            "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
        )
    else:
        log_format = "%(asctime)s | %(levelname)-8s | %(message)s"

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    set_debug_logging(debug)


def set_debug_logging(debug: bool) -> None:
    """
    Apply the ``debug`` config flag to the package logger.

    Library callers keep control of handlers; this only moves the level of
    the ``codegen_enhancer`` logger so debug dumps of prompts and responses
    are emitted (or not).
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if debug:
        package_logger.setLevel(logging.DEBUG)
    elif package_logger.level == logging.DEBUG:
        package_logger.setLevel(logging.NOTSET)

    # Suppress noisy third-party loggers
    for name in ("httpx", "httpcore", "openai", "anthropic"):
        logging.getLogger(name).setLevel(logging.WARNING)
