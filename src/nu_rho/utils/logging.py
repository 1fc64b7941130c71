"""Logging configuration for scripts and notebooks."""

import logging
import sys


def setup_logging(level: str = "INFO", format_type: str = "structured") -> logging.Logger:
    """Route the `nu_rho` loggers to stdout and return the package logger."""
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    log_level = level_map.get(level.upper(), logging.INFO)

    if format_type == "structured":
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        formatter = logging.Formatter('%(levelname)s - %(message)s')

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    logger = logging.getLogger("nu_rho")
    logger.setLevel(log_level)
    # replace any handler installed by a previous call
    for h in list(logger.handlers):
        if not isinstance(h, logging.NullHandler):
            logger.removeHandler(h)
    logger.addHandler(handler)
    return logger
