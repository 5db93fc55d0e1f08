"""Logger module."""

import logging
import sys

import colorlog

from litescan.helpers.config import get_bool_env, get_optional_env

loggers: dict[str, logging.Logger] = {}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _default_level() -> str:
    return (get_optional_env("LOG_LEVEL") or "INFO").upper()


def _default_color() -> bool:
    return get_bool_env("LOG_COLOR")


def get_logger(
    name: str,
    log_handler: str = "stdout",
    log_level: str | None = None,
    log_color: bool | None = None,
) -> logging.Logger:
    """Get a configured logger, creating it on first use.

    Level and color default to the LOG_LEVEL and LOG_COLOR environment
    variables so that library modules can call ``get_logger(__name__)``.

    Args:
        name: The name of the logger.
        log_handler: The log handler type ('stdout' or 'stderr').
        log_level: The logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL').
        log_color: Whether to use colored output.

    Returns:
        logging.Logger: Configured logger instance.

    Raises:
        ValueError: If invalid handler or log level is provided.
    """
    if name in loggers:
        return loggers[name]

    level_name = (log_level or _default_level()).upper()
    color = _default_color() if log_color is None else log_color

    if level_name not in LOG_LEVELS:
        err_msg = f"Invalid log level: {level_name}"
        raise ValueError(err_msg)

    streams = {"stdout": sys.stdout, "stderr": sys.stderr}
    if log_handler not in streams:
        err_msg = f"Invalid handler: {log_handler}"
        raise ValueError(err_msg)

    logger = colorlog.getLogger(name) if color else logging.getLogger(name)
    handler: logging.Handler = (
        colorlog.StreamHandler(streams[log_handler])
        if color
        else logging.StreamHandler(streams[log_handler])
    )

    level = LOG_LEVELS[level_name]
    logger.setLevel(level)
    handler.setLevel(level)

    if color:
        formatter: logging.Formatter = colorlog.ColoredFormatter(
            "%(log_color)s " + LOG_FORMAT,
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
    else:
        formatter = logging.Formatter(LOG_FORMAT)

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    loggers[name] = logger
    return logger


__all__ = ["get_logger"]
