import logging
from logging import Logger
from logging import config as logging_config
from typing import Any, Dict

from ambit import config

DEFAULT_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Default logging configuration
DEFAULT_LOGGING_CONFIG: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "loggers": {
        "ambit": {
            "level": "INFO",
            "handlers": ["consoleHandler"],
            "propagate": False,
        },
    },
    "handlers": {
        "consoleHandler": {
            "class": "logging.StreamHandler",
            "formatter": "formatter_formatter",
            "stream": "ext://sys.stdout",
        }
    },
    "formatters": {
        "formatter_formatter": {
            "format": DEFAULT_FORMAT,
            "datefmt": DEFAULT_DATEFMT,
        },
    },
}

try:
    logging_config.dictConfig(DEFAULT_LOGGING_CONFIG)
except KeyError:
    logging.basicConfig(format="%(asctime)s %(name)-12s %(levelname)-8s %(message)s", level=logging.DEBUG)


def _apply_logging_config(logger: Logger, loggername: str) -> None:
    """
    Applies the "logging" component configuration:

        [logging]
        level = INFO
        format = %(name)s - %(levelname)s - %(message)s
        datefmt = %H:%M:%S

        [loggers]
        power = DEBUG

    The [logging] options apply to the "ambit" logger and its handlers, the [loggers] options set the level of
    single ambit loggers. All options can be overridden by environment variables, e.g. AMBIT_LOGGING_LEVEL or
    AMBIT_LOGGING_LOGGERS_POWER.
    """
    ambit_logger = logging.getLogger("ambit")

    level = config.get("logging", "level")
    if level:
        ambit_logger.setLevel(level.upper())

    log_format = config.get("logging", "format")
    datefmt = config.get("logging", "datefmt")
    if log_format or datefmt:
        formatter = logging.Formatter(log_format or DEFAULT_FORMAT, datefmt or DEFAULT_DATEFMT)
        for handler in ambit_logger.handlers:
            handler.setFormatter(formatter)

    logger_level = config.get("logging", loggername, section="loggers")
    if logger_level:
        logger.setLevel(logger_level.upper())


def init_logging(loggername: str) -> Logger:
    """
    Initializes the logger used by one ambit module.

    Args:
        loggername (str): The name of the logger to initialize, without the "ambit." prefix.

    Returns:
        Logger: The initialized logger instance.
    """
    logger = logging.getLogger(f"ambit.{loggername}")

    try:
        _apply_logging_config(logger, loggername)
    except Exception as e:
        logger.error("Logging configuration error: %s", e)

    return logger
