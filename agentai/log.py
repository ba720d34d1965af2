import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import logfire
from logfire import LogfireLoggingHandler

from agentai.config import Settings

LOGGER_NAME = "agentai"
LOG_FORMAT = "[%(levelname)s] %(message)s"


class _BelowLevelFilter(logging.Filter):
    def __init__(self, level: int) -> None:
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def init_logger(
    logger_name: str = LOGGER_NAME,
    log_file: Path | None = None,
    log_level: int | str = logging.INFO,
    logfire_token: str | None = None,
) -> logging.Logger:
    """Configure the supervisor logger.

    Lines are timestamp-free and prefixed by severity; the container runtime
    adds its own timestamps. INFO and DEBUG go to stdout, WARNING and above
    to stderr.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    stdout_handler.addFilter(_BelowLevelFilter(logging.WARNING))
    logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.setLevel(logging.WARNING)
    logger.addHandler(stderr_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        filehandler = RotatingFileHandler(
            filename=log_file, maxBytes=10 * 1024 * 1024, backupCount=10
        )
        filehandler.setFormatter(formatter)
        logger.addHandler(filehandler)

    if logfire_token:
        logfire.configure(token=logfire_token, service_name=logger_name, console=False)
        logger.addHandler(LogfireLoggingHandler())

    return logger


def configure_from_settings(settings: Settings) -> logging.Logger:
    return init_logger(
        log_file=settings.log_file,
        log_level=settings.log_level.upper(),
        logfire_token=settings.logfire_token,
    )

