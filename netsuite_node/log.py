import logging
from pathlib import Path
from typing import Optional

from .config import Settings

LOGGER_NAME = "netsuite_node"
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if not name or name == LOGGER_NAME:
        return logging.getLogger(LOGGER_NAME)
    if name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def configure_logging(settings: Settings) -> logging.Logger:
    """
    Apply the debug toggle and optional log file from Settings.

    When a log file is configured, records go there only (never stdout),
    which keeps the MCP stdio transport clean. Calling this again with the
    same file does not add a second handler.
    """
    logger = get_logger()
    logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    if settings.log_file:
        log_path = Path(settings.log_file).expanduser().resolve()
        for handler in logger.handlers:
            if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path:
                return logger

        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    return logger
