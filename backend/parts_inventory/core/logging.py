"""Application-wide logging setup."""

import logging
import logging.handlers
import sys
from pathlib import Path

from parts_inventory.core.config import settings

APP_LOGGER_NAME = "parts_inventory"

THIRD_PARTY_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "alembic",
    "uvicorn.access",
    "uvicorn.error",
    "httpx",
)


def setup_logging(
    app_log_level: str | None = None,
    third_party_log_level: str | None = None,
    log_file: str | None = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """Configure the ``parts_inventory`` logger tree.

    Module loggers created with ``logging.getLogger(__name__)`` inside the
    package inherit these handlers. Calling this twice replaces the handlers
    instead of stacking them.
    """
    app_level_name = app_log_level or settings.APP_LOG_LEVEL
    third_party_level_name = third_party_log_level or settings.THIRD_PARTY_LOG_LEVEL
    log_file = log_file or settings.LOG_FILE

    app_level = getattr(logging, app_level_name.upper(), logging.INFO)
    third_party_level = getattr(logging, third_party_level_name.upper(), logging.WARNING)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(app_level)
    app_logger.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(app_level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
        )
        file_handler.setLevel(app_level)
        file_handler.setFormatter(formatter)
        app_logger.addHandler(file_handler)

    for logger_name in THIRD_PARTY_LOGGERS:
        logging.getLogger(logger_name).setLevel(third_party_level)

    app_logger.propagate = False
    return app_logger
