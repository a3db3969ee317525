import logging
import sys
from logging.handlers import RotatingFileHandler

from config import LOG_FILE, LOG_LEVEL

# Track if logging has been configured to avoid duplicate handlers
_logging_configured = False


def setup_logging():
    """Configure application logging with proper formatting and rotation."""
    global _logging_configured

    if _logging_configured:
        return

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    try:
        log_level = getattr(logging, LOG_LEVEL.upper())
    except AttributeError:
        log_level = logging.INFO
        print(f"Warning: Invalid LOG_LEVEL '{LOG_LEVEL}', using INFO", file=sys.stderr)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if LOG_FILE:
        # RotatingFileHandler: 5MB max, keep 3 backups
        handlers.append(
            RotatingFileHandler(
                LOG_FILE,
                maxBytes=5 * 1024 * 1024,  # 5MB
                backupCount=3,
                encoding="utf-8",
            )
        )

    logging.basicConfig(level=log_level, format=log_format, handlers=handlers)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a module."""
    return logging.getLogger(name)
