import logging
import sys

from portal.settings import settings


def setup_logging() -> logging.Logger:
    """
    Sets up logging for the portal with a single console handler.
    """
    logger = logging.getLogger("helpdesk_portal")
    if logger.handlers:
        return logger
    logger.setLevel(settings.LOG_LEVEL.upper())

    console_handler = logging.StreamHandler(sys.stdout)
    info_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    console_handler.setFormatter(info_formatter)

    logger.addHandler(console_handler)
    return logger


def token_snippet(token: str) -> str:
    """Loggable preview of a bearer token; never log the full value."""
    return f"{token[:12]}... (len={len(token)})"


logger = setup_logging()
