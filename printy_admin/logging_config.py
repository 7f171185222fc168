"""
Logging configuration for the admin assistant.

Usage:
    from printy_admin.logging_config import setup_logging
    setup_logging()  # Call once at application startup

Environment variables:
    LOG_LEVEL: Level for the printy_admin package (default: INFO)
    FLOW_LOG_LEVEL: Level for the flow engine only, printy_admin.flows.
        Node transitions and topic routing are logged at DEBUG there, so
        FLOW_LOG_LEVEL=DEBUG traces conversations without turning on
        SQL and request logging. Defaults to LOG_LEVEL.
"""
import logging
import os
import sys
from typing import Optional

VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

FLOW_LOGGER = "printy_admin.flows"

# Chatty below WARNING on every request or query
NOISY_LOGGERS = ["sqlalchemy.engine", "sqlalchemy.pool", "slowapi", "uvicorn.access"]


def _parse_level(value: Optional[str], default: str = "INFO") -> str:
    if not value:
        return default
    value = value.strip().upper()
    return value if value in VALID_LEVELS else default


def setup_logging(level: str = None, flow_level: str = None) -> None:
    """
    Configure logging for the application.

    Args:
        level: Package log level. Falls back to LOG_LEVEL, then INFO.
        flow_level: Flow engine log level. Falls back to FLOW_LOG_LEVEL,
            then to the package level.
    """
    level = _parse_level(level if level is not None else os.getenv("LOG_LEVEL"))
    flow_level = _parse_level(
        flow_level if flow_level is not None else os.getenv("FLOW_LOG_LEVEL"), level
    )

    # The root handler must let the more verbose of the two through
    root_level = min(getattr(logging, level), getattr(logging, flow_level))
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )

    logging.getLogger("printy_admin").setLevel(getattr(logging, level))
    logging.getLogger(FLOW_LOGGER).setLevel(getattr(logging, flow_level))

    library_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    logging.getLogger(__name__).debug(
        "Logging configured: package=%s flows=%s", level, flow_level
    )
