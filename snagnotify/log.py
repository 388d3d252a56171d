"""Structured logging setup."""

import logging
from typing import Optional

import structlog

from .config import settings


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure structlog with a JSON renderer on top of stdlib logging.

    Args:
        level: Log level name. Defaults to ``settings.log_level``.
    """
    level = (level or settings.log_level).upper()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(message)s",
    )
