"""
Logging setup for the bot.

Every record carries the delivery id of the webhook event being handled (or
"-" outside of event handling), so all lines produced while processing one
delivery can be grepped together.

Usage:
    from bors.core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Processing %s", event)
"""

import logging
import sys
from contextvars import ContextVar
from typing import Optional

delivery_id_var: ContextVar[Optional[str]] = ContextVar("delivery_id", default=None)

NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")


class DeliveryIdFilter(logging.Filter):
    """Attach `delivery_id` to each record from the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.delivery_id = delivery_id_var.get() or "-"
        return True


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger. Call once at process startup.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(DeliveryIdFilter())
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(delivery_id)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[handler],
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)
