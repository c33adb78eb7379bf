"""
Structlog configuration for the purchasing package.

Every module gets its logger from get_logger(). Nothing is configured on
import; the embedding application calls setup_logging() once at start-up,
or leaves structlog's defaults in place.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from purchasing.config import settings


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp each entry with the service name and version."""
    event_dict["service"] = settings.service_name
    event_dict["version"] = settings.service_version
    return event_dict


def setup_logging() -> None:
    """
    Route structlog through the stdlib root logger.

    Entries carry the event name, level, logger name, UTC timestamp, the
    service/version pair and anything bound with log_context, e.g.:

        {"event": "purchase_manager_restore_fail", "level": "error",
         "logger": "purchasing.events", "service": "purchasing",
         "user_id": "user-456", "error_description": "...", ...}

    settings.log_format selects JSON output or the coloured dev console.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_app_context,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=True)
    )
    processors.append(renderer)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger named after the calling module, e.g. get_logger(__name__)."""
    return structlog.get_logger(name)  # type: ignore[no-any-return]


class log_context:
    """
    Bind key/value pairs to every entry logged inside the block.

        with log_context(user_id="user-456"):
            logger.info("purchase_manager_signed_in")
    """

    def __init__(self, **kwargs: Any) -> None:
        self.context = kwargs

    def __enter__(self) -> None:
        structlog.contextvars.bind_contextvars(**self.context)

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self.context.keys())
