"""structlog configuration for genflow.

Modules log with ``log = structlog.get_logger()`` and event names
(``log.info("task_started", queue="standard")``). Applications call
``configure_logging()`` once at startup; without it structlog's
defaults apply.
"""

import logging
import sys
from typing import Optional

import structlog

from genflow.core.config import LoggingConfig


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure structlog processors and the stdlib root level.

    Args:
        config: Logging section of Settings. Defaults to LoggingConfig().
    """
    config = config or LoggingConfig()
    level = getattr(logging, config.level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer = (
        structlog.processors.JSONRenderer()
        if config.format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
