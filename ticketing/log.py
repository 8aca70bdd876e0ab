# ticketing/log.py
import logging

import structlog

from ticketing import config


def configure_logging(level: str = config.LOG_LEVEL, json_logs: bool = config.LOG_JSON) -> None:
    """Route stdlib and structlog output through one structured pipeline."""
    logging.basicConfig(format="%(message)s", level=level.upper())

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
