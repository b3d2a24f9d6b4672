"""Centralized logging setup with Logfire integration.

Logfire itself is configured by the application entry point
(``logfire.configure``); this module wires structlog so that both structlog
and standard library loggers flow through the same processors.
"""

import logging
import sys

import logfire
import structlog
from structlog.processors import CallsiteParameter, CallsiteParameterAdder
from structlog.types import EventDict, Processor, WrappedLogger
from structlog.typing import FilteringBoundLogger


def add_error_type(
    _logger: WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Record the class name of an ``error`` field so it is searchable in Logfire."""
    if "error" in event_dict and isinstance(event_dict["error"], BaseException):
        event_dict["error_type"] = type(event_dict["error"]).__name__
    return event_dict


def setup_logging(level: int = logging.INFO, colors: bool = True) -> None:
    """Set up application-wide logging with Logfire and structlog integration.

    Args:
        level: Minimum level for both structlog and standard library loggers
        colors: Whether the console renderer should emit ANSI colours
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        CallsiteParameterAdder(
            parameters=[
                CallsiteParameter.FILENAME,
                CallsiteParameter.LINENO,
                CallsiteParameter.FUNC_NAME,
            ]
        ),
        add_error_type,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        # Must come before the final renderer
        logfire.StructlogProcessor(),
        structlog.dev.ConsoleRenderer(colors=colors),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        # PrintLogger avoids double logging through the standard library
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Library loggers (neo4j, httpx, uvicorn) go through the same pre-chain
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(colors=colors),
        foreign_pre_chain=processors[:-2],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    # The neo4j driver is chatty at INFO
    logging.getLogger("neo4j").setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    """Get a structured logger instance.

    Args:
        name: The name of the logger (usually __name__)

    Returns:
        A structlog logger; before ``setup_logging`` runs it uses structlog's defaults
    """
    return structlog.get_logger(name)
