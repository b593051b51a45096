"""structlog setup that stamps the service name and active InstrumenterId."""

import logging
import sys
from functools import partial

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from request_metrics.observability.constants import SERVICE_NAME
from request_metrics.observability.context import get_instrumenter_id


def add_instrumenter_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add the InstrumenterId of the current request unless the entry already names one."""
    instrumenter_id = get_instrumenter_id()
    if instrumenter_id:
        event_dict.setdefault("instrumenter_id", instrumenter_id)
    return event_dict


def add_service_name(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
    service_name: str = SERVICE_NAME,
) -> EventDict:
    event_dict["service"] = service_name
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    development_mode: bool = False,
    service_name: str = SERVICE_NAME,
) -> None:
    """Configure structlog for the host process.

    Args:
        log_level: The log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: "json" for production, "console" for development.
        development_mode: If True, uses colored console output.
        service_name: Value of the ``service`` key on every entry.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        partial(add_service_name, service_name=service_name),
        add_instrumenter_id,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "console" or development_mode:
        processors: list[Processor] = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(default=str),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
        force=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
