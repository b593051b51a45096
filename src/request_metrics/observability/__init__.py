"""Observability layer for request-metrics.

Structured logging and the per-request instrumentation context.

Usage:
    from request_metrics.observability import get_logger, get_instrumenter_id

    logger = get_logger(__name__)
    logger.info("payload_filter.registered", names=["sql.query"])
"""

from request_metrics.observability.context import (
    InstrumentationContext,
    get_instrumentation_context,
    get_instrumenter_id,
    instrumentation_context_var,
    instrumentation_scope,
    new_instrumenter_id,
)
from request_metrics.observability.logger import configure_logging, get_logger

__all__ = [
    # Context
    "InstrumentationContext",
    "get_instrumentation_context",
    "get_instrumenter_id",
    "instrumentation_context_var",
    "instrumentation_scope",
    "new_instrumenter_id",
    # Logger
    "configure_logging",
    "get_logger",
]
