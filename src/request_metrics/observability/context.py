"""Context management for instrumentation.

Provides async-safe context variables that carry the InstrumenterId of the
operation currently being handled. Every event instrumented while a context is
active shares its InstrumenterId, which is how nested events are correlated.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class InstrumentationContext:
    """Immutable per-request (or per top-level operation) instrumentation state.

    Attributes:
        instrumenter_id: Correlation token shared by all nested events.
        path: Request path when the context was opened by the HTTP middleware.
        method: Request method when the context was opened by the HTTP middleware.
    """

    instrumenter_id: str
    path: Optional[str] = None
    method: Optional[str] = None

    @property
    def in_request(self) -> bool:
        """Whether this context belongs to an instrumented HTTP request."""
        return self.path is not None


# Context variable for the active instrumentation - async-safe across concurrent requests
instrumentation_context_var: ContextVar[Optional[InstrumentationContext]] = ContextVar(
    "instrumentation_context", default=None
)

# Number of instrumented calls enclosing the current point of execution
instrument_depth_var: ContextVar[int] = ContextVar("instrument_depth", default=0)


def new_instrumenter_id() -> str:
    """Generate a fresh InstrumenterId."""
    return uuid.uuid4().hex


def get_instrumentation_context() -> Optional[InstrumentationContext]:
    """Get the active instrumentation context, or None outside any scope."""
    return instrumentation_context_var.get()


def get_instrumenter_id() -> str:
    """Get the current InstrumenterId.

    Returns:
        The InstrumenterId for the current context, or empty string if not set.
    """
    context = instrumentation_context_var.get()
    return context.instrumenter_id if context else ""


@contextmanager
def instrumentation_scope(context: InstrumentationContext) -> Iterator[InstrumentationContext]:
    """Make ``context`` the active instrumentation context for the enclosed block.

    The previous context is restored on exit, even when the block raises.

    Args:
        context: The context to activate.

    Yields:
        The activated context.
    """
    token = instrumentation_context_var.set(context)
    try:
        yield context
    finally:
        instrumentation_context_var.reset(token)
