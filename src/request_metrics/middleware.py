"""Starlette middleware that wraps each request in an instrumented event.

Every request outside the excluded prefixes gets a fresh InstrumenterId which:
1. Is stored in a ContextVar for async-safe access by nested instrumentation
2. Is exposed to handlers as ``request.state.instrumenter_id``
3. Is recorded in the request event payload alongside path and method
"""

from collections.abc import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from request_metrics.core.config import Settings, get_settings
from request_metrics.notifications.bus import NotificationBus
from request_metrics.observability.constants import (
    DEFAULT_EXCLUDE_PREFIX,
    REQUEST_EVENT,
    LogEvents,
)
from request_metrics.observability.context import (
    InstrumentationContext,
    instrumentation_scope,
    new_instrumenter_id,
)
from request_metrics.observability.logger import get_logger

logger = get_logger(__name__)


class InstrumentationMiddleware(BaseHTTPMiddleware):
    """Instrument each request on a ``NotificationBus``.

    The response is returned untouched, and a handler exception is re-raised
    after the request event carrying its failure info has been published.
    """

    def __init__(
        self,
        app: ASGIApp,
        bus: NotificationBus,
        exclude_prefixes: Iterable[str] = (DEFAULT_EXCLUDE_PREFIX,),
        event_name: str = REQUEST_EVENT,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application.
            bus: Bus the request events are published on.
            exclude_prefixes: Path prefixes passed straight through, e.g. the
                metrics system's own endpoints.
            event_name: Name of the published request event.
        """
        super().__init__(app)
        self.bus = bus
        self.exclude_prefixes = tuple(exclude_prefixes)
        self.event_name = event_name

    def is_excluded(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.exclude_prefixes)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process the request inside an instrumentation scope.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware/handler in the chain.

        Returns:
            The downstream response, unchanged.
        """
        path = request.url.path
        if self.is_excluded(path):
            logger.debug(LogEvents.REQUEST_EXCLUDED, path=path)
            return await call_next(request)

        context = InstrumentationContext(
            instrumenter_id=new_instrumenter_id(),
            path=path,
            method=request.method,
        )
        request.state.instrumenter_id = context.instrumenter_id

        with instrumentation_scope(context):
            return await self.bus.ainstrument(
                self.event_name,
                {
                    "path": context.path,
                    "method": context.method,
                    "instrumenter_id": context.instrumenter_id,
                },
                lambda: call_next(request),
            )


def instrument_app(
    app: ASGIApp,
    bus: NotificationBus,
    settings: Settings | None = None,
) -> None:
    """Add ``InstrumentationMiddleware`` to a Starlette/FastAPI app from settings.

    Args:
        app: Application exposing ``add_middleware``.
        bus: Bus the request events are published on.
        settings: Instrumentation settings; environment defaults when omitted.
    """
    settings = settings or get_settings()
    app.add_middleware(  # type: ignore[attr-defined]
        InstrumentationMiddleware,
        bus=bus,
        exclude_prefixes=settings.exclude_prefixes,
        event_name=settings.request_event_name,
    )
