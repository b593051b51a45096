"""Request instrumentation for Starlette/FastAPI services.

Three pieces work together:

- ``NotificationBus`` runs instrumented bodies and publishes one ``Event`` each.
- ``PayloadFilterRegistry`` decides which payload fields of each event are kept.
- ``InstrumentationMiddleware`` wraps every request in a ``request`` event.

Usage:
    from fastapi import FastAPI
    from request_metrics import create_instrumentation

    instrumentation = create_instrumentation()
    instrumentation.registry.register("orders.charge", only=["amount", "currency"])

    app = FastAPI()
    instrumentation.install(app)

    instrumentation.bus.instrument("orders.charge", payload, charge)
"""

from request_metrics.main import Instrumentation, create_instrumentation
from request_metrics.middleware import InstrumentationMiddleware, instrument_app
from request_metrics.notifications import Event, FailureInfo, NotificationBus, log_event
from request_metrics.observability import get_instrumenter_id
from request_metrics.payload import (
    All,
    Exclude,
    FilterConfigurationError,
    FilterSpec,
    Nothing,
    PayloadFilterRegistry,
    Transform,
    Whitelist,
    register_default_filters,
)
from request_metrics.recorder import (
    EventNode,
    EventRecord,
    EventRecorder,
    EventStore,
    InMemoryEventStore,
    build_call_tree,
)

__version__ = "0.1.0"

__all__ = [
    # Bus
    "Event",
    "FailureInfo",
    "NotificationBus",
    "log_event",
    # Filtering
    "All",
    "Exclude",
    "FilterConfigurationError",
    "FilterSpec",
    "Nothing",
    "PayloadFilterRegistry",
    "Transform",
    "Whitelist",
    "register_default_filters",
    # Middleware
    "InstrumentationMiddleware",
    "get_instrumenter_id",
    "instrument_app",
    # Setup
    "Instrumentation",
    "create_instrumentation",
    # Persistence hand-off
    "EventNode",
    "EventRecord",
    "EventRecorder",
    "EventStore",
    "InMemoryEventStore",
    "build_call_tree",
]
