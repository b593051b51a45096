"""Wiring of the bus, registry and recorder from settings."""

from dataclasses import dataclass

from starlette.types import ASGIApp

from request_metrics.core.config import Settings, get_settings
from request_metrics.middleware import instrument_app
from request_metrics.notifications.bus import NotificationBus
from request_metrics.notifications.listeners import log_event
from request_metrics.observability.constants import LogEvents
from request_metrics.observability.logger import configure_logging, get_logger
from request_metrics.payload.defaults import register_default_filters
from request_metrics.payload.registry import PayloadFilterRegistry
from request_metrics.recorder import EventRecorder, EventStore, InMemoryEventStore

logger = get_logger(__name__)


@dataclass
class Instrumentation:
    """The configured pieces, created once at startup."""

    settings: Settings
    bus: NotificationBus
    registry: PayloadFilterRegistry
    store: EventStore
    recorder: EventRecorder

    def install(self, app: ASGIApp) -> None:
        """Add the request middleware to ``app``."""
        instrument_app(app, self.bus, self.settings)


def create_instrumentation(
    settings: Settings | None = None,
    store: EventStore | None = None,
    configure_logs: bool = True,
) -> Instrumentation:
    """Create and configure the instrumentation stack.

    The request event's own payload (path, method, InstrumenterId) is
    registered for storage; every other event keeps only what the seed
    registrations and later ``registry.register`` calls allow.

    Args:
        settings: Settings to use; environment settings when omitted.
        store: Persistence collaborator; an ``InMemoryEventStore`` when omitted.
        configure_logs: Whether to configure structlog from settings.
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(
            log_level=settings.log_level,
            log_format=settings.log_format,
            development_mode=settings.debug,
            service_name=settings.service_name,
        )

    registry = PayloadFilterRegistry()
    if settings.seed_default_filters:
        register_default_filters(registry, settings.project_root, settings.root_placeholder)
    registry.register(settings.request_event_name)

    bus = NotificationBus()
    if settings.debug:
        bus.subscribe_all(log_event)

    store = store if store is not None else InMemoryEventStore()
    recorder = EventRecorder(registry, store).attach(bus)

    logger.info(
        LogEvents.INSTRUMENTATION_READY,
        filters=len(registry),
        exclude_prefixes=settings.exclude_prefixes,
    )
    return Instrumentation(
        settings=settings,
        bus=bus,
        registry=registry,
        store=store,
        recorder=recorder,
    )
