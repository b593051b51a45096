"""Ready-made bus listeners."""

from request_metrics.notifications.events import Event
from request_metrics.observability.constants import LogEvents
from request_metrics.observability.logger import get_logger

logger = get_logger(__name__)


def log_event(event: Event) -> None:
    """Debug listener that logs each event's metadata, never its payload.

    Subscribe it with ``bus.subscribe_all(log_event)``.
    """
    log_method = logger.warning if event.failure else logger.debug
    log_method(
        LogEvents.NOTIFICATION_PUBLISHED,
        event_name=event.name,
        instrumenter_id=event.instrumenter_id,
        duration_ms=round(event.duration_ms, 3),
        error_type=event.failure.error_type if event.failure else None,
    )
